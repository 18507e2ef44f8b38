# decision_wizard/models/response_schemas.py
"""
Output schemas declared to the generation backend.

Strict structured-output mode only accepts an object at the root, so the
question list travels wrapped in a ``questions`` property. Property order in
each dict is the order the backend is asked to emit.
"""

QUESTION_ITEM_SCHEMA = {
    "type": "object",
    "properties": {
        "id": {"type": "integer"},
        "text": {"type": "string"},
        "options": {
            "type": "array",
            "items": {"type": "string"}
        }
    },
    "required": ["id", "text", "options"],
    "additionalProperties": False
}

QUESTION_LIST_SCHEMA = {
    "type": "object",
    "properties": {
        "questions": {
            "type": "array",
            "items": QUESTION_ITEM_SCHEMA
        }
    },
    "required": ["questions"],
    "additionalProperties": False
}

_STRING_LIST = {"type": "array", "items": {"type": "string"}}

ANALYSIS_SCHEMA = {
    "type": "object",
    "properties": {
        "finalRecommendation": {"type": "string"},
        "summary": {"type": "string"},
        "reasoning": _STRING_LIST,
        "pros": _STRING_LIST,
        "cons": _STRING_LIST,
        "nextSteps": _STRING_LIST
    },
    "required": ["finalRecommendation", "summary", "reasoning", "pros", "cons", "nextSteps"],
    "additionalProperties": False
}

QUESTION_LIST_SCHEMA_NAME = "decision_questions"
ANALYSIS_SCHEMA_NAME = "decision_analysis"
