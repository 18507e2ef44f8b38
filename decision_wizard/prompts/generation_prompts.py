# decision_wizard/prompts/generation_prompts.py
"""
Generation prompts for the decision wizard.

These templates are sent to the generation backend together with a declared
output schema, so they describe content only and leave the JSON shape to the
schema.
"""

# ============================================================================
# QUESTION GENERATION
# ============================================================================

QUESTION_TEMPLATE = """I want to make a decision about: "{topic}".
Please generate exactly {question_count} multiple-choice questions to help me narrow down the best decision.
Each question should have 3 to 4 clear, distinct options.
Number the questions with unique ids starting at 1.
The questions should range from practical needs, personal preferences, budget, long-term goals, and situational context relevant to "{topic}".
"""

# ============================================================================
# ANALYSIS
# ============================================================================

ANALYSIS_TEMPLATE = """The user wants to decide on: "{topic}".
Here are {question_count} questions and the user's answers:
{transcript}

Based on these specific answers, provide a comprehensive and helpful final decision.
Break it down into:
- finalRecommendation: the final recommendation, short and clear
- summary: a few sentences summarising the decision
- reasoning: why this choice suits the user's answers
- pros: advantages of this choice
- cons: disadvantages or risks of this choice
- nextSteps: concrete next steps or advice

Please write in a professional yet friendly tone in {language}.
"""

# One transcript line per question
TRANSCRIPT_LINE_TEMPLATE = "Q: {question} | A: {answer}"

UNANSWERED_MARKER = "(no answer)"

# ============================================================================
# SYSTEM PROMPTS
# ============================================================================

SYSTEM_TEMPLATE = """You are a careful decision coach.
You help people choose by asking focused questions and weighing their answers honestly.
Answer only with the structured data you are asked for."""
