# decision_wizard/prompts/message_prompts.py
"""
User-facing messages for the decision wizard.

Loading messages are shown while a backend call is in flight; error messages
replace raw exceptions when the flow falls back to the start.
"""

# ============================================================================
# LOADING MESSAGES
# ============================================================================

LOADING_QUESTIONS = "Generating {question_count} tailored questions for your decision..."

LOADING_ANALYSIS = "Analysing your answers to work out the best decision..."

# ============================================================================
# ERROR MESSAGES
# ============================================================================

ERROR_INVALID_CREDENTIAL = "The API key could not be found or billing setup is required. Please select a key again."

ERROR_MISSING_CREDENTIAL = "An API key is required to use the generation service. Please select a key and try again."

ERROR_EMPTY_RESPONSE = "Something went wrong while generating questions. The AI response was empty."

ERROR_EMPTY_ANALYSIS = "The analysis could not be completed. The AI response was empty."

ERROR_PARSE = "Something went wrong while interpreting the generated data."

ERROR_GENERIC = "An error occurred."

ERROR_ANALYSIS_GENERIC = "An error occurred during analysis."
