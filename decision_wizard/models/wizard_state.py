# decision_wizard/models/wizard_state.py

from typing import Any, Dict, List, Optional

from pydantic import BaseModel, Field

from decision_wizard.models.flow_models import AnalysisResult, FlowStage, Question


class WizardState(BaseModel):
    """
    In-memory state of the guided decision flow: the current stage, the topic,
    the generated questions with the answers picked so far, the stepper position
    and whatever the presentation layer needs to show (error, loading text).
    """
    stage: FlowStage = FlowStage.START
    topic: str = ""
    questions: List[Question] = Field(default_factory=list)
    answers: Dict[int, str] = Field(default_factory=dict)
    current_index: int = 0
    result: Optional[AnalysisResult] = None
    error: Optional[str] = None
    loading_message: Optional[str] = None
    needs_credential: bool = False

    @property
    def is_loading(self) -> bool:
        return self.stage in (FlowStage.GENERATING_QUESTIONS, FlowStage.ANALYZING)

    @property
    def current_question(self) -> Optional[Question]:
        if 0 <= self.current_index < len(self.questions):
            return self.questions[self.current_index]
        return None

    @property
    def current_answer(self) -> Optional[str]:
        question = self.current_question
        if question is None:
            return None
        return self.answers.get(question.id)

    @property
    def has_current_answer(self) -> bool:
        return self.current_answer is not None

    @property
    def is_last_question(self) -> bool:
        return bool(self.questions) and self.current_index == len(self.questions) - 1

    def progress(self) -> Dict[str, Any]:
        """Stepper position as shown by the progress bar (1-based)."""
        total = len(self.questions)
        if total == 0:
            return {"position": 0, "total": 0, "percent": 0}
        position = self.current_index + 1
        return {
            "position": position,
            "total": total,
            "percent": round(position / total * 100),
        }
