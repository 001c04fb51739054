from pydantic import BaseModel, ConfigDict, Field, computed_field
from typing import Optional, Any, Dict
from datetime import datetime

from app.core.constants import CorrectnessEnum

class StudentAnswerBase(BaseModel):
    attempt_id: int
    question_id: int
    answer_text: Optional[str] = None
    time_spent_seconds: Optional[int] = None

class StudentAnswerCreate(StudentAnswerBase):
    is_correct: Optional[bool] = None
    score: float = 0
    ai_evaluation: Optional[Dict[str, Any]] = None
    evaluated_at: Optional[datetime] = None

class StudentAnswerUpdate(BaseModel):
    answer_text: Optional[str] = None
    time_spent_seconds: Optional[int] = None
    is_correct: Optional[bool] = None
    score: Optional[float] = None
    ai_evaluation: Optional[Dict[str, Any]] = None
    evaluated_at: Optional[datetime] = None

class AnswerSubmission(BaseModel):
    """Payload the exam-taking surface sends when saving or checking an answer."""
    question_id: int
    answer_text: Optional[str] = None
    time_spent_seconds: Optional[int] = Field(default=None, ge=0)

class StudentAnswer(StudentAnswerBase):
    id: int
    is_correct: Optional[bool] = None
    score: float = 0
    ai_evaluation: Optional[Dict[str, Any]] = None
    evaluated_at: Optional[datetime] = None
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

    @computed_field
    @property
    def correctness(self) -> Optional[CorrectnessEnum]:
        if self.evaluated_at is None:
            return None
        return CorrectnessEnum.from_is_correct(self.is_correct)
