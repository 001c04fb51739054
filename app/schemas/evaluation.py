from pydantic import BaseModel, ConfigDict, Field, StrictFloat, StrictInt, computed_field
from typing import Optional, List, Any, Dict, Union
from datetime import datetime

from app.core.constants import CorrectnessEnum
from app.utils.scoring import round_half_up

class EvaluationResult(BaseModel):
    """Verdict for one answer produced by a single-question evaluator."""
    correctness: CorrectnessEnum
    score: float
    ai_evaluation: Optional[Dict[str, Any]] = None

    @property
    def is_correct(self) -> Optional[bool]:
        return self.correctness.is_correct

class SemanticEvaluationRequest(BaseModel):
    question_text: str
    model_answer: str
    student_answer: str
    max_marks: float

class EvaluationMetadata(BaseModel):
    accuracy: Optional[Any] = None
    completeness: Optional[Any] = None
    relevance: Optional[Any] = None

    model_config = ConfigDict(extra="allow")

class SemanticEvaluation(BaseModel):
    """Success payload of the semantic evaluation service, validated before use."""
    score: Union[StrictInt, StrictFloat]
    feedback: str = Field(min_length=1)
    evaluation_metadata: Optional[EvaluationMetadata] = None
    how_to_improve: Optional[str] = None

    model_config = ConfigDict(extra="allow", allow_inf_nan=False)

class EvaluatedAnswer(BaseModel):
    id: Optional[int] = None
    attempt_id: Optional[int] = None
    question_id: int
    answer_text: Optional[str] = None
    correctness: Optional[CorrectnessEnum] = None
    score: float = 0
    ai_evaluation: Optional[Dict[str, Any]] = None
    evaluated_at: Optional[datetime] = None
    evaluation_error: Optional[str] = None

    @property
    def is_correct(self) -> Optional[bool]:
        return self.correctness.is_correct if self.correctness else None

    @property
    def is_empty(self) -> bool:
        return not self.answer_text or not self.answer_text.strip()

class EvaluationBatch(BaseModel):
    evaluated_answers: List[EvaluatedAnswer] = []
    total_score: float = 0

class MarkAllocation(BaseModel):
    base_marks: float
    adjustment: float
    total_questions: int

    @computed_field
    @property
    def last_question_marks(self) -> float:
        return round_half_up(self.base_marks + self.adjustment, 1)

class LiveCheckResult(BaseModel):
    question_id: int
    correctness: CorrectnessEnum
    score: float
    max_marks: float
    ai_evaluation: Optional[Dict[str, Any]] = None
