from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import QuestionTypeEnum

class QuestionOptionBase(BaseModel):
    option_text: str
    is_correct: bool = False
    order_index: int = 0

class QuestionOptionCreate(QuestionOptionBase):
    pass

class QuestionOption(QuestionOptionBase):
    id: int
    question_id: int

    model_config = ConfigDict(from_attributes=True)

class QuestionOptionPublic(BaseModel):
    """Option as shown to a student while the exam is running."""
    id: int
    option_text: str
    order_index: int

    model_config = ConfigDict(from_attributes=True)

class QuestionBase(BaseModel):
    question_text: str
    question_type: QuestionTypeEnum
    marks: float = Field(gt=0)
    model_answer: str
    correct_answer: Optional[str] = None # fib: plain text or a JSON array, one entry per blank
    order_index: int = 0

class QuestionCreate(QuestionBase):
    exam_id: Optional[int] = None
    options: Optional[List[QuestionOptionCreate]] = None

class QuestionUpdate(BaseModel):
    question_text: Optional[str] = None
    marks: Optional[float] = Field(default=None, gt=0)
    model_answer: Optional[str] = None
    correct_answer: Optional[str] = None
    order_index: Optional[int] = None

class Question(QuestionBase):
    id: int
    exam_id: int
    options: List[QuestionOption] = []
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class QuestionPublic(BaseModel):
    id: int
    exam_id: int
    question_text: str
    question_type: QuestionTypeEnum
    marks: float
    order_index: int
    options: List[QuestionOptionPublic] = []

    model_config = ConfigDict(from_attributes=True)
