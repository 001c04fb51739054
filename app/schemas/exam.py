from pydantic import BaseModel, ConfigDict, field_validator
from typing import Optional, List
from datetime import datetime
from app.core.constants import DifficultyEnum

from app.schemas.question import Question

class ExamBase(BaseModel):
    title: str
    description: Optional[str] = None
    difficulty: DifficultyEnum = DifficultyEnum.MEDIUM
    time_limit_minutes: Optional[int] = None

    @field_validator('time_limit_minutes')
    @classmethod
    def validate_time_limit(cls, v):
        if v is not None and v <= 0:
            raise ValueError("time_limit_minutes must be a positive number of minutes")
        return v

    class Config:
        json_schema_extra = {
            "example": {
                "title": "Cell Biology Mock Paper",
                "description": "Mixed MCQ, fill-in-the-blank and open-ended questions",
                "difficulty": "medium",
                "time_limit_minutes": 60
            }
        }

class ExamCreate(ExamBase):
    teacher_id: Optional[int] = None

class ExamUpdate(ExamBase):
    title: Optional[str] = None
    difficulty: Optional[DifficultyEnum] = None

class Exam(ExamBase):
    id: int
    teacher_id: int
    is_published: bool
    total_marks: float
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class ExamWithQuestions(Exam):
    questions: List[Question] = []
