from pydantic import BaseModel, ConfigDict, Field
from typing import Optional, List
from datetime import datetime

from app.core.constants import ExamAttemptStatusEnum
from app.schemas.exam import Exam
from app.schemas.exam_statistics import ExamStatistics
from app.schemas.question import QuestionPublic
from app.schemas.student_answer import StudentAnswer

class ExamAttemptBase(BaseModel):
    student_id: int
    exam_id: int
    started_at: Optional[datetime] = None
    submitted_at: Optional[datetime] = None
    total_score: float = 0
    status: ExamAttemptStatusEnum = Field(default=ExamAttemptStatusEnum.IN_PROGRESS)

class ExamAttemptCreate(ExamAttemptBase):
    pass

class ExamAttemptUpdate(BaseModel):
    submitted_at: Optional[datetime] = None
    total_score: Optional[float] = None
    status: Optional[ExamAttemptStatusEnum] = None

class ExamAttempt(ExamAttemptBase):
    id: int
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)

class QuestionWithStudentAnswer(QuestionPublic):
    student_answer: Optional[StudentAnswer] = None

class ExamAttemptDetails(BaseModel):
    attempt: ExamAttempt
    exam: Exam
    questions: List[QuestionWithStudentAnswer] = []
    statistics: Optional[ExamStatistics] = None
