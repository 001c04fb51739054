from pydantic import BaseModel, ConfigDict, model_validator
from typing import Optional
from datetime import datetime

class ExamStatisticsBase(BaseModel):
    correct_count: int = 0
    incorrect_count: int = 0
    partially_correct_count: int = 0
    skipped_count: int = 0
    total_questions: int = 0

    @model_validator(mode="after")
    def counts_cover_every_question(self):
        counted = self.correct_count + self.incorrect_count + self.partially_correct_count + self.skipped_count
        if counted != self.total_questions:
            raise ValueError(f"Statistic counts sum to {counted}, expected {self.total_questions}")
        return self

class ExamStatisticsCreate(ExamStatisticsBase):
    attempt_id: int

class ExamStatistics(ExamStatisticsBase):
    id: int
    attempt_id: int
    created_at: Optional[datetime] = None

    model_config = ConfigDict(from_attributes=True)
