from sqlalchemy import Column, Integer, String, Boolean, DateTime, Float, Enum
from sqlalchemy.orm import relationship
from sqlalchemy.sql import func
from app.core.database import Base
from app.core.constants import DifficultyEnum

class Exam(Base):
    __tablename__ = "exams"

    id = Column(Integer, primary_key=True, index=True)
    teacher_id = Column(Integer, nullable=False, index=True)
    title = Column(String, index=True, nullable=False)
    description = Column(String, nullable=True)
    difficulty = Column(Enum(DifficultyEnum), nullable=False, default=DifficultyEnum.MEDIUM)
    time_limit_minutes = Column(Integer, nullable=True)
    is_published = Column(Boolean, default=False, nullable=False)
    total_marks = Column(Float, default=0, nullable=False)
    created_at = Column(DateTime(timezone=True), server_default=func.now())
    updated_at = Column(DateTime(timezone=True), onupdate=func.now())

    questions = relationship(
        "Question", back_populates="exam", cascade="all, delete-orphan", order_by="Question.order_index"
    )
    attempts = relationship("ExamAttempt", back_populates="exam", cascade="all, delete-orphan")
