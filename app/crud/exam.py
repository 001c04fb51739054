from sqlalchemy.orm import Session
from typing import List

from app.crud.base import CRUDBase
from app.models.exam import Exam
from app.schemas.exam import ExamCreate, ExamUpdate

class CRUDExam(CRUDBase[Exam, ExamCreate, ExamUpdate]):

    def get_by_teacher(self, db: Session, teacher_id: int, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            db.query(Exam)
            .filter(Exam.teacher_id == teacher_id)
            .order_by(Exam.created_at.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_published(self, db: Session, skip: int = 0, limit: int = 100) -> List[Exam]:
        return (
            db.query(Exam)
            .filter(Exam.is_published == True)
            .offset(skip)
            .limit(limit)
            .all()
        )


exam = CRUDExam(Exam)
