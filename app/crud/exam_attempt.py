from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.core.constants import ExamAttemptStatusEnum
from app.crud.base import CRUDBase
from app.models.exam_attempt import ExamAttempt
from app.schemas.exam_attempt import ExamAttemptCreate, ExamAttemptUpdate

class CRUDExamAttempt(CRUDBase[ExamAttempt, ExamAttemptCreate, ExamAttemptUpdate]):

    def _query_with_relationships(self, db: Session):
        return db.query(ExamAttempt).options(
            selectinload(ExamAttempt.exam),
            selectinload(ExamAttempt.student_answers),
            selectinload(ExamAttempt.statistics)
        )

    def get(self, db: Session, id: int) -> Optional[ExamAttempt]:
        return self._query_with_relationships(db).filter(ExamAttempt.id == id).first()

    def get_in_progress(self, db: Session, student_id: int, exam_id: int) -> Optional[ExamAttempt]:
        return (
            self._query_with_relationships(db)
            .filter(ExamAttempt.student_id == student_id)
            .filter(ExamAttempt.exam_id == exam_id)
            .filter(ExamAttempt.status == ExamAttemptStatusEnum.IN_PROGRESS)
            .order_by(ExamAttempt.id.desc())
            .first()
        )

    def get_all_by_student(self, db: Session, student_id: int, skip: int = 0, limit: int = 100) -> List[ExamAttempt]:
        return (
            self._query_with_relationships(db)
            .filter(ExamAttempt.student_id == student_id)
            .order_by(ExamAttempt.started_at.desc(), ExamAttempt.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )

    def get_all_by_exam(self, db: Session, exam_id: int, skip: int = 0, limit: int = 100) -> List[ExamAttempt]:
        return (
            self._query_with_relationships(db)
            .filter(ExamAttempt.exam_id == exam_id)
            .order_by(ExamAttempt.started_at.desc(), ExamAttempt.id.desc())
            .offset(skip)
            .limit(limit)
            .all()
        )


exam_attempt = CRUDExamAttempt(ExamAttempt)
