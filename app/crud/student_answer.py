from sqlalchemy.orm import Session
from typing import Any, Dict, List, Optional

from app.crud.base import CRUDBase
from app.models.student_answer import StudentAnswer
from app.schemas.student_answer import StudentAnswerCreate, StudentAnswerUpdate

class CRUDStudentAnswer(CRUDBase[StudentAnswer, StudentAnswerCreate, StudentAnswerUpdate]):

    def get_by_attempt_and_question(self, db: Session, attempt_id: int,
                                    question_id: int) -> Optional[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.attempt_id == attempt_id)
            .filter(StudentAnswer.question_id == question_id)
            .first()
        )

    def get_all_by_attempt(self, db: Session, attempt_id: int) -> List[StudentAnswer]:
        return (
            db.query(StudentAnswer)
            .filter(StudentAnswer.attempt_id == attempt_id)
            .order_by(StudentAnswer.id)
            .all()
        )

    def upsert(self, db: Session, *, attempt_id: int, question_id: int,
               values: Dict[str, Any], commit: bool = True) -> StudentAnswer:
        """Insert or overwrite the single answer stored for (attempt_id, question_id).

        The unique constraint on the pair rejects a concurrent duplicate insert,
        so a retried save always lands on the same row.
        """
        existing = self.get_by_attempt_and_question(db, attempt_id=attempt_id, question_id=question_id)
        if existing:
            return self.update(db, db_obj=existing, obj_in=values, commit=commit)

        obj_in = StudentAnswerCreate(attempt_id=attempt_id, question_id=question_id, **values)
        return self.create(db, obj_in=obj_in, commit=commit)


student_answer = CRUDStudentAnswer(StudentAnswer)
