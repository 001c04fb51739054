from sqlalchemy.orm import Session
from typing import Optional

from app.crud.base import CRUDBase
from app.models.exam_statistics import ExamStatistics
from app.schemas.exam_statistics import ExamStatisticsBase, ExamStatisticsCreate

class CRUDExamStatistics(CRUDBase[ExamStatistics, ExamStatisticsCreate, ExamStatisticsBase]):

    def get_by_attempt(self, db: Session, attempt_id: int) -> Optional[ExamStatistics]:
        return db.query(ExamStatistics).filter(ExamStatistics.attempt_id == attempt_id).first()

    def create_or_update(self, db: Session, *, obj_in: ExamStatisticsCreate, commit: bool = True) -> ExamStatistics:
        existing = self.get_by_attempt(db, attempt_id=obj_in.attempt_id)
        if existing:
            return self.update(db, db_obj=existing, obj_in=obj_in.model_dump(exclude={"attempt_id"}), commit=commit)
        return self.create(db, obj_in=obj_in, commit=commit)


exam_statistics = CRUDExamStatistics(ExamStatistics)
