from sqlalchemy import func
from sqlalchemy.orm import Session, selectinload
from typing import List, Optional

from app.crud.base import CRUDBase
from app.models.question import Question, QuestionOption
from app.schemas.question import QuestionCreate, QuestionUpdate

class CRUDQuestion(CRUDBase[Question, QuestionCreate, QuestionUpdate]):

    def _query_with_options(self, db: Session):
        return db.query(Question).options(selectinload(Question.options))

    def get(self, db: Session, id: int) -> Optional[Question]:
        return self._query_with_options(db).filter(Question.id == id).first()

    def get_by_exam(self, db: Session, exam_id: int) -> List[Question]:
        return (
            self._query_with_options(db)
            .filter(Question.exam_id == exam_id)
            .order_by(Question.order_index, Question.id)
            .all()
        )

    def create_with_options(self, db: Session, *, obj_in: QuestionCreate, commit: bool = True) -> Question:
        data = obj_in.model_dump(exclude={"options"})
        db_obj = Question(**data)
        options = obj_in.options or []
        explicit_order = len({o.order_index for o in options}) == len(options)
        for index, option in enumerate(options):
            db_obj.options.append(
                QuestionOption(
                    option_text=option.option_text,
                    is_correct=option.is_correct,
                    order_index=option.order_index if explicit_order else index,
                )
            )
        db.add(db_obj)
        db.flush()
        db.refresh(db_obj)
        if commit:
            db.commit()
        return db_obj

    def get_marks_total(self, db: Session, exam_id: int) -> float:
        result = (
            db.query(func.coalesce(func.sum(Question.marks), 0))
            .filter(Question.exam_id == exam_id)
            .scalar()
        )
        return round(float(result), 1)


question = CRUDQuestion(Question)
