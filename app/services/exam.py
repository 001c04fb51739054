import logging
from typing import List, Optional
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.crud.exam import exam as crud_exam
from app.crud.question import question as crud_question
from app.models.exam import Exam
from app.models.question import Question
from app.schemas.exam import ExamCreate
from app.schemas.question import QuestionCreate
from app.schemas.question import Question as QuestionSchema
from app.schemas.user import UserContext
from app.services.mark_allocation import allocate_marks
from app.utils.permission import PermissionHelper as permission_helper
from app.core.constants import MCQ_OPTION_COUNT, QuestionTypeEnum

logger = logging.getLogger(__name__)


def validate_question(question_in: QuestionCreate) -> Optional[str]:
    """Return why ``question_in`` cannot be scored, or None when it is valid."""
    if not question_in.question_text or not question_in.question_text.strip():
        return "Question text is required."
    if question_in.marks is None or question_in.marks <= 0:
        return "Question marks must be a positive number."
    if not question_in.model_answer or not question_in.model_answer.strip():
        return "Model answer is required."

    if question_in.question_type == QuestionTypeEnum.MCQ:
        options = question_in.options or []
        if len(options) != MCQ_OPTION_COUNT:
            return f"MCQ questions need exactly {MCQ_OPTION_COUNT} options."
        if sum(1 for option in options if option.is_correct) != 1:
            return "MCQ questions need exactly one correct option."

    if question_in.question_type == QuestionTypeEnum.FIB:
        if not question_in.correct_answer or not question_in.correct_answer.strip():
            return "Fill-in-the-blank questions need a correct answer."

    return None


class ExamService:

    def _get_exam_or_404(self, db: Session, exam_id: int) -> Exam:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        return exam

    def _sync_total_marks(self, db: Session, exam: Exam) -> Exam:
        exam.total_marks = crud_question.get_marks_total(db, exam_id=exam.id)
        db.add(exam)
        db.flush()
        return exam

    def create_exam(self, db: Session, exam_in: ExamCreate, current_user_context: UserContext) -> Exam:
        permission_helper.require_teacher(current_user_context)

        exam_data = exam_in.model_dump()
        exam_data["teacher_id"] = current_user_context.user_id
        new_exam = crud_exam.create(db, obj_in=exam_data)
        logger.info(f"Exam {new_exam.id} created by teacher {current_user_context.user_id}")
        return new_exam

    def _require_draft(self, exam: Exam):
        if exam.is_published:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Questions of a published exam cannot be changed."
            )

    def get_exam(self, db: Session, exam_id: int) -> Exam:
        return self._get_exam_or_404(db, exam_id)

    def list_exams(self, db: Session, current_user_context: UserContext, skip: int = 0, limit: int = 100) -> List[Exam]:
        """Admins see every exam, teachers their own, students the published ones."""
        if permission_helper.is_admin(current_user_context):
            return crud_exam.get_multi(db, skip=skip, limit=limit)
        if permission_helper.is_teacher(current_user_context):
            return crud_exam.get_by_teacher(db, teacher_id=current_user_context.user_id, skip=skip, limit=limit)
        return crud_exam.get_published(db, skip=skip, limit=limit)

    def create_questions(self, db: Session, exam_id: int, questions_in: List[QuestionCreate],
                         current_user_context: UserContext) -> List[Question]:
        if not questions_in:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No questions provided.")

        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management_permission(current_user_context, exam)
        self._require_draft(exam)

        for index, question_in in enumerate(questions_in):
            error = validate_question(question_in)
            if error:
                raise HTTPException(
                    status_code=status.HTTP_400_BAD_REQUEST,
                    detail=f"Question {index + 1}: {error}"
                )

        new_questions = []
        for question_in in questions_in:
            question_in.exam_id = exam.id
            new_questions.append(crud_question.create_with_options(db, obj_in=question_in, commit=False))

        self._sync_total_marks(db, exam)
        db.commit()
        return new_questions

    def delete_question(self, db: Session, question_id: int, current_user_context: UserContext) -> QuestionSchema:
        question = crud_question.get(db, id=question_id)
        if not question:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")

        exam = self._get_exam_or_404(db, question.exam_id)
        permission_helper.require_exam_management_permission(current_user_context, exam)
        self._require_draft(exam)

        deleted = QuestionSchema.model_validate(question)
        db.delete(question)
        db.flush()
        self._sync_total_marks(db, exam)
        db.commit()
        logger.info(f"Question {question_id} deleted from exam {exam.id}")
        return deleted

    def apply_mark_allocation(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        """Spread 100 marks over the exam's questions, the last one absorbing the rounding."""
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management_permission(current_user_context, exam)
        self._require_draft(exam)

        questions = crud_question.get_by_exam(db, exam_id=exam.id)
        for question, marks in zip(questions, allocate_marks(len(questions))):
            question.marks = marks
            db.add(question)
        db.flush()

        self._sync_total_marks(db, exam)
        db.commit()
        db.refresh(exam)
        return exam

    def publish_exam(self, db: Session, exam_id: int, current_user_context: UserContext) -> Exam:
        exam = self._get_exam_or_404(db, exam_id)
        permission_helper.require_exam_management_permission(current_user_context, exam)

        if not crud_question.get_by_exam(db, exam_id=exam.id):
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="An exam needs at least one question before it can be published."
            )

        return crud_exam.update(db, db_obj=exam, obj_in={"is_published": True})

    def get_exam_questions(self, db: Session, exam_id: int) -> List[Question]:
        self._get_exam_or_404(db, exam_id)
        return crud_question.get_by_exam(db, exam_id=exam_id)


exam_service = ExamService()
