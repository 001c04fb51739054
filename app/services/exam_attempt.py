import logging
from datetime import datetime, timezone
from typing import List, Optional, Sequence
from sqlalchemy.orm import Session
from fastapi import HTTPException, status

from app.core.config import settings
from app.core.constants import CorrectnessEnum, ExamAttemptStatusEnum, QuestionTypeEnum
from app.crud.exam import exam as crud_exam
from app.crud.exam_attempt import exam_attempt as crud_exam_attempt
from app.crud.exam_statistics import exam_statistics as crud_exam_statistics
from app.crud.question import question as crud_question
from app.crud.student_answer import student_answer as crud_student_answer
from app.models.exam_attempt import ExamAttempt
from app.models.exam_statistics import ExamStatistics
from app.models.question import Question
from app.models.student_answer import StudentAnswer
from app.schemas.evaluation import EvaluatedAnswer, LiveCheckResult
from app.schemas.exam_attempt import ExamAttemptCreate, ExamAttemptDetails, QuestionWithStudentAnswer
from app.schemas.exam_attempt import ExamAttempt as ExamAttemptSchema
from app.schemas.exam import Exam as ExamSchema
from app.schemas.exam_statistics import ExamStatisticsCreate
from app.schemas.exam_statistics import ExamStatistics as ExamStatisticsSchema
from app.schemas.question import QuestionOptionPublic
from app.schemas.student_answer import AnswerSubmission
from app.schemas.student_answer import StudentAnswer as StudentAnswerSchema
from app.schemas.user import UserContext
from app.services.evaluation import EvaluationService, evaluation_service
from app.utils.permission import PermissionHelper as permission_helper
from app.utils.scoring import round_half_up

logger = logging.getLogger(__name__)

CLEARED_VERDICT = {"is_correct": None, "score": 0, "ai_evaluation": None, "evaluated_at": None}


def build_statistics(questions: Sequence[Question], evaluated_answers: Sequence[EvaluatedAnswer]) -> dict:
    """Tally an attempt's final answers; empty or missing answers count as skipped."""
    answers_by_question = {answer.question_id: answer for answer in evaluated_answers}
    counts = {
        "correct_count": 0,
        "incorrect_count": 0,
        "partially_correct_count": 0,
        "skipped_count": 0,
        "total_questions": len(questions),
    }

    for question in questions:
        answer = answers_by_question.get(question.id)
        if answer is None or answer.is_empty:
            counts["skipped_count"] += 1
        elif answer.correctness == CorrectnessEnum.CORRECT:
            counts["correct_count"] += 1
        elif answer.correctness == CorrectnessEnum.PARTIAL:
            counts["partially_correct_count"] += 1
        else:
            counts["incorrect_count"] += 1

    return counts


class ExamAttemptService:

    def __init__(self, evaluator: Optional[EvaluationService] = None):
        self.evaluation = evaluator or evaluation_service

    def _get_attempt_or_404(self, db: Session, attempt_id: int) -> ExamAttempt:
        attempt = crud_exam_attempt.get(db, id=attempt_id)
        if not attempt:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam attempt not found.")
        return attempt

    def _require_attempt_ownership_and_in_progress(self, current_user_context: UserContext, attempt: ExamAttempt):
        if attempt.student_id != current_user_context.user_id:
            raise HTTPException(
                status_code=status.HTTP_403_FORBIDDEN,
                detail="You can only submit answers for your own attempts."
            )

        if attempt.status != ExamAttemptStatusEnum.IN_PROGRESS:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Cannot change an exam attempt that is not in progress."
            )

    def _require_attempt_view_permission(self, current_user_context: UserContext, attempt: ExamAttempt):
        if attempt.student_id == current_user_context.user_id:
            return
        if permission_helper.is_admin(current_user_context):
            return
        if permission_helper.is_teacher(current_user_context) and attempt.exam.teacher_id == current_user_context.user_id:
            return
        raise HTTPException(
            status_code=status.HTTP_403_FORBIDDEN,
            detail="You do not have permission to view this exam attempt."
        )

    def _get_question_for_attempt(self, db: Session, attempt: ExamAttempt, question_id: int) -> Question:
        question = crud_question.get(db, id=question_id)
        if not question:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Question not found.")
        if question.exam_id != attempt.exam_id:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Question does not belong to this exam attempt."
            )
        return question

    def _write_answer(self, db: Session, attempt: ExamAttempt, question_id: int,
                      answer_text: Optional[str], time_spent_seconds: Optional[int] = None,
                      commit: bool = True) -> StudentAnswer:
        existing = crud_student_answer.get_by_attempt_and_question(
            db, attempt_id=attempt.id, question_id=question_id
        )

        values = {"answer_text": answer_text}
        if time_spent_seconds is not None:
            values["time_spent_seconds"] = time_spent_seconds
        if existing and existing.answer_text != answer_text:
            # An edited answer invalidates whatever a live check stored for it.
            values.update(CLEARED_VERDICT)

        return crud_student_answer.upsert(
            db, attempt_id=attempt.id, question_id=question_id, values=values, commit=commit
        )

    def start_exam_attempt(self, db: Session, exam_id: int, current_user_context: UserContext) -> ExamAttempt:
        """Create an attempt, or hand back the student's unfinished one for this exam."""
        permission_helper.require_student(current_user_context)

        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        if not exam.is_published:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="This exam is not published.")

        existing_attempt = crud_exam_attempt.get_in_progress(
            db, student_id=current_user_context.user_id, exam_id=exam_id
        )
        if existing_attempt:
            logger.info(f"Resuming attempt {existing_attempt.id} for student {current_user_context.user_id}")
            return existing_attempt

        attempt_in = ExamAttemptCreate(
            student_id=current_user_context.user_id,
            exam_id=exam_id,
            started_at=datetime.now(timezone.utc),
            total_score=0,
            status=ExamAttemptStatusEnum.IN_PROGRESS
        )
        new_attempt = crud_exam_attempt.create(db, obj_in=attempt_in)
        logger.info(f"Attempt {new_attempt.id} started on exam {exam_id} by student {current_user_context.user_id}")
        return new_attempt

    def save_answer(self, db: Session, attempt_id: int, question_id: int, answer_text: Optional[str],
                    current_user_context: UserContext, time_spent_seconds: Optional[int] = None) -> StudentAnswer:
        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_ownership_and_in_progress(current_user_context, attempt)
        self._get_question_for_attempt(db, attempt, question_id)

        return self._write_answer(db, attempt, question_id, answer_text, time_spent_seconds)

    def save_bulk_answers(self, db: Session, attempt_id: int, answers_in: List[AnswerSubmission],
                          current_user_context: UserContext) -> List[StudentAnswer]:
        if not answers_in:
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="No answers provided.")

        question_ids = [ans.question_id for ans in answers_in]
        if len(question_ids) != len(set(question_ids)):
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Duplicate question_ids found in submission.")

        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_ownership_and_in_progress(current_user_context, attempt)

        exam_questions = {q.id for q in crud_question.get_by_exam(db, exam_id=attempt.exam_id)}
        invalid_questions = [qid for qid in question_ids if qid not in exam_questions]
        if invalid_questions:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail=f"Invalid question_id(s): {invalid_questions}. All questions must belong to the exam."
            )

        saved = [
            self._write_answer(db, attempt, ans.question_id, ans.answer_text, ans.time_spent_seconds, commit=False)
            for ans in answers_in
        ]
        db.commit()
        for answer in saved:
            db.refresh(answer)
        return saved

    async def check_answer(self, db: Session, attempt_id: int, submission: AnswerSubmission,
                           current_user_context: UserContext) -> LiveCheckResult:
        """Grade one answer mid-exam and keep the verdict with the answer.

        Evaluator failures propagate so the student can retry; the answer text
        is saved before evaluating and survives a failed check.
        """
        answer_text = submission.answer_text or ""
        if not answer_text.strip():
            raise HTTPException(status_code=status.HTTP_400_BAD_REQUEST, detail="Please provide an answer before checking it.")

        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_ownership_and_in_progress(current_user_context, attempt)
        question = self._get_question_for_attempt(db, attempt, submission.question_id)

        if question.question_type == QuestionTypeEnum.OPEN_ENDED and not settings.LIVE_CHECK_OPEN_ENDED:
            raise HTTPException(
                status_code=status.HTTP_400_BAD_REQUEST,
                detail="Open-ended answers are graded when the exam is submitted."
            )

        answer = self._write_answer(db, attempt, question.id, answer_text, submission.time_spent_seconds)

        result = await self.evaluation.evaluate_question(question, answer_text, current_user_context.access_token)
        score = round_half_up(result.score)

        crud_student_answer.update(db, db_obj=answer, obj_in={
            "is_correct": result.is_correct,
            "score": score,
            "ai_evaluation": result.ai_evaluation,
            "evaluated_at": datetime.now(timezone.utc),
        })

        return LiveCheckResult(
            question_id=question.id,
            correctness=result.correctness,
            score=score,
            max_marks=question.marks,
            ai_evaluation=result.ai_evaluation
        )

    async def submit_exam(self, db: Session, attempt_id: int, current_user_context: UserContext) -> ExamAttemptDetails:
        """Grade every question, store the total and statistics, then complete the attempt.

        All writes share one transaction. If anything fails it is rolled back and
        the attempt stays in progress, so submitting again re-grades from scratch.
        """
        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_ownership_and_in_progress(current_user_context, attempt)

        questions = crud_question.get_by_exam(db, exam_id=attempt.exam_id)

        try:
            answered = {a.question_id for a in crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)}
            for question in questions:
                if question.id not in answered:
                    crud_student_answer.upsert(
                        db,
                        attempt_id=attempt.id,
                        question_id=question.id,
                        values={"answer_text": "", "score": 0, "is_correct": False},
                        commit=False
                    )

            answers = crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)
            batch = await self.evaluation.evaluate_all_answers(
                questions, answers, access_token=current_user_context.access_token
            )

            answers_by_id = {answer.id: answer for answer in answers}
            for evaluated in batch.evaluated_answers:
                crud_student_answer.update(db, db_obj=answers_by_id[evaluated.id], obj_in={
                    "is_correct": evaluated.is_correct,
                    "score": evaluated.score,
                    "ai_evaluation": evaluated.ai_evaluation,
                    "evaluated_at": evaluated.evaluated_at,
                }, commit=False)

            crud_exam_attempt.update(db, db_obj=attempt, obj_in={"total_score": round_half_up(batch.total_score)}, commit=False)
            crud_exam_attempt.update(db, db_obj=attempt, obj_in={
                "status": ExamAttemptStatusEnum.COMPLETED,
                "submitted_at": datetime.now(timezone.utc),
            }, commit=False)

            statistics_in = ExamStatisticsCreate(
                attempt_id=attempt.id,
                **build_statistics(questions, batch.evaluated_answers)
            )
            crud_exam_statistics.create_or_update(db, obj_in=statistics_in, commit=False)

            db.commit()
        except Exception:
            db.rollback()
            logger.error(f"Submission of attempt {attempt_id} failed; attempt left in progress", exc_info=True)
            raise

        logger.info(f"Attempt {attempt.id} submitted with total score {attempt.total_score}")
        return self.get_exam_attempt(db, attempt_id=attempt.id, current_user_context=current_user_context)

    def get_exam_attempt(self, db: Session, attempt_id: int, current_user_context: UserContext) -> ExamAttemptDetails:
        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_view_permission(current_user_context, attempt)

        exam = crud_exam.get(db, id=attempt.exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found for this attempt.")

        questions = crud_question.get_by_exam(db, exam_id=exam.id)
        answers_map = {ans.question_id: ans for ans in crud_student_answer.get_all_by_attempt(db, attempt_id=attempt.id)}

        questions_with_answers = []
        for question in questions:
            answer = answers_map.get(question.id)
            questions_with_answers.append(QuestionWithStudentAnswer.model_validate({
                "id": question.id,
                "exam_id": question.exam_id,
                "question_text": question.question_text,
                "question_type": question.question_type,
                "marks": question.marks,
                "order_index": question.order_index,
                "options": [QuestionOptionPublic.model_validate(option) for option in question.options],
                "student_answer": StudentAnswerSchema.model_validate(answer) if answer else None,
            }))

        statistics = crud_exam_statistics.get_by_attempt(db, attempt_id=attempt.id)

        return ExamAttemptDetails(
            attempt=ExamAttemptSchema.model_validate(attempt),
            exam=ExamSchema.model_validate(exam),
            questions=questions_with_answers,
            statistics=ExamStatisticsSchema.model_validate(statistics) if statistics else None
        )

    def get_student_attempts(self, db: Session, current_user_context: UserContext) -> List[ExamAttempt]:
        return crud_exam_attempt.get_all_by_student(db, student_id=current_user_context.user_id)

    def get_exam_attempts(self, db: Session, exam_id: int, current_user_context: UserContext) -> List[ExamAttempt]:
        exam = crud_exam.get(db, id=exam_id)
        if not exam:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Exam not found.")
        permission_helper.require_exam_management_permission(current_user_context, exam)
        return crud_exam_attempt.get_all_by_exam(db, exam_id=exam_id)

    def get_attempt_statistics(self, db: Session, attempt_id: int, current_user_context: UserContext) -> ExamStatistics:
        attempt = self._get_attempt_or_404(db, attempt_id)
        self._require_attempt_view_permission(current_user_context, attempt)

        statistics = crud_exam_statistics.get_by_attempt(db, attempt_id=attempt.id)
        if not statistics:
            raise HTTPException(status_code=status.HTTP_404_NOT_FOUND, detail="Statistics are available once the attempt is submitted.")
        return statistics


exam_attempt_service = ExamAttemptService()
