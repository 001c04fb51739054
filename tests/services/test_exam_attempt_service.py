from types import SimpleNamespace

import httpx
import pytest
from fastapi import HTTPException
from sqlalchemy.orm import Session

from app.core.constants import CorrectnessEnum, ExamAttemptStatusEnum, RoleEnum
from app.core.exceptions import EvaluatorTransportError
from app.crud.student_answer import student_answer as crud_student_answer
from app.models.exam_attempt import ExamAttempt
from app.schemas.evaluation import EvaluatedAnswer
from app.schemas.exam import ExamCreate
from app.schemas.student_answer import AnswerSubmission
from app.services.exam import exam_service
from app.services.exam_attempt import build_statistics, exam_attempt_service
from tests.helpers.exam_factory import create_published_exam, fib_payload, mcq_payload, open_ended_payload


def _scores(score):
    return lambda request: httpx.Response(200, json={"score": score, "feedback": "Reasonable explanation."})


@pytest.fixture
def biology_exam(db_session: Session, teacher_context):
    return create_published_exam(db_session, teacher_context, [
        mcq_payload(marks=10, order_index=0),
        fib_payload(marks=10, order_index=1),
        open_ended_payload(marks=10, order_index=2),
        fib_payload(marks=10, correct_answer=["ribosome"], order_index=3),
    ])


def _questions(db_session, exam):
    return exam_service.get_exam_questions(db_session, exam_id=exam.id)


def test_start_attempt_requires_published_exam(db_session: Session, teacher_context, student_context):
    draft = exam_service.create_exam(db_session, exam_in=ExamCreate(title="Draft"), current_user_context=teacher_context)

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.start_exam_attempt(db_session, exam_id=draft.id, current_user_context=student_context)
    assert exc_info.value.status_code == 400


def test_only_students_start_attempts(db_session: Session, biology_exam, teacher_context):
    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=teacher_context)
    assert exc_info.value.status_code == 403


def test_start_attempt_resumes_unfinished_attempt(db_session: Session, biology_exam, student_context):
    first = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    second = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)

    assert first.id == second.id
    assert first.status == ExamAttemptStatusEnum.IN_PROGRESS
    assert first.total_score == 0


def test_save_answer_overwrites_single_row(db_session: Session, biology_exam, student_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    fib_question = _questions(db_session, biology_exam)[1]

    first = exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=fib_question.id,
        answer_text="nucleus", current_user_context=student_context, time_spent_seconds=12
    )
    second = exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=fib_question.id,
        answer_text="mitochondria", current_user_context=student_context
    )

    assert first.id == second.id
    stored = crud_student_answer.get_all_by_attempt(db_session, attempt_id=attempt.id)
    assert len(stored) == 1
    assert stored[0].answer_text == "mitochondria"
    assert stored[0].time_spent_seconds == 12


def test_save_answer_rejects_foreign_question(db_session: Session, biology_exam, teacher_context, student_context):
    other_exam = create_published_exam(db_session, teacher_context, [mcq_payload()])
    foreign_question = _questions(db_session, other_exam)[0]
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.save_answer(
            db_session, attempt_id=attempt.id, question_id=foreign_question.id,
            answer_text="B", current_user_context=student_context
        )
    assert exc_info.value.status_code == 400


def test_save_answer_rejects_other_student(db_session: Session, biology_exam, student_context, user_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    question = _questions(db_session, biology_exam)[0]

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.save_answer(
            db_session, attempt_id=attempt.id, question_id=question.id,
            answer_text="B", current_user_context=user_context(RoleEnum.STUDENT)
        )
    assert exc_info.value.status_code == 403


def test_save_bulk_answers_rejects_duplicates(db_session: Session, biology_exam, student_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    question = _questions(db_session, biology_exam)[0]

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.save_bulk_answers(
            db_session, attempt_id=attempt.id, current_user_context=student_context,
            answers_in=[AnswerSubmission(question_id=question.id, answer_text="A"),
                        AnswerSubmission(question_id=question.id, answer_text="B")]
        )
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_live_check_stores_verdict_and_edit_clears_it(db_session: Session, biology_exam, student_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq = _questions(db_session, biology_exam)[0]

    result = await exam_attempt_service.check_answer(
        db_session, attempt_id=attempt.id, current_user_context=student_context,
        submission=AnswerSubmission(question_id=mcq.id, answer_text="B")
    )
    assert result.correctness == CorrectnessEnum.CORRECT
    assert result.score == 10
    assert result.max_marks == 10

    stored = crud_student_answer.get_by_attempt_and_question(db_session, attempt_id=attempt.id, question_id=mcq.id)
    assert stored.is_correct is True
    assert stored.score == 10
    assert stored.evaluated_at is not None

    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=mcq.id, answer_text="B", current_user_context=student_context
    )
    db_session.refresh(stored)
    assert stored.evaluated_at is not None, "saving the same text keeps the verdict"

    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=mcq.id, answer_text="C", current_user_context=student_context
    )
    db_session.refresh(stored)
    assert stored.answer_text == "C"
    assert stored.is_correct is None
    assert stored.score == 0
    assert stored.evaluated_at is None


@pytest.mark.asyncio
async def test_live_check_rejects_empty_answer(db_session: Session, biology_exam, student_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq = _questions(db_session, biology_exam)[0]

    with pytest.raises(HTTPException) as exc_info:
        await exam_attempt_service.check_answer(
            db_session, attempt_id=attempt.id, current_user_context=student_context,
            submission=AnswerSubmission(question_id=mcq.id, answer_text="   ")
        )
    assert exc_info.value.status_code == 400


@pytest.mark.asyncio
async def test_live_check_failure_keeps_answer_text(db_session: Session, biology_exam, student_context,
                                                    semantic_evaluator_stub):
    semantic_evaluator_stub(lambda request: httpx.Response(503, json={"error": "Model overloaded"}))
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    open_ended = _questions(db_session, biology_exam)[2]

    with pytest.raises(EvaluatorTransportError):
        await exam_attempt_service.check_answer(
            db_session, attempt_id=attempt.id, current_user_context=student_context,
            submission=AnswerSubmission(question_id=open_ended.id, answer_text="Respiration makes ATP.")
        )

    stored = crud_student_answer.get_by_attempt_and_question(db_session, attempt_id=attempt.id, question_id=open_ended.id)
    assert stored.answer_text == "Respiration makes ATP."
    assert stored.evaluated_at is None


@pytest.mark.asyncio
async def test_submit_grades_and_completes_attempt(db_session: Session, biology_exam, student_context,
                                                   semantic_evaluator_stub):
    semantic_evaluator_stub(_scores(8))
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq, fib, open_ended, unanswered = _questions(db_session, biology_exam)

    exam_attempt_service.save_bulk_answers(db_session, attempt_id=attempt.id, current_user_context=student_context, answers_in=[
        AnswerSubmission(question_id=mcq.id, answer_text="B"),
        AnswerSubmission(question_id=fib.id, answer_text="Mitochondria"),
        AnswerSubmission(question_id=open_ended.id, answer_text="Glycolysis and the Krebs cycle make ATP."),
    ])

    details = await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)

    assert details.attempt.status == ExamAttemptStatusEnum.COMPLETED
    assert details.attempt.submitted_at is not None
    assert details.attempt.total_score == 28
    assert details.statistics.correct_count == 2
    assert details.statistics.partially_correct_count == 1
    assert details.statistics.incorrect_count == 0
    assert details.statistics.skipped_count == 1
    assert details.statistics.total_questions == 4

    by_question = {q.id: q.student_answer for q in details.questions}
    assert by_question[open_ended.id].score == 8
    assert by_question[open_ended.id].correctness == CorrectnessEnum.PARTIAL
    assert by_question[open_ended.id].ai_evaluation["feedback"] == "Reasonable explanation."
    assert by_question[unanswered.id].answer_text == ""
    assert by_question[unanswered.id].correctness == CorrectnessEnum.INCORRECT
    assert by_question[unanswered.id].score == 0


@pytest.mark.asyncio
async def test_submitted_attempt_is_read_only(db_session: Session, biology_exam, student_context,
                                              semantic_evaluator_stub):
    semantic_evaluator_stub(_scores(8))
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq = _questions(db_session, biology_exam)[0]
    await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)

    with pytest.raises(HTTPException) as exc_info:
        await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)
    assert exc_info.value.status_code == 400

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.save_answer(
            db_session, attempt_id=attempt.id, question_id=mcq.id, answer_text="B", current_user_context=student_context
        )
    assert exc_info.value.status_code == 400

    resumed = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    assert resumed.id != attempt.id


@pytest.mark.asyncio
async def test_submit_survives_evaluator_outage(db_session: Session, biology_exam, student_context,
                                                semantic_evaluator_stub):
    semantic_evaluator_stub(lambda request: httpx.Response(500, json={"error": "Evaluator down"}))
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq, fib, open_ended, _ = _questions(db_session, biology_exam)
    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=open_ended.id,
        answer_text="ATP comes from respiration.", current_user_context=student_context
    )
    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=mcq.id, answer_text="B", current_user_context=student_context
    )

    details = await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)

    assert details.attempt.status == ExamAttemptStatusEnum.COMPLETED
    assert details.attempt.total_score == 10
    failed = next(q.student_answer for q in details.questions if q.id == open_ended.id)
    assert failed.score == 0
    assert failed.evaluated_at is None
    assert failed.correctness is None
    assert details.statistics.incorrect_count == 1
    assert details.statistics.skipped_count == 2


@pytest.mark.asyncio
async def test_failed_submit_rolls_back_everything(db_session: Session, biology_exam, student_context,
                                                   semantic_evaluator_stub, monkeypatch):
    semantic_evaluator_stub(_scores(8))
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)
    mcq = _questions(db_session, biology_exam)[0]
    exam_attempt_service.save_answer(
        db_session, attempt_id=attempt.id, question_id=mcq.id, answer_text="B", current_user_context=student_context
    )

    def _fail(*args, **kwargs):
        raise RuntimeError("statistics table unavailable")

    with monkeypatch.context() as m:
        m.setattr("app.crud.exam_statistics.exam_statistics.create_or_update", _fail)
        with pytest.raises(RuntimeError):
            await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)

    reloaded = db_session.get(ExamAttempt, attempt.id)
    assert reloaded.status == ExamAttemptStatusEnum.IN_PROGRESS
    assert reloaded.total_score == 0
    assert reloaded.submitted_at is None
    answers = crud_student_answer.get_all_by_attempt(db_session, attempt_id=attempt.id)
    assert [a.question_id for a in answers] == [mcq.id]
    assert answers[0].evaluated_at is None

    details = await exam_attempt_service.submit_exam(db_session, attempt_id=attempt.id, current_user_context=student_context)
    assert details.attempt.status == ExamAttemptStatusEnum.COMPLETED
    assert details.attempt.total_score == 10


def test_statistics_only_after_submission(db_session: Session, biology_exam, student_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)

    with pytest.raises(HTTPException) as exc_info:
        exam_attempt_service.get_attempt_statistics(db_session, attempt_id=attempt.id, current_user_context=student_context)
    assert exc_info.value.status_code == 404


def test_attempt_visibility(db_session: Session, biology_exam, teacher_context, student_context, user_context):
    attempt = exam_attempt_service.start_exam_attempt(db_session, exam_id=biology_exam.id, current_user_context=student_context)

    owner_view = exam_attempt_service.get_exam_attempt(db_session, attempt_id=attempt.id, current_user_context=student_context)
    teacher_view = exam_attempt_service.get_exam_attempt(db_session, attempt_id=attempt.id, current_user_context=teacher_context)
    assert owner_view.attempt.id == teacher_view.attempt.id == attempt.id
    assert len(owner_view.questions) == 4

    for outsider in (user_context(RoleEnum.STUDENT), user_context(RoleEnum.TEACHER)):
        with pytest.raises(HTTPException) as exc_info:
            exam_attempt_service.get_exam_attempt(db_session, attempt_id=attempt.id, current_user_context=outsider)
        assert exc_info.value.status_code == 403


def test_build_statistics_counts_every_question():
    questions = [SimpleNamespace(id=i) for i in range(1, 6)]
    evaluated = [
        EvaluatedAnswer(question_id=1, answer_text="B", correctness=CorrectnessEnum.CORRECT, score=10),
        EvaluatedAnswer(question_id=2, answer_text="x", correctness=CorrectnessEnum.PARTIAL, score=4),
        EvaluatedAnswer(question_id=3, answer_text="y", correctness=None, score=0, evaluation_error="timeout"),
        EvaluatedAnswer(question_id=4, answer_text="  ", correctness=CorrectnessEnum.INCORRECT, score=0),
    ]

    assert build_statistics(questions, evaluated) == {
        "correct_count": 1,
        "incorrect_count": 1,
        "partially_correct_count": 1,
        "skipped_count": 2,
        "total_questions": 5,
    }
