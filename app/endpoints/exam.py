from typing import List, Union
from fastapi import APIRouter, Depends, status, Query
from sqlalchemy.orm import Session

from app.schemas.response import APIResponse
from app.utils import deps
from app.schemas.evaluation import LiveCheckResult, MarkAllocation
from app.schemas.exam import Exam, ExamCreate, ExamWithQuestions
from app.schemas.exam_attempt import ExamAttempt, ExamAttemptDetails
from app.schemas.exam_statistics import ExamStatistics
from app.schemas.question import Question, QuestionCreate, QuestionPublic
from app.schemas.student_answer import AnswerSubmission, StudentAnswer
from app.schemas.user import UserContext
from app.services.exam import exam_service
from app.services.exam_attempt import exam_attempt_service
from app.services.mark_allocation import calculate_marks
from app.utils.permission import PermissionHelper as permission_helper

router = APIRouter()

@router.get("/mark-allocation", response_model=APIResponse[MarkAllocation])
async def get_mark_allocation(
    total_questions: int = Query(..., ge=0),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    allocation = calculate_marks(total_questions)
    return APIResponse(message="Mark allocation calculated successfully", data=allocation)


@router.post("/", response_model=APIResponse[Exam], status_code=status.HTTP_201_CREATED)
async def create_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_in: ExamCreate,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    new_exam = exam_service.create_exam(db, exam_in=exam_in, current_user_context=context)
    return APIResponse(message="Exam created successfully", data=Exam.model_validate(new_exam))


@router.get("/", response_model=APIResponse[List[Exam]])
async def list_exams(
    db: Session = Depends(deps.get_db),
    skip: int = Query(0, ge=0),
    limit: int = Query(100, ge=1, le=100),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    exams = exam_service.list_exams(db, current_user_context=context, skip=skip, limit=limit)
    return APIResponse(message="Exams retrieved successfully", data=[Exam.model_validate(e) for e in exams])


@router.get("/attempts/me", response_model=APIResponse[List[ExamAttempt]])
async def get_my_attempts(
    db: Session = Depends(deps.get_db),
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    attempts = exam_attempt_service.get_student_attempts(db, current_user_context=context)
    return APIResponse(message="Exam attempts retrieved successfully", data=[ExamAttempt.model_validate(a) for a in attempts])


@router.get("/attempts/{attempt_id}", response_model=APIResponse[ExamAttemptDetails])
async def get_exam_attempt(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    details = exam_attempt_service.get_exam_attempt(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam attempt retrieved successfully", data=details)


@router.put("/attempts/{attempt_id}/answers", response_model=APIResponse[StudentAnswer])
async def save_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    answer_in: AnswerSubmission,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    answer = exam_attempt_service.save_answer(
        db,
        attempt_id=attempt_id,
        question_id=answer_in.question_id,
        answer_text=answer_in.answer_text,
        current_user_context=context,
        time_spent_seconds=answer_in.time_spent_seconds
    )
    return APIResponse(message="Answer saved successfully", data=StudentAnswer.model_validate(answer))


@router.put("/attempts/{attempt_id}/answers/bulk", response_model=APIResponse[List[StudentAnswer]])
async def save_bulk_answers(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    answers_in: List[AnswerSubmission],
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    answers = exam_attempt_service.save_bulk_answers(
        db, attempt_id=attempt_id, answers_in=answers_in, current_user_context=context
    )
    return APIResponse(message="Answers saved successfully", data=[StudentAnswer.model_validate(a) for a in answers])


@router.post("/attempts/{attempt_id}/answers/check", response_model=APIResponse[LiveCheckResult])
async def check_answer(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    answer_in: AnswerSubmission,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    result = await exam_attempt_service.check_answer(
        db, attempt_id=attempt_id, submission=answer_in, current_user_context=context
    )
    return APIResponse(message="Answer checked successfully", data=result)


@router.post("/attempts/{attempt_id}/submit", response_model=APIResponse[ExamAttemptDetails])
async def submit_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    attempt_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    details = await exam_attempt_service.submit_exam(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam submitted successfully", data=details)


@router.get("/attempts/{attempt_id}/statistics", response_model=APIResponse[ExamStatistics])
async def get_attempt_statistics(
    *,
    db: Session = Depends(deps.get_db),
    attempt_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    statistics = exam_attempt_service.get_attempt_statistics(db, attempt_id=attempt_id, current_user_context=context)
    return APIResponse(message="Exam statistics retrieved successfully", data=ExamStatistics.model_validate(statistics))


@router.get("/{exam_id}", response_model=APIResponse[Exam])
async def get_exam(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    exam = exam_service.get_exam(db, exam_id=exam_id)
    return APIResponse(message="Exam retrieved successfully", data=Exam.model_validate(exam))


@router.post("/{exam_id}/questions", response_model=APIResponse[List[Question]], status_code=status.HTTP_201_CREATED)
async def create_questions(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    questions_in: List[QuestionCreate],
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    new_questions = exam_service.create_questions(
        db, exam_id=exam_id, questions_in=questions_in, current_user_context=context
    )
    return APIResponse(message="Questions created successfully", data=[Question.model_validate(q) for q in new_questions])


@router.get("/{exam_id}/questions", response_model=APIResponse[Union[List[Question], List[QuestionPublic]]])
async def get_exam_questions(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    questions = exam_service.get_exam_questions(db, exam_id=exam_id)
    if permission_helper.is_student(context):
        data = [QuestionPublic.model_validate(q) for q in questions]
    else:
        data = [Question.model_validate(q) for q in questions]
    return APIResponse(message="Exam questions retrieved successfully", data=data)


@router.delete("/questions/{question_id}", response_model=APIResponse[Question])
async def delete_question(
    *,
    db: Session = Depends(deps.get_transactional_db),
    question_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    deleted = exam_service.delete_question(db, question_id=question_id, current_user_context=context)
    return APIResponse(message="Question deleted successfully", data=deleted)


@router.post("/{exam_id}/allocate-marks", response_model=APIResponse[ExamWithQuestions])
async def allocate_marks(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    exam = exam_service.apply_mark_allocation(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Marks allocated successfully", data=ExamWithQuestions.model_validate(exam))


@router.post("/{exam_id}/attempts", response_model=APIResponse[ExamAttempt], status_code=status.HTTP_201_CREATED)
async def start_exam_attempt(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    attempt = exam_attempt_service.start_exam_attempt(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam attempt started successfully", data=ExamAttempt.model_validate(attempt))


@router.get("/{exam_id}/attempts", response_model=APIResponse[List[ExamAttempt]])
async def get_exam_attempts(
    *,
    db: Session = Depends(deps.get_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    attempts = exam_attempt_service.get_exam_attempts(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam attempts retrieved successfully", data=[ExamAttempt.model_validate(a) for a in attempts])


@router.post("/{exam_id}/publish", response_model=APIResponse[Exam])
async def publish_exam(
    *,
    db: Session = Depends(deps.get_transactional_db),
    exam_id: int,
    context: UserContext = Depends(deps.get_current_user_with_context)
):
    exam = exam_service.publish_exam(db, exam_id=exam_id, current_user_context=context)
    return APIResponse(message="Exam published successfully", data=Exam.model_validate(exam))
