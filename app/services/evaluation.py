import asyncio
import json
import logging
import re
from datetime import datetime, timezone
from typing import Any, List, Optional, Sequence

from app.core.constants import (
    CorrectnessEnum,
    FIB_MIN_TERM_LENGTH,
    FIB_PARTIAL_CREDIT_THRESHOLD,
    QuestionTypeEnum,
)
from app.core.exceptions import (
    EvaluationError,
    InvalidMarksError,
    MissingModelAnswerError,
    MissingQuestionTextError,
    MissingStudentAnswerError,
)
from app.schemas.evaluation import (
    EvaluatedAnswer,
    EvaluationBatch,
    EvaluationResult,
    SemanticEvaluationRequest,
)
from app.services.semantic_evaluator import SemanticEvaluatorClient, semantic_evaluator
from app.utils.scoring import round_half_up

logger = logging.getLogger(__name__)

_WHITESPACE = re.compile(r"\s+")


def normalize_blank(value: str) -> str:
    return _WHITESPACE.sub(" ", value.strip().lower())


def _as_text(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _parse_blank_list(raw: str) -> Optional[List[str]]:
    """Return the normalized blanks of a JSON array, or None when ``raw`` is not one."""
    try:
        parsed = json.loads(raw)
    except (ValueError, RecursionError):
        return None
    if not isinstance(parsed, list):
        return None
    return [normalize_blank(_as_text(item)) for item in parsed]


def _key_terms(value: str) -> List[str]:
    return [term for term in value.split(" ") if len(term) > FIB_MIN_TERM_LENGTH]


def _blank_credit(expected: str, submitted: str) -> float:
    if submitted == expected:
        return 1.0

    expected_terms = _key_terms(expected)
    if len(expected_terms) > 1:
        submitted_terms = set(_key_terms(submitted))
        matching = [term for term in expected_terms if term in submitted_terms]
        ratio = len(matching) / len(expected_terms)
        if ratio >= FIB_PARTIAL_CREDIT_THRESHOLD:
            return ratio

    return 0.0


def _now() -> datetime:
    return datetime.now(timezone.utc)


class EvaluationService:
    """Scores answers to mcq, fib and open-ended questions.

    The single-question evaluators raise ``EvaluationError`` subclasses so a
    live check can report them. ``evaluate_all_answers`` is the batch path used
    on submission: it never raises for an individual question.
    """

    def __init__(self, evaluator: Optional[SemanticEvaluatorClient] = None):
        self.evaluator = evaluator or semantic_evaluator

    def evaluate_mcq(self, question, student_answer: str, options: Sequence) -> EvaluationResult:
        correct_option = next((opt for opt in options if opt.is_correct), None)
        if correct_option is None:
            logger.warning(f"Question {question.id} has no option marked correct; scoring as incorrect")
            return EvaluationResult(correctness=CorrectnessEnum.INCORRECT, score=0)

        letter = chr(ord("A") + list(options).index(correct_option))
        is_correct = student_answer == str(correct_option.id) or student_answer == letter

        if is_correct:
            return EvaluationResult(correctness=CorrectnessEnum.CORRECT, score=question.marks)
        return EvaluationResult(correctness=CorrectnessEnum.INCORRECT, score=0)

    def evaluate_fib(self, question, student_answer: str) -> EvaluationResult:
        if not question.correct_answer:
            return EvaluationResult(correctness=CorrectnessEnum.INCORRECT, score=0)

        expected = _parse_blank_list(question.correct_answer)
        if expected is None:
            expected = [normalize_blank(question.correct_answer)]

        submitted = _parse_blank_list(student_answer)
        if submitted is None:
            if len(expected) > 1 and not _is_json(student_answer):
                submitted = [normalize_blank(part) for part in student_answer.split(",")]
            else:
                submitted = [normalize_blank(student_answer)]

        length = max(len(expected), len(submitted))
        expected = expected + [""] * (length - len(expected))
        submitted = submitted + [""] * (length - len(submitted))

        scored_blanks = [value for value in expected if value != ""]
        if not scored_blanks:
            return EvaluationResult(correctness=CorrectnessEnum.INCORRECT, score=0)

        credit = sum(
            _blank_credit(expected_value, submitted_value)
            for expected_value, submitted_value in zip(expected, submitted)
            if expected_value != ""
        )

        marks_per_blank = question.marks / len(scored_blanks)
        score = min(round_half_up(credit * marks_per_blank), question.marks)

        if score == question.marks:
            correctness = CorrectnessEnum.CORRECT
        elif score == 0:
            correctness = CorrectnessEnum.INCORRECT
        else:
            correctness = CorrectnessEnum.PARTIAL

        return EvaluationResult(correctness=correctness, score=score)

    async def evaluate_open_ended(self, question, student_answer: Optional[str],
                                  access_token: Optional[str]) -> EvaluationResult:
        if not question.question_text or not question.question_text.strip():
            raise MissingQuestionTextError("Question text is required")
        if not question.model_answer or not question.model_answer.strip():
            raise MissingModelAnswerError("Model answer is required for open-ended questions")
        if student_answer is None:
            raise MissingStudentAnswerError("Student answer is required")
        if not question.marks or question.marks <= 0:
            raise InvalidMarksError("Question marks must be a positive number")

        request = SemanticEvaluationRequest(
            question_text=question.question_text,
            model_answer=question.model_answer,
            student_answer=student_answer or "",
            max_marks=question.marks,
        )
        evaluation = await self.evaluator.evaluate(request, access_token)

        score = round_half_up(evaluation.score)
        return EvaluationResult(
            correctness=CorrectnessEnum.from_score(score, question.marks),
            score=score,
            ai_evaluation=evaluation.model_dump(exclude_unset=True),
        )

    async def evaluate_question(self, question, answer_text: str,
                                access_token: Optional[str] = None) -> EvaluationResult:
        if question.question_type == QuestionTypeEnum.MCQ:
            options = getattr(question, "options", None)
            if not options:
                logger.warning(f"MCQ question {question.id} has no options; scoring as incorrect")
                return EvaluationResult(correctness=CorrectnessEnum.INCORRECT, score=0)
            return self.evaluate_mcq(question, answer_text, options)
        if question.question_type == QuestionTypeEnum.FIB:
            return self.evaluate_fib(question, answer_text)
        if question.question_type == QuestionTypeEnum.OPEN_ENDED:
            return await self.evaluate_open_ended(question, answer_text, access_token)
        raise EvaluationError(f"Unsupported question type: {question.question_type}")

    async def evaluate_all_answers(self, questions: Sequence, answers: Sequence,
                                   access_token: Optional[str] = None) -> EvaluationBatch:
        """Evaluate every answered question concurrently and total the scores.

        Questions without an answer are left out. A failing evaluator yields a
        zero score with no ``evaluated_at`` for that question only.
        """
        answers_by_question = {}
        for answer in answers:
            answers_by_question.setdefault(answer.question_id, answer)

        slots: List[Optional[EvaluatedAnswer]] = []
        pending = []
        for question in questions:
            answer = answers_by_question.get(question.id)
            if answer is None:
                continue

            answer_text = answer.answer_text or ""
            if not answer_text.strip():
                slots.append(_evaluated(answer, correctness=CorrectnessEnum.INCORRECT, score=0, evaluated_at=_now()))
                continue

            pending.append((len(slots), question, answer))
            slots.append(None)

        outcomes = await asyncio.gather(
            *(self.evaluate_question(question, answer.answer_text, access_token) for _, question, answer in pending),
            return_exceptions=True,
        )

        for (slot, question, answer), outcome in zip(pending, outcomes):
            if isinstance(outcome, Exception):
                logger.warning(
                    f"Evaluation failed for question {question.id} "
                    f"({type(outcome).__name__}: {outcome}); scoring it as 0"
                )
                slots[slot] = _evaluated(answer, score=0, evaluation_error=str(outcome))
            elif isinstance(outcome, BaseException):
                raise outcome
            else:
                slots[slot] = _evaluated(
                    answer,
                    correctness=outcome.correctness,
                    score=round_half_up(outcome.score),
                    ai_evaluation=outcome.ai_evaluation,
                    evaluated_at=_now(),
                )

        total_score = sum(evaluated.score for evaluated in slots)
        logger.info(f"Evaluated {len(slots)} answers ({len(pending)} dispatched), total score {total_score}")
        return EvaluationBatch(evaluated_answers=slots, total_score=total_score)


def _is_json(value: str) -> bool:
    try:
        json.loads(value)
    except (ValueError, RecursionError):
        return False
    return True


def _evaluated(answer, **values) -> EvaluatedAnswer:
    return EvaluatedAnswer(
        id=getattr(answer, "id", None),
        attempt_id=getattr(answer, "attempt_id", None),
        question_id=answer.question_id,
        answer_text=answer.answer_text,
        **values,
    )


evaluation_service = EvaluationService()
