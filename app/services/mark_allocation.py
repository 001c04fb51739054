from typing import List

from app.core.constants import TOTAL_EXAM_MARKS
from app.schemas.evaluation import MarkAllocation
from app.utils.scoring import round_half_up


def calculate_marks(total_questions: int) -> MarkAllocation:
    """Split TOTAL_EXAM_MARKS evenly over ``total_questions``.

    ``base_marks`` is rounded to one decimal place; ``adjustment`` is the
    remainder that one question (conventionally the last) carries on top of
    ``base_marks`` so the exam still adds up to exactly 100.
    """
    if total_questions < 0:
        raise ValueError("total_questions cannot be negative")
    if total_questions == 0:
        return MarkAllocation(base_marks=0, adjustment=0, total_questions=0)

    base_marks = round_half_up(TOTAL_EXAM_MARKS / total_questions, 1)
    adjustment = round_half_up(TOTAL_EXAM_MARKS - base_marks * total_questions, 1)

    return MarkAllocation(
        base_marks=base_marks,
        adjustment=adjustment,
        total_questions=total_questions,
    )


def allocate_marks(total_questions: int) -> List[float]:
    allocation = calculate_marks(total_questions)
    if total_questions == 0:
        return []
    marks = [allocation.base_marks] * total_questions
    marks[-1] = allocation.last_question_marks
    return marks
