from enum import Enum
from typing import Optional


TOTAL_EXAM_MARKS = 100
MCQ_OPTION_COUNT = 4

# Share of an expected multi-term blank that must appear in the answer for partial credit
FIB_PARTIAL_CREDIT_THRESHOLD = 0.7
# Terms of this length or shorter are ignored by the partial credit match
FIB_MIN_TERM_LENGTH = 2

class RoleEnum(str, Enum):
    TEACHER = "teacher"
    STUDENT = "student"
    ADMIN = "admin"

class QuestionTypeEnum(str, Enum):
    MCQ = "mcq"
    FIB = "fib"
    OPEN_ENDED = "open_ended"

class DifficultyEnum(str, Enum):
    EASY = "easy"
    MEDIUM = "medium"
    HARD = "hard"

class ExamAttemptStatusEnum(str, Enum):
    IN_PROGRESS = "in_progress"
    COMPLETED = "completed"

class CorrectnessEnum(str, Enum):
    CORRECT = "correct"
    INCORRECT = "incorrect"
    PARTIAL = "partial"

    @classmethod
    def from_is_correct(cls, is_correct: Optional[bool]) -> "CorrectnessEnum":
        if is_correct is True:
            return cls.CORRECT
        if is_correct is False:
            return cls.INCORRECT
        return cls.PARTIAL

    @classmethod
    def from_score(cls, score: float, max_marks: float) -> "CorrectnessEnum":
        if score >= max_marks:
            return cls.CORRECT
        if score == 0:
            return cls.INCORRECT
        return cls.PARTIAL

    @property
    def is_correct(self) -> Optional[bool]:
        """Column value for the stored ``is_correct`` flag; partial is stored as NULL."""
        if self is CorrectnessEnum.CORRECT:
            return True
        if self is CorrectnessEnum.INCORRECT:
            return False
        return None
