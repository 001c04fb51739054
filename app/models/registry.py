# Importing every model registers it on Base.metadata so string relationships resolve.
from app.models.exam import Exam
from app.models.question import Question, QuestionOption
from app.models.exam_attempt import ExamAttempt
from app.models.student_answer import StudentAnswer
from app.models.exam_statistics import ExamStatistics

__all__ = ["Exam", "Question", "QuestionOption", "ExamAttempt", "StudentAnswer", "ExamStatistics"]
