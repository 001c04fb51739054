"""
Evaluation errors raised by the single-question evaluators.

Live checks let these propagate to the student as retryable failures; the
batch path in ``EvaluationService.evaluate_all_answers`` absorbs them into a
zero score for the affected question.
"""
from typing import Any, Optional


class EvaluationError(Exception):
    status_code = 400
    code = "EVALUATION_ERROR"

    def __init__(self, message: str, details: Optional[Any] = None):
        super().__init__(message)
        self.message = message
        self.details = details


class PreconditionError(EvaluationError):
    code = "EVALUATION_PRECONDITION_FAILED"


class MissingQuestionTextError(PreconditionError):
    pass


class MissingModelAnswerError(PreconditionError):
    pass


class MissingStudentAnswerError(PreconditionError):
    pass


class InvalidMarksError(PreconditionError):
    pass


class NotAuthenticatedError(PreconditionError):
    status_code = 401
    code = "NOT_AUTHENTICATED"


class ExternalServiceError(EvaluationError):
    status_code = 502
    code = "EVALUATOR_UNAVAILABLE"


class EvaluatorTransportError(ExternalServiceError):
    pass


class EvaluatorErrorPayload(ExternalServiceError):
    code = "EVALUATOR_ERROR"


class EvaluatorMissingPayload(ExternalServiceError):
    code = "EVALUATOR_EMPTY_RESPONSE"


class EvaluatorMalformedPayload(ExternalServiceError):
    code = "EVALUATOR_INVALID_RESPONSE"
