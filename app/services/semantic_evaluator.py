import logging
from typing import Any, Optional

import httpx
from pydantic import ValidationError

from app.core.config import settings
from app.core.exceptions import (
    EvaluatorErrorPayload,
    EvaluatorMalformedPayload,
    EvaluatorMissingPayload,
    EvaluatorTransportError,
    NotAuthenticatedError,
)
from app.schemas.evaluation import SemanticEvaluation, SemanticEvaluationRequest

logger = logging.getLogger(__name__)


def _error_message(payload: Any) -> Optional[str]:
    if not isinstance(payload, dict) or not payload.get("error"):
        return None
    error = payload["error"]
    if isinstance(error, dict):
        error = error.get("message") or str(error)
    message = f"Evaluation error: {error}"
    if payload.get("details"):
        message += f"\n\nDetails: {payload['details']}"
    return message


class SemanticEvaluatorClient:
    """HTTP client for the external service that grades open-ended answers."""

    def __init__(
        self,
        url: Optional[str] = None,
        timeout: Optional[float] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.url = url or settings.SEMANTIC_EVALUATOR_URL
        self.timeout = timeout or settings.SEMANTIC_EVALUATOR_TIMEOUT_SECONDS
        self.transport = transport

    async def _post(self, body: dict, access_token: str) -> httpx.Response:
        async with httpx.AsyncClient(timeout=self.timeout, transport=self.transport) as client:
            try:
                return await client.post(
                    self.url,
                    json=body,
                    headers={"Authorization": f"Bearer {access_token}"},
                )
            except httpx.RequestError as e:
                raise EvaluatorTransportError(f"Network error: {e}") from e

    async def evaluate(self, request: SemanticEvaluationRequest, access_token: Optional[str]) -> SemanticEvaluation:
        if not access_token:
            raise NotAuthenticatedError("Not authenticated")

        response = await self._post(request.model_dump(), access_token)

        try:
            payload = response.json()
        except ValueError:
            payload = None

        if response.is_error:
            message = _error_message(payload) or f"Evaluation error: HTTP {response.status_code}"
            logger.warning(f"Semantic evaluator returned {response.status_code}: {message}")
            raise EvaluatorTransportError(message, details={"status_code": response.status_code})

        if isinstance(payload, dict) and "error" in payload:
            message = _error_message(payload) or "Evaluation error: evaluator reported an error"
            raise EvaluatorErrorPayload(message, details=payload)

        if not payload or not isinstance(payload, dict):
            raise EvaluatorMissingPayload("Invalid response from evaluation service")

        try:
            evaluation = SemanticEvaluation.model_validate(payload)
        except ValidationError as e:
            raise EvaluatorMalformedPayload("Invalid evaluation response format", details={"errors": [err["msg"] for err in e.errors()]}) from e

        if not 0 <= evaluation.score <= request.max_marks:
            logger.warning(f"Semantic evaluator score {evaluation.score} outside [0, {request.max_marks}]")
            raise EvaluatorMalformedPayload(
                "Invalid evaluation response format",
                details={"errors": [f"score must be between 0 and {request.max_marks}"]}
            )
        return evaluation


semantic_evaluator = SemanticEvaluatorClient()
