"""httpx-based document API client."""

from __future__ import annotations

import logging
import time
from typing import Any

import httpx

from docgate.adapters.documents.base import AbstractDocumentClient
from docgate.core.errors import SubmissionAppError
from docgate.schemas.documents import ProducedProductDocumentRequest

logger = logging.getLogger(__name__)

CREATE_DOCUMENT_PATH = "/api/v3/lk/documents/commissioning/contract/create"


class HttpDocumentClient(AbstractDocumentClient):
    """Client posting document envelopes with bearer-token auth.

    The client performs exactly one HTTP call per ``submit``; rate limiting
    and retries are the caller's concern.
    """

    def __init__(
        self,
        base_url: str,
        timeout_seconds: float = 30.0,
        transport: httpx.BaseTransport | None = None,
    ) -> None:
        """Initialize the underlying httpx client.

        Args:
            base_url: API host, e.g. "https://ismp.crpt.ru".
            timeout_seconds: Timeout for requests in seconds.
            transport: Optional transport override (used by tests).
        """
        self.client = httpx.Client(
            base_url=base_url,
            timeout=timeout_seconds,
            transport=transport,
        )

    def submit(self, request: ProducedProductDocumentRequest, *, token: str) -> str:
        body = request.model_dump(mode="json", by_alias=True)
        headers = {
            "Content-Type": "application/json",
            "Authorization": f"Bearer {token}",
        }

        started = time.perf_counter()
        try:
            response = self.client.post(CREATE_DOCUMENT_PATH, json=body, headers=headers)
        except httpx.HTTPError as exc:
            logger.warning(
                "documents.transport_error",
                extra={"error_type": type(exc).__name__, "error_msg": str(exc)},
            )
            raise SubmissionAppError(
                code="submission_transport_error",
                message=f"Document API request failed: {exc}",
            ) from exc

        duration_ms = round((time.perf_counter() - started) * 1000, 2)
        logger.info(
            "documents.response",
            extra={
                "status_code": response.status_code,
                "duration_ms": duration_ms,
                "document_type": request.type.value,
            },
        )
        return self._parse_response(response)

    def close(self) -> None:
        self.client.close()

    @staticmethod
    def _parse_response(response: httpx.Response) -> str:
        if not response.is_success:
            raise SubmissionAppError(
                code="submission_bad_status",
                message=f"Response code not 2XX. Actual: {response.status_code}.",
                details={"http_status": response.status_code},
            )

        try:
            payload: Any = response.json()
        except ValueError as exc:
            raise SubmissionAppError(
                code="submission_invalid_response",
                message="Document API returned a non-JSON body",
                details={"http_status": response.status_code},
            ) from exc

        if not isinstance(payload, dict) or payload.get("value") is None:
            raise SubmissionAppError(
                code="submission_invalid_response",
                message="Document API response has no 'value' field",
                details={"http_status": response.status_code},
            )

        value = payload["value"]
        return value if isinstance(value, str) else str(value)
