"""Rate-limited document submission service.

The service is the only place where admission control meets the gated
operation:
- Validate caller arguments and build the request envelope
- Acquire one admission from the controller (blocking)
- Submit exactly one document, never retrying
"""

from __future__ import annotations

import logging
import uuid
from typing import Any

from docgate.adapters.documents.base import AbstractDocumentClient
from docgate.adapters.rate_limit.base import AbstractAdmissionController, CancelToken
from docgate.core.errors import ValidationAppError
from docgate.core.logging import clear_submission_id, set_submission_id
from docgate.schemas.documents import DocumentFormat, ProductGroup
from docgate.utils.envelope import build_produced_product_request

logger = logging.getLogger(__name__)


def _require(value: Any, field: str) -> None:
    if value is None or (isinstance(value, str) and not value.strip()):
        raise ValidationAppError(
            code="document_missing_argument",
            message=f"Produced product document creating: '{field}' is required",
            details={"field": field},
        )


def _coerce(enum_cls: type, value: Any, field: str) -> Any:
    try:
        return enum_cls(value)
    except ValueError as exc:
        raise ValidationAppError(
            code="document_invalid_argument",
            message=f"Produced product document creating: invalid {field} {value!r}",
            details={"field": field},
        ) from exc


class DocumentService:
    """Submit produced-product documents through an admission controller.

    One instance is meant to live as long as its controller; many threads
    may share it.
    """

    def __init__(
        self,
        controller: AbstractAdmissionController,
        client: AbstractDocumentClient,
    ) -> None:
        self._controller = controller
        self._client = client

    def create_produced_product_document(
        self,
        document: Any,
        signature: str,
        product_group: ProductGroup,
        document_format: DocumentFormat,
        token: str,
        *,
        timeout: float | None = None,
        cancel_token: CancelToken | None = None,
    ) -> str:
        """Create one produced-product document.

        Args:
            document: Document body (pydantic model, dataclass or plain data).
            signature: Detached signature text.
            product_group: Product group of the goods.
            document_format: Serialization format of the document.
            token: Bearer token for the API.
            timeout: Optional maximum seconds to wait for admission.
            cancel_token: Optional token that aborts the wait for admission.

        Returns:
            str: Result value returned by the document API.

        Raises:
            ValidationAppError: If an argument is missing or the format unsupported.
            AdmissionCancelledError: If the wait for admission is cancelled or times out.
            ControllerClosedError: If the controller is closed.
            SubmissionAppError: If the API call fails.
        """
        for value, field in (
            (document, "document"),
            (signature, "signature"),
            (product_group, "product_group"),
            (document_format, "document_format"),
            (token, "token"),
        ):
            _require(value, field)

        # Build before acquiring so a malformed document never consumes a slot.
        request = build_produced_product_request(
            document,
            signature,
            _coerce(ProductGroup, product_group, "product_group"),
            _coerce(DocumentFormat, document_format, "document_format"),
        )

        submission_id = uuid.uuid4().hex
        set_submission_id(submission_id)
        try:
            admission = self._controller.acquire(timeout=timeout, cancel_token=cancel_token)
            logger.info(
                "documents.submit",
                extra={
                    "document_type": request.type.value,
                    "product_group": request.product_group.value,
                    "waited_s": round(admission.waited_seconds, 6),
                },
            )
            return self._client.submit(request, token=token)
        finally:
            clear_submission_id()

    def close(self) -> None:
        """Close the controller and the client."""

        self._controller.close()
        self._client.close()
