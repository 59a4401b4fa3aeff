"""Helpers that turn a caller's document into a submission envelope."""

from __future__ import annotations

import base64
import dataclasses
import json
from typing import Any

from pydantic import BaseModel

from docgate.core.errors import ValidationAppError
from docgate.schemas.documents import (
    DOCUMENT_TYPE_BY_FORMAT,
    DocumentFormat,
    ProducedProductDocumentRequest,
    ProductGroup,
)


def encode_base64(text: str) -> str:
    """Base64-encode the UTF-8 bytes of ``text``."""
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def document_to_json(document: Any) -> str:
    """Serialize a document (pydantic model, dataclass or plain data) to JSON.

    Raises:
        ValidationAppError: If the document is not JSON-serializable.
    """
    if isinstance(document, BaseModel):
        payload: Any = document.model_dump(mode="json", by_alias=True)
    elif dataclasses.is_dataclass(document) and not isinstance(document, type):
        payload = dataclasses.asdict(document)
    else:
        payload = document

    try:
        return json.dumps(payload, indent=2, ensure_ascii=False)
    except (TypeError, ValueError) as exc:
        raise ValidationAppError(
            code="document_not_serializable",
            message=f"Document cannot be serialized to JSON: {exc}",
            details={"document_format": DocumentFormat.MANUAL.value},
        ) from exc


def serialize_document(document: Any, document_format: DocumentFormat) -> str:
    """Serialize ``document`` according to ``document_format``.

    Only MANUAL (JSON) documents are supported; XML and CSV are rejected.
    """
    if document_format is DocumentFormat.MANUAL:
        return document_to_json(document)

    raise ValidationAppError(
        code="document_format_unsupported",
        message=f"Document format {document_format.value} is not supported yet",
        details={"document_format": document_format.value},
    )


def build_produced_product_request(
    document: Any,
    signature: str,
    product_group: ProductGroup,
    document_format: DocumentFormat,
) -> ProducedProductDocumentRequest:
    """Build the request envelope: encoded body, encoded signature, derived type."""

    body = serialize_document(document, document_format)
    return ProducedProductDocumentRequest(
        document_format=document_format,
        product_document=encode_base64(body),
        product_group=product_group,
        signature=encode_base64(signature),
        type=DOCUMENT_TYPE_BY_FORMAT[document_format],
    )
