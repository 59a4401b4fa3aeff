"""Document API adapter layer - the operation gated by admission control."""

from docgate.adapters.documents.base import AbstractDocumentClient
from docgate.adapters.documents.http_client import HttpDocumentClient

__all__ = [
    "AbstractDocumentClient",
    "HttpDocumentClient",
]
