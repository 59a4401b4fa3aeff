from abc import ABC, abstractmethod

from docgate.schemas.documents import ProducedProductDocumentRequest


class AbstractDocumentClient(ABC):
    """Interface for clients that submit documents to the upstream API."""

    @abstractmethod
    def submit(self, request: ProducedProductDocumentRequest, *, token: str) -> str:
        """Submit one document and return the upstream result value.

        Args:
            request: Fully built request envelope.
            token: Bearer token authorizing the call.

        Returns:
            str: The ``value`` field returned by the API.

        Raises:
            SubmissionAppError: If the call fails or the response is unusable.
        """
        ...

    def close(self) -> None:
        """Release transport resources. Default: nothing to release."""
