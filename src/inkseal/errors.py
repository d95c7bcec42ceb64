"""Exception hierarchy for InkSeal.

Every lifecycle failure a signer can trigger has its own type so callers
can map them to user-facing messages. Storage failures are not wrapped:
an ``OSError`` from the store reaches the caller unchanged.
"""

from typing import Any, Optional


class InkSealError(Exception):
    """Base class for all InkSeal errors."""


class NotFoundError(InkSealError, LookupError):
    """A token or document does not exist."""


class SignatureNotFound(NotFoundError):
    def __init__(self, message: str = "Signature not found") -> None:
        super().__init__(message)


class DocumentNotFound(NotFoundError):
    def __init__(self, document_id: str) -> None:
        self.document_id = document_id
        super().__init__(f"Document not found: {document_id}")


class AlreadyProcessed(InkSealError, ValueError):
    """The signature is no longer PENDING.

    Usually the result of a double submission or of losing a race
    against a concurrent sign/decline.
    """

    def __init__(
        self,
        message: str = "This signature request has already been processed",
        status: Optional[Any] = None,
    ) -> None:
        self.status = status
        super().__init__(message)


class SignatureExpired(AlreadyProcessed):
    """The document's deadline passed before the signer acted."""

    def __init__(self, message: str = "This signature request has expired") -> None:
        super().__init__(message, status="expired")


class InvalidTransition(InkSealError, ValueError):
    """A document-level transition was requested from the wrong state."""


class SignatureValidationError(InkSealError, ValueError):
    """Submitted signature data is malformed.

    Attributes:
        errors: Pydantic's structured error list, when available.
    """

    def __init__(self, message: str, errors: Optional[list] = None) -> None:
        self.errors = errors or []
        super().__init__(message)
