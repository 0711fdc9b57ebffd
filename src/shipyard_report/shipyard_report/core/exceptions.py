class DomainError(Exception):
    """Base exception for business rule violations."""


class ValidationError(DomainError):
    """Raised when input data is invalid or violates domain rules."""


class NotFoundError(DomainError):
    """Raised when a referenced record does not exist or was soft-deleted."""


class AuthenticationError(DomainError):
    """Raised when login credentials are invalid."""


class AuthorizationError(DomainError):
    """Raised when a user lacks permission for an action."""


class StorageError(DomainError):
    """Raised when a document cannot be stored, found or signed."""


class DocumentNotFoundError(StorageError):
    """Raised when a stored document is missing on disk."""


class InvalidDocumentLinkError(StorageError):
    """Raised when a signed document link is malformed or forged."""


class ExpiredDocumentLinkError(InvalidDocumentLinkError):
    """Raised when a signed document link is past its lifetime."""
