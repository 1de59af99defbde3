class RepositoryError(Exception):
    """Base exception for repository errors."""


class AuditLogWriteError(RepositoryError):
    """Raised when an audit log insert does not return the new row id."""
