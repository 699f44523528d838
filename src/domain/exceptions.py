"""Domain-specific exceptions."""


class DomainError(Exception):
    """Base exception for domain errors."""

    code = "domain_error"


class ValidationError(DomainError):
    """Raised when domain validation fails."""

    code = "validation_failed"

    def __init__(self, message: str, field: str | None = None):
        super().__init__(message)
        self.field = field


class InvalidStatusTransitionError(ValidationError):
    """Raised when a status change is not part of the lifecycle."""

    code = "invalid_status_transition"

    def __init__(self, current: str, target: str, entity_type: str = "record"):
        super().__init__(
            f"Cannot change {entity_type} status from '{current}' to '{target}'",
            field="status",
        )
        self.current = current
        self.target = target


class NotFoundError(DomainError):
    """Raised when an operation targets a record that does not exist."""

    code = "not_found"

    def __init__(self, entity_type: str, entity_id: int):
        super().__init__(f"{entity_type} {entity_id} not found")
        self.entity_type = entity_type
        self.entity_id = entity_id


class PersistenceError(DomainError):
    """Raised when the store rejects a write."""

    code = "persistence_error"

    def __init__(self, message: str, operation: str | None = None):
        super().__init__(message)
        self.operation = operation


class AuthorizationError(DomainError):
    """Raised when the caller may not perform an operation."""

    code = "forbidden"


class AuthenticationError(AuthorizationError):
    """Raised when the caller did not identify themselves."""

    code = "unauthenticated"
