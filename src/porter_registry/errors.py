# porter_registry/errors.py
"""
Error types raised by the registry CRUD layer.

Every failure is local to one operation and is never retried here;
the session is rolled back before one of these propagates.
"""


class RegistryError(Exception):
    """Base class for all registry failures."""


class ValidationError(RegistryError, ValueError):
    """Malformed input, e.g. an empty host or a port outside 1-65535."""

    def __init__(self, message: str, errors: list | None = None):
        super().__init__(message)
        self.errors = errors or []

    @classmethod
    def from_pydantic(cls, exc) -> "ValidationError":
        errors = exc.errors(include_url=False)
        fields = ", ".join(".".join(str(part) for part in err["loc"]) or "input" for err in errors)
        return cls(f"Invalid value for: {fields}", errors=errors)


class NotFoundError(RegistryError, LookupError):
    """The referenced record does not exist, or is not live when it has to be."""

    def __init__(self, kind: str, record_id: int):
        super().__init__(f"{kind} {record_id} not found")
        self.kind = kind
        self.id = record_id


class IntegrityError(RegistryError):
    """A gate would reference a service it is not allowed to reference."""


class ConflictError(RegistryError):
    """Uniqueness or concurrent-modification conflict reported by the store."""
