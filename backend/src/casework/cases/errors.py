"""Exceptions raised by the casework core.

None of these are fatal: validation errors are corrected in place and
persistence errors leave the in-memory draft available for a retry.
"""


class CaseworkError(Exception):
    """Base class for casework errors."""


class ValidationError(CaseworkError):
    """A field-scoped validation failure in an editor draft.

    Attributes:
        field: Name of the offending field (``title``, ``dateRange``, ...)
        message: Message shown next to the field
    """

    def __init__(self, field: str, message: str):
        super().__init__(f"{field}: {message}")
        self.field = field
        self.message = message

    def __eq__(self, other: object) -> bool:
        if not isinstance(other, ValidationError):
            return NotImplemented
        return self.field == other.field and self.message == other.message

    def __hash__(self) -> int:
        return hash((self.field, self.message))


class PersistenceError(CaseworkError):
    """The persistence collaborator failed to save or delete an entity."""

    def __init__(self, operation: str, entity_id: str | None, message: str):
        super().__init__(f"{operation} failed for {entity_id}: {message}")
        self.operation = operation
        self.entity_id = entity_id
        self.message = message
