"""Exceptions raised by the ledger services.

Input validation problems (bad type, non-positive amount, unparseable date)
are reported with plain ``ValueError``. The classes below cover failures that
depend on what is stored.
"""


class LedgerError(Exception):
    """Base class for ledger failures."""


class NotFoundError(LedgerError):
    """An operation referenced an id that does not exist."""

    def __init__(self, entity: str, entity_id, message: str | None = None):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(message or f"{entity} {entity_id} not found.")


class ConstraintViolationError(NotFoundError):
    """A row points at another row (foreign key) that does not exist."""

    def __init__(self, entity: str, entity_id, field: str):
        self.field = field
        super().__init__(
            entity,
            entity_id,
            f"{field} references missing {entity} {entity_id}.",
        )


class InvalidStateError(LedgerError):
    """The entity exists but is not in a state that allows the operation."""
