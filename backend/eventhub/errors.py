# backend/eventhub/errors.py
"""
Domain errors raised by the services.

The HTTP layer maps them to responses in main.py:
ValidationError -> 422, NotFoundError -> 404, DependencyError -> 503.
"""

from __future__ import annotations

from typing import Iterable, Optional


class EventHubError(Exception):
    """Base class for every error the services signal to their caller."""


class ValidationError(EventHubError):
    """One or more input fields broke a constraint."""

    def __init__(self, field: Optional[str] = None, message: str = "", *, errors: Optional[Iterable[tuple[str, str]]] = None):
        self.errors: list[tuple[str, str]] = list(errors or [])
        if field is not None:
            self.errors.insert(0, (field, message))
        summary = "; ".join(f"{f}: {m}" for f, m in self.errors)
        super().__init__(summary or "invalid input")

    @property
    def field(self) -> Optional[str]:
        return self.errors[0][0] if self.errors else None

    def as_detail(self) -> list[dict[str, str]]:
        return [{"field": f, "message": m} for f, m in self.errors]


class NotFoundError(EventHubError):
    """The referenced id does not exist (or no longer exists)."""

    def __init__(self, entity: str, entity_id: object):
        self.entity = entity
        self.entity_id = entity_id
        super().__init__(f"{entity} {entity_id} not found")


class DependencyError(EventHubError):
    """The store could not be reached or failed mid-operation. Safe to retry."""

    retryable = True
