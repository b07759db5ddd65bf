"""
Error types raised by the chore champ application.

All application errors derive from ``ChoreChampError`` so the Flask error
handlers in ``app.py`` can map each kind to its response:

* ``ValidationError`` – a submitted form failed validation. Carries the
  flattened per-field errors and the fields as they were submitted.
* ``PersistenceError`` – an insert step returned no rows.
* ``TransitionError`` – the onboarding wizard rejected an action.
"""

from __future__ import annotations


class ChoreChampError(Exception):
    """Base class for application errors."""


class ValidationError(ChoreChampError):
    """Raised when a submitted payload does not pass validation."""

    def __init__(self, errors: dict, fields: dict) -> None:
        super().__init__("validation failed")
        self.errors = errors
        self.fields = fields


class PersistenceError(ChoreChampError):
    """Raised when a step of the onboarding insert sequence writes nothing."""


class TransitionError(ChoreChampError):
    """Raised when a wizard action is not allowed in the current state."""
