# budgetbook/errors.py
from __future__ import annotations


class BudgetError(Exception):
    """Base for every error the route layer turns into a JSON response."""

    status = 500

    def __init__(self, message: str = ""):
        super().__init__(message)
        self.message = message or self.__class__.__name__


class NotFound(BudgetError):
    # Also used when the record exists under another user.
    status = 404


class InactiveTemplate(BudgetError):
    status = 400


class ValidationError(BudgetError):
    status = 400


class InvalidFrequency(ValidationError):
    pass


class Conflict(BudgetError):
    status = 409


class StoreError(BudgetError):
    status = 500
