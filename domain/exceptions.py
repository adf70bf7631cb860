# domain/exceptions.py
from __future__ import annotations


class DomainError(Exception):
    pass


class ValidationError(DomainError):
    """Raised when a plan document does not have the shape needed to run it."""
