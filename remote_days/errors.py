"""Errors raised while reconciling remote workdays."""

from __future__ import annotations

from typing import List

from .models import CreationResult


class RemoteDaysError(RuntimeError):
    """Base class for failures that end a reconciliation run."""


class UserNotFoundError(RemoteDaysError):
    def __init__(self, email: str) -> None:
        super().__init__(f'User with email "{email}" not found')
        self.email = email


class ReasonNotFoundError(RemoteDaysError):
    def __init__(self, name: str) -> None:
        super().__init__(f'Absence reason "{name}" not found')
        self.name = name


class AbsenceCreationError(RemoteDaysError):
    """Raised after a creation batch in which at least one request failed."""

    def __init__(self, results: List[CreationResult]) -> None:
        self.results = results
        failed = sum(1 for result in results if not result.ok)
        super().__init__(f"{failed} of {len(results)} absence(s) could not be created")

    @property
    def created(self) -> List[CreationResult]:
        return [result for result in self.results if result.ok]

    @property
    def failed(self) -> List[CreationResult]:
        return [result for result in self.results if not result.ok]


__all__ = [
    "RemoteDaysError",
    "UserNotFoundError",
    "ReasonNotFoundError",
    "AbsenceCreationError",
]
