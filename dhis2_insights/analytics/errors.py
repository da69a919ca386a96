from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable


class InsightsError(Exception):
    pass


class InvalidSelectionError(InsightsError, ValueError):
    def __init__(self, message: str, dimension: str, identifier: str | None = None) -> None:
        super().__init__(message)
        self.dimension = dimension
        self.identifier = identifier


class MalformedResponseError(InsightsError):
    def __init__(self, message: str, missing_columns: Iterable[str] = ()) -> None:
        super().__init__(message)
        self.missing_columns = list(missing_columns)


class AnalyticsFetchError(InsightsError):
    def __init__(self, message: str, status_code: int | None = None) -> None:
        super().__init__(message)
        self.status_code = status_code


class UnresolvedMetadataWarning(UserWarning):
    """An id that had no display name in the response metadata."""

    def __init__(self, dimension: str, identifier: str, fallback: str) -> None:
        super().__init__(f"No metadata name for {dimension} '{identifier}', using '{fallback}'")
        self.dimension = dimension
        self.identifier = identifier
        self.fallback = fallback


@dataclass(frozen=True)
class NoDataCondition:
    message: str
    item_ids: tuple[str, ...] = ()
    period: str = ""
    org_unit: str = ""
