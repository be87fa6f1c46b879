"""
Crime Pulse - Exception Classes

Errors raised by the query client, the dataset registry and the stats engine.
The dashboard session turns them into user-facing status messages.
"""

from __future__ import annotations


class CrimePulseError(Exception):
    """Base class for all Crime Pulse errors."""


class UnknownDatasetError(CrimePulseError, KeyError):
    """Raised when a dataset id is not configured."""

    def __init__(self, dataset_id: str):
        self.dataset_id = dataset_id
        super().__init__(f"Unknown dataset: {dataset_id}")

    def __str__(self) -> str:
        return self.args[0]


class DatasetConfigError(CrimePulseError):
    """Raised when a dataset YAML file does not validate."""

    def __init__(self, dataset_id: str, detail: str):
        self.dataset_id = dataset_id
        super().__init__(f"Invalid configuration for dataset {dataset_id}:\n{detail}")


class RequestFailedError(CrimePulseError):
    """
    Raised when an HTTP request fails.

    ``status_code`` is None for transport errors (DNS, connection, timeout).
    """

    # Statuses that usually mean the portal wants an app token
    TOKEN_STATUSES = frozenset({401, 403, 429})

    def __init__(self, url: str, status_code: int | None = None, detail: str = ""):
        self.url = url
        self.status_code = status_code
        self.detail = detail
        if status_code is None:
            message = f"Request failed: {detail or 'transport error'}"
        else:
            message = f"Request failed with status {status_code}"
            if detail:
                message = f"{message}: {detail}"
        super().__init__(message)

    @property
    def likely_needs_token(self) -> bool:
        """Whether the failure looks like a missing or rejected app token."""
        return self.status_code in self.TOKEN_STATUSES


class StatsLoadError(CrimePulseError):
    """Raised when any sub-query of a stats load fails."""

    def __init__(self, dataset_id: str, step: str, cause: BaseException):
        self.dataset_id = dataset_id
        self.step = step
        self.cause = cause
        super().__init__(f"Stats load for {dataset_id} failed at {step}: {cause}")
