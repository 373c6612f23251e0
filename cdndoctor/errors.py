"""Error taxonomy for a diagnostic run.

Only identifier resolution is fatal. Everything else degrades a single facet
or a single rule and is surfaced in the report as "could not confirm".
"""
from __future__ import annotations


class CdnDoctorError(Exception):
    """Base class for all cdndoctor errors."""


class InvalidIdentifierError(CdnDoctorError):
    """Distribution id is malformed or does not resolve. Aborts the run."""

    def __init__(self, distribution_id: str, reason: str = "not found") -> None:
        super().__init__(f"distribution {distribution_id!r}: {reason}")
        self.distribution_id = distribution_id
        self.reason = reason


class PermissionDeniedError(CdnDoctorError):
    """The Config Source refused to read a record."""


class TransientSourceError(CdnDoctorError):
    """Network failure, throttling or timeout against the Config Source."""


class PartialDataError(CdnDoctorError):
    """A sub-record could not be read; the facet is marked Unknown."""

    def __init__(self, facet: str, subject: str, cause: Exception) -> None:
        super().__init__(f"{facet} for {subject}: {cause}")
        self.facet = facet
        self.subject = subject
        self.cause = cause


class UnsupportedErrorCodeError(CdnDoctorError):
    """error_code is not in the known set. The run falls back to general analysis."""

    def __init__(self, error_code: str) -> None:
        super().__init__(f"unsupported error code {error_code!r}")
        self.error_code = error_code


class ValidationProbeError(CdnDoctorError):
    """An active reachability probe failed to produce an answer."""


class RunCancelledError(CdnDoctorError):
    """The run was cancelled. No report is produced."""
