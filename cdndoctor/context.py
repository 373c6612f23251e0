"""Run context threaded through every stage of a diagnostic run."""
from __future__ import annotations

import threading
from dataclasses import dataclass, field, replace

from cdndoctor.config import Settings
from cdndoctor.errors import RunCancelledError
from cdndoctor.models import DistributionSnapshot, SymptomCategory, SymptomParams


class CancelToken:
    """Cooperative cancellation flag checked at every suspension point."""

    def __init__(self) -> None:
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self) -> None:
        if self._event.is_set():
            raise RunCancelledError("diagnostic run cancelled")


@dataclass(frozen=True)
class RunContext:
    """Immutable per-run values. Stages derive new contexts with bind(), never mutate."""
    distribution_id: str
    symptoms: SymptomParams = field(default_factory=SymptomParams)
    symptom: SymptomCategory = SymptomCategory.GENERAL
    settings: Settings = field(default_factory=Settings)
    cancel: CancelToken = field(default_factory=CancelToken, compare=False)
    warnings: tuple[str, ...] = ()

    # Filled once the snapshot exists
    distribution_arn: str = ""
    distribution_domain: str = ""
    account_id: str = ""

    def bind(self, snapshot: DistributionSnapshot) -> RunContext:
        arn = snapshot.arn
        account = arn.split(":")[4] if arn.count(":") >= 5 else ""
        return replace(
            self,
            distribution_arn=arn,
            distribution_domain=snapshot.domain_name,
            account_id=account,
        )

    def with_warning(self, message: str) -> RunContext:
        return replace(self, warnings=self.warnings + (message,))
