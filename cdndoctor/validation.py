"""Active validation: live reachability probes against each origin.

Only runs when active_validation is set. Each probe has its own short timeout;
a probe that errors or times out lowers confidence for the origin it concerns
and never fails the run.
"""
from __future__ import annotations

import functools
import logging
from dataclasses import dataclass

from cdndoctor.context import RunContext
from cdndoctor.errors import CdnDoctorError, ValidationProbeError
from cdndoctor.models import DistributionSnapshot, ProbeOutcome
from cdndoctor.sources.base import ConfigSource
from cdndoctor.workers import run_with_deadlines

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProbeResult:
    origin_id: str
    outcome: ProbeOutcome
    detail: str = ""

    @property
    def conclusive(self) -> bool:
        return self.outcome in (ProbeOutcome.REACHABLE, ProbeOutcome.UNREACHABLE)


def probe_origins(
    source: ConfigSource,
    snapshot: DistributionSnapshot,
    context: RunContext,
) -> tuple[ProbeResult, ...]:
    """Probe every origin concurrently. Returns results ordered by origin id."""
    if not context.symptoms.active_validation or not snapshot.origins:
        return ()

    settings = context.settings
    timeout = settings.probe_timeout

    def run(origin, slot) -> ProbeResult:
        try:
            outcome = source.probe_reachability(origin, timeout)
        except (ValidationProbeError, NotImplementedError) as e:
            logger.info("Probe of %s failed: %s", origin.origin_id, e)
            return ProbeResult(origin.origin_id, ProbeOutcome.ERROR, str(e) or type(e).__name__)
        except CdnDoctorError as e:
            logger.info("Probe of %s failed: %s", origin.origin_id, e)
            return ProbeResult(origin.origin_id, ProbeOutcome.ERROR, str(e))
        return ProbeResult(origin.origin_id, outcome)

    results: dict[str, ProbeResult] = {}
    # Probes carry their own timeout; the extra second covers a source that ignores it.
    finished, timed_out = run_with_deadlines(
        {o.origin_id: functools.partial(run, o) for o in snapshot.origins},
        settings.probe_workers, timeout + 1, context.cancel, "cdndoctor-probe",
    )
    for origin_id, future in finished.items():
        results[origin_id] = future.result()
    for origin_id in timed_out:
        results[origin_id] = ProbeResult(origin_id, ProbeOutcome.TIMEOUT, f"no answer within {timeout:g}s")

    return tuple(results[k] for k in sorted(results))
