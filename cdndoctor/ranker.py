"""Issue ranking: final, deterministic presentation order."""
from __future__ import annotations

from cdndoctor.correlator import merge_duplicates
from cdndoctor.models import Finding


def rank_key(f: Finding) -> tuple:
    """Severity desc, likelihood desc, request-specific first, rule id asc, facet asc."""
    return (-f.severity.rank, -f.likelihood.rank, 0 if f.specific else 1, f.rule_id, f.facet.value)


def rank(findings: list[Finding] | tuple[Finding, ...]) -> tuple[Finding, ...]:
    """Deduplicate by (facet, rule_id) and sort. Pure; safe on uncorrelated input."""
    return tuple(sorted(merge_duplicates(findings), key=rank_key))
