"""
Cross-facet correlation of raw findings.

Each correlation rule pairs a finding predicate with a context predicate
(the snapshot, the symptom and the other findings) and yields one action:
suppress, escalate or annotate. Suppressions run first so that an escalation
never resurrects a finding that is irrelevant to the symptom.

This module has ONE job: given raw findings, return the correlated list.
No ranking, no remediation, no output formatting.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Callable

from cdndoctor.models import (
    DistributionSnapshot, Finding, Likelihood, Severity, SymptomCategory,
)

logger = logging.getLogger(__name__)


class Action(str, Enum):
    SUPPRESS = "suppress"
    ESCALATE = "escalate"
    ANNOTATE = "annotate"


_ACTION_ORDER = {Action.SUPPRESS: 0, Action.ESCALATE: 1, Action.ANNOTATE: 2}


@dataclass(frozen=True)
class CorrelationInput:
    snapshot: DistributionSnapshot
    symptom: SymptomCategory
    findings: tuple[Finding, ...]

    def find(self, rule_id: str) -> Finding | None:
        for f in self.findings:
            if f.rule_id == rule_id:
                return f
        return None


@dataclass(frozen=True)
class CorrelationRule:
    name: str
    rule_id: str
    action: Action
    when: Callable[[Finding, CorrelationInput], bool] = field(compare=False, repr=False)
    note: str = ""
    severity: Severity | None = None
    likelihood: Likelihood | None = None
    absorbs: str | None = None


def _all_website_endpoints(f: Finding, ctx: CorrelationInput) -> bool:
    origins = [ctx.snapshot.origin(s) for s in f.subjects]
    return bool(origins) and all(o is not None and o.website_endpoint for o in origins)


def _shares_subject(
    other_id: str, require: Callable[[Finding, Finding], bool] | None = None,
) -> Callable[[Finding, CorrelationInput], bool]:
    """Another finding exists about at least one of the same subjects (and passes *require*)."""
    def check(f: Finding, ctx: CorrelationInput) -> bool:
        other = ctx.find(other_id)
        if other is None or not set(f.subjects) & set(other.subjects):
            return False
        return require is None or require(f, other)
    return check


def _either_confirmed(f: Finding, other: Finding) -> bool:
    return f.confirmed or other.confirmed


CORRELATION_RULES: tuple[CorrelationRule, ...] = (
    CorrelationRule(
        name="root-object-irrelevant-to-403",
        rule_id="CDN-NF01",
        action=Action.SUPPRESS,
        when=lambda f, ctx: ctx.symptom == SymptomCategory.ACCESS_DENIED,
    ),
    CorrelationRule(
        name="public-by-design",
        rule_id="CDN-AD01",
        action=Action.SUPPRESS,
        when=_all_website_endpoints,
    ),
    CorrelationRule(
        name="website-exposure-intended",
        rule_id="CDN-GN01",
        action=Action.ANNOTATE,
        when=_all_website_endpoints,
        note="Static website endpoints are public by design; restrict them only if content "
             "must be served exclusively through the distribution.",
    ),
    CorrelationRule(
        name="unprotected-and-public",
        rule_id="CDN-AD01",
        action=Action.ESCALATE,
        when=_shares_subject("CDN-GN01"),
        note="The origin has no access control and is publicly readable: content is fully "
             "exposed outside the distribution.",
        severity=Severity.CRITICAL,
        likelihood=Likelihood.HIGH,
        absorbs="CDN-GN01",
    ),
    CorrelationRule(
        name="timeout-vs-unreachable",
        rule_id="CDN-SE01",
        action=Action.ANNOTATE,
        when=_shares_subject("CDN-SE04", lambda f, other: other.confirmed),
        note="The origin is also unreachable; raising timeouts will not help until it "
             "accepts connections.",
    ),
    CorrelationRule(
        name="unhealthy-and-unreachable",
        rule_id="CDN-SE02",
        action=Action.ESCALATE,
        when=_shares_subject("CDN-SE04", _either_confirmed),
        note="Health status and a live probe both indicate the origin is down.",
        severity=Severity.CRITICAL,
        absorbs="CDN-SE04",
    ),
    CorrelationRule(
        name="unhealthy-and-unreachable-unconfirmed",
        rule_id="CDN-SE02",
        action=Action.ANNOTATE,
        when=_shares_subject("CDN-SE04", lambda f, other: not _either_confirmed(f, other)),
        note="Neither the health check nor the live probe gave a definite answer for this "
             "origin; confirm its state before acting.",
    ),
)


def _union(*groups: tuple[str, ...]) -> tuple[str, ...]:
    out: list[str] = []
    for group in groups:
        for item in group:
            if item not in out:
                out.append(item)
    return tuple(out)


def _escalate(f: Finding, rule: CorrelationRule, absorbed: Finding | None) -> Finding:
    likelihood = rule.likelihood or f.likelihood
    confirmed = f.confirmed
    evidence, subjects, specific = f.evidence, f.subjects, f.specific
    if absorbed is not None:
        if rule.likelihood is None and absorbed.likelihood.rank > likelihood.rank:
            likelihood = absorbed.likelihood
        confirmed = f.confirmed or absorbed.confirmed
        evidence = _union(f.evidence, absorbed.evidence)
        subjects = _union(f.subjects, absorbed.subjects)
        specific = f.specific or absorbed.specific
    return f.evolve(
        severity=rule.severity or f.severity,
        likelihood=likelihood,
        confirmed=confirmed,
        evidence=evidence,
        subjects=subjects,
        specific=specific,
        annotations=_union(f.annotations, (rule.note,) if rule.note else ()),
    )


def merge_duplicates(findings: list[Finding] | tuple[Finding, ...]) -> list[Finding]:
    """At most one finding per (facet, rule_id): worst severity/likelihood, evidence unioned."""
    merged: dict[tuple[str, str], Finding] = {}
    order: list[tuple[str, str]] = []
    for f in findings:
        key = (f.facet.value, f.rule_id)
        prior = merged.get(key)
        if prior is None:
            merged[key] = f
            order.append(key)
            continue
        merged[key] = prior.evolve(
            severity=max(prior.severity, f.severity, key=lambda s: s.rank),
            likelihood=max(prior.likelihood, f.likelihood, key=lambda l: l.rank),
            evidence=_union(prior.evidence, f.evidence),
            subjects=_union(prior.subjects, f.subjects),
            annotations=_union(prior.annotations, f.annotations),
            confirmed=prior.confirmed or f.confirmed,
            specific=prior.specific or f.specific,
        )
    return [merged[k] for k in order]


def correlate(
    findings: list[Finding] | tuple[Finding, ...],
    snapshot: DistributionSnapshot,
    symptom: SymptomCategory,
    rules: tuple[CorrelationRule, ...] = CORRELATION_RULES,
) -> tuple[Finding, ...]:
    """Apply correlation rules and merge duplicates. Returns a new tuple; inputs are untouched."""
    ordered_rules = sorted(rules, key=lambda r: _ACTION_ORDER[r.action])
    current = list(findings)

    for rule in ordered_rules:
        ctx = CorrelationInput(snapshot=snapshot, symptom=symptom, findings=tuple(current))
        targets = [f for f in current if f.rule_id == rule.rule_id and rule.when(f, ctx)]
        if not targets:
            continue

        if rule.action == Action.SUPPRESS:
            current = [f for f in current if f not in targets]
            logger.debug("correlate: %s suppressed %s", rule.name, rule.rule_id)
            continue

        if rule.action == Action.ANNOTATE:
            current = [
                f.evolve(annotations=_union(f.annotations, (rule.note,))) if f in targets else f
                for f in current
            ]
            logger.debug("correlate: %s annotated %s", rule.name, rule.rule_id)
            continue

        absorbed = ctx.find(rule.absorbs) if rule.absorbs else None
        current = [
            _escalate(f, rule, absorbed) if f in targets else f
            for f in current
            if absorbed is None or f is not absorbed
        ]
        logger.info(
            "correlate: %s escalated %s to %s%s", rule.name, rule.rule_id,
            (rule.severity.value if rule.severity else "-"),
            f", absorbed {rule.absorbs}" if absorbed is not None else "",
        )

    return tuple(merge_duplicates(current))
