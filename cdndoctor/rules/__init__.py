"""Rule catalog: registry, rule type and manifest helpers.

A rule is a pure function of (snapshot, symptoms, probe results) returning
zero or one Finding. Rules are registered with the @rule decorator and tagged
with the symptom categories they apply to.
"""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Callable

from cdndoctor.models import (
    Category, DistributionSnapshot, Facet, Finding, Likelihood, Severity, SymptomCategory,
    SymptomParams,
)


@dataclass(frozen=True)
class RuleInput:
    snapshot: DistributionSnapshot
    symptoms: SymptomParams
    symptom: SymptomCategory
    probes: tuple = ()        # tuple[ProbeResult, ...], empty unless active validation ran

    def probe(self, origin_id: str):
        for result in self.probes:
            if result.origin_id == origin_id:
                return result
        return None


@dataclass(frozen=True)
class Rule:
    rule_id: str
    title: str
    facet: Facet
    category: Category
    applies_to: frozenset[SymptomCategory]
    severity: Severity
    likelihood: Likelihood
    check: Callable[[Rule, RuleInput], Finding | None] = field(compare=False, repr=False)
    description: str = ""

    def evaluate(self, inp: RuleInput) -> Finding | None:
        return self.check(self, inp)

    def emit(
        self,
        description: str,
        evidence: list[str] | tuple[str, ...] = (),
        severity: Severity | None = None,
        likelihood: Likelihood | None = None,
        confirmed: bool = True,
        specific: bool = False,
        subjects: list[str] | tuple[str, ...] = (),
        facet: Facet | None = None,
    ) -> Finding:
        """Build this rule's Finding; omitted severity/likelihood use the rule baseline."""
        return Finding(
            rule_id=self.rule_id,
            facet=facet or self.facet,
            category=self.category,
            severity=severity or self.severity,
            likelihood=likelihood or self.likelihood,
            title=self.title,
            description=description,
            evidence=tuple(evidence),
            confirmed=confirmed,
            specific=specific,
            subjects=tuple(subjects),
        )


_registry: dict[str, Rule] = {}


def rule(
    rule_id: str,
    title: str,
    facet: Facet,
    category: Category,
    applies_to: set[SymptomCategory] | frozenset[SymptomCategory],
    severity: Severity,
    likelihood: Likelihood,
):
    """Register the decorated check function as a catalog Rule."""
    def decorator(fn: Callable[[Rule, RuleInput], Finding | None]) -> Rule:
        if rule_id in _registry:
            raise ValueError(f"duplicate rule id {rule_id}")
        registered = Rule(
            rule_id=rule_id,
            title=title,
            facet=facet,
            category=category,
            applies_to=frozenset(applies_to),
            severity=severity,
            likelihood=likelihood,
            check=fn,
            description=(fn.__doc__ or "").strip(),
        )
        _registry[rule_id] = registered
        return registered
    return decorator


def get_all_rules() -> list[Rule]:
    """Every registered rule, ordered by rule id."""
    return [_registry[k] for k in sorted(_registry)]


def get_rule(rule_id: str) -> Rule:
    return _registry[rule_id]


def build_rule_manifest() -> list[dict]:
    """Deterministic manifest entries for every registered rule."""
    return [
        {
            "id": r.rule_id,
            "title": r.title,
            "facet": r.facet.value,
            "category": r.category.value,
            "applies_to": sorted(c.value for c in r.applies_to),
            "severity": r.severity.value,
            "likelihood": r.likelihood.value,
            "description": r.description,
        }
        for r in get_all_rules()
    ]


# Register the catalog at import time.
from cdndoctor.rules import access_denied as _access_denied  # noqa: F401,E402
from cdndoctor.rules import not_found as _not_found  # noqa: F401,E402
from cdndoctor.rules import server_error as _server_error  # noqa: F401,E402
from cdndoctor.rules import general as _general  # noqa: F401,E402
