"""Rule selection + evaluation engine.

Selects the rules for the resolved symptom category, runs them against the
snapshot and gates confidence: a finding that could not be confirmed never
carries more than MEDIUM likelihood.
"""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor

from cdndoctor.context import RunContext
from cdndoctor.models import DistributionSnapshot, Finding, Likelihood, SymptomCategory
from cdndoctor.rules import Rule, RuleInput, get_all_rules

logger = logging.getLogger(__name__)

# Symptom category -> rule categories to run. None runs the whole catalog.
SELECTION_TABLE: dict[SymptomCategory, frozenset[SymptomCategory] | None] = {
    SymptomCategory.ACCESS_DENIED: frozenset({SymptomCategory.ACCESS_DENIED, SymptomCategory.GENERAL}),
    SymptomCategory.NOT_FOUND: frozenset({SymptomCategory.NOT_FOUND, SymptomCategory.GENERAL}),
    SymptomCategory.SERVER_ERROR: frozenset({SymptomCategory.SERVER_ERROR, SymptomCategory.GENERAL}),
    SymptomCategory.GENERAL: None,
}


def select_rules(symptom: SymptomCategory, rules: list[Rule] | None = None) -> list[Rule]:
    """Rules applicable to *symptom*, in rule-id order."""
    catalog = get_all_rules() if rules is None else sorted(rules, key=lambda r: r.rule_id)
    wanted = SELECTION_TABLE[symptom]
    if wanted is None:
        return catalog
    return [r for r in catalog if r.applies_to & wanted]


def _gate_likelihood(finding: Finding) -> Finding:
    """Unconfirmed -> max MEDIUM likelihood. Called on every finding."""
    if not finding.confirmed and finding.likelihood == Likelihood.HIGH:
        logger.debug("_gate_likelihood: %s likelihood HIGH->MEDIUM (unconfirmed)", finding.rule_id)
        return finding.evolve(likelihood=Likelihood.MEDIUM)
    return finding


def _merge_key(f: Finding) -> tuple[str, str]:
    return (f.rule_id, f.facet.value)


class Evaluator:
    """Runs the selected rules. Rules are independent, so order never affects the result."""

    def __init__(self, rules: list[Rule] | None = None, workers: int = 1) -> None:
        self.rules = rules
        self.workers = max(1, workers)

    def evaluate(
        self,
        snapshot: DistributionSnapshot,
        context: RunContext,
        probes: tuple = (),
    ) -> tuple[Finding, ...]:
        """Run every applicable rule; returns gated findings ordered by (rule_id, facet)."""
        selected = select_rules(context.symptom, self.rules)
        inp = RuleInput(
            snapshot=snapshot,
            symptoms=context.symptoms,
            symptom=context.symptom,
            probes=tuple(probes),
        )
        context.cancel.raise_if_cancelled()
        logger.debug("Evaluating %d rules for symptom %s", len(selected), context.symptom.value)

        if self.workers > 1 and len(selected) > 1:
            with ThreadPoolExecutor(
                max_workers=min(self.workers, len(selected)),
                thread_name_prefix="cdndoctor-rule",
            ) as executor:
                results = list(executor.map(lambda r: r.evaluate(inp), selected))
        else:
            results = [r.evaluate(inp) for r in selected]
        context.cancel.raise_if_cancelled()

        findings = [_gate_likelihood(f) for f in results if f is not None]
        findings.sort(key=_merge_key)
        logger.info("%d rules produced %d findings", len(selected), len(findings))
        return tuple(findings)
