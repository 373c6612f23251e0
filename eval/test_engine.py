"""Tests for rule selection, confidence gating and the Evaluator."""
import pytest

from cdndoctor.context import CancelToken, RunContext
from cdndoctor.errors import RunCancelledError
from cdndoctor.models import (
    CacheBehavior, Category, DistributionSnapshot, Facet, Likelihood, OriginConfig, OriginDetail,
    OriginKind, Severity, SymptomCategory, SymptomParams,
)
from cdndoctor.rules import Rule, build_rule_manifest, get_all_rules
from cdndoctor.rules.engine import Evaluator, select_rules


# ── Helpers ─────────────────────────────────────────────────────────


def messy_snapshot():
    """Unprotected private bucket, allow-all viewers, no compression, no root object."""
    return DistributionSnapshot(
        distribution_id="E1ABCDEF",
        origins=(
            OriginConfig(
                origin_id="s3-assets", kind=OriginKind.OBJECT_STORAGE,
                domain="assets.s3.us-east-1.amazonaws.com", detail=OriginDetail(),
            ),
            OriginConfig(
                origin_id="api", kind=OriginKind.CUSTOM_HTTP, domain="api.example.com",
                detail=OriginDetail(healthy=False),
            ),
        ),
        cache_behaviors=(
            CacheBehavior(path_pattern="*", target_origin_id="s3-assets", is_default=True),
            CacheBehavior(path_pattern="/api/*", target_origin_id="api"),
        ),
    )


def context(symptom, **symptoms):
    return RunContext(
        distribution_id="E1ABCDEF", symptom=symptom, symptoms=SymptomParams(**symptoms),
    )


def stub_rule(rule_id="CDN-ZZ99", confirmed=False, likelihood=Likelihood.HIGH):
    return Rule(
        rule_id=rule_id, title="stub", facet=Facet.ORIGIN, category=Category.GENERAL,
        applies_to=frozenset({SymptomCategory.GENERAL}), severity=Severity.HIGH,
        likelihood=likelihood,
        check=lambda r, inp: r.emit("stub", confirmed=confirmed),
    )


# ── Catalog ─────────────────────────────────────────────────────────


def test_catalog_ids_unique_and_sorted():
    ids = [r.rule_id for r in get_all_rules()]
    assert ids == sorted(set(ids))
    assert len(ids) == 23


def test_manifest_is_deterministic():
    assert build_rule_manifest() == build_rule_manifest()
    entry = next(e for e in build_rule_manifest() if e["id"] == "CDN-AD01")
    assert entry["applies_to"] == ["access-denied"]
    assert entry["description"]


# ── Selection ───────────────────────────────────────────────────────


@pytest.mark.parametrize("symptom,prefix", [
    (SymptomCategory.ACCESS_DENIED, "CDN-AD"),
    (SymptomCategory.NOT_FOUND, "CDN-NF"),
    (SymptomCategory.SERVER_ERROR, "CDN-SE"),
])
def test_selection_is_category_plus_general(symptom, prefix):
    ids = {r.rule_id for r in select_rules(symptom)}
    assert any(i.startswith(prefix) for i in ids)
    assert all(i.startswith((prefix, "CDN-GN", "CDN-UV")) for i in ids)


def test_general_selects_every_rule():
    assert select_rules(SymptomCategory.GENERAL) == get_all_rules()


def test_404_never_produces_access_denied_findings():
    findings = Evaluator().evaluate(messy_snapshot(), context(SymptomCategory.NOT_FOUND, error_code="404"))
    assert findings
    assert not [f for f in findings if f.rule_id.startswith(("CDN-AD", "CDN-SE"))]


# ── Evaluation ──────────────────────────────────────────────────────


def test_unconfirmed_high_likelihood_is_gated_to_medium():
    (finding,) = Evaluator(rules=[stub_rule()]).evaluate(messy_snapshot(), context(SymptomCategory.GENERAL))
    assert finding.likelihood == Likelihood.MEDIUM
    assert not finding.confirmed


def test_confirmed_high_likelihood_kept():
    (finding,) = Evaluator(rules=[stub_rule(confirmed=True)]).evaluate(
        messy_snapshot(), context(SymptomCategory.GENERAL),
    )
    assert finding.likelihood == Likelihood.HIGH


def test_no_unconfirmed_finding_exceeds_medium():
    snap = messy_snapshot()
    findings = Evaluator().evaluate(snap, context(SymptomCategory.GENERAL))
    assert all(f.confirmed or f.likelihood != Likelihood.HIGH for f in findings)


def test_parallel_evaluation_matches_serial():
    snap = messy_snapshot()
    ctx = context(SymptomCategory.GENERAL, request_path="/")
    assert Evaluator(workers=4).evaluate(snap, ctx) == Evaluator(workers=1).evaluate(snap, ctx)


def test_findings_ordered_by_rule_id():
    findings = Evaluator().evaluate(messy_snapshot(), context(SymptomCategory.GENERAL))
    ids = [f.rule_id for f in findings]
    assert ids == sorted(ids)


def test_cancelled_run_raises():
    token = CancelToken()
    token.cancel()
    ctx = RunContext(distribution_id="E1ABCDEF", cancel=token)
    with pytest.raises(RunCancelledError):
        Evaluator().evaluate(messy_snapshot(), ctx)
