"""Tests for cross-facet correlation and issue ranking."""
import random

from cdndoctor.correlator import (
    CORRELATION_RULES, Action, CorrelationRule, correlate, merge_duplicates,
)
from cdndoctor.models import (
    Category, DistributionSnapshot, Facet, Finding, Likelihood, OriginConfig, OriginKind,
    Severity, SymptomCategory,
)
from cdndoctor.ranker import rank, rank_key


# ── Helpers ─────────────────────────────────────────────────────────


def finding(rule_id, severity=Severity.MEDIUM, likelihood=Likelihood.MEDIUM, facet=None, **kw):
    facets = {
        "CDN-AD01": Facet.ACCESS_CONTROL, "CDN-GN01": Facet.ORIGIN_POLICY,
        "CDN-NF01": Facet.DISTRIBUTION, "CDN-SE01": Facet.ORIGIN, "CDN-SE02": Facet.ORIGIN,
        "CDN-SE04": Facet.ORIGIN,
    }
    return Finding(
        rule_id=rule_id, facet=facet or facets.get(rule_id, Facet.CACHE_BEHAVIOR),
        category=Category.GENERAL, severity=severity, likelihood=likelihood,
        title=rule_id, description=rule_id, **kw,
    )


def snapshot(website=False):
    domain = "site.s3-website-us-east-1.amazonaws.com" if website else "assets.s3.us-east-1.amazonaws.com"
    return DistributionSnapshot(
        distribution_id="E1ABCDEF",
        origins=(OriginConfig(
            origin_id="s3-assets", kind=OriginKind.OBJECT_STORAGE, domain=domain,
            website_endpoint=website,
        ),),
    )


# ── Correlation ─────────────────────────────────────────────────────


def test_missing_access_control_and_public_bucket_escalate_to_one_critical():
    """AD01 + GN01 on the same origin: one CRITICAL finding, GN01 absorbed."""
    ad01 = finding("CDN-AD01", Severity.MEDIUM, Likelihood.LOW, subjects=("s3-assets",),
                   evidence=("no origin access control",))
    gn01 = finding("CDN-GN01", Severity.MEDIUM, Likelihood.HIGH, subjects=("s3-assets",),
                   evidence=("bucket policy grants Principal '*' read",))
    out = correlate([ad01, gn01], snapshot(), SymptomCategory.ACCESS_DENIED)
    assert [f.rule_id for f in out] == ["CDN-AD01"]
    merged = out[0]
    assert (merged.severity, merged.likelihood) == (Severity.CRITICAL, Likelihood.HIGH)
    assert set(merged.evidence) == set(ad01.evidence) | set(gn01.evidence)
    assert merged.annotations


def test_escalation_requires_shared_origin():
    ad01 = finding("CDN-AD01", subjects=("a",))
    gn01 = finding("CDN-GN01", subjects=("b",))
    out = correlate([ad01, gn01], snapshot(), SymptomCategory.ACCESS_DENIED)
    assert {f.rule_id for f in out} == {"CDN-AD01", "CDN-GN01"}


def test_root_object_suppressed_under_403():
    nf01 = finding("CDN-NF01")
    assert correlate([nf01], snapshot(), SymptomCategory.ACCESS_DENIED) == ()
    assert correlate([nf01], snapshot(), SymptomCategory.GENERAL) == (nf01,)


def test_website_endpoint_suppresses_access_control_finding():
    ad01 = finding("CDN-AD01", subjects=("s3-assets",))
    gn01 = finding("CDN-GN01", subjects=("s3-assets",))
    out = correlate([ad01, gn01], snapshot(website=True), SymptomCategory.ACCESS_DENIED)
    assert [f.rule_id for f in out] == ["CDN-GN01"]
    assert "public by design" in out[0].annotations[0]


def test_unhealthy_and_unreachable_merge():
    se02 = finding("CDN-SE02", Severity.HIGH, Likelihood.MEDIUM, confirmed=False, subjects=("api",))
    se04 = finding("CDN-SE04", Severity.CRITICAL, Likelihood.HIGH, subjects=("api",))
    (out,) = correlate([se02, se04], snapshot(), SymptomCategory.SERVER_ERROR)
    assert out.rule_id == "CDN-SE02"
    assert out.severity == Severity.CRITICAL
    assert out.likelihood == Likelihood.HIGH
    assert out.confirmed


def test_unconfirmed_health_and_probe_on_different_origins_stay_apart():
    """Health unknown for a and b, probe timed out for b only: no escalation across origins."""
    se02 = finding("CDN-SE02", Severity.HIGH, Likelihood.MEDIUM, confirmed=False, subjects=("a", "b"))
    se04 = finding("CDN-SE04", Severity.HIGH, Likelihood.MEDIUM, confirmed=False, subjects=("b",))
    out = {f.rule_id: f for f in correlate([se02, se04], snapshot(), SymptomCategory.SERVER_ERROR)}
    assert set(out) == {"CDN-SE02", "CDN-SE04"}
    assert (out["CDN-SE02"].severity, out["CDN-SE02"].likelihood) == (Severity.HIGH, Likelihood.MEDIUM)
    assert not out["CDN-SE02"].confirmed
    assert "confirm its state" in out["CDN-SE02"].annotations[0]


def test_unhealthy_and_unreachable_need_the_same_origin():
    se02 = finding("CDN-SE02", Severity.CRITICAL, Likelihood.HIGH, subjects=("a",))
    se04 = finding("CDN-SE04", Severity.CRITICAL, Likelihood.HIGH, subjects=("b",))
    out = correlate([se02, se04], snapshot(), SymptomCategory.SERVER_ERROR)
    assert {f.rule_id for f in out} == {"CDN-SE02", "CDN-SE04"}
    assert not out[0].annotations


def test_timeout_not_annotated_for_another_origins_outage():
    se01 = finding("CDN-SE01", Severity.HIGH, Likelihood.HIGH, subjects=("api",))
    se04 = finding("CDN-SE04", Severity.CRITICAL, Likelihood.HIGH, subjects=("alb",), facet=Facet.PROTOCOL)
    out = correlate([se01, se04], snapshot(), SymptomCategory.SERVER_ERROR)
    assert next(f for f in out if f.rule_id == "CDN-SE01").annotations == ()


def test_timeout_annotated_when_origin_unreachable():
    se01 = finding("CDN-SE01", Severity.HIGH, Likelihood.HIGH, subjects=("api",))
    se04 = finding("CDN-SE04", Severity.CRITICAL, Likelihood.HIGH, subjects=("api",), facet=Facet.PROTOCOL)
    out = correlate([se01, se04], snapshot(), SymptomCategory.SERVER_ERROR)
    annotated = next(f for f in out if f.rule_id == "CDN-SE01")
    assert "unreachable" in annotated.annotations[0]


def test_suppression_runs_before_escalation():
    """An escalation rule never resurrects a finding another rule suppressed."""
    rules = (
        CorrelationRule(name="boost", rule_id="CDN-NF01", action=Action.ESCALATE,
                        when=lambda f, ctx: True, severity=Severity.CRITICAL),
        CorrelationRule(name="drop", rule_id="CDN-NF01", action=Action.SUPPRESS,
                        when=lambda f, ctx: True),
    )
    assert correlate([finding("CDN-NF01")], snapshot(), SymptomCategory.GENERAL, rules) == ()


def test_correlate_leaves_input_untouched():
    ad01 = finding("CDN-AD01", subjects=("s3-assets",))
    gn01 = finding("CDN-GN01", subjects=("s3-assets",))
    original = [ad01, gn01]
    correlate(original, snapshot(), SymptomCategory.ACCESS_DENIED)
    assert original == [ad01, gn01]
    assert ad01.severity == Severity.MEDIUM


def test_every_correlation_rule_is_named():
    names = [r.name for r in CORRELATION_RULES]
    assert len(names) == len(set(names))


# ── Merging and ranking ─────────────────────────────────────────────


def test_merge_duplicates_keeps_worst():
    a = finding("CDN-GN03", Severity.LOW, Likelihood.HIGH, evidence=("x",))
    b = finding("CDN-GN03", Severity.MEDIUM, Likelihood.LOW, evidence=("y",))
    (merged,) = merge_duplicates([a, b])
    assert (merged.severity, merged.likelihood) == (Severity.MEDIUM, Likelihood.HIGH)
    assert merged.evidence == ("x", "y")


def test_rank_order():
    """Severity, then likelihood, then request-specific, then rule id."""
    findings = [
        finding("CDN-GN03", Severity.LOW, Likelihood.HIGH),
        finding("CDN-NF02", Severity.MEDIUM, Likelihood.HIGH, specific=True),
        finding("CDN-GN04", Severity.MEDIUM, Likelihood.HIGH),
        finding("CDN-AD01", Severity.CRITICAL, Likelihood.LOW),
        finding("CDN-SE01", Severity.HIGH, Likelihood.HIGH),
        finding("CDN-SE02", Severity.HIGH, Likelihood.MEDIUM),
    ]
    assert [f.rule_id for f in rank(findings)] == [
        "CDN-AD01", "CDN-SE01", "CDN-SE02", "CDN-NF02", "CDN-GN04", "CDN-GN03",
    ]


def test_rank_is_independent_of_input_order():
    findings = [
        finding("CDN-GN03", Severity.LOW), finding("CDN-GN04"), finding("CDN-AD01", Severity.HIGH),
        finding("CDN-NF02", specific=True), finding("CDN-SE01", Severity.HIGH),
    ]
    expected = rank(findings)
    rng = random.Random(7)
    for _ in range(10):
        shuffled = findings[:]
        rng.shuffle(shuffled)
        assert rank(shuffled) == expected


def test_rank_key_total():
    a = finding("CDN-GN03", facet=Facet.CACHE_BEHAVIOR)
    b = finding("CDN-GN03", facet=Facet.PROTOCOL)
    assert rank_key(a) != rank_key(b)
