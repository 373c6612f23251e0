"""End-to-end diagnostic runs against fixture documents.

Each scenario is a full diagnose() pass: normalize, evaluate, correlate,
rank, plan and report. No network and no AWS credentials.
"""
import json

import pytest
from rich.console import Console

from cdndoctor.config import Settings
from cdndoctor.diagnose import diagnose, resolve_symptom
from cdndoctor.errors import InvalidIdentifierError, UnsupportedErrorCodeError
from cdndoctor.models import Likelihood, Severity, SymptomCategory, SymptomParams, Tier
from cdndoctor.output.json_report import render_json, report_to_dict
from cdndoctor.output.terminal import render
from cdndoctor.sources.fixture import FixtureConfigSource

DIST_ID = "E1ABCDEF"
DIST_ARN = f"arn:aws:cloudfront::123456789012:distribution/{DIST_ID}"
FAST = Settings(retry_backoff=(0.0,), fetch_timeout=5.0)
BLOCK_ALL = {
    "BlockPublicAcls": True, "IgnorePublicAcls": True,
    "BlockPublicPolicy": True, "RestrictPublicBuckets": True,
}


# ── Helpers ─────────────────────────────────────────────────────────


def distribution(origins, behaviors=(), **config):
    cfg = {
        "Origins": {"Quantity": len(origins), "Items": list(origins)},
        "DefaultCacheBehavior": {
            "TargetOriginId": origins[0]["Id"],
            "ViewerProtocolPolicy": "redirect-to-https",
            "Compress": True,
        },
        "Enabled": True,
    }
    if behaviors:
        cfg["CacheBehaviors"] = {"Quantity": len(behaviors), "Items": list(behaviors)}
    cfg.update(config)
    return {"Distribution": {
        "Id": DIST_ID, "ARN": DIST_ARN, "DomainName": "d111.cloudfront.net",
        "Status": "Deployed", "DistributionConfig": cfg,
    }}


S3_NO_OAC = {
    "Id": "s3-assets",
    "DomainName": "assets.s3.us-east-1.amazonaws.com",
    "S3OriginConfig": {"OriginAccessIdentity": ""},
}
S3_WITH_OAC = dict(S3_NO_OAC, OriginAccessControlId="E3OAC")
OAC_POLICY = json.dumps({"Statement": [{
    "Effect": "Allow",
    "Principal": {"Service": "cloudfront.amazonaws.com"},
    "Action": "s3:GetObject",
    "Resource": "arn:aws:s3:::assets/*",
    "Condition": {"StringEquals": {"AWS:SourceArn": DIST_ARN}},
}]})


def private_bucket_doc(origin_record=None):
    """Scenario A: private bucket, no access control."""
    return {
        "distributions": {DIST_ID: distribution([S3_NO_OAC])},
        "origins": {"s3-assets": origin_record or {"BucketPolicy": None, "PublicAccessBlock": BLOCK_ALL}},
    }


def slow_api_doc():
    """Scenario B: custom origin with a 30s read timeout."""
    api = {
        "Id": "api", "DomainName": "api.example.com",
        "CustomOriginConfig": {"OriginProtocolPolicy": "https-only", "OriginReadTimeout": 30},
    }
    return {
        "distributions": {DIST_ID: distribution([api])},
        "origins": {"api": {"Healthy": True}},
        "probes": {"api": "reachable"},
    }


def uncovered_path_doc():
    """Scenario C: only /images/* has its own behavior."""
    images = {
        "PathPattern": "/images/*", "TargetOriginId": "s3-assets",
        "ViewerProtocolPolicy": "redirect-to-https", "Compress": True,
    }
    return {
        "distributions": {DIST_ID: distribution([S3_WITH_OAC], [images], DefaultRootObject="index.html")},
        "origins": {"s3-assets": {"BucketPolicy": OAC_POLICY, "PublicAccessBlock": BLOCK_ALL}},
    }


def run(document, **symptoms):
    return diagnose(DIST_ID, FixtureConfigSource(document), SymptomParams(**symptoms), FAST)


# ── Symptom resolution ──────────────────────────────────────────────


def test_resolve_symptom():
    assert resolve_symptom("403") == SymptomCategory.ACCESS_DENIED
    assert resolve_symptom(404) == SymptomCategory.NOT_FOUND
    assert resolve_symptom("502") == SymptomCategory.SERVER_ERROR
    assert resolve_symptom(None) == SymptomCategory.GENERAL
    with pytest.raises(UnsupportedErrorCodeError):
        resolve_symptom("418")


# ── Scenarios ───────────────────────────────────────────────────────


def test_scenario_private_bucket_403():
    """Top issue is the missing access control, CRITICAL/HIGH, with a quick fix."""
    report = run(private_bucket_doc(), error_code="403")
    top = report.items[0]
    assert top.finding.rule_id == "CDN-AD01"
    assert (top.finding.severity, top.finding.likelihood) == (Severity.CRITICAL, Likelihood.HIGH)
    assert top.actions[0].tier == Tier.QUICK_FIX
    assert report.executive[0].finding.rule_id == "CDN-AD01"
    assert all(a.tier == Tier.QUICK_FIX for item in report.executive for a in item.actions)
    assert not [f for f in report.findings if f.rule_id.startswith(("CDN-NF", "CDN-SE"))]


def test_scenario_origin_timeout_504():
    report = run(slow_api_doc(), error_code="504")
    top = report.items[0].finding
    assert top.rule_id == "CDN-SE01"
    assert (top.severity, top.likelihood) == (Severity.HIGH, Likelihood.HIGH)
    commands = "\n".join(report.items[0].actions[0].imperative_commands)
    assert "OriginReadTimeout" in commands
    assert any("OriginLatency" in c for c in report.investigation)


def test_scenario_uncovered_path_without_error_code():
    report = run(uncovered_path_doc(), request_path="/docs/readme.html")
    assert report.symptom == SymptomCategory.GENERAL
    item = next(i for i in report.items if i.finding.rule_id == "CDN-NF02")
    assert item.finding.severity == Severity.MEDIUM
    assert item.finding.specific
    assert item.actions[0].tier == Tier.QUICK_FIX
    assert not [f for f in report.findings if f.rule_id in ("CDN-AD01", "CDN-AD02")]


def test_error_code_filters_rule_categories():
    """One snapshot missing both access control and a root object, run three ways."""
    doc = private_bucket_doc()

    access_denied = {f.rule_id for f in run(doc, error_code="403").findings}
    assert "CDN-AD01" in access_denied
    assert not [r for r in access_denied if r.startswith("CDN-NF")]

    not_found = {f.rule_id for f in run(doc, error_code="404").findings}
    assert "CDN-NF01" in not_found
    assert not [r for r in not_found if r.startswith("CDN-AD")]

    general = {f.rule_id for f in run(doc).findings}
    assert {"CDN-AD01", "CDN-NF01"} <= general


def test_unreadable_origin_degrades_instead_of_failing():
    report = run(private_bucket_doc({"error": "permission-denied"}), error_code="403")
    ad01 = next(f for f in report.findings if f.rule_id == "CDN-AD01")
    assert not ad01.confirmed
    assert ad01.likelihood != Likelihood.HIGH
    assert any("Could not confirm origin for s3-assets" in w for w in report.warnings)
    assert "CDN-UV01" in {f.rule_id for f in report.findings}


def test_unsupported_error_code_runs_general_analysis():
    report = run(private_bucket_doc(), error_code="418")
    assert report.symptom == SymptomCategory.GENERAL
    assert report.warnings[0] == "Error code 418 is not supported; ran general analysis instead."
    assert report.findings


def test_active_validation_probes_origins():
    doc = slow_api_doc()
    doc["probes"] = {"api": "unreachable"}
    report = run(doc, error_code="502", active_validation=True)
    assert "CDN-SE04" in {f.rule_id for f in report.findings}


def test_missing_probe_result_lowers_confidence():
    doc = slow_api_doc()
    doc["probes"] = {}
    report = run(doc, error_code="502", active_validation=True)
    se04 = next(f for f in report.findings if f.rule_id == "CDN-SE04")
    assert not se04.confirmed


def test_unknown_distribution_is_fatal():
    with pytest.raises(InvalidIdentifierError):
        run({"distributions": {}})


def test_malformed_identifier_rejected_before_any_call():
    source = FixtureConfigSource(private_bucket_doc())
    with pytest.raises(InvalidIdentifierError):
        diagnose("bad id", source, SymptomParams(), FAST)
    assert source.calls == []


def test_runs_are_deterministic():
    first = run(private_bucket_doc(), error_code="403", request_path="/index.html")
    second = run(private_bucket_doc(), error_code="403", request_path="/index.html")
    assert first == second
    assert render_json(first) == render_json(second)


def test_proactive_recommendations_toggle():
    assert run(private_bucket_doc()).recommendations
    assert run(private_bucket_doc(), run_proactive_checks=False).recommendations == ()


# ── Output ──────────────────────────────────────────────────────────


def test_json_report_shape():
    data = json.loads(render_json(run(private_bucket_doc(), error_code="403")))
    assert data["tool"] == "cdndoctor"
    assert data["symptom"] == "access-denied"
    assert data["issues"][0]["rule_id"] == "CDN-AD01"
    assert data["issues"][0]["remediation"][0]["tier"] == "quick-fix"
    assert {"label": "Distribution", "value": DIST_ID} in data["summary"]


def test_report_to_dict_executive():
    data = report_to_dict(run(private_bucket_doc(), error_code="403"))
    assert len(data["executive_summary"]) <= 3
    assert data["executive_summary"][0]["rule_id"] == "CDN-AD01"


def test_terminal_render_sections():
    out = Console(record=True, width=200)
    render(run(private_bucket_doc(), error_code="403"), out=out)
    text = out.export_text()
    for section in ("CONFIGURATION SUMMARY", "PRIORITIZED ISSUES", "REMEDIATION STEPS",
                    "ADDITIONAL DIAGNOSTIC COMMANDS", "PROACTIVE RECOMMENDATIONS"):
        assert section in text
    assert "CDN-AD01" in text
    assert "put-bucket-policy" in text
