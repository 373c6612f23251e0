"""Tests for value types, run context and settings loading."""
import json
import os
from dataclasses import FrozenInstanceError

import pytest

from cdndoctor.config import (
    Settings, coerce_setting, get_config_path, load_settings, save_config, settings_to_dict,
)
from cdndoctor.context import CancelToken, RunContext
from cdndoctor.errors import RunCancelledError
from cdndoctor.models import (
    CacheBehavior, Category, Degradation, DistributionSnapshot, Facet, Finding, Likelihood,
    Severity, Tier,
)


# ── Helpers ─────────────────────────────────────────────────────────


def make_finding(**overrides):
    values = dict(
        rule_id="CDN-AD01",
        facet=Facet.ACCESS_CONTROL,
        category=Category.ACCESS_DENIED,
        severity=Severity.HIGH,
        likelihood=Likelihood.MEDIUM,
        title="t",
        description="d",
    )
    values.update(overrides)
    return Finding(**values)


# ── Models ──────────────────────────────────────────────────────────


def test_severity_total_order():
    """CRITICAL > HIGH > MEDIUM > LOW."""
    ordered = sorted(Severity, key=lambda s: -s.rank)
    assert ordered == [Severity.CRITICAL, Severity.HIGH, Severity.MEDIUM, Severity.LOW]


def test_likelihood_total_order():
    assert Likelihood.HIGH.rank > Likelihood.MEDIUM.rank > Likelihood.LOW.rank


def test_tier_order_quick_fix_first():
    assert sorted(Tier, key=lambda t: t.order) == [Tier.QUICK_FIX, Tier.STANDARD, Tier.ADVANCED]


def test_finding_is_immutable_and_evolve_copies():
    """evolve() returns a new Finding and leaves the original untouched."""
    f = make_finding()
    with pytest.raises(FrozenInstanceError):
        f.severity = Severity.LOW
    g = f.evolve(severity=Severity.CRITICAL)
    assert f.severity == Severity.HIGH
    assert g.severity == Severity.CRITICAL
    assert g.rule_id == f.rule_id


def test_snapshot_behavior_accessors():
    default = CacheBehavior(path_pattern="*", target_origin_id="a", is_default=True)
    images = CacheBehavior(path_pattern="/images/*", target_origin_id="b")
    snap = DistributionSnapshot(distribution_id="E1", cache_behaviors=(default, images))
    assert snap.default_behavior is default
    assert snap.path_behaviors == (images,)


def test_snapshot_is_unknown():
    snap = DistributionSnapshot(
        distribution_id="E1",
        degradations=(Degradation(Facet.WAF, "acl-1", "denied"),),
    )
    assert snap.is_unknown(Facet.WAF)
    assert snap.is_unknown(Facet.WAF, "acl-1")
    assert not snap.is_unknown(Facet.WAF, "acl-2")
    assert not snap.is_unknown(Facet.ORIGIN)


# ── Run context ─────────────────────────────────────────────────────


def test_cancel_token_raises_once_cancelled():
    token = CancelToken()
    token.raise_if_cancelled()
    token.cancel()
    assert token.cancelled
    with pytest.raises(RunCancelledError):
        token.raise_if_cancelled()


def test_context_bind_extracts_account():
    """bind() derives arn, domain and account id without mutating the original."""
    ctx = RunContext(distribution_id="E1ABCDEF")
    snap = DistributionSnapshot(
        distribution_id="E1ABCDEF",
        arn="arn:aws:cloudfront::123456789012:distribution/E1ABCDEF",
        domain_name="d111.cloudfront.net",
    )
    bound = ctx.bind(snap)
    assert bound.account_id == "123456789012"
    assert bound.distribution_domain == "d111.cloudfront.net"
    assert ctx.account_id == ""


def test_context_with_warning_appends():
    ctx = RunContext(distribution_id="E1ABCDEF").with_warning("one").with_warning("two")
    assert ctx.warnings == ("one", "two")


# ── Settings ────────────────────────────────────────────────────────


def test_settings_defaults():
    s = Settings()
    assert s.max_retries == 3
    assert s.retry_backoff == (0.5, 2.0, 5.0)
    assert s.backoff_for(0) == 0.5
    assert s.backoff_for(10) == 5.0


def test_coerce_setting_types():
    assert coerce_setting("max_retries", "5") == 5
    assert coerce_setting("fetch_timeout", "2.5") == 2.5
    assert coerce_setting("retry_backoff", "0.1,0.2") == (0.1, 0.2)
    assert coerce_setting("profile", "") is None


def test_load_settings_file_then_env(tmp_path):
    """Environment overrides the config file, which overrides defaults."""
    save_config(get_config_path(str(tmp_path)), {"max_retries": 5, "probe_timeout": 1.5})
    s = load_settings(str(tmp_path), environ={"CDNDOCTOR_MAX_RETRIES": "2"})
    assert s.max_retries == 2
    assert s.probe_timeout == 1.5


def test_load_settings_invalid_value_falls_back(tmp_path):
    save_config(get_config_path(str(tmp_path)), {"fetch_workers": "many", "bogus": 1})
    s = load_settings(str(tmp_path), environ={})
    assert s.fetch_workers == Settings().fetch_workers


def test_load_settings_unreadable_file(tmp_path):
    path = get_config_path(str(tmp_path))
    os.makedirs(os.path.dirname(path))
    with open(path, "w", encoding="utf-8") as f:
        f.write("{not json")
    assert load_settings(str(tmp_path), environ={}) == Settings()


def test_settings_to_dict_is_json_serialisable():
    assert json.loads(json.dumps(settings_to_dict(Settings())))["retry_backoff"] == [0.5, 2.0, 5.0]
