"""Remediation planning: findings -> tier-ordered remediation actions.

The planner only plans. Command text is filled from the run context and the
finding's subjects; a value that is not known renders as ``<name>``.
"""
from __future__ import annotations

import logging

from cdndoctor.context import RunContext
from cdndoctor.knowledge.remediation import get_templates
from cdndoctor.models import (
    DistributionSnapshot, Finding, RemediationAction, ReportItem, Tier,
)
from cdndoctor.rules.helpers import normalize_path, object_key

logger = logging.getLogger(__name__)


class _Placeholders(dict):
    def __missing__(self, key: str) -> str:
        return f"<{key}>"


def placeholder_values(
    snapshot: DistributionSnapshot,
    context: RunContext,
    finding: Finding | None = None,
) -> dict[str, str]:
    """Known placeholder values; empty values are left out so they render as <name>."""
    symptoms = context.symptoms
    values = {
        "distribution_id": snapshot.distribution_id,
        "distribution_arn": context.distribution_arn or snapshot.arn,
        "distribution_domain": context.distribution_domain or snapshot.domain_name,
        "account_id": context.account_id,
        "region": context.settings.region,
        "request_method": (symptoms.request_method or "GET").upper(),
        "request_domain": symptoms.request_domain or "",
        "viewer_country": (symptoms.viewer_country or "").upper(),
        "web_acl_id": snapshot.security.web_acl_id or "",
        "web_acl_name": snapshot.security.waf.name if snapshot.security.waf else "",
    }
    if symptoms.request_path:
        values["request_path"] = normalize_path(symptoms.request_path)

    origin = None
    if finding is not None:
        for subject in finding.subjects:
            candidate = snapshot.origin(subject)
            if candidate is not None:
                origin = candidate
                break
            if "behavior_pattern" not in values and any(
                b.path_pattern == subject for b in snapshot.cache_behaviors
            ):
                values["behavior_pattern"] = subject
    if origin is None and len(snapshot.origins) == 1:
        origin = snapshot.origins[0]
    if origin is not None:
        values["origin_id"] = origin.origin_id
        values["origin_domain"] = origin.domain
        values["bucket"] = origin.bucket_name
        if symptoms.request_path:
            values["request_key"] = object_key(origin.origin_path, symptoms.request_path)
    if "request_key" not in values and symptoms.request_path:
        values["request_key"] = normalize_path(symptoms.request_path).lstrip("/")
    return {k: v for k, v in values.items() if v}


def fill(template: str, values: dict[str, str]) -> str:
    return template.format_map(_Placeholders(values))


def build_action(template: dict, rule_id: str, values: dict[str, str]) -> RemediationAction:
    return RemediationAction(
        rule_id=rule_id,
        tier=Tier(template["tier"]),
        title=template["title"],
        estimated_time=template["estimated_time"],
        explanation=fill(template["explanation"], values),
        declarative_steps=tuple(fill(s, values) for s in template["declarative_steps"]),
        imperative_commands=tuple(fill(c, values) for c in template["imperative_commands"]),
        verification_steps=tuple(fill(v, values) for v in template["verification_steps"]),
        side_effect_warnings=tuple(template.get("side_effects", ())),
    )


def plan_finding(
    finding: Finding, snapshot: DistributionSnapshot, context: RunContext,
) -> tuple[RemediationAction, ...]:
    """Actions for one finding, quick-fix first. Stable within a tier."""
    templates = get_templates(finding.rule_id)
    if not templates:
        logger.debug("No remediation entry for %s", finding.rule_id)
        return ()
    values = placeholder_values(snapshot, context, finding)
    actions = [build_action(t, finding.rule_id, values) for t in templates]
    return tuple(sorted(actions, key=lambda a: a.tier.order))


def plan(
    findings: list[Finding] | tuple[Finding, ...],
    snapshot: DistributionSnapshot,
    context: RunContext,
) -> tuple[ReportItem, ...]:
    """Pair each ranked finding with its actions. Never executes anything."""
    return tuple(
        ReportItem(finding=f, actions=plan_finding(f, snapshot, context))
        for f in findings
    )
