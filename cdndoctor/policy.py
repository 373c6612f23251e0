"""Bucket-policy analysis.

Answers three questions about an object-storage origin's policy:
does it grant public read, does it trust this distribution (OAC service
principal or an origin access identity), and which actions does it grant
to CloudFront.
"""
from __future__ import annotations

import json
import logging

from cdndoctor.models import PolicySummary

logger = logging.getLogger(__name__)

CLOUDFRONT_SERVICE = "cloudfront.amazonaws.com"
OAI_PRINCIPAL_PREFIX = "arn:aws:iam::cloudfront:user/CloudFront Origin Access Identity "
READ_ACTIONS = {"s3:GetObject", "s3:*", "*"}


def summarize_bucket_policy(policy, distribution_arn: str = "") -> PolicySummary:
    """Reduce a bucket policy (JSON text or dict) to a PolicySummary.

    Unparseable policies summarise as "has a policy, grants nothing": they are
    reported by the rules as untrusted rather than silently assumed correct.
    """
    if policy is None or policy == "":
        return PolicySummary()
    if isinstance(policy, str):
        try:
            policy = json.loads(policy)
        except json.JSONDecodeError:
            logger.warning("Bucket policy is not valid JSON; treating as granting nothing")
            return PolicySummary(has_policy=True)
    if not isinstance(policy, dict):
        return PolicySummary(has_policy=True)

    public_read = False
    trusts_distribution = False
    identities: list[str] = []
    cf_actions: list[str] = []

    for stmt in _statements(policy):
        if stmt.get("Effect") != "Allow":
            continue
        actions = _as_list(stmt.get("Action"))
        principal = stmt.get("Principal")

        if _is_public_principal(principal) and not stmt.get("Condition"):
            if any(a in READ_ACTIONS for a in actions):
                public_read = True

        if CLOUDFRONT_SERVICE in _as_list(_principal_field(principal, "Service")):
            if _source_arn_matches(stmt.get("Condition"), distribution_arn):
                trusts_distribution = True
                cf_actions.extend(actions)

        for aws_principal in _as_list(_principal_field(principal, "AWS")):
            if aws_principal.startswith(OAI_PRINCIPAL_PREFIX):
                identities.append(aws_principal[len(OAI_PRINCIPAL_PREFIX):])
                cf_actions.extend(actions)

        canonical = _as_list(_principal_field(principal, "CanonicalUser"))
        if canonical:
            identities.extend(f"canonical:{c}" for c in canonical)
            cf_actions.extend(actions)

    return PolicySummary(
        public_read=public_read,
        trusts_distribution=trusts_distribution,
        trusted_identities=tuple(sorted(set(identities))),
        cloudfront_actions=tuple(sorted(set(cf_actions))),
        has_policy=True,
    )


def grants_list_bucket(summary: PolicySummary) -> bool:
    return any(a in ("s3:ListBucket", "s3:*", "*") for a in summary.cloudfront_actions)


def grants_read(summary: PolicySummary) -> bool:
    return any(a in READ_ACTIONS for a in summary.cloudfront_actions)


# ── Helpers ───────────────────────────────────────────────────────────────────

def _statements(policy: dict) -> list[dict]:
    stmts = policy.get("Statement", [])
    if isinstance(stmts, dict):
        return [stmts]
    return [s for s in stmts if isinstance(s, dict)]


def _as_list(value) -> list[str]:
    if value is None:
        return []
    if isinstance(value, str):
        return [value]
    return [v for v in value if isinstance(v, str)]


def _principal_field(principal, key: str):
    if isinstance(principal, dict):
        return principal.get(key)
    return None


def _is_public_principal(principal) -> bool:
    if principal == "*":
        return True
    return "*" in _as_list(_principal_field(principal, "AWS"))


def _source_arn_matches(condition, distribution_arn: str) -> bool:
    """OAC statements are scoped by AWS:SourceArn; no condition trusts every distribution."""
    if not condition:
        return True
    saw_source_arn = False
    for operator in ("StringEquals", "ArnLike", "ArnEquals", "StringLike"):
        block = condition.get(operator, {})
        for key, value in block.items():
            if key.lower() != "aws:sourcearn":
                continue
            saw_source_arn = True
            arns = _as_list(value)
            if not distribution_arn:
                return bool(arns)
            if any(_arn_match(a, distribution_arn) for a in arns):
                return True
    return not saw_source_arn


def _arn_match(pattern: str, arn: str) -> bool:
    if pattern.endswith("*"):
        return arn.startswith(pattern[:-1])
    return pattern == arn
