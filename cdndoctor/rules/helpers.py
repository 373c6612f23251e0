"""Shared predicates over snapshot facets used by the rule modules."""
from __future__ import annotations

import re
from functools import lru_cache

from cdndoctor.models import (
    CacheBehavior, DistributionSnapshot, OriginConfig, OriginKind, SymptomParams,
)


def normalize_path(path: str) -> str:
    path = (path or "").split("?", 1)[0].split("#", 1)[0]
    return path if path.startswith("/") else "/" + path


@lru_cache(maxsize=256)
def _pattern_regex(pattern: str) -> re.Pattern:
    # CloudFront path patterns: '*' matches any run of characters (including '/'),
    # '?' matches exactly one; everything else is literal and case-sensitive.
    parts = []
    for ch in normalize_path(pattern):
        if ch == "*":
            parts.append(".*")
        elif ch == "?":
            parts.append(".")
        else:
            parts.append(re.escape(ch))
    return re.compile("^" + "".join(parts) + "$")


def path_matches(pattern: str, path: str) -> bool:
    return bool(_pattern_regex(pattern).match(normalize_path(path)))


def matching_path_behavior(snapshot: DistributionSnapshot, path: str) -> CacheBehavior | None:
    """First path-pattern behavior (in evaluation order) matching *path*, ignoring the default."""
    for behavior in snapshot.path_behaviors:
        if path_matches(behavior.path_pattern, path):
            return behavior
    return None


def behavior_for_path(snapshot: DistributionSnapshot, path: str | None) -> CacheBehavior | None:
    if path:
        matched = matching_path_behavior(snapshot, path)
        if matched is not None:
            return matched
    return snapshot.default_behavior


def relevant_origins(
    snapshot: DistributionSnapshot, symptoms: SymptomParams,
) -> tuple[tuple[OriginConfig, ...], bool]:
    """Origins that could have served the request, and whether that is request-specific.

    With a request_path the behavior that serves it pins a single origin;
    without one every origin is in scope.
    """
    if symptoms.request_path:
        behavior = behavior_for_path(snapshot, symptoms.request_path)
        if behavior is not None:
            origin = snapshot.origin(behavior.target_origin_id)
            if origin is not None:
                return (origin,), True
    return snapshot.origins, False


def rest_bucket_origins(origins) -> list[OriginConfig]:
    """Object-storage origins reached through the REST endpoint (not website hosting)."""
    return [o for o in origins if o.kind == OriginKind.OBJECT_STORAGE and not o.website_endpoint]


def describe_origin(origin: OriginConfig) -> str:
    return f"origin {origin.origin_id} ({origin.domain})"


def object_key(origin_path: str, request_path: str) -> str:
    """Object key CloudFront requests from the origin for *request_path*."""
    prefix = (origin_path or "").strip("/")
    key = normalize_path(request_path).lstrip("/")
    return f"{prefix}/{key}" if prefix else key


def origin_is_public(origin: OriginConfig) -> bool | None:
    """True/False when origin detail is known, None when it is Unknown."""
    if origin.website_endpoint:
        return True
    if origin.detail is None:
        return None
    detail = origin.detail
    if detail.policy.public_read:
        return True
    return detail.public_acl and detail.public_access_blocked is not True
