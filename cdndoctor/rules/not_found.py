"""Not-found rules: why the distribution answers 404."""
from __future__ import annotations

from cdndoctor.models import (
    Category, Facet, Finding, Likelihood, OriginKind, Severity, SymptomCategory,
)
from cdndoctor.rules import Rule, RuleInput, rule
from cdndoctor.rules.helpers import (
    describe_origin, matching_path_behavior, normalize_path, object_key, relevant_origins,
)

NOT_FOUND = {SymptomCategory.NOT_FOUND}


# ---------------------------------------------------------------------------
# CDN-NF01: Default root object missing
# ---------------------------------------------------------------------------

@rule("CDN-NF01", "Default root object not set", Facet.DISTRIBUTION,
      Category.NOT_FOUND, NOT_FOUND, Severity.HIGH, Likelihood.HIGH)
def default_root_object_missing(r: Rule, inp: RuleInput) -> Finding | None:
    """Requests for '/' have no object to map to."""
    path = inp.symptoms.request_path
    if path and normalize_path(path) != "/":
        return None
    if inp.snapshot.default_root_object:
        return None

    evidence = ["DefaultRootObject: (empty)"]
    default = inp.snapshot.default_behavior
    rewritten = default is not None and "viewer-request" in default.function_associations
    if rewritten:
        evidence.append("default behavior has a viewer-request function that may rewrite '/'")

    if path:
        return r.emit(
            "A request for '/' is forwarded to the origin as an empty key, which it cannot serve.",
            evidence,
            likelihood=Likelihood.LOW if rewritten else Likelihood.HIGH, specific=True,
        )
    return r.emit(
        "Requests for the distribution root fail because no default root object is configured.",
        evidence, severity=Severity.MEDIUM,
        likelihood=Likelihood.LOW if rewritten else Likelihood.MEDIUM,
    )


# ---------------------------------------------------------------------------
# CDN-NF02: No behavior path pattern covers the request
# ---------------------------------------------------------------------------

@rule("CDN-NF02", "No cache behavior matches the request path", Facet.CACHE_BEHAVIOR,
      Category.NOT_FOUND, NOT_FOUND, Severity.MEDIUM, Likelihood.HIGH)
def path_not_covered(r: Rule, inp: RuleInput) -> Finding | None:
    """The requested path falls through every path pattern to the default behavior."""
    path = inp.symptoms.request_path
    snapshot = inp.snapshot
    if not path or normalize_path(path) == "/" or not snapshot.path_behaviors:
        return None
    if matching_path_behavior(snapshot, path) is not None:
        return None

    default = snapshot.default_behavior
    fallback = f"default behavior -> origin {default.target_origin_id}" if default else "no default behavior"
    return r.emit(
        f"{normalize_path(path)} matches none of the configured path patterns and is served "
        "by the default behavior, which may route it to an origin that does not hold it.",
        [f"path patterns: {', '.join(b.path_pattern for b in snapshot.path_behaviors)}",
         f"request path: {normalize_path(path)}", fallback],
        likelihood=(Likelihood.HIGH if inp.symptom == SymptomCategory.NOT_FOUND
                    else Likelihood.MEDIUM),
        specific=True,
    )


# ---------------------------------------------------------------------------
# CDN-NF03: Origin path prefix mismatch
# ---------------------------------------------------------------------------

def _prefix_mismatch(origin, path: str | None) -> str | None:
    """Evidence line when sampled keys contradict the origin path, else None."""
    detail = origin.detail
    keys = detail.object_keys
    if not keys:
        return None
    prefix = origin.origin_path.strip("/")

    if prefix and not any(k.startswith(prefix + "/") for k in keys):
        return f"{origin.bucket_name}: no object under origin path /{prefix}"

    if path and detail.keys_complete:
        expected = object_key(origin.origin_path, path)
        if expected in keys:
            return None
        bare = normalize_path(path).lstrip("/")
        elsewhere = sorted(k for k in keys if k == bare or k.endswith("/" + bare))
        if elsewhere:
            return f"{origin.bucket_name}: {expected} missing but {elsewhere[0]} exists"
    return None


@rule("CDN-NF03", "Origin path does not match object locations", Facet.ORIGIN,
      Category.NOT_FOUND, NOT_FOUND, Severity.HIGH, Likelihood.HIGH)
def origin_path_mismatch(r: Rule, inp: RuleInput) -> Finding | None:
    """The configured origin path prefix points away from where the objects live."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    buckets = [o for o in origins if o.kind == OriginKind.OBJECT_STORAGE]
    path = inp.symptoms.request_path

    mismatched = []
    evidence: list[str] = []
    for o in buckets:
        if o.detail is None:
            continue
        line = _prefix_mismatch(o, path)
        if line:
            mismatched.append(o)
            evidence.append(line)
    if mismatched:
        return r.emit(
            "CloudFront prepends the origin path to every request, but the objects are stored "
            "under a different prefix.",
            [f"{describe_origin(o)}: origin path '{o.origin_path or '/'}'" for o in mismatched] + evidence,
            specific=specific, subjects=[o.origin_id for o in mismatched],
        )

    unknown = [o for o in buckets if o.detail is None and o.origin_path]
    if unknown:
        return r.emit(
            "An origin path is configured but the bucket contents could not be listed to "
            "confirm objects exist under it.",
            [f"{describe_origin(o)}: origin path '{o.origin_path}', contents unreadable" for o in unknown],
            severity=Severity.MEDIUM, likelihood=Likelihood.MEDIUM, confirmed=False,
            specific=specific, subjects=[o.origin_id for o in unknown],
        )
    return None
