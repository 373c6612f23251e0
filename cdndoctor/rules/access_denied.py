"""Access-denied rules: why the distribution answers 403."""
from __future__ import annotations

from cdndoctor.models import (
    Category, Facet, Finding, Likelihood, OriginKind, Severity, SymptomCategory,
)
from cdndoctor.policy import grants_list_bucket, grants_read
from cdndoctor.rules import Rule, RuleInput, rule
from cdndoctor.rules.helpers import (
    behavior_for_path, describe_origin, normalize_path, object_key, origin_is_public,
    path_matches, relevant_origins, rest_bucket_origins,
)

ACCESS_DENIED = {SymptomCategory.ACCESS_DENIED}


# ---------------------------------------------------------------------------
# CDN-AD01: Origin access control missing
# ---------------------------------------------------------------------------

@rule("CDN-AD01", "Origin access control missing", Facet.ACCESS_CONTROL,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.CRITICAL, Likelihood.HIGH)
def origin_access_control_missing(r: Rule, inp: RuleInput) -> Finding | None:
    """Object-storage origin is reached without an origin access control or identity."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    unprotected = [
        o for o in origins
        if o.kind == OriginKind.OBJECT_STORAGE and not o.access_control_ref
    ]
    if not unprotected:
        return None

    private = [o for o in unprotected if origin_is_public(o) is False]
    unknown = [o for o in unprotected if origin_is_public(o) is None]
    evidence = [f"{describe_origin(o)}: no origin access control" for o in unprotected]
    subjects = [o.origin_id for o in unprotected]

    if private:
        return r.emit(
            "CloudFront requests the bucket anonymously, and the bucket is private, "
            "so the origin rejects every request with 403.",
            evidence + [f"{o.bucket_name}: bucket policy grants no anonymous read" for o in private],
            specific=specific, subjects=subjects,
        )
    if unknown:
        return r.emit(
            "The origin has no access control. The bucket policy could not be read, so it is "
            "not confirmed whether anonymous requests from CloudFront are refused.",
            evidence + [f"{o.bucket_name}: bucket policy unreadable" for o in unknown],
            likelihood=Likelihood.MEDIUM, confirmed=False, specific=specific, subjects=subjects,
        )
    return r.emit(
        "The origin has no access control but is publicly readable, so requests succeed "
        "without going through the distribution. This is an exposure, not the 403 cause.",
        evidence + [f"{o.bucket_name}: publicly readable" for o in unprotected],
        severity=Severity.MEDIUM, likelihood=Likelihood.LOW, specific=specific, subjects=subjects,
    )


# ---------------------------------------------------------------------------
# CDN-AD02: Bucket policy does not trust the access control
# ---------------------------------------------------------------------------

@rule("CDN-AD02", "Bucket policy does not trust the origin access control", Facet.ORIGIN_POLICY,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.CRITICAL, Likelihood.HIGH)
def policy_not_trusting_access_control(r: Rule, inp: RuleInput) -> Finding | None:
    """Access control is configured but the bucket policy was not updated to allow it."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    protected = [o for o in rest_bucket_origins(origins) if o.access_control_ref]
    broken, unknown = [], []
    evidence: list[str] = []
    for o in protected:
        if o.detail is None:
            unknown.append(o)
            evidence.append(f"{describe_origin(o)}: bucket policy unreadable")
            continue
        policy = o.detail.policy
        if o.access_control_type == "origin-access-identity":
            trusted = (
                o.access_control_ref in policy.trusted_identities
                or any(i.startswith("canonical:") for i in policy.trusted_identities)
            )
            principal = f"origin access identity {o.access_control_ref}"
        else:
            trusted = policy.trusts_distribution
            principal = f"cloudfront.amazonaws.com scoped to {inp.snapshot.arn or 'this distribution'}"
        if trusted and grants_read(policy):
            continue
        broken.append(o)
        if not policy.has_policy:
            evidence.append(f"{o.bucket_name}: no bucket policy at all")
        elif trusted:
            evidence.append(f"{o.bucket_name}: {principal} trusted but s3:GetObject not granted")
        else:
            evidence.append(f"{o.bucket_name}: no Allow statement for {principal}")

    if broken:
        public = all(origin_is_public(o) for o in broken)
        return r.emit(
            "The origin uses an access control, but the bucket policy does not grant it "
            "s3:GetObject, so the origin denies CloudFront's signed requests.",
            evidence,
            likelihood=Likelihood.LOW if public else Likelihood.HIGH,
            specific=specific, subjects=[o.origin_id for o in broken],
        )
    if unknown:
        return r.emit(
            "The bucket policy could not be read, so it is not confirmed that it trusts "
            "the configured access control.",
            evidence, severity=Severity.HIGH, likelihood=Likelihood.MEDIUM, confirmed=False,
            specific=specific, subjects=[o.origin_id for o in unknown],
        )
    return None


# ---------------------------------------------------------------------------
# CDN-AD03: Geo restriction excludes the viewer
# ---------------------------------------------------------------------------

@rule("CDN-AD03", "Geo restriction excludes the viewer", Facet.GEO_RESTRICTION,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.HIGH, Likelihood.HIGH)
def geo_restriction_blocks_viewer(r: Rule, inp: RuleInput) -> Finding | None:
    """Allow-list omits, or deny-list contains, the requesting country."""
    geo = inp.snapshot.security.geo
    if geo.restriction_type not in ("whitelist", "blacklist"):
        return None
    listed = ", ".join(geo.locations) or "(empty)"
    evidence = [f"restriction type {geo.restriction_type}: {listed}"]

    country = (inp.symptoms.viewer_country or "").upper()
    if not country:
        return r.emit(
            f"A geo restriction ({geo.restriction_type}) is active. Viewers outside the permitted "
            "countries receive 403; supply the viewer country to confirm.",
            evidence, severity=Severity.MEDIUM, likelihood=Likelihood.LOW,
        )

    if geo.restriction_type == "whitelist":
        blocked = country not in geo.locations
    else:
        blocked = country in geo.locations
    if not blocked:
        return None
    return r.emit(
        f"Requests from {country} are refused by the distribution's geo restriction.",
        evidence + [f"viewer country: {country}"], specific=True,
    )


# ---------------------------------------------------------------------------
# CDN-AD04: WAF rule likely blocks the request
# ---------------------------------------------------------------------------

@rule("CDN-AD04", "WAF rule likely blocks the request", Facet.WAF,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.HIGH, Likelihood.HIGH)
def waf_blocks_request(r: Rule, inp: RuleInput) -> Finding | None:
    """A web ACL associated with the distribution blocks requests matching the symptom."""
    security = inp.snapshot.security
    if not security.web_acl_id:
        return None
    acl_evidence = f"web ACL {security.web_acl_id}"

    if inp.snapshot.is_unknown(Facet.WAF) or security.waf is None:
        return r.emit(
            "A web ACL is associated with the distribution but its rules could not be read; "
            "it may be blocking the request.",
            [acl_evidence, "web ACL rules unreadable"],
            severity=Severity.MEDIUM, likelihood=Likelihood.MEDIUM, confirmed=False,
        )

    waf = security.waf
    block_rules = [w for w in waf.rules if w.action == "BLOCK"]
    path = inp.symptoms.request_path
    method = (inp.symptoms.request_method or "GET").upper()

    if path:
        scoped = [
            w for w in block_rules
            if (w.path_patterns or w.methods)
            and (not w.path_patterns or any(path_matches(p, path) for p in w.path_patterns))
            and (not w.methods or method in w.methods)
        ]
        if scoped:
            return r.emit(
                f"{method} {normalize_path(path)} matches blocking WAF rules.",
                [acl_evidence] + [f"rule {w.name}: BLOCK {', '.join(w.path_patterns) or '*'}" for w in scoped],
                specific=True,
            )
        allowed = [
            w for w in waf.rules
            if w.action == "ALLOW" and any(path_matches(p, path) for p in w.path_patterns)
        ]
        if waf.default_action == "BLOCK" and not allowed:
            return r.emit(
                f"The web ACL blocks by default and no ALLOW rule matches {normalize_path(path)}.",
                [acl_evidence, "default action BLOCK"],
                likelihood=Likelihood.MEDIUM, specific=True,
            )

    if waf.default_action == "BLOCK" and not path:
        return r.emit(
            "The web ACL blocks by default; only requests matching an ALLOW rule get through.",
            [acl_evidence, "default action BLOCK"], likelihood=Likelihood.MEDIUM,
        )
    if block_rules:
        return r.emit(
            "The web ACL contains blocking rules (including managed rule groups) that may "
            "match the failing request.",
            [acl_evidence] + [f"rule {w.name}: BLOCK" for w in block_rules],
            severity=Severity.MEDIUM, likelihood=Likelihood.LOW,
        )
    return None


# ---------------------------------------------------------------------------
# CDN-AD05: Signed URLs required
# ---------------------------------------------------------------------------

@rule("CDN-AD05", "Signed URLs or cookies required", Facet.CACHE_BEHAVIOR,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.MEDIUM, Likelihood.MEDIUM)
def signed_urls_required(r: Rule, inp: RuleInput) -> Finding | None:
    """The behavior serving the request restricts viewer access to signed requests."""
    path = inp.symptoms.request_path
    if path:
        behavior = behavior_for_path(inp.snapshot, path)
        behaviors = [behavior] if behavior is not None else []
    else:
        behaviors = list(inp.snapshot.cache_behaviors)
    restricted = [b for b in behaviors if b.trusted_key_groups or b.trusted_signers]
    if not restricted:
        return None
    return r.emit(
        "Viewer access is restricted: requests without a valid signed URL or signed cookie "
        "receive 403.",
        [
            f"behavior {b.path_pattern}: trusted key groups {', '.join(b.trusted_key_groups) or 'legacy signers'}"
            for b in restricted
        ],
        specific=bool(path), subjects=[b.path_pattern for b in restricted],
    )


# ---------------------------------------------------------------------------
# CDN-AD06: Request domain not served by the distribution
# ---------------------------------------------------------------------------

@rule("CDN-AD06", "Request domain is not an alias of the distribution", Facet.DISTRIBUTION,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.HIGH, Likelihood.HIGH)
def request_domain_not_aliased(r: Rule, inp: RuleInput) -> Finding | None:
    """The Host the viewer used is neither the distribution domain nor an alternate domain."""
    requested = (inp.symptoms.request_domain or "").lower().rstrip(".").split(":", 1)[0]
    snapshot = inp.snapshot
    if not requested or not (snapshot.domain_name or snapshot.aliases):
        return None
    if requested == snapshot.domain_name.lower():
        return None
    for alias in snapshot.aliases:
        alias = alias.lower()
        if alias == requested:
            return None
        if alias.startswith("*.") and requested.endswith(alias[1:]) and requested.count(".") == alias.count("."):
            return None
    return r.emit(
        f"{requested} is not configured as an alternate domain name, so CloudFront refuses "
        "requests for it.",
        [f"request domain: {requested}",
         f"aliases: {', '.join(snapshot.aliases) or '(none)'}",
         f"distribution domain: {snapshot.domain_name}"],
        specific=True,
    )


# ---------------------------------------------------------------------------
# CDN-AD07: Missing objects reported as 403
# ---------------------------------------------------------------------------

@rule("CDN-AD07", "Missing objects are reported as 403", Facet.ORIGIN_POLICY,
      Category.ACCESS_DENIED, ACCESS_DENIED, Severity.MEDIUM, Likelihood.MEDIUM)
def missing_object_masked_as_denied(r: Rule, inp: RuleInput) -> Finding | None:
    """Without s3:ListBucket the bucket answers 403 instead of 404 for absent keys."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    candidates = [
        o for o in rest_bucket_origins(origins)
        if o.access_control_ref and o.detail is not None
        and grants_read(o.detail.policy) and not grants_list_bucket(o.detail.policy)
    ]
    if not candidates:
        return None

    path = inp.symptoms.request_path
    evidence = [f"{o.bucket_name}: s3:ListBucket not granted to CloudFront" for o in candidates]
    if path:
        absent = [
            o for o in candidates
            if o.detail.keys_complete and object_key(o.origin_path, path) not in o.detail.object_keys
        ]
        if absent:
            return r.emit(
                f"The requested object does not exist; the bucket reports it as 403 because "
                "CloudFront may not list the bucket.",
                evidence + [f"key {object_key(o.origin_path, path)} absent from {o.bucket_name}" for o in absent],
                likelihood=Likelihood.HIGH, specific=True, subjects=[o.origin_id for o in absent],
            )
    return r.emit(
        "If the requested object does not exist, the bucket answers 403 rather than 404 "
        "because CloudFront is not allowed to list it.",
        evidence, specific=specific, subjects=[o.origin_id for o in candidates],
    )
