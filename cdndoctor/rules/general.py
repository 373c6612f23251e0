"""General rules: posture checks that run for every symptom."""
from __future__ import annotations

from cdndoctor.config import STRONG_TLS_POLICIES
from cdndoctor.models import (
    Category, Facet, Finding, ForwardingMode, Likelihood, Severity, SymptomCategory,
    ViewerProtocolPolicy,
)
from cdndoctor.rules import Rule, RuleInput, rule
from cdndoctor.rules.helpers import describe_origin, origin_is_public

GENERAL = {SymptomCategory.GENERAL}


# ---------------------------------------------------------------------------
# CDN-GN01: Origin publicly reachable
# ---------------------------------------------------------------------------

@rule("CDN-GN01", "Origin publicly reachable outside the distribution", Facet.ORIGIN_POLICY,
      Category.SECURITY, GENERAL, Severity.MEDIUM, Likelihood.HIGH)
def origin_publicly_reachable(r: Rule, inp: RuleInput) -> Finding | None:
    """Anyone can read the origin directly, bypassing the distribution's controls."""
    public = [o for o in inp.snapshot.origins if origin_is_public(o)]
    if not public:
        return None
    evidence = []
    for o in public:
        if o.website_endpoint:
            evidence.append(f"{describe_origin(o)}: static website endpoint")
        elif o.detail.policy.public_read:
            evidence.append(f"{describe_origin(o)}: bucket policy grants Principal '*' read")
        else:
            evidence.append(f"{describe_origin(o)}: public ACL grant, public access block off")
    return r.emit(
        "The origin can be read directly, bypassing WAF, geo restriction and signed URLs "
        "configured on the distribution.",
        evidence, subjects=[o.origin_id for o in public],
    )


# ---------------------------------------------------------------------------
# CDN-GN02: Viewer protocol allows plaintext
# ---------------------------------------------------------------------------

@rule("CDN-GN02", "Viewer protocol policy allows HTTP", Facet.PROTOCOL,
      Category.SECURITY, GENERAL, Severity.MEDIUM, Likelihood.HIGH)
def viewer_plaintext_allowed(r: Rule, inp: RuleInput) -> Finding | None:
    """Viewers may fetch content over unencrypted HTTP."""
    plain = [
        b for b in inp.snapshot.cache_behaviors
        if b.viewer_protocol_policy == ViewerProtocolPolicy.ALLOW_ALL
    ]
    if not plain:
        return None
    return r.emit(
        "Content is served over plain HTTP as well as HTTPS.",
        [f"behavior {b.path_pattern}: viewer protocol allow-all" for b in plain],
        subjects=[b.path_pattern for b in plain],
    )


# ---------------------------------------------------------------------------
# CDN-GN03: Compression disabled
# ---------------------------------------------------------------------------

@rule("CDN-GN03", "Automatic compression disabled", Facet.CACHE_BEHAVIOR,
      Category.GENERAL, GENERAL, Severity.LOW, Likelihood.MEDIUM)
def compression_disabled(r: Rule, inp: RuleInput) -> Finding | None:
    uncompressed = [b for b in inp.snapshot.cache_behaviors if not b.compress]
    if not uncompressed:
        return None
    return r.emit(
        "Text assets are sent uncompressed, increasing transfer size and latency.",
        [f"behavior {b.path_pattern}: Compress=false" for b in uncompressed],
        subjects=[b.path_pattern for b in uncompressed],
    )


# ---------------------------------------------------------------------------
# CDN-GN04: Overly permissive forwarded values
# ---------------------------------------------------------------------------

@rule("CDN-GN04", "Forwarded values fragment the cache", Facet.CACHE_BEHAVIOR,
      Category.GENERAL, GENERAL, Severity.MEDIUM, Likelihood.MEDIUM)
def permissive_forwarding(r: Rule, inp: RuleInput) -> Finding | None:
    """Forwarding every header, cookie or query string makes each request a cache miss."""
    evidence: list[str] = []
    subjects: list[str] = []
    headers_all = False
    for b in inp.snapshot.cache_behaviors:
        fv = b.forwarded_values
        forwarded = []
        if fv.headers == ForwardingMode.ALL:
            forwarded.append("all headers")
            headers_all = True
        if fv.cookies == ForwardingMode.ALL:
            forwarded.append("all cookies")
        if fv.query_strings == ForwardingMode.ALL:
            forwarded.append("all query strings")
        if forwarded:
            evidence.append(f"behavior {b.path_pattern}: forwards {', '.join(forwarded)}")
            subjects.append(b.path_pattern)
    if not evidence:
        return None
    return r.emit(
        "Values that vary per viewer are part of the cache key, so the hit ratio drops and "
        "the origin takes more load.",
        evidence,
        severity=Severity.MEDIUM if headers_all else Severity.LOW,
        subjects=subjects,
    )


# ---------------------------------------------------------------------------
# CDN-GN05: Weak viewer TLS policy
# ---------------------------------------------------------------------------

@rule("CDN-GN05", "Viewer TLS policy allows legacy protocols", Facet.TLS,
      Category.SECURITY, GENERAL, Severity.LOW, Likelihood.MEDIUM)
def weak_viewer_tls(r: Rule, inp: RuleInput) -> Finding | None:
    tls = inp.snapshot.security.tls
    # The default *.cloudfront.net certificate pins TLSv1; only custom certificates can raise it.
    if tls.default_certificate or tls.minimum_protocol_version in STRONG_TLS_POLICIES:
        return None
    return r.emit(
        "Viewers may negotiate TLS versions older than 1.2.",
        [f"MinimumProtocolVersion: {tls.minimum_protocol_version}",
         f"certificate source: {tls.certificate_source}"],
    )


# ---------------------------------------------------------------------------
# CDN-GN06: Distribution disabled or deploying
# ---------------------------------------------------------------------------

@rule("CDN-GN06", "Distribution disabled or not deployed", Facet.STATUS,
      Category.GENERAL, GENERAL, Severity.HIGH, Likelihood.HIGH)
def distribution_not_serving(r: Rule, inp: RuleInput) -> Finding | None:
    """A disabled distribution serves nothing; one in progress may serve a stale config."""
    status = inp.snapshot.status
    if not status.enabled:
        return r.emit(
            "The distribution is disabled and does not serve any requests.",
            ["Enabled: false", f"Status: {status.state}"],
        )
    if status.state != "Deployed":
        return r.emit(
            "A configuration change is still propagating to edge locations; some edges serve "
            "the previous configuration.",
            [f"Status: {status.state}"] + ([f"last modified {status.last_modified}"] if status.last_modified else []),
            severity=Severity.MEDIUM, likelihood=Likelihood.MEDIUM,
        )
    return None


# ---------------------------------------------------------------------------
# CDN-UV01..03: Facets that could not be verified
# ---------------------------------------------------------------------------

def _unverified(r: Rule, inp: RuleInput, facet: Facet, what: str) -> Finding | None:
    degraded = [d for d in inp.snapshot.degradations if d.facet == facet]
    if not degraded:
        return None
    return r.emit(
        f"Could not confirm {what}; findings that depend on it are reported as possibilities.",
        [f"{d.subject}: {d.reason} ({d.error})" for d in degraded],
        confirmed=False, subjects=[d.subject for d in degraded],
    )


@rule("CDN-UV01", "Origin detail could not be verified", Facet.ORIGIN,
      Category.GENERAL, GENERAL, Severity.LOW, Likelihood.MEDIUM)
def origin_unverified(r: Rule, inp: RuleInput) -> Finding | None:
    return _unverified(r, inp, Facet.ORIGIN, "origin policy and health")


@rule("CDN-UV02", "Security detail could not be verified", Facet.WAF,
      Category.GENERAL, GENERAL, Severity.LOW, Likelihood.MEDIUM)
def security_unverified(r: Rule, inp: RuleInput) -> Finding | None:
    return _unverified(r, inp, Facet.WAF, "web ACL rules")


@rule("CDN-UV03", "Logging detail could not be verified", Facet.LOGGING,
      Category.GENERAL, GENERAL, Severity.LOW, Likelihood.MEDIUM)
def logging_unverified(r: Rule, inp: RuleInput) -> Finding | None:
    return _unverified(r, inp, Facet.LOGGING, "monitoring configuration")
