"""Server-error rules: why the distribution answers 5xx."""
from __future__ import annotations

from cdndoctor.config import DEFAULT_LATENCY_CLASS, MIN_CONNECT_TIMEOUT, READ_TIMEOUT_THRESHOLDS
from cdndoctor.models import (
    Category, Facet, Finding, Likelihood, OriginKind, OriginProtocol, ProbeOutcome, Severity,
    SymptomCategory, ViewerProtocolPolicy,
)
from cdndoctor.rules import Rule, RuleInput, rule
from cdndoctor.rules.helpers import behavior_for_path, describe_origin, relevant_origins

SERVER_ERROR = {SymptomCategory.SERVER_ERROR}


# ---------------------------------------------------------------------------
# CDN-SE01: Origin timeout too short
# ---------------------------------------------------------------------------

@rule("CDN-SE01", "Origin timeout too short", Facet.ORIGIN,
      Category.SERVER_ERROR, SERVER_ERROR, Severity.HIGH, Likelihood.HIGH)
def origin_timeout_low(r: Rule, inp: RuleInput) -> Finding | None:
    """Read or connect timeout is below what the backend's latency class needs."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    evidence: list[str] = []
    subjects: list[str] = []
    for o in origins:
        if o.kind not in (OriginKind.CUSTOM_HTTP, OriginKind.LOAD_BALANCER):
            continue
        latency = o.detail.latency_class if o.detail is not None else DEFAULT_LATENCY_CLASS
        threshold = READ_TIMEOUT_THRESHOLDS.get(latency, READ_TIMEOUT_THRESHOLDS[DEFAULT_LATENCY_CLASS])
        short = False
        if o.read_timeout < threshold:
            evidence.append(
                f"{describe_origin(o)}: read timeout {o.read_timeout}s < {threshold}s "
                f"for a {latency} backend"
            )
            short = True
        if o.connect_timeout < MIN_CONNECT_TIMEOUT:
            evidence.append(
                f"{describe_origin(o)}: connect timeout {o.connect_timeout}s < {MIN_CONNECT_TIMEOUT}s"
            )
            short = True
        if short:
            subjects.append(o.origin_id)
    if not subjects:
        return None
    return r.emit(
        "CloudFront gives up on the origin before a slow response completes and returns "
        "504 Gateway Timeout.",
        evidence,
        likelihood=Likelihood.HIGH if inp.symptoms.error_code == "504" else Likelihood.MEDIUM,
        specific=specific, subjects=subjects,
    )


# ---------------------------------------------------------------------------
# CDN-SE02: Origin unhealthy
# ---------------------------------------------------------------------------

@rule("CDN-SE02", "Origin unhealthy", Facet.ORIGIN,
      Category.SERVER_ERROR, SERVER_ERROR, Severity.CRITICAL, Likelihood.HIGH)
def origin_unhealthy(r: Rule, inp: RuleInput) -> Finding | None:
    """The origin reports itself unhealthy, or its health could not be read."""
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    unhealthy = [o for o in origins if o.detail is not None and o.detail.healthy is False]
    if unhealthy:
        return r.emit(
            "The origin is not in a healthy state, so CloudFront cannot get a valid response "
            "from it.",
            [f"{describe_origin(o)}: reported unhealthy" for o in unhealthy],
            specific=specific, subjects=[o.origin_id for o in unhealthy],
        )
    unknown = [o for o in origins if o.detail is None]
    if unknown:
        return r.emit(
            "Origin health could not be read; an unhealthy backend cannot be ruled out.",
            [f"{describe_origin(o)}: health unknown" for o in unknown],
            severity=Severity.HIGH, likelihood=Likelihood.MEDIUM, confirmed=False,
            specific=specific, subjects=[o.origin_id for o in unknown],
        )
    return None


# ---------------------------------------------------------------------------
# CDN-SE03: Origin protocol mismatch
# ---------------------------------------------------------------------------

_HTTPS_VIEWERS = (ViewerProtocolPolicy.HTTPS_ONLY, ViewerProtocolPolicy.REDIRECT_TO_HTTPS)


@rule("CDN-SE03", "Origin protocol mismatch", Facet.PROTOCOL,
      Category.SERVER_ERROR, SERVER_ERROR, Severity.HIGH, Likelihood.HIGH)
def origin_protocol_mismatch(r: Rule, inp: RuleInput) -> Finding | None:
    """CloudFront reaches the origin over HTTPS but the origin only serves HTTP."""
    snapshot = inp.snapshot
    origins, specific = relevant_origins(snapshot, inp.symptoms)
    if inp.symptoms.request_path:
        serving = behavior_for_path(snapshot, inp.symptoms.request_path)
        behaviors = [serving] if serving is not None else []
    else:
        behaviors = list(snapshot.cache_behaviors)

    confirmed, possible = [], []
    evidence: list[str] = []
    for o in origins:
        http_only = o.website_endpoint or (o.detail is not None and o.detail.serves_https is False)
        if not http_only:
            continue
        viewers = {b.viewer_protocol_policy for b in behaviors if b.target_origin_id == o.origin_id}
        if o.protocol == OriginProtocol.HTTPS_ONLY:
            confirmed.append(o)
            evidence.append(f"{describe_origin(o)}: origin protocol https-only, origin serves HTTP only")
        elif o.protocol == OriginProtocol.MATCH_VIEWER and viewers and viewers <= set(_HTTPS_VIEWERS):
            confirmed.append(o)
            evidence.append(
                f"{describe_origin(o)}: match-viewer with HTTPS-only viewers, origin serves HTTP only"
            )
        elif o.protocol == OriginProtocol.MATCH_VIEWER and viewers:
            possible.append(o)
            evidence.append(
                f"{describe_origin(o)}: match-viewer, HTTPS viewers are forwarded over HTTPS "
                "to an HTTP-only origin"
            )

    if confirmed:
        return r.emit(
            "The origin cannot complete a TLS handshake, so every request CloudFront forwards "
            "over HTTPS fails with 502.",
            evidence, specific=specific, subjects=[o.origin_id for o in confirmed + possible],
        )
    if possible:
        return r.emit(
            "Viewers connecting over HTTPS are forwarded to the origin over HTTPS, which it "
            "does not serve; those requests fail with 502.",
            evidence, likelihood=Likelihood.MEDIUM,
            specific=specific, subjects=[o.origin_id for o in possible],
        )
    return None


# ---------------------------------------------------------------------------
# CDN-SE04: Origin unreachable (active validation)
# ---------------------------------------------------------------------------

@rule("CDN-SE04", "Origin unreachable", Facet.ORIGIN,
      Category.SERVER_ERROR, SERVER_ERROR, Severity.CRITICAL, Likelihood.HIGH)
def origin_unreachable(r: Rule, inp: RuleInput) -> Finding | None:
    """A live reachability probe could not reach the origin."""
    if not inp.probes:
        return None
    origins, specific = relevant_origins(inp.snapshot, inp.symptoms)
    unreachable, inconclusive = [], []
    for o in origins:
        result = inp.probe(o.origin_id)
        if result is None or result.outcome == ProbeOutcome.REACHABLE:
            continue
        if result.outcome == ProbeOutcome.UNREACHABLE:
            unreachable.append((o, result))
        else:
            inconclusive.append((o, result))

    def lines(pairs):
        return [
            f"{describe_origin(o)}: probe {res.outcome.value}" + (f" ({res.detail})" if res.detail else "")
            for o, res in pairs
        ]

    if unreachable:
        return r.emit(
            "The origin refused or dropped a direct connection, so CloudFront cannot reach it either.",
            lines(unreachable), specific=specific, subjects=[o.origin_id for o, _ in unreachable],
        )
    if inconclusive:
        return r.emit(
            "The reachability probe did not complete; the origin may be unreachable.",
            lines(inconclusive),
            severity=Severity.HIGH, likelihood=Likelihood.MEDIUM, confirmed=False,
            specific=specific, subjects=[o.origin_id for o, _ in inconclusive],
        )
    return None
