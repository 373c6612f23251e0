"""Snapshot Normalizer: raw distribution + sub-records -> DistributionSnapshot.

Sub-records (origin detail, security detail, logging detail) are fetched
concurrently, each behind the retry policy and its own deadline. A sub-record
that cannot be read marks its facet Unknown via a Degradation; evaluation
never starts until every fetch has completed or degraded.
"""
from __future__ import annotations

import functools
import logging
import re
import time
from dataclasses import replace
from typing import Callable

from cdndoctor import config
from cdndoctor.context import RunContext
from cdndoctor.errors import (
    CdnDoctorError, InvalidIdentifierError, PartialDataError, PermissionDeniedError,
    TransientSourceError,
)
from cdndoctor.models import (
    CacheBehavior, CustomErrorResponse, Degradation, DistributionSnapshot, DistributionStatus,
    Facet, ForwardedValues, ForwardingMode, GeoRestriction, LoggingConfig, OriginConfig,
    OriginDetail, OriginKind, OriginProtocol, SecurityConfig, TlsPolicy, ViewerProtocolPolicy,
    WafDetail, WafRuleSummary,
)
from cdndoctor.policy import summarize_bucket_policy
from cdndoctor.sources.base import ConfigSource
from cdndoctor.sources.retry import call_with_retry
from cdndoctor.workers import Slot, run_with_deadlines

logger = logging.getLogger(__name__)

DISTRIBUTION_ID_PATTERN = re.compile(r"^[A-Z0-9]{6,32}$")
_MISSING = object()


def validate_distribution_id(distribution_id: str) -> str:
    candidate = (distribution_id or "").strip()
    if not DISTRIBUTION_ID_PATTERN.match(candidate):
        raise InvalidIdentifierError(distribution_id, "malformed identifier")
    return candidate


def normalize(source: ConfigSource, context: RunContext) -> DistributionSnapshot:
    """Fetch and normalize the distribution named in *context*.

    Raises InvalidIdentifierError when the id is malformed or does not resolve,
    and RunCancelledError if the run is cancelled while fetches are in flight.
    """
    distribution_id = validate_distribution_id(context.distribution_id)
    context.cancel.raise_if_cancelled()

    try:
        raw = call_with_retry(
            lambda: source.get_distribution(distribution_id),
            context.settings, f"get_distribution({distribution_id})", context.cancel,
        )
    except PermissionDeniedError as e:
        raise InvalidIdentifierError(distribution_id, f"access denied: {e}") from e
    except TransientSourceError as e:
        raise InvalidIdentifierError(distribution_id, f"could not be resolved: {e}") from e

    snapshot = parse_distribution(raw, distribution_id)
    logger.debug(
        "Parsed %s: %d origins, %d behaviors",
        snapshot.distribution_id, len(snapshot.origins), len(snapshot.cache_behaviors),
    )
    return _attach_sub_records(snapshot, source, context)


# ── Concurrent sub-record fetch ───────────────────────────────────────────────

def _attach_sub_records(
    snapshot: DistributionSnapshot, source: ConfigSource, context: RunContext,
) -> DistributionSnapshot:
    tasks: dict[tuple[Facet, str], Callable[[], dict]] = {}
    for origin in snapshot.origins:
        tasks[(Facet.ORIGIN, origin.origin_id)] = functools.partial(
            source.get_origin_detail, origin,
        )
    if snapshot.security.web_acl_id:
        tasks[(Facet.WAF, snapshot.security.web_acl_id)] = functools.partial(
            source.get_security_detail, snapshot.security.web_acl_id,
        )
    tasks[(Facet.LOGGING, snapshot.distribution_id)] = functools.partial(
        source.get_logging_detail, snapshot.distribution_id,
    )

    results, degradations = fetch_concurrently(tasks, context)

    origins = []
    for origin in snapshot.origins:
        raw_detail = results.get((Facet.ORIGIN, origin.origin_id))
        if raw_detail is None:
            origins.append(origin)
            continue
        origins.append(replace(origin, detail=parse_origin_detail(raw_detail, origin, snapshot.arn)))

    security = snapshot.security
    if security.web_acl_id and (Facet.WAF, security.web_acl_id) in results:
        security = replace(
            security,
            waf=parse_security_detail(results[(Facet.WAF, security.web_acl_id)], security.web_acl_id),
        )

    logging_config = snapshot.logging
    raw_logging = results.get((Facet.LOGGING, snapshot.distribution_id))
    if raw_logging is not None:
        logging_config = parse_logging_detail(raw_logging, logging_config)

    return replace(
        snapshot,
        origins=tuple(origins),
        security=security,
        logging=logging_config,
        degradations=snapshot.degradations + tuple(degradations),
    )


def fetch_concurrently(
    tasks: dict[tuple[Facet, str], Callable[[], dict]],
    context: RunContext,
) -> tuple[dict[tuple[Facet, str], dict], list[Degradation]]:
    """Run independent fetches in parallel, each retried and bounded by fetch_timeout.

    Every attempt gets the full fetch_timeout; backoff between attempts is not
    charged to it. Returns (results, degradations). Keys missing from results
    are Unknown.
    """
    if not tasks:
        return {}, []

    settings = context.settings
    results: dict[tuple[Facet, str], dict] = {}
    degradations: list[Degradation] = []

    def run(key: tuple[Facet, str], fn: Callable[[], dict], slot: Slot) -> dict:
        facet, subject = key

        def attempt() -> dict:
            slot.start_clock()
            return fn()

        def backoff(seconds: float) -> None:
            slot.stop_clock()
            time.sleep(seconds)

        try:
            return call_with_retry(
                attempt, settings, f"{facet.value}({subject})", context.cancel, sleep=backoff,
            )
        except (PermissionDeniedError, TransientSourceError, InvalidIdentifierError) as e:
            raise PartialDataError(facet.value, subject, e) from e

    finished, timed_out = run_with_deadlines(
        {key: functools.partial(run, key, fn) for key, fn in tasks.items()},
        settings.fetch_workers, settings.fetch_timeout, context.cancel, "cdndoctor-fetch",
    )
    for key, future in finished.items():
        try:
            results[key] = future.result() or {}
        except PartialDataError as e:
            degradations.append(_degradation(key, e.cause))
    for facet, subject in timed_out:
        logger.warning(
            "%s for %s did not complete within %ss; marking Unknown",
            facet.value, subject, settings.fetch_timeout,
        )
        degradations.append(Degradation(
            facet=facet, subject=subject,
            reason=f"no response within {settings.fetch_timeout:g}s",
            error="timeout",
        ))

    degradations.sort(key=lambda d: (d.facet.value, d.subject))
    return results, degradations


def _degradation(key: tuple[Facet, str], cause: Exception) -> Degradation:
    facet, subject = key
    if isinstance(cause, PermissionDeniedError):
        error = "permission-denied"
    elif isinstance(cause, TransientSourceError):
        error = "transient"
    elif isinstance(cause, CdnDoctorError):
        error = "not-found"
    else:
        error = "unknown"
    logger.warning("Could not read %s for %s (%s): %s", facet.value, subject, error, cause)
    return Degradation(facet=facet, subject=subject, reason=str(cause), error=error)


# ── Distribution parsing ──────────────────────────────────────────────────────

def parse_distribution(raw: dict, distribution_id: str = "") -> DistributionSnapshot:
    """Pure conversion of a GetDistribution response (or its Distribution member)."""
    dist = raw.get("Distribution", raw)
    cfg = dist.get("DistributionConfig", dist)

    origins = tuple(_parse_origin(o) for o in _items(cfg.get("Origins")))
    behaviors: list[CacheBehavior] = []
    default = cfg.get("DefaultCacheBehavior")
    if default is not None:
        behaviors.append(_parse_behavior(default, is_default=True))
    for b in _items(cfg.get("CacheBehaviors")):
        behaviors.append(_parse_behavior(b, is_default=False))

    restrictions = cfg.get("Restrictions", {}).get("GeoRestriction", {})
    cert = cfg.get("ViewerCertificate", {})
    default_cert = bool(cert.get("CloudFrontDefaultCertificate", not cert))
    security = SecurityConfig(
        web_acl_id=cfg.get("WebACLId") or None,
        geo=GeoRestriction(
            restriction_type=restrictions.get("RestrictionType", "none") or "none",
            locations=tuple(str(c).upper() for c in _items(restrictions)),
        ),
        tls=TlsPolicy(
            minimum_protocol_version="TLSv1" if default_cert else cert.get("MinimumProtocolVersion", "TLSv1"),
            default_certificate=default_cert,
            certificate_source="cloudfront" if default_cert else cert.get("CertificateSource", "acm"),
        ),
    )

    log_cfg = cfg.get("Logging", {})
    logging_config = LoggingConfig(
        standard_enabled=bool(log_cfg.get("Enabled", False)),
        bucket=log_cfg.get("Bucket", "") or "",
        prefix=log_cfg.get("Prefix", "") or "",
    )

    status = DistributionStatus(
        state=dist.get("Status", "Deployed"),
        enabled=bool(cfg.get("Enabled", True)),
        last_modified=str(dist.get("LastModifiedTime", "")),
    )

    error_responses = tuple(
        CustomErrorResponse(
            error_code=int(e.get("ErrorCode", 0)),
            response_page_path=e.get("ResponsePagePath", "") or "",
            response_code=str(e.get("ResponseCode", "") or ""),
        )
        for e in _items(cfg.get("CustomErrorResponses"))
    )

    return DistributionSnapshot(
        distribution_id=dist.get("Id", distribution_id) or distribution_id,
        arn=dist.get("ARN", ""),
        domain_name=dist.get("DomainName", ""),
        aliases=tuple(_items(cfg.get("Aliases"))),
        default_root_object=cfg.get("DefaultRootObject", "") or "",
        origins=origins,
        cache_behaviors=tuple(behaviors),
        security=security,
        logging=logging_config,
        status=status,
        custom_error_responses=error_responses,
        http_version=cfg.get("HttpVersion", "http2"),
    )


def _parse_origin(raw: dict) -> OriginConfig:
    domain = raw.get("DomainName", "")
    s3_cfg = raw.get("S3OriginConfig")
    custom_cfg = raw.get("CustomOriginConfig") or {}

    website = ".s3-website" in domain
    if website or s3_cfg is not None or ".s3." in domain or domain.endswith(".s3.amazonaws.com"):
        kind = OriginKind.OBJECT_STORAGE
    elif ".elb.amazonaws.com" in domain:
        kind = OriginKind.LOAD_BALANCER
    else:
        kind = OriginKind.CUSTOM_HTTP

    ref, ref_type = None, None
    if raw.get("OriginAccessControlId"):
        ref, ref_type = raw["OriginAccessControlId"], "origin-access-control"
    elif s3_cfg and s3_cfg.get("OriginAccessIdentity"):
        ref = s3_cfg["OriginAccessIdentity"].rsplit("/", 1)[-1]
        ref_type = "origin-access-identity"

    if kind == OriginKind.OBJECT_STORAGE and not website and not custom_cfg:
        protocol = OriginProtocol.MATCH_VIEWER
        read_timeout = (s3_cfg or {}).get("OriginReadTimeout", config.DEFAULT_READ_TIMEOUT)
    else:
        protocol = OriginProtocol(custom_cfg.get("OriginProtocolPolicy", config.DEFAULT_CUSTOM_ORIGIN_PROTOCOL))
        read_timeout = custom_cfg.get("OriginReadTimeout", config.DEFAULT_READ_TIMEOUT)

    return OriginConfig(
        origin_id=raw.get("Id", domain),
        kind=kind,
        domain=domain,
        access_control_ref=ref,
        access_control_type=ref_type,
        protocol=protocol,
        connect_timeout=int(raw.get("ConnectionTimeout", config.DEFAULT_CONNECT_TIMEOUT)),
        read_timeout=int(read_timeout),
        origin_path=raw.get("OriginPath", "") or "",
        website_endpoint=website,
    )


def _parse_behavior(raw: dict, is_default: bool) -> CacheBehavior:
    fv = raw.get("ForwardedValues") or {}
    query = ForwardingMode.NONE
    if fv.get("QueryString"):
        query = ForwardingMode.WHITELIST if _items(fv.get("QueryStringCacheKeys")) else ForwardingMode.ALL
    header_names = tuple(_items(fv.get("Headers")))
    if "*" in header_names:
        headers = ForwardingMode.ALL
    elif header_names:
        headers = ForwardingMode.WHITELIST
    else:
        headers = ForwardingMode.NONE
    cookies = ForwardingMode((fv.get("Cookies") or {}).get("Forward", "none"))

    functions = {a.get("EventType", "") for a in _items(raw.get("FunctionAssociations"))}
    functions |= {a.get("EventType", "") for a in _items(raw.get("LambdaFunctionAssociations"))}

    key_groups = raw.get("TrustedKeyGroups") or {}
    signers = raw.get("TrustedSigners") or {}

    return CacheBehavior(
        path_pattern="*" if is_default else raw.get("PathPattern", "*"),
        target_origin_id=raw.get("TargetOriginId", ""),
        viewer_protocol_policy=ViewerProtocolPolicy(
            raw.get("ViewerProtocolPolicy", config.DEFAULT_VIEWER_PROTOCOL)
        ),
        allowed_methods=frozenset(
            m.upper() for m in (_items(raw.get("AllowedMethods")) or config.DEFAULT_ALLOWED_METHODS)
        ),
        forwarded_values=ForwardedValues(
            query_strings=query, headers=headers, cookies=cookies, header_names=header_names,
        ),
        function_associations=frozenset(f for f in functions if f),
        compress=bool(raw.get("Compress", False)),
        trusted_key_groups=tuple(_items(key_groups)) if key_groups.get("Enabled") else (),
        trusted_signers=bool(signers.get("Enabled", False)),
        is_default=is_default,
    )


# ── Sub-record parsing ────────────────────────────────────────────────────────

def parse_origin_detail(raw: dict, origin: OriginConfig, distribution_arn: str = "") -> OriginDetail:
    pab = raw.get("PublicAccessBlock", _MISSING)
    if pab is _MISSING:
        blocked = None
    elif pab is None:
        blocked = False
    else:
        blocked = all(bool(pab.get(k)) for k in (
            "BlockPublicAcls", "IgnorePublicAcls", "BlockPublicPolicy", "RestrictPublicBuckets",
        ))

    if origin.kind == OriginKind.OBJECT_STORAGE:
        default_latency = "fast"
    else:
        default_latency = config.DEFAULT_LATENCY_CLASS

    serves_https = raw.get("ServesHttps")
    if serves_https is None and origin.website_endpoint:
        serves_https = False

    return OriginDetail(
        policy=summarize_bucket_policy(raw.get("BucketPolicy"), distribution_arn),
        public_access_blocked=blocked,
        public_acl=bool(raw.get("PublicAcl", False)),
        object_keys=tuple(raw.get("ObjectKeys", []) or ()),
        keys_complete="ObjectKeys" in raw and not raw.get("KeysTruncated", False),
        website_hosting=bool(raw.get("WebsiteHosting", origin.website_endpoint)),
        healthy=raw.get("Healthy"),
        latency_class=raw.get("LatencyClass", default_latency),
        serves_https=serves_https,
    )


def parse_security_detail(raw: dict, acl_id: str) -> WafDetail:
    return WafDetail(
        acl_id=acl_id,
        name=raw.get("Name", ""),
        default_action=str(raw.get("DefaultAction", "ALLOW")).upper(),
        rules=tuple(
            WafRuleSummary(
                name=r.get("Name", ""),
                action=str(r.get("Action", "COUNT")).upper(),
                path_patterns=tuple(r.get("PathPatterns", []) or ()),
                methods=tuple(m.upper() for m in r.get("Methods", []) or ()),
            )
            for r in raw.get("Rules", []) or []
        ),
    )


def parse_logging_detail(raw: dict, base: LoggingConfig) -> LoggingConfig:
    metrics = raw.get("AdditionalMetrics")
    return replace(
        base,
        additional_metrics=None if metrics is None else bool(metrics),
        realtime_configs=tuple(raw.get("RealtimeLogConfigs", []) or ()),
    )


def _items(value) -> list:
    """CloudFront wraps lists as {"Quantity": n, "Items": [...]}; accept both shapes."""
    if value is None:
        return []
    if isinstance(value, dict):
        return list(value.get("Items", []) or [])
    return list(value)
