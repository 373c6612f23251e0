"""Config Source backed by the AWS control plane (boto3). Read-only calls only."""
from __future__ import annotations

import logging
import threading

import boto3
import requests
from botocore.exceptions import (
    BotoCoreError, ClientError, ConnectTimeoutError, EndpointConnectionError, ReadTimeoutError,
)

from cdndoctor.errors import (
    InvalidIdentifierError, PermissionDeniedError, TransientSourceError, ValidationProbeError,
)
from cdndoctor.models import OriginConfig, OriginKind, OriginProtocol, ProbeOutcome
from cdndoctor.sources.base import ConfigSource

logger = logging.getLogger(__name__)

NOT_FOUND_CODES = {"NoSuchDistribution", "NoSuchResource"}
DENIED_CODES = {"AccessDenied", "AccessDeniedException", "UnauthorizedOperation"}
TRANSIENT_CODES = {
    "Throttling", "ThrottlingException", "RequestLimitExceeded", "TooManyRequestsException",
    "ServiceUnavailable", "InternalError", "RequestTimeout", "SlowDown",
}
LISTED_KEYS_LIMIT = 200

# WAFv2 ByteMatch positional constraints -> path glob
_POSITIONAL_GLOBS = {
    "EXACTLY": "{}",
    "STARTS_WITH": "{}*",
    "ENDS_WITH": "*{}",
    "CONTAINS": "*{}*",
    "CONTAINS_WORD": "*{}*",
}


class AwsConfigSource(ConfigSource):

    def __init__(self, session: boto3.session.Session | None = None,
                 profile: str | None = None, region: str = "us-east-1") -> None:
        self.session = session or boto3.Session(profile_name=profile, region_name=region)
        self._clients: dict[str, object] = {}
        self._lock = threading.Lock()

    def _client(self, name: str, region: str | None = None):
        # CloudFront and CLOUDFRONT-scoped WAFv2 live in us-east-1
        key = f"{name}:{region or ''}"
        with self._lock:
            if key not in self._clients:
                kwargs = {"region_name": region} if region else {}
                self._clients[key] = self.session.client(name, **kwargs)
            return self._clients[key]

    # ── Distribution ──────────────────────────────────────────────────

    def get_distribution(self, distribution_id: str) -> dict:
        try:
            return self._client("cloudfront").get_distribution(Id=distribution_id)
        except ClientError as e:
            raise _translate(e, distribution_id) from e
        except BotoCoreError as e:
            raise _translate_transport(e, distribution_id) from e

    # ── Origin detail ─────────────────────────────────────────────────

    def get_origin_detail(self, origin: OriginConfig) -> dict:
        try:
            if origin.kind == OriginKind.OBJECT_STORAGE and not origin.website_endpoint:
                return self._bucket_detail(origin.bucket_name)
            if origin.kind == OriginKind.OBJECT_STORAGE:
                return {"WebsiteHosting": True, "ServesHttps": False}
            if origin.kind == OriginKind.LOAD_BALANCER:
                return self._load_balancer_detail(origin.domain)
            return {}
        except ClientError as e:
            raise _translate(e, origin.origin_id) from e
        except BotoCoreError as e:
            raise _translate_transport(e, origin.origin_id) from e

    def _bucket_detail(self, bucket: str) -> dict:
        s3 = self._client("s3")
        detail: dict = {}

        try:
            detail["BucketPolicy"] = s3.get_bucket_policy(Bucket=bucket).get("Policy")
        except ClientError as e:
            if _code(e) != "NoSuchBucketPolicy":
                raise
            detail["BucketPolicy"] = None

        try:
            resp = s3.get_public_access_block(Bucket=bucket)
            detail["PublicAccessBlock"] = resp.get("PublicAccessBlockConfiguration", {})
        except ClientError as e:
            if _code(e) != "NoSuchPublicAccessBlockConfiguration":
                raise
            detail["PublicAccessBlock"] = None

        acl = s3.get_bucket_acl(Bucket=bucket)
        detail["PublicAcl"] = _acl_has_public_grant(acl)

        listing = s3.list_objects_v2(Bucket=bucket, MaxKeys=LISTED_KEYS_LIMIT)
        detail["ObjectKeys"] = [o["Key"] for o in listing.get("Contents", []) or []]
        detail["KeysTruncated"] = bool(listing.get("IsTruncated"))

        try:
            s3.get_bucket_website(Bucket=bucket)
            detail["WebsiteHosting"] = True
        except ClientError as e:
            if _code(e) != "NoSuchWebsiteConfiguration":
                raise
            detail["WebsiteHosting"] = False

        detail["LatencyClass"] = "fast"
        return detail

    def _load_balancer_detail(self, domain: str) -> dict:
        elbv2 = self._client("elbv2")
        wanted = domain.lower().removeprefix("dualstack.")
        paginator = elbv2.get_paginator("describe_load_balancers")
        for page in paginator.paginate():
            for lb in page.get("LoadBalancers", []):
                if lb.get("DNSName", "").lower() != wanted:
                    continue
                state = lb.get("State", {}).get("Code", "")
                healthy = {"active": True, "failed": False}.get(state)
                return {"Healthy": healthy, "LatencyClass": "standard", "State": state}
        logger.debug("No load balancer found for %s in this region", domain)
        return {}

    # ── Security / logging ────────────────────────────────────────────

    def get_security_detail(self, web_acl_id: str) -> dict:
        if not web_acl_id.startswith("arn:"):
            logger.info("Web ACL %s is a classic WAF id; rule detail not inspected", web_acl_id)
            return {"Name": web_acl_id}
        # arn:aws:wafv2:us-east-1:<acct>:global/webacl/<name>/<id>
        parts = web_acl_id.split("/")
        name, acl_id = parts[-2], parts[-1]
        try:
            resp = self._client("wafv2", region="us-east-1").get_web_acl(
                Name=name, Scope="CLOUDFRONT", Id=acl_id,
            )
        except ClientError as e:
            raise _translate(e, web_acl_id) from e
        except BotoCoreError as e:
            raise _translate_transport(e, web_acl_id) from e
        return summarize_web_acl(resp.get("WebACL", {}))

    def get_logging_detail(self, distribution_id: str) -> dict:
        cloudfront = self._client("cloudfront")
        try:
            resp = cloudfront.get_monitoring_subscription(DistributionId=distribution_id)
        except ClientError as e:
            if _code(e) == "NoSuchMonitoringSubscription":
                return {"AdditionalMetrics": False}
            raise _translate(e, distribution_id) from e
        except BotoCoreError as e:
            raise _translate_transport(e, distribution_id) from e
        status = (
            resp.get("MonitoringSubscription", {})
            .get("RealtimeMetricsSubscriptionConfig", {})
            .get("RealtimeMetricsSubscriptionStatus", "Disabled")
        )
        return {"AdditionalMetrics": status == "Enabled"}

    # ── Active validation ─────────────────────────────────────────────

    def probe_reachability(self, origin: OriginConfig, timeout: float) -> ProbeOutcome:
        scheme = "http" if origin.protocol == OriginProtocol.HTTP_ONLY or origin.website_endpoint else "https"
        url = f"{scheme}://{origin.domain}{origin.origin_path or ''}/"
        try:
            resp = requests.head(url, timeout=timeout, allow_redirects=False)
        except requests.exceptions.Timeout:
            return ProbeOutcome.TIMEOUT
        except requests.exceptions.ConnectionError:
            return ProbeOutcome.UNREACHABLE
        except requests.exceptions.RequestException as e:
            raise ValidationProbeError(f"probe of {url} failed: {e}") from e
        logger.debug("Probe %s: HTTP %d", url, resp.status_code)
        return ProbeOutcome.REACHABLE


# ── Helpers ───────────────────────────────────────────────────────────────────

def _code(error: ClientError) -> str:
    return error.response.get("Error", {}).get("Code", "")


def _translate(error: ClientError, subject: str) -> Exception:
    code = _code(error)
    if code in NOT_FOUND_CODES:
        return InvalidIdentifierError(subject)
    if code in DENIED_CODES:
        return PermissionDeniedError(f"{subject}: {code}")
    if code in TRANSIENT_CODES:
        return TransientSourceError(f"{subject}: {code}")
    if code == "InvalidArgument":
        return InvalidIdentifierError(subject, "malformed identifier")
    return PermissionDeniedError(f"{subject}: unreadable ({code or error})")


def _translate_transport(error: BotoCoreError, subject: str) -> Exception:
    if isinstance(error, (EndpointConnectionError, ConnectTimeoutError, ReadTimeoutError)):
        return TransientSourceError(f"{subject}: {error}")
    return TransientSourceError(f"{subject}: {type(error).__name__}: {error}")


def _acl_has_public_grant(acl: dict) -> bool:
    """True if ACL grants include the AllUsers or AuthenticatedUsers groups."""
    for grant in acl.get("Grants", []):
        uri = grant.get("Grantee", {}).get("URI", "") or ""
        if "AllUsers" in uri or "AuthenticatedUsers" in uri:
            return True
    return False


def summarize_web_acl(web_acl: dict) -> dict:
    """Reduce a WAFv2 WebACL to the fixture shape: rule name, action, path globs, methods."""
    default_action = "BLOCK" if "Block" in web_acl.get("DefaultAction", {}) else "ALLOW"
    rules = []
    for rule in web_acl.get("Rules", []):
        action = rule.get("Action", {})
        if "Block" in action:
            verdict = "BLOCK"
        elif "Allow" in action:
            verdict = "ALLOW"
        elif "Count" in action:
            verdict = "COUNT"
        elif "None" in rule.get("OverrideAction", {}):
            verdict = "BLOCK"     # managed rule group enforcing its own blocks
        else:
            verdict = "COUNT"
        patterns: list[str] = []
        methods: list[str] = []
        _collect_matches(rule.get("Statement", {}), patterns, methods)
        rules.append({
            "Name": rule.get("Name", ""),
            "Action": verdict,
            "PathPatterns": patterns,
            "Methods": methods,
        })
    return {"Name": web_acl.get("Name", ""), "DefaultAction": default_action, "Rules": rules}


def _collect_matches(statement: dict, patterns: list[str], methods: list[str]) -> None:
    byte_match = statement.get("ByteMatchStatement")
    if byte_match:
        search = byte_match.get("SearchString", b"")
        if isinstance(search, bytes):
            search = search.decode("utf-8", errors="replace")
        field = byte_match.get("FieldToMatch", {})
        if "UriPath" in field:
            template = _POSITIONAL_GLOBS.get(byte_match.get("PositionalConstraint", ""), "*{}*")
            patterns.append(template.format(search))
        elif "Method" in field:
            methods.append(search.upper())
    for key in ("AndStatement", "OrStatement"):
        for nested in statement.get(key, {}).get("Statements", []):
            _collect_matches(nested, patterns, methods)
