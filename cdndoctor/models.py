from __future__ import annotations

from dataclasses import dataclass, field, replace
from enum import Enum


class Severity(str, Enum):
    CRITICAL = "CRITICAL"
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        """Higher is worse. CRITICAL=3 ... LOW=0."""
        return _SEVERITY_RANK[self]


class Likelihood(str, Enum):
    HIGH = "HIGH"
    MEDIUM = "MEDIUM"
    LOW = "LOW"

    @property
    def rank(self) -> int:
        return _LIKELIHOOD_RANK[self]


_SEVERITY_RANK = {
    Severity.CRITICAL: 3, Severity.HIGH: 2,
    Severity.MEDIUM: 1, Severity.LOW: 0,
}
_LIKELIHOOD_RANK = {Likelihood.HIGH: 2, Likelihood.MEDIUM: 1, Likelihood.LOW: 0}


class Category(str, Enum):
    """Category carried by an emitted Finding."""
    ACCESS_DENIED = "access-denied"
    NOT_FOUND = "not-found"
    SERVER_ERROR = "server-error"
    SECURITY = "security"
    GENERAL = "general"


class SymptomCategory(str, Enum):
    """Category a rule applies to, and the category a run is resolved into."""
    ACCESS_DENIED = "access-denied"
    NOT_FOUND = "not-found"
    SERVER_ERROR = "server-error"
    GENERAL = "general"


class Facet(str, Enum):
    DISTRIBUTION = "distribution"
    ORIGIN = "origin"
    ACCESS_CONTROL = "access-control"
    ORIGIN_POLICY = "origin-policy"
    CACHE_BEHAVIOR = "cache-behavior"
    PROTOCOL = "protocol"
    GEO_RESTRICTION = "geo-restriction"
    WAF = "waf"
    TLS = "tls"
    LOGGING = "logging"
    STATUS = "status"


class OriginKind(str, Enum):
    OBJECT_STORAGE = "object-storage"
    CUSTOM_HTTP = "custom-http"
    LOAD_BALANCER = "load-balancer"


class OriginProtocol(str, Enum):
    HTTP_ONLY = "http-only"
    HTTPS_ONLY = "https-only"
    MATCH_VIEWER = "match-viewer"


class ViewerProtocolPolicy(str, Enum):
    ALLOW_ALL = "allow-all"
    REDIRECT_TO_HTTPS = "redirect-to-https"
    HTTPS_ONLY = "https-only"


class ForwardingMode(str, Enum):
    NONE = "none"
    WHITELIST = "whitelist"
    ALL = "all"


class Tier(str, Enum):
    QUICK_FIX = "quick-fix"
    STANDARD = "standard"
    ADVANCED = "advanced"

    @property
    def order(self) -> int:
        return _TIER_ORDER[self]


_TIER_ORDER = {Tier.QUICK_FIX: 0, Tier.STANDARD: 1, Tier.ADVANCED: 2}


class ProbeOutcome(str, Enum):
    REACHABLE = "reachable"
    UNREACHABLE = "unreachable"
    TIMEOUT = "timeout"
    ERROR = "error"


# ── Symptom input ─────────────────────────────────────────────────────────────

@dataclass(frozen=True)
class SymptomParams:
    error_code: str | None = None
    request_path: str | None = None
    request_domain: str | None = None
    request_method: str = "GET"
    viewer_country: str | None = None
    active_validation: bool = False
    run_proactive_checks: bool = True


# ── Snapshot facets ───────────────────────────────────────────────────────────

@dataclass(frozen=True)
class PolicySummary:
    """What a bucket policy grants, reduced to the questions the rules ask."""
    public_read: bool = False
    trusts_distribution: bool = False
    trusted_identities: tuple[str, ...] = ()
    cloudfront_actions: tuple[str, ...] = ()
    has_policy: bool = False


@dataclass(frozen=True)
class OriginDetail:
    policy: PolicySummary = field(default_factory=PolicySummary)
    public_access_blocked: bool | None = None
    public_acl: bool = False
    object_keys: tuple[str, ...] = ()
    keys_complete: bool = False
    website_hosting: bool = False
    healthy: bool | None = None
    latency_class: str = "standard"
    serves_https: bool | None = None


@dataclass(frozen=True)
class OriginConfig:
    origin_id: str
    kind: OriginKind
    domain: str
    access_control_ref: str | None = None
    access_control_type: str | None = None   # "origin-access-control" | "origin-access-identity"
    protocol: OriginProtocol = OriginProtocol.MATCH_VIEWER
    connect_timeout: int = 10
    read_timeout: int = 30
    origin_path: str = ""
    website_endpoint: bool = False
    detail: OriginDetail | None = None

    @property
    def bucket_name(self) -> str:
        """Bucket name for object-storage origins, '' otherwise."""
        if self.kind != OriginKind.OBJECT_STORAGE:
            return ""
        return self.domain.split(".s3", 1)[0]


@dataclass(frozen=True)
class ForwardedValues:
    query_strings: ForwardingMode = ForwardingMode.NONE
    headers: ForwardingMode = ForwardingMode.NONE
    cookies: ForwardingMode = ForwardingMode.NONE
    header_names: tuple[str, ...] = ()


@dataclass(frozen=True)
class CacheBehavior:
    path_pattern: str
    target_origin_id: str
    viewer_protocol_policy: ViewerProtocolPolicy = ViewerProtocolPolicy.ALLOW_ALL
    allowed_methods: frozenset[str] = frozenset({"GET", "HEAD"})
    forwarded_values: ForwardedValues = field(default_factory=ForwardedValues)
    function_associations: frozenset[str] = frozenset()
    compress: bool = False
    trusted_key_groups: tuple[str, ...] = ()
    trusted_signers: bool = False
    is_default: bool = False


@dataclass(frozen=True)
class WafRuleSummary:
    name: str
    action: str                          # "BLOCK" | "ALLOW" | "COUNT"
    path_patterns: tuple[str, ...] = ()
    methods: tuple[str, ...] = ()


@dataclass(frozen=True)
class WafDetail:
    acl_id: str
    name: str = ""
    default_action: str = "ALLOW"
    rules: tuple[WafRuleSummary, ...] = ()


@dataclass(frozen=True)
class GeoRestriction:
    restriction_type: str = "none"       # "none" | "whitelist" | "blacklist"
    locations: tuple[str, ...] = ()


@dataclass(frozen=True)
class TlsPolicy:
    minimum_protocol_version: str = "TLSv1"
    default_certificate: bool = True
    certificate_source: str = "cloudfront"


@dataclass(frozen=True)
class SecurityConfig:
    web_acl_id: str | None = None
    waf: WafDetail | None = None
    geo: GeoRestriction = field(default_factory=GeoRestriction)
    tls: TlsPolicy = field(default_factory=TlsPolicy)


@dataclass(frozen=True)
class LoggingConfig:
    standard_enabled: bool = False
    bucket: str = ""
    prefix: str = ""
    additional_metrics: bool | None = None
    realtime_configs: tuple[str, ...] = ()


@dataclass(frozen=True)
class DistributionStatus:
    state: str = "Deployed"
    enabled: bool = True
    last_modified: str = ""


@dataclass(frozen=True)
class Degradation:
    """A facet that could not be read. Rules treat it as Unknown, never as absent."""
    facet: Facet
    subject: str
    reason: str
    error: str = "permission-denied"     # "permission-denied" | "transient" | "timeout"


@dataclass(frozen=True)
class CustomErrorResponse:
    error_code: int
    response_page_path: str = ""
    response_code: str = ""


@dataclass(frozen=True)
class DistributionSnapshot:
    distribution_id: str
    arn: str = ""
    domain_name: str = ""
    aliases: tuple[str, ...] = ()
    default_root_object: str = ""
    origins: tuple[OriginConfig, ...] = ()
    cache_behaviors: tuple[CacheBehavior, ...] = ()
    security: SecurityConfig = field(default_factory=SecurityConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)
    status: DistributionStatus = field(default_factory=DistributionStatus)
    custom_error_responses: tuple[CustomErrorResponse, ...] = ()
    http_version: str = "http2"
    degradations: tuple[Degradation, ...] = ()

    @property
    def default_behavior(self) -> CacheBehavior | None:
        for behavior in self.cache_behaviors:
            if behavior.is_default:
                return behavior
        return None

    @property
    def path_behaviors(self) -> tuple[CacheBehavior, ...]:
        return tuple(b for b in self.cache_behaviors if not b.is_default)

    def origin(self, origin_id: str) -> OriginConfig | None:
        for o in self.origins:
            if o.origin_id == origin_id:
                return o
        return None

    def is_unknown(self, facet: Facet, subject: str | None = None) -> bool:
        return any(
            d.facet == facet and (subject is None or d.subject == subject)
            for d in self.degradations
        )


# ── Findings and remediation ──────────────────────────────────────────────────

@dataclass(frozen=True)
class Finding:
    rule_id: str
    facet: Facet
    category: Category
    severity: Severity
    likelihood: Likelihood
    title: str
    description: str
    evidence: tuple[str, ...] = ()
    confirmed: bool = True
    specific: bool = False               # tied to the supplied request_path / request_domain
    annotations: tuple[str, ...] = ()
    subjects: tuple[str, ...] = ()       # origin ids / behavior patterns the finding concerns

    def evolve(self, **changes) -> Finding:
        """Return a copy with *changes* applied. Findings are never edited in place."""
        return replace(self, **changes)


@dataclass(frozen=True)
class RemediationAction:
    rule_id: str
    tier: Tier
    title: str
    estimated_time: str
    explanation: str
    declarative_steps: tuple[str, ...]
    imperative_commands: tuple[str, ...]
    verification_steps: tuple[str, ...]
    side_effect_warnings: tuple[str, ...] = ()


@dataclass(frozen=True)
class ReportItem:
    finding: Finding
    actions: tuple[RemediationAction, ...] = ()


@dataclass(frozen=True)
class DiagnosticReport:
    distribution_id: str
    symptom: SymptomCategory
    summary: tuple[tuple[str, str], ...] = ()
    items: tuple[ReportItem, ...] = ()
    executive: tuple[ReportItem, ...] = ()
    investigation: tuple[str, ...] = ()
    recommendations: tuple[str, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def findings(self) -> tuple[Finding, ...]:
        return tuple(item.finding for item in self.items)
