"""Report Builder: ranked items -> DiagnosticReport.

Pure transformation, no I/O and no timestamps: identical inputs produce an
identical report.
"""
from __future__ import annotations

from cdndoctor.config import EXECUTIVE_SUMMARY_SIZE
from cdndoctor.context import RunContext
from cdndoctor.knowledge.investigation import commands_for
from cdndoctor.models import (
    DiagnosticReport, DistributionSnapshot, ReportItem, Tier,
)
from cdndoctor.planner import fill, placeholder_values


def configuration_summary(snapshot: DistributionSnapshot) -> tuple[tuple[str, str], ...]:
    """Ordered (label, value) pairs describing the distribution."""
    rows: list[tuple[str, str]] = [
        ("Distribution", snapshot.distribution_id),
        ("Domain", snapshot.domain_name or "-"),
        ("Aliases", ", ".join(snapshot.aliases) or "-"),
        ("Status", f"{snapshot.status.state} ({'enabled' if snapshot.status.enabled else 'disabled'})"),
        ("Default root object", snapshot.default_root_object or "(not set)"),
    ]
    for o in snapshot.origins:
        if o.access_control_ref:
            access = f"{o.access_control_type} {o.access_control_ref}"
        else:
            access = "no access control"
        timeouts = f"connect {o.connect_timeout}s / read {o.read_timeout}s"
        path = f", path {o.origin_path}" if o.origin_path else ""
        rows.append((
            f"Origin {o.origin_id}",
            f"{o.kind.value} {o.domain}{path}, {o.protocol.value}, {timeouts}, {access}",
        ))
    for b in snapshot.cache_behaviors:
        label = "Default behavior" if b.is_default else f"Behavior {b.path_pattern}"
        rows.append((label, f"-> {b.target_origin_id}, viewer {b.viewer_protocol_policy.value}"))

    security = snapshot.security
    rows.append(("Web ACL", security.web_acl_id or "none"))
    if security.geo.restriction_type == "none":
        rows.append(("Geo restriction", "none"))
    else:
        rows.append(("Geo restriction", f"{security.geo.restriction_type}: {', '.join(security.geo.locations)}"))
    rows.append(("Viewer TLS", security.tls.minimum_protocol_version))
    rows.append(("Logging", "enabled" if snapshot.logging.standard_enabled else "disabled"))
    rows.append(("HTTP version", snapshot.http_version))
    return tuple(rows)


def executive_summary(items: tuple[ReportItem, ...]) -> tuple[ReportItem, ...]:
    """Top items with their quick-fix actions only."""
    return tuple(
        ReportItem(
            finding=item.finding,
            actions=tuple(a for a in item.actions if a.tier == Tier.QUICK_FIX),
        )
        for item in items[:EXECUTIVE_SUMMARY_SIZE]
    )


def proactive_recommendations(snapshot: DistributionSnapshot) -> tuple[str, ...]:
    recs: list[str] = []
    logging_config = snapshot.logging
    if not logging_config.standard_enabled and not logging_config.realtime_configs:
        recs.append(
            "Enable standard logging to an S3 bucket so failing requests can be traced "
            "(x-edge-result-type, x-edge-detailed-result-type)."
        )
    if not snapshot.security.web_acl_id:
        recs.append("Associate an AWS WAF web ACL with managed rule groups to filter malicious traffic.")
    if logging_config.additional_metrics is False:
        recs.append(
            "Enable additional CloudWatch metrics for per-status-code error rates and origin latency."
        )
    recs.append(
        "Add monitoring: CloudWatch alarms on 4xxErrorRate and 5xxErrorRate, and a synthetic "
        "check against the distribution domain."
    )
    if not snapshot.custom_error_responses:
        recs.append("Configure custom error responses so viewers get a friendly page and errors are cached briefly.")
    if snapshot.http_version in ("http1.1", ""):
        recs.append("Enable HTTP/2 and HTTP/3 for lower latency on modern clients.")
    elif snapshot.http_version == "http2":
        recs.append("Consider enabling HTTP/3 (http2and3) for faster connection setup.")
    return tuple(recs)


def build_report(
    snapshot: DistributionSnapshot,
    context: RunContext,
    items: tuple[ReportItem, ...],
) -> DiagnosticReport:
    top = items[0].finding if items else None
    values = placeholder_values(snapshot, context, top)
    categories = {item.finding.category.value for item in items}
    investigation = tuple(fill(cmd, values) for cmd in commands_for(context.symptom.value, categories))

    warnings = list(context.warnings)
    for d in snapshot.degradations:
        warnings.append(f"Could not confirm {d.facet.value} for {d.subject}: {d.reason} ({d.error})")

    return DiagnosticReport(
        distribution_id=snapshot.distribution_id,
        symptom=context.symptom,
        summary=configuration_summary(snapshot),
        items=tuple(items),
        executive=executive_summary(tuple(items)),
        investigation=investigation,
        recommendations=(
            proactive_recommendations(snapshot) if context.symptoms.run_proactive_checks else ()
        ),
        warnings=tuple(warnings),
    )
