"""JSON form of a DiagnosticReport."""
from __future__ import annotations

import json

from cdndoctor import __version__
from cdndoctor.models import DiagnosticReport, Finding, RemediationAction


def _finding_dict(f: Finding) -> dict:
    return {
        "rule_id": f.rule_id,
        "facet": f.facet.value,
        "category": f.category.value,
        "severity": f.severity.value,
        "likelihood": f.likelihood.value,
        "confirmed": f.confirmed,
        "specific": f.specific,
        "title": f.title,
        "description": f.description,
        "evidence": list(f.evidence),
        "annotations": list(f.annotations),
        "subjects": list(f.subjects),
    }


def _action_dict(a: RemediationAction) -> dict:
    return {
        "tier": a.tier.value,
        "title": a.title,
        "estimated_time": a.estimated_time,
        "explanation": a.explanation,
        "declarative_steps": list(a.declarative_steps),
        "imperative_commands": list(a.imperative_commands),
        "verification_steps": list(a.verification_steps),
        "side_effect_warnings": list(a.side_effect_warnings),
    }


def report_to_dict(report: DiagnosticReport) -> dict:
    return {
        "tool": "cdndoctor",
        "version": __version__,
        "distribution_id": report.distribution_id,
        "symptom": report.symptom.value,
        "summary": [{"label": label, "value": value} for label, value in report.summary],
        "executive_summary": [
            {"rule_id": item.finding.rule_id, "quick_fixes": [a.title for a in item.actions]}
            for item in report.executive
        ],
        "issues": [
            {**_finding_dict(item.finding), "remediation": [_action_dict(a) for a in item.actions]}
            for item in report.items
        ],
        "investigation": list(report.investigation),
        "recommendations": list(report.recommendations),
        "warnings": list(report.warnings),
    }


def render_json(report: DiagnosticReport) -> str:
    return json.dumps(report_to_dict(report), indent=2)
