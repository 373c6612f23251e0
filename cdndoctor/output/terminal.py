"""Rich terminal output for cdndoctor reports."""
from __future__ import annotations

from rich.console import Console
from rich.markup import escape
from rich.panel import Panel
from rich.text import Text

from cdndoctor import __version__
from cdndoctor.models import DiagnosticReport, Finding, ReportItem, Severity

console = Console()

SEVERITY_ICONS = {
    Severity.CRITICAL: "[bold red]CRITICAL[/bold red]",
    Severity.HIGH: "[bold yellow]HIGH[/bold yellow]",
    Severity.MEDIUM: "[yellow]MED[/yellow]",
    Severity.LOW: "[dim]LOW[/dim]",
}

SEVERITY_DOTS = {
    Severity.CRITICAL: "[bold red]●[/bold red]",
    Severity.HIGH: "[bold yellow]●[/bold yellow]",
    Severity.MEDIUM: "[yellow]●[/yellow]",
    Severity.LOW: "[dim]●[/dim]",
}


def render(report: DiagnosticReport, out: Console | None = None, verbose: bool = False) -> None:
    """Render the report to the terminal using Rich."""
    out = out or console
    _render_header(report, out)
    _render_warnings(report, out)
    _render_summary(report, out)
    _render_executive(report, out)
    _render_issues(report, out, verbose)
    _render_remediation(report, out)
    _render_investigation(report, out)
    _render_recommendations(report, out)


def _render_header(report: DiagnosticReport, out: Console) -> None:
    header = Text()
    header.append("  CDNDOCTOR ", style="bold white")
    header.append(f"v{__version__} -- {report.distribution_id} ({report.symptom.value})", style="dim")
    out.print(Panel(header, style="bold blue"))


def _render_warnings(report: DiagnosticReport, out: Console) -> None:
    for warning in report.warnings:
        out.print(f" [yellow]![/yellow] [dim]{escape(warning)}[/dim]")
    if report.warnings:
        out.print()


# ── Configuration summary ─────────────────────────────────────────────────────

def _render_summary(report: DiagnosticReport, out: Console) -> None:
    out.rule("[bold]CONFIGURATION SUMMARY[/bold]", style="bold")
    width = max((len(label) for label, _ in report.summary), default=0)
    for label, value in report.summary:
        out.print(f" [dim]{escape(label):<{width}}[/dim]  {escape(value)}")
    out.print()


def _render_executive(report: DiagnosticReport, out: Console) -> None:
    if not report.executive:
        out.print(" [green]No issues found.[/green]")
        out.print()
        return
    out.print(" [bold]Top issues[/bold]")
    for i, item in enumerate(report.executive, 1):
        f = item.finding
        fix = f" [green]-> {escape(item.actions[0].title)}[/green]" if item.actions else ""
        out.print(f"  {i}. {SEVERITY_ICONS[f.severity]} {escape(f.title)}{fix}")
    out.print()


# ── Prioritized issues ────────────────────────────────────────────────────────

def _render_issues(report: DiagnosticReport, out: Console, verbose: bool) -> None:
    if not report.items:
        return
    out.rule(f"[bold]PRIORITIZED ISSUES[/bold] ({len(report.items)})", style="bold")
    out.print()
    for item in report.items:
        _render_finding(item.finding, out, verbose)


def _render_finding(finding: Finding, out: Console, verbose: bool) -> None:
    dot = SEVERITY_DOTS[finding.severity]
    label = SEVERITY_ICONS[finding.severity]
    confidence = "" if finding.confirmed else " · [italic]could not confirm[/italic]"
    out.print(
        f" {dot} {label} · likelihood {finding.likelihood.value.lower()} · "
        f"{finding.category.value}{confidence}    {finding.rule_id}"
    )
    out.print(f" [bold]{escape(finding.title)}[/bold]")
    out.print(f" {escape(finding.description)}")
    evidence = finding.evidence if verbose else finding.evidence[:4]
    for line in evidence:
        out.print(f"   [dim]▸ {escape(line)}[/dim]")
    if len(finding.evidence) > len(evidence):
        out.print(f"   [dim]  (+{len(finding.evidence) - len(evidence)} more, use --verbose)[/dim]")
    for note in finding.annotations:
        out.print(f"   [cyan]Note: {escape(note)}[/cyan]")
    out.print()


# ── Remediation ───────────────────────────────────────────────────────────────

def _render_remediation(report: DiagnosticReport, out: Console) -> None:
    planned = [item for item in report.items if item.actions]
    if not planned:
        return
    out.rule("[bold]REMEDIATION STEPS[/bold]", style="bold")
    out.print()
    for item in planned:
        _render_item_actions(item, out)


def _render_item_actions(item: ReportItem, out: Console) -> None:
    out.print(f" [bold]{item.finding.rule_id}[/bold] {escape(item.finding.title)}")
    for action in item.actions:
        out.print(
            f"  [bold]{action.tier.value}[/bold] · {escape(action.title)} "
            f"[dim]({action.estimated_time})[/dim]"
        )
        out.print(f"    {escape(action.explanation)}")
        for step in action.declarative_steps:
            out.print(f"    - {escape(step)}")
        for cmd in action.imperative_commands:
            out.print(f"    [cyan]$ {escape(cmd)}[/cyan]")
        for check in action.verification_steps:
            out.print(f"    [green]verify:[/green] {escape(check)}")
        for warning in action.side_effect_warnings:
            out.print(f"    [yellow]side effect:[/yellow] {escape(warning)}")
        out.print()


# ── Additional commands + recommendations ────────────────────────────────────

def _render_investigation(report: DiagnosticReport, out: Console) -> None:
    if not report.investigation:
        return
    out.rule("[bold]ADDITIONAL DIAGNOSTIC COMMANDS[/bold]", style="bold")
    for cmd in report.investigation:
        out.print(f" [cyan]$ {escape(cmd)}[/cyan]")
    out.print()


def _render_recommendations(report: DiagnosticReport, out: Console) -> None:
    if not report.recommendations:
        return
    out.rule("[bold]PROACTIVE RECOMMENDATIONS[/bold]", style="bold")
    for rec in report.recommendations:
        out.print(f" • {escape(rec)}")
    out.print()
