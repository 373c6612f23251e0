"""Click CLI entry point for cdndoctor."""
from __future__ import annotations

import json
import logging
import sys
from dataclasses import replace

import click

from cdndoctor import __version__
from cdndoctor.config import (
    coerce_setting, get_config_path, load_config, load_settings, save_config, settings_keys,
    settings_to_dict,
)
from cdndoctor.context import CancelToken
from cdndoctor.diagnose import diagnose
from cdndoctor.errors import InvalidIdentifierError, RunCancelledError
from cdndoctor.models import SymptomParams
from cdndoctor.output.json_report import render_json
from cdndoctor.output.terminal import render
from cdndoctor.rules import build_rule_manifest

EXIT_INVALID_IDENTIFIER = 2
EXIT_CANCELLED = 130


@click.group()
@click.version_option(version=__version__, prog_name="cdndoctor")
def cli() -> None:
    """cdndoctor - Diagnose CloudFront distribution misconfigurations."""
    pass


@cli.command("diagnose")
@click.argument("distribution_id")
@click.option("--error-code", default=None, help="HTTP error code viewers see (403, 404, 5xx)")
@click.option("--path", "request_path", default=None, help="Request path that fails")
@click.option("--domain", "request_domain", default=None, help="Domain the viewer requested")
@click.option("--method", "request_method", default="GET", show_default=True, help="HTTP method")
@click.option("--country", "viewer_country", default=None, help="Viewer country (ISO 3166 alpha-2)")
@click.option("--active-validation", is_flag=True, help="Probe origin reachability over the network")
@click.option("--no-proactive", is_flag=True, help="Skip proactive recommendations")
@click.option("--source", type=click.Choice(["aws", "fixture"]), default="aws", show_default=True,
              help="Where to read the distribution configuration from")
@click.option("--fixture", "fixture_path", type=click.Path(exists=True, dir_okay=False),
              help="JSON/YAML fixture document (with --source fixture)")
@click.option("--profile", default=None, help="AWS named profile")
@click.option("--region", default=None, help="AWS region for regional lookups")
@click.option("--format", "output_format", type=click.Choice(["terminal", "json"]),
              default="terminal", help="Output format")
@click.option("--config-dir", default=".", type=click.Path(exists=True, file_okay=False),
              help="Directory holding .cdndoctor/config.json")
@click.option("--verbose", is_flag=True, help="Debug logging and full evidence")
def diagnose_cmd(distribution_id: str, error_code: str | None, request_path: str | None,
                 request_domain: str | None, request_method: str, viewer_country: str | None,
                 active_validation: bool, no_proactive: bool, source: str,
                 fixture_path: str | None, profile: str | None, region: str | None,
                 output_format: str, config_dir: str, verbose: bool) -> None:
    """Diagnose a distribution and print prioritized remediation steps."""
    log_level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(
        level=log_level,
        format="%(name)s: %(message)s",
    )

    settings = load_settings(config_dir)
    if profile:
        settings = replace(settings, profile=profile)
    if region:
        settings = replace(settings, region=region)

    if source == "fixture":
        if not fixture_path:
            raise click.UsageError("--source fixture requires --fixture PATH")
        from cdndoctor.sources.fixture import FixtureConfigSource
        config_source = FixtureConfigSource.from_file(fixture_path)
    else:
        from cdndoctor.sources.aws import AwsConfigSource
        config_source = AwsConfigSource(profile=settings.profile, region=settings.region)

    symptoms = SymptomParams(
        error_code=error_code,
        request_path=request_path,
        request_domain=request_domain,
        request_method=request_method.upper(),
        viewer_country=viewer_country.upper() if viewer_country else None,
        active_validation=active_validation,
        run_proactive_checks=not no_proactive,
    )

    cancel = CancelToken()
    try:
        report = diagnose(distribution_id, config_source, symptoms, settings, cancel)
    except InvalidIdentifierError as e:
        click.echo(f"Error: {e}", err=True)
        sys.exit(EXIT_INVALID_IDENTIFIER)
    except KeyboardInterrupt:
        cancel.cancel()
        click.echo("Cancelled.", err=True)
        sys.exit(EXIT_CANCELLED)
    except RunCancelledError:
        click.echo("Cancelled.", err=True)
        sys.exit(EXIT_CANCELLED)

    if output_format == "json":
        click.echo(render_json(report))
    else:
        render(report, verbose=verbose)


@cli.command("rules")
@click.option("--format", "output_format", type=click.Choice(["terminal", "json"]),
              default="terminal", help="Output format")
def rules_cmd(output_format: str) -> None:
    """List the rule catalog."""
    manifest = build_rule_manifest()
    if output_format == "json":
        click.echo(json.dumps(manifest, indent=2))
        return
    for entry in manifest:
        applies = ",".join(entry["applies_to"])
        click.echo(
            f"{entry['id']:<10} {entry['severity']:<8} {entry['facet']:<16} "
            f"[{applies}] {entry['title']}"
        )


@cli.group()
def config() -> None:
    """Manage cdndoctor configuration."""
    pass


@config.command("set")
@click.argument("key")
@click.argument("value")
@click.argument("path", default=".", type=click.Path(exists=True))
def config_set(key: str, value: str, path: str) -> None:
    """Set a configuration value (see `config get` for keys)."""
    if key not in settings_keys():
        click.echo(f"Unknown config key: {key}", err=True)
        sys.exit(1)
    try:
        coerced = coerce_setting(key, value)
    except (TypeError, ValueError):
        click.echo(f"Invalid value for {key}: {value}", err=True)
        sys.exit(1)
    config_path = get_config_path(path)
    cfg = load_config(config_path)
    cfg[key] = list(coerced) if isinstance(coerced, tuple) else coerced
    save_config(config_path, cfg)
    click.echo(f"{key} = {cfg[key]}")


@config.command("get")
@click.argument("key", required=False)
@click.argument("path", default=".", type=click.Path(exists=True))
def config_get(key: str | None, path: str) -> None:
    """Get the effective value of a configuration key (all keys when omitted)."""
    values = settings_to_dict(load_settings(path))
    if key is None:
        for k in settings_keys():
            click.echo(f"{k}: {values[k]}")
        return
    if key not in values:
        click.echo(f"Unknown config key: {key}", err=True)
        sys.exit(1)
    click.echo(f"{key}: {values[key]}")


def main() -> None:
    """Entry point."""
    cli()


if __name__ == "__main__":
    main()
