#!/usr/bin/env python3
"""
CLI for connector ingestion

Commands:
    seed           - Load jurisdictions and connectors from a YAML file
    run-connector  - Run one connector now
    run-scope      - Run every meetings/elections/ordinances connector in a scope
    cron           - Scheduled sweep over every enabled connector
    data-status    - Print the live/seed verdict for a scope

Usage:
    python cli.py seed data/seed.yaml
    python cli.py run-connector 3
    python cli.py run-scope "city:austin-tx,county:travis-county-tx"
    python cli.py cron
    python cli.py data-status --json
"""

import json
import sys

import click


def get_app_context():
    """Get Flask app context for database access."""
    from app import create_app, configure_logging
    configure_logging()
    app = create_app({"JOB_DISPATCHER": "inline"})
    return app.app_context()


def _print_scope_result(result, output_json):
    if output_json:
        click.echo(json.dumps(result.to_dict(), indent=2, default=str))
        return

    click.echo(f"Connectors run: {result.connectors_run}")
    for entry in result.results:
        colour = "green" if entry["status"] == "success" else "red"
        detail = entry.get("error")
        if detail is None:
            stats = entry.get("stats") or {}
            detail = (
                f"{stats.get('newCount', 0)} new, {stats.get('updatedCount', 0)} updated, "
                f"{stats.get('errorCount', 0)} errors"
            )
        click.secho(f"  {entry['connectorKey']:<40} {entry['status']:<8} {detail}", fg=colour)
    click.echo(result.summary)


@click.group()
@click.version_option(version="1.0.0", prog_name="localgov-ingest")
def cli():
    """LocalGov Watch ingestion CLI."""
    pass


@cli.command("seed")
@click.argument("file_path", type=click.Path(exists=True))
def seed(file_path):
    """
    Load jurisdictions and connectors (idempotent upsert by slug/key).

    FILE_PATH: YAML seed file
    """
    with get_app_context():
        from services.seed import SeedFileError, load_seed_file

        try:
            report = load_seed_file(file_path)
        except SeedFileError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)

        click.echo(json.dumps(report.to_dict(), indent=2))


@cli.command("run-connector")
@click.argument("connector_id", type=int)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def run_connector_cmd(connector_id, output_json):
    """Run one connector by id."""
    with get_app_context():
        from services.errors import ConnectorConfigError
        from services.run_executor import run_connector

        try:
            result = run_connector(connector_id)
        except ConnectorConfigError as e:
            click.secho(f"Error: {e}", fg="red")
            sys.exit(1)

        if output_json:
            click.echo(json.dumps(result.to_dict(), indent=2))
        else:
            colour = "green" if result.status == "success" else "red"
            click.secho(f"Run {result.run_id}: {result.status}", fg=colour)
            click.echo(result.stats.summary())

        sys.exit(0 if result.status == "success" else 1)


@cli.command("run-scope")
@click.argument("scope", required=False)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def run_scope_cmd(scope, output_json):
    """Run connectors for SCOPE (defaults to DEFAULT_SCOPE)."""
    with get_app_context():
        from flask import current_app
        from services.scope import resolve_scope
        from services.scope_runner import run_scope

        scope = resolve_scope(scope, current_app.config["DEFAULT_SCOPE"])
        click.echo(f"Scope: {scope}")
        _print_scope_result(run_scope(scope), output_json)


@cli.command("cron")
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def cron(output_json):
    """Run every enabled connector (scheduled sweep)."""
    with get_app_context():
        from services.scope_runner import run_all

        _print_scope_result(run_all(), output_json)


@cli.command("data-status")
@click.argument("scope", required=False)
@click.option("--json", "output_json", is_flag=True, help="Output as JSON")
def data_status(scope, output_json):
    """Print whether SCOPE is serving live or seed data."""
    with get_app_context():
        from services.freshness import evaluate

        verdict = evaluate(scope)
        if output_json:
            click.echo(json.dumps(verdict.to_dict(), indent=2))
            return

        colour = "green" if verdict.mode == "live" else "yellow"
        click.secho(f"{verdict.scope_used}: {verdict.mode} ({verdict.reason})", fg=colour)
        click.echo(f"  Last run:   {verdict.last_run_at or 'never'}")
        click.echo(f"  Connectors: {verdict.enabled_connectors} enabled, {verdict.recent_runs} recent")
        for table, count in verdict.table_counts.items():
            click.echo(f"  {table:<12} {count:,}")


if __name__ == "__main__":
    cli()
