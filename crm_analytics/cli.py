"""
CRM Analytics CLI entry point.

All commands follow this pattern:
  1. Load ``AppConfig`` via ``load_config()``.
  2. Configure logging.
  3. Load and validate the snapshot file.
  4. Run the engine (or one model).
  5. Print ASCII tables to stdout; optionally write report files.

Install and run::

    pip install -e .
    crm-analytics --help
    crm-analytics validate-config
    crm-analytics analyze --snapshot data/snapshots/latest.json --output-dir data/outputs
    crm-analytics analyze --snapshot latest.json --write-report
    crm-analytics archive-snapshot --snapshot export.json --source crm-export
    crm-analytics forecast --snapshot latest.json --metric revenue --horizon 12
    crm-analytics segment --snapshot latest.json
"""

from __future__ import annotations

import json
from pathlib import Path
from typing import Optional

import typer

app = typer.Typer(
    name="crm-analytics",
    help="CRM business analytics: insights, recommendations, forecasts and scoring.",
    add_completion=False,
)

FORECAST_METRICS = ("revenue", "sales", "customers")


# ── Helpers ───────────────────────────────────────────────────────────────────

def _load_config_or_exit(config_path: Optional[str] = None):
    """Load AppConfig, printing a friendly error and exiting on failure."""
    from crm_analytics.config import load_config

    try:
        cfg_path = Path(config_path) if config_path else None
        return load_config(cfg_path)
    except FileNotFoundError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    except Exception as exc:
        typer.echo(f"[ERROR] Config validation failed: {exc}", err=True)
        raise typer.Exit(code=1)


def _configure_logging(config):
    """Set up logging from config."""
    from crm_analytics.utils.logging import configure_logging
    configure_logging(config.logging)


def _load_snapshot_or_exit(snapshot_path: str):
    """Load a snapshot file, printing the reason and exiting on failure."""
    from crm_analytics.errors import SnapshotLoadError
    from crm_analytics.ingestion.snapshot import load_snapshot
    from crm_analytics.utils.logging import bind_log_context

    try:
        snapshot = load_snapshot(Path(snapshot_path))
    except SnapshotLoadError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)
    bind_log_context(snapshot=snapshot.content_hash()[:12])
    return snapshot


def _forecast_options(config, apply_seasonality: bool) -> dict:
    """Forecast keyword arguments for ``generate_forecasts`` from config."""
    fc = config.forecast
    cf = config.customer_forecast
    return dict(
        seasonal_factors=fc.seasonal_factors,
        apply_seasonality=apply_seasonality and fc.apply_seasonality,
        initial_confidence=fc.initial_confidence,
        confidence_floor=fc.confidence_floor,
        decay_range=fc.decay_range,
        customer_initial_confidence=cf.initial_confidence,
        customer_confidence_floor=cf.confidence_floor,
        customer_decay_per_step=cf.decay_per_step,
    )


_SNAPSHOT_OPTION = typer.Option(..., "--snapshot", help="Snapshot JSON file (bare or enveloped).")
_CONFIG_OPTION = typer.Option(None, "--config", help="Path to TOML config file.")


# ── Commands ──────────────────────────────────────────────────────────────────

@app.command("validate-config")
def validate_config(
    config_path: Optional[str] = typer.Option(
        None,
        "--config",
        help="Path to TOML config file (default: config/default.toml).",
    ),
    show_full: bool = typer.Option(
        False,
        "--full",
        help="Print full config including all fields.",
    ),
) -> None:
    """Validate the configuration file and print parsed values.

    Exits with code 1 if the config fails validation.
    """
    config = _load_config_or_exit(config_path)

    typer.echo("Configuration validated successfully.")
    typer.echo("")
    typer.echo(f"  Snapshot dir:      {config.data.snapshot_dir}")
    typer.echo(f"  Output dir:        {config.data.output_dir}")
    typer.echo(f"  Forecast horizon:  {config.forecast.horizon_periods} x {config.forecast.period.value}")
    typer.echo(f"  Seasonality:       {'on' if config.forecast.apply_seasonality else 'off'}")
    typer.echo(f"  Log level:         {config.logging.level}")
    typer.echo(f"  Debug mode:        {config.debug}")

    if show_full:
        typer.echo("")
        typer.echo("Full config (JSON):")
        typer.echo(json.dumps(config.model_dump(mode="json"), indent=2))

    typer.echo("")
    typer.echo("[OK] Config is valid.")


@app.command("analyze")
def analyze(
    snapshot_path: str = _SNAPSHOT_OPTION,
    horizon: Optional[int] = typer.Option(
        None, "--horizon", help="Forecast periods (default: forecast.horizon_periods)."
    ),
    period: Optional[str] = typer.Option(
        None, "--period", help="day | week | month | quarter | year (default: forecast.period)."
    ),
    no_seasonality: bool = typer.Option(
        False, "--no-seasonality", help="Project the pure trend without seasonal factors."
    ),
    output_dir: Optional[str] = typer.Option(
        None, "--output-dir", help="Write JSON / CSV / Parquet reports to this directory."
    ),
    write_report: bool = typer.Option(
        False, "--write-report", help="Write reports to data.output_dir from config."
    ),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Run the full engine: insights, recommendations, forecasts, optimizations."""
    from crm_analytics.engine import run_engine
    from crm_analytics.errors import InvalidConfigurationError
    from crm_analytics.reporting.export import write_engine_report
    from crm_analytics.reporting.formatters import (
        format_forecast_table,
        format_insights_table,
        format_optimization_report,
        format_recommendations_table,
    )

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    try:
        result = run_engine(
            snapshot,
            horizon if horizon is not None else config.forecast.horizon_periods,
            period or config.forecast.period,
            **_forecast_options(config, apply_seasonality=not no_seasonality),
        )
    except InvalidConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    typer.echo(f"Snapshot: {snapshot_path}  (hash {result.snapshot_hash[:12]})")
    typer.echo(format_insights_table(result.insights))
    typer.echo(format_recommendations_table(result.recommendations))
    typer.echo(format_forecast_table(result.forecasts))
    typer.echo(format_optimization_report(result.optimizations))

    report_dir = output_dir or (config.data.output_dir if write_report else None)
    if report_dir:
        paths = write_engine_report(result, Path(report_dir))
        typer.echo("")
        for kind, path in paths.items():
            typer.echo(f"  {kind:<16} {path}")
    typer.echo("")
    typer.echo(
        f"[OK] {len(result.insights)} insights, "
        f"{len(result.recommendations)} recommendations."
    )


@app.command("forecast")
def forecast_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    metric: Optional[str] = typer.Option(
        None, "--metric", help="revenue | sales | customers (default: all available)."
    ),
    horizon: Optional[int] = typer.Option(None, "--horizon", help="Forecast periods."),
    period: Optional[str] = typer.Option(None, "--period", help="Calendar unit of one step."),
    no_seasonality: bool = typer.Option(False, "--no-seasonality", help="Disable seasonal factors."),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Forecast revenue, sales and/or customer count."""
    from crm_analytics.engine import generate_forecasts
    from crm_analytics.errors import InvalidConfigurationError
    from crm_analytics.reporting.formatters import format_forecast_table

    if metric is not None and metric not in FORECAST_METRICS:
        typer.echo(
            f"[ERROR] Unknown metric '{metric}'. Expected one of {list(FORECAST_METRICS)}.",
            err=True,
        )
        raise typer.Exit(code=1)

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    try:
        forecasts = generate_forecasts(
            snapshot,
            horizon if horizon is not None else config.forecast.horizon_periods,
            period or config.forecast.period,
            **_forecast_options(config, apply_seasonality=not no_seasonality),
        )
    except InvalidConfigurationError as exc:
        typer.echo(f"[ERROR] {exc}", err=True)
        raise typer.Exit(code=1)

    if metric is not None:
        if metric not in forecasts:
            typer.echo(f"[WARN] Snapshot has no data for metric '{metric}'.")
            return
        forecasts = {metric: forecasts[metric]}

    typer.echo(format_forecast_table(forecasts))


@app.command("segment")
def segment_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """RFM-segment the snapshot's customers."""
    from crm_analytics.analytics.segmentation import segment
    from crm_analytics.reporting.formatters import format_segments_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    typer.echo(format_segments_table(segment(snapshot.customers or [], as_of=snapshot.as_of)))


@app.command("score-leads")
def score_leads_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Score and grade the snapshot's leads, best first."""
    from crm_analytics.analytics.scoring import score_leads
    from crm_analytics.reporting.formatters import format_lead_scores_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    typer.echo(format_lead_scores_table(score_leads(snapshot.leads or [])))


@app.command("assess-churn")
def assess_churn_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Churn probability and risk level per customer, riskiest first."""
    from crm_analytics.analytics.scoring import assess_churn_batch
    from crm_analytics.reporting.formatters import format_churn_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    typer.echo(format_churn_table(assess_churn_batch(snapshot.customers or [], as_of=snapshot.as_of)))


@app.command("attribution")
def attribution_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Attribute conversion revenue to campaigns under all four rules."""
    from crm_analytics.analytics.attribution import analyze_attribution, top_campaign
    from crm_analytics.reporting.formatters import format_attribution_table

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    results = analyze_attribution(snapshot.marketing or [], snapshot.conversions or [])
    typer.echo(format_attribution_table(results))

    leader = top_campaign(results)
    if leader is not None:
        typer.echo("")
        typer.echo(f"  Top campaign (time decay): {leader.campaign_name or leader.campaign_id}")


@app.command("archive-snapshot")
def archive_snapshot_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    source: str = typer.Option(
        "crm-export", "--source", help="Source name used in the archive path."
    ),
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Validate a snapshot and store it under data.snapshot_dir with a _meta envelope."""
    from crm_analytics.ingestion.snapshot import build_snapshot_path, write_snapshot
    from crm_analytics.utils.time_utils import utcnow

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    dest = build_snapshot_path(config.data.snapshot_dir, source, utcnow())
    content_hash = write_snapshot(snapshot, dest, source=source)
    typer.echo(f"[OK] Archived {snapshot_path} -> {dest}  (hash {content_hash[:12]})")


@app.command("optimize")
def optimize_cmd(
    snapshot_path: str = _SNAPSHOT_OPTION,
    config_path: Optional[str] = _CONFIG_OPTION,
) -> None:
    """Price, inventory and competitor suggestions."""
    from crm_analytics.engine import generate_optimizations
    from crm_analytics.reporting.formatters import format_optimization_report

    config = _load_config_or_exit(config_path)
    _configure_logging(config)
    snapshot = _load_snapshot_or_exit(snapshot_path)

    typer.echo(format_optimization_report(generate_optimizations(snapshot)))


if __name__ == "__main__":
    app()
