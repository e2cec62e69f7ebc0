"""
Command-line interface for the Alert Correlator.

Provides commands for generating correlated supporting logs, batches of
alert scenarios and detection-simulated campaigns, and for managing
configuration.
"""

import asyncio
import json
import logging
import sys
from pathlib import Path
from typing import Optional, Tuple

import click
import yaml
from rich.console import Console
from rich.logging import RichHandler
from rich.panel import Panel
from rich.progress import BarColumn, Progress, SpinnerColumn, TextColumn
from rich.prompt import Confirm
from rich.table import Table

from . import __version__, mitre
from .builder.correlation import LogCorrelationEngine
from .builder.events import Trigger
from .builder.orchestrator import AttackOrchestrator
from .builder.timestamp_gen import WindowPolicy, format_timestamp, utcnow
from .config import (
    BatchConfig,
    CampaignConfig,
    CampaignType,
    Complexity,
    ConfigLoader,
    SinkConfig,
    TimestampConfig,
    TimestampPattern,
)
from .config.defaults import PROFILE_TEMPLATES
from .errors import CorrelatorError
from .random.profiles import CAMPAIGN_STAGES, PROFILES, THREAT_ACTORS
from .runtime import CancellationToken
from .sinks import get_sink, list_supported_sinks
from .templates import default_registry, narrative_for

console = Console()


def _setup_logging(verbose: int) -> None:
    level = logging.WARNING
    if verbose == 1:
        level = logging.INFO
    elif verbose > 1:
        level = logging.DEBUG
    logging.basicConfig(
        level=level,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True, show_path=False)],
        force=True,
    )


def _load_config(config: Optional[str]) -> ConfigLoader:
    if not config:
        return ConfigLoader()
    loader = ConfigLoader(config).load()
    loader.validate()
    return loader


def _fail(message: str) -> None:
    console.print(f"[red]✗ {message}[/red]")
    sys.exit(1)


# ============================================================
# Main CLI Group
# ============================================================

@click.group()
@click.version_option(version=__version__, prog_name="alert-correlator")
@click.option("--verbose", "-v", count=True, help="Increase log verbosity (-v info, -vv debug)")
@click.pass_context
def cli(ctx, verbose: int):
    """
    Alert Correlator

    Generate supporting logs for security alerts, simulate detection
    across multi-stage campaigns, and build investigation timelines.
    """
    ctx.ensure_object(dict)
    _setup_logging(verbose)


# ============================================================
# CORRELATE Command
# ============================================================

@cli.command()
@click.option("--alert", "alert_file", type=click.Path(exists=True), default=None,
              help="Alert document (JSON) to correlate")
@click.option("--technique", "-t", type=str, default=None, help="MITRE technique id of the alert")
@click.option("--host", "host_name", type=str, default=None, help="Host the alert fired on")
@click.option("--user", "user_name", type=str, default=None, help="User the alert belongs to")
@click.option("--timestamp", type=str, default=None, help="Alert timestamp (ISO-8601, default: now)")
@click.option("--count", "-n", type=int, default=None, help="Number of supporting logs")
@click.option("--window-start", type=str, default=None, help="Sample logs from a window starting here")
@click.option("--window-end", type=str, default=None, help="Window end (default: alert timestamp)")
@click.option(
    "--pattern",
    type=click.Choice([p.value for p in TimestampPattern]),
    default=TimestampPattern.UNIFORM.value,
    help="Timestamp pattern for window sampling",
)
@click.option("--config", "-c", type=click.Path(exists=True), default=None, help="Configuration file or directory")
@click.option("--output", "-o", type=click.Path(), default=None, help="Write the log set as JSON")
@click.option("--seed", type=int, default=None, help="Random seed for reproducibility")
def correlate(
    alert_file: Optional[str], technique: Optional[str], host_name: Optional[str], user_name: Optional[str],
    timestamp: Optional[str], count: Optional[int], window_start: Optional[str], window_end: Optional[str],
    pattern: str, config: Optional[str], output: Optional[str], seed: Optional[int],
):
    """Generate the supporting logs behind a single alert."""
    try:
        loader = _load_config(config)
        settings = loader.correlation
        log_count = settings.log_count if count is None else count

        if alert_file:
            with open(alert_file, "r") as f:
                trigger = Trigger.from_document(json.load(f), default_technique=technique or "T1059")
        else:
            anchor = timestamp or settings.alert_timestamp or utcnow()
            trigger = Trigger(
                host=host_name or settings.host_name or "host1",
                user=user_name or settings.user_name or "alice",
                technique_id=technique or "T1059",
                anchor_timestamp=anchor,
            )
        anchor = trigger.anchor_timestamp
        technique = trigger.technique_id

        policy = None
        window = settings.timestamp_config
        if window_start:
            window = TimestampConfig(start_date=window_start, end_date=window_end, pattern=pattern)
        if window is not None:
            policy = WindowPolicy.from_config(window, anchor).clamped(anchor)

        engine = LogCorrelationEngine(seed=seed)
        result = engine.generate(trigger, log_count, policy)
    except (CorrelatorError, ValueError, KeyError) as e:
        _fail(str(e))
        return

    table = Table(title=f"Supporting logs for {technique} on {trigger.host}")
    table.add_column("#", style="dim")
    table.add_column("Timestamp", style="cyan")
    table.add_column("Dataset", style="green")
    table.add_column("Action", style="white")
    for i, log in enumerate(result.events, 1):
        table.add_row(str(i), format_timestamp(log.timestamp), log.dataset, log.action)
    console.print(table)

    for err in result.errors:
        console.print(f"[yellow]⚠ Skipped slot {err.slot}: {err.error}[/yellow]")

    narrative = narrative_for(technique)
    if output:
        payload = {
            "trigger": {
                "@timestamp": format_timestamp(anchor),
                "host": trigger.host,
                "user": trigger.user,
                "techniqueId": technique,
            },
            "supportingLogs": [log.to_document() for log in result.events],
            "attackNarrative": narrative,
        }
        Path(output).parent.mkdir(parents=True, exist_ok=True)
        with open(output, "w") as f:
            json.dump(payload, f, indent=2, default=str)

    console.print(Panel.fit(
        f"[bold]Template:[/bold] {result.template}\n"
        f"[bold]Logs:[/bold] {len(result.events)}\n"
        f"[bold]Narrative:[/bold] {narrative}"
        + (f"\n[bold]Written to:[/bold] {output}" if output else ""),
        title="Correlation Complete",
    ))


# ============================================================
# BATCH Command
# ============================================================

def _sink_config(loader: ConfigLoader, sink: Optional[str], output_dir: Optional[str], fmt: Optional[str]) -> SinkConfig:
    base = loader.sink
    update = {}
    if sink:
        update["type"] = sink
    if output_dir:
        update["output_dir"] = output_dir
    if fmt:
        update["format"] = fmt
    return base.model_copy(update=update)


@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), default=None, help="Configuration file or directory")
@click.option("--count", "-n", type=int, default=None, help="Number of scenarios")
@click.option("--technique", "-t", "techniques", multiple=True, help="Technique to draw alerts from (repeatable)")
@click.option("--log-count", type=int, default=None, help="Supporting logs per alert")
@click.option("--concurrency", type=int, default=None, help="Scenarios generated concurrently per group")
@click.option("--space", type=str, default=None, help="Kibana space for alerts")
@click.option("--sink", type=click.Choice(list_supported_sinks()), default=None, help="Output sink")
@click.option("--output-dir", "-o", type=click.Path(), default=None, help="Output directory for file sink")
@click.option("--format", "fmt", type=click.Choice(["ndjson", "json"]), default=None, help="File format")
@click.option("--seed", type=int, default=None, help="Random seed for reproducibility")
def batch(
    config: Optional[str], count: Optional[int], techniques: Tuple[str, ...], log_count: Optional[int],
    concurrency: Optional[int], space: Optional[str], sink: Optional[str], output_dir: Optional[str],
    fmt: Optional[str], seed: Optional[int],
):
    """Generate a batch of alerts with supporting logs."""
    try:
        loader = _load_config(config)
        update = {
            key: value for key, value in {
                "count": count,
                "log_count": log_count,
                "concurrency": concurrency,
                "space": space,
                "techniques": list(techniques) or None,
            }.items() if value is not None
        }
        batch_config = BatchConfig(**{**loader.batch.model_dump(), **update})
        sink_config = _sink_config(loader, sink, output_dir, fmt)
        document_sink = get_sink(sink_config.type, sink_config)
    except (CorrelatorError, ValueError) as e:
        _fail(str(e))
        return

    console.print(f"\n[bold blue]Generating {batch_config.count} correlated scenarios...[/bold blue]\n")
    orchestrator = AttackOrchestrator(seed=seed)
    token = CancellationToken()

    async def run():
        with Progress(
            SpinnerColumn(),
            TextColumn("[progress.description]{task.description}"),
            BarColumn(),
            TextColumn("{task.completed}/{task.total}"),
            console=console,
        ) as progress:
            task = progress.add_task("Generating scenarios...", total=batch_config.count)
            result = await orchestrator.generate_batch(
                config=batch_config,
                cancel_token=token,
                progress_callback=lambda done, total: progress.update(task, completed=done),
            )
            progress.update(task, description="Writing documents...")
            ingest = await orchestrator.write(
                orchestrator.extract_for_indexing(result.scenarios), document_sink, token
            )
            progress.update(task, description="[green]Batch generated!")
        return result, ingest

    try:
        result, ingest = asyncio.run(run())
    except KeyboardInterrupt:
        token.cancel("interrupted")
        _fail("Interrupted")
        return
    except CorrelatorError as e:
        _fail(str(e))
        return

    console.print(Panel.fit(
        f"[green]Batch generated successfully![/green]\n\n"
        f"Scenarios: {len(result.scenarios)} "
        f"([green]{result.success_count} ok[/green], [yellow]{result.failure_count} fallback[/yellow])\n"
        f"Documents written: {ingest.documents_written}\n"
        f"Sink: {document_sink.name}"
        + (f" ({sink_config.output_dir})" if document_sink.name == "file" else ""),
        title="Generation Complete",
    ))


# ============================================================
# CAMPAIGN Command
# ============================================================

@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), default=None, help="Configuration file or directory")
@click.option(
    "--type", "-t", "campaign_type",
    type=click.Choice([t.value for t in CampaignType]), default=None, help="Campaign type",
)
@click.option(
    "--complexity",
    type=click.Choice([c.value for c in Complexity]), default=None, help="Campaign complexity",
)
@click.option("--count", "-n", type=int, default=1, help="Number of campaigns")
@click.option("--detection-rate", type=float, default=None, help="Probability a stage is detected (0.0-1.0)")
@click.option("--logs-per-stage", type=int, default=None, help="Supporting logs per stage technique")
@click.option("--sink", type=click.Choice(list_supported_sinks()), default=None, help="Output sink")
@click.option("--output-dir", "-o", type=click.Path(), default=None, help="Output directory for file sink")
@click.option("--format", "fmt", type=click.Choice(["ndjson", "json"]), default=None, help="File format")
@click.option("--timeline/--no-timeline", default=True, help="Show the campaign timeline")
@click.option("--seed", type=int, default=None, help="Random seed for reproducibility")
def campaign(
    config: Optional[str], campaign_type: Optional[str], complexity: Optional[str], count: int,
    detection_rate: Optional[float], logs_per_stage: Optional[int], sink: Optional[str],
    output_dir: Optional[str], fmt: Optional[str], timeline: bool, seed: Optional[int],
):
    """Generate realistic multi-stage campaigns with detection simulation."""
    try:
        loader = _load_config(config)
        data = loader.campaign.model_dump()
        if campaign_type:
            data["campaign_type"] = campaign_type
        if complexity:
            data["complexity"] = complexity
        if logs_per_stage is not None:
            data["logs_per_stage"] = logs_per_stage
        if detection_rate is not None:
            data["detection"]["detection_rate"] = detection_rate
        campaign_config = CampaignConfig(**data)
        sink_config = _sink_config(loader, sink, output_dir, fmt)
        document_sink = get_sink(sink_config.type, sink_config)
    except (CorrelatorError, ValueError) as e:
        _fail(str(e))
        return

    console.print(
        f"\n[bold blue]Generating {count} {campaign_config.campaign_type.value} "
        f"campaign(s) ({campaign_config.complexity.value})...[/bold blue]\n"
    )
    orchestrator = AttackOrchestrator(seed=seed)
    token = CancellationToken()

    async def run():
        with Progress(SpinnerColumn(), TextColumn("[progress.description]{task.description}"), console=console) as progress:
            task = progress.add_task("Simulating campaigns...", total=None)
            result = await orchestrator.generate_realistic_campaigns(count, campaign_config, token)
            progress.update(task, description="Writing documents...")
            ingest = await orchestrator.write(
                orchestrator.extract_campaign_for_indexing(result.results), document_sink, token
            )
            progress.update(task, description="[green]Campaigns generated!")
        return result, ingest

    try:
        batch_result, ingest = asyncio.run(run())
    except KeyboardInterrupt:
        token.cancel("interrupted")
        _fail("Interrupted")
        return
    except CorrelatorError as e:
        _fail(str(e))
        return

    for result in batch_result.results:
        _print_campaign(result, timeline)

    for failure in batch_result.failures:
        console.print(f"[yellow]⚠ Campaign {failure.index + 1} failed: {failure.error}[/yellow]")

    console.print(Panel.fit(
        f"Campaigns: {len(batch_result.results)} "
        f"([yellow]{len(batch_result.failures)} failed[/yellow])\n"
        f"Documents written: {ingest.documents_written}\n"
        f"Sink: {document_sink.name}",
        title="Generation Complete",
    ))


def _print_campaign(result, show_timeline: bool) -> None:
    campaign = result.campaign
    summary = result.summary()

    stages = Table(title=f"{campaign.name} ({campaign.threat_actor.name})")
    stages.add_column("Stage", style="cyan")
    stages.add_column("Techniques", style="white")
    stages.add_column("Logs", style="green")
    stages.add_column("Detected", style="white")
    stages.add_column("Delay", style="dim")
    for stage in result.stage_logs:
        stages.add_row(
            stage.stage_name,
            ", ".join(stage.techniques),
            str(len(stage.logs)),
            "[green]✓[/green]" if stage.detected else "[red]✗[/red]",
            f"{stage.detection_delay_minutes}m" if stage.detection_delay_minutes else "-",
        )
    console.print(stages)

    if show_timeline and result.timeline is not None:
        events = Table(title="Timeline")
        events.add_column("Timestamp", style="cyan")
        events.add_column("Type", style="white")
        events.add_column("Description", style="white")
        for event in result.timeline.stages:
            style = {"alert": "red", "stage_start": "bold"}.get(event.kind, "dim")
            events.add_row(format_timestamp(event.timestamp), f"[{style}]{event.kind}[/{style}]", event.description)
        console.print(events)

    guide = "\n".join(
        f"{step.step}. {step.action}\n   [dim]{step.query}[/dim]" for step in result.investigation_guide
    )
    console.print(Panel(guide or "No steps", title="Investigation Guide"))
    console.print(
        f"[bold]Detected:[/bold] {summary['detected_stages']}/{summary['stages']} stages, "
        f"{summary['alerts']} alerts, {summary['missed']} missed\n"
    )


# ============================================================
# INIT Command
# ============================================================

@cli.command()
@click.option(
    "--template",
    "-t",
    type=click.Choice(sorted(PROFILE_TEMPLATES)),
    default="standard",
    help="Profile template to use",
)
@click.option(
    "--output",
    "-o",
    type=click.Path(),
    default="./config",
    help="Output directory for configuration files",
)
@click.option("--force", "-f", is_flag=True, help="Overwrite without asking")
def init(template: str, output: str, force: bool):
    """Initialize a new configuration from a template."""
    output_path = Path(output)

    console.print(f"\n[bold blue]Initializing configuration from '{template}' template...[/bold blue]\n")

    if output_path.exists() and any(output_path.iterdir()) and not force:
        if not Confirm.ask(f"[yellow]Directory {output} is not empty. Overwrite?[/yellow]"):
            console.print("[red]Aborted.[/red]")
            return

    output_path.mkdir(parents=True, exist_ok=True)
    profile = PROFILE_TEMPLATES[template]

    files_written = []
    for section in ConfigLoader.SECTIONS:
        file_path = output_path / f"{section}.yaml"
        with open(file_path, "w") as f:
            yaml.dump(profile[section], f, default_flow_style=False, sort_keys=False)
        files_written.append(file_path)

    files_display = "\n".join(f"  - {f}" for f in files_written)
    console.print(Panel.fit(
        f"[green]Configuration initialized![/green]\n\n"
        f"[bold]Files created:[/bold]\n{files_display}\n\n"
        f"[bold]Next steps:[/bold]\n"
        f"  alert-correlator validate -c {output}\n"
        f"  alert-correlator campaign -c {output}",
        title="Init Complete",
    ))


# ============================================================
# VALIDATE Command
# ============================================================

@cli.command()
@click.option("--config", "-c", type=click.Path(exists=True), required=True, help="Configuration to validate")
def validate(config: str):
    """Validate configuration files."""
    console.print(f"\n[bold blue]Validating configuration: {config}[/bold blue]\n")

    try:
        loader = _load_config(config)
    except CorrelatorError as e:
        _fail(f"Validation failed: {e}")
        return

    console.print("[green]✓ Configuration is valid![/green]\n")

    loaded = loader.loaded_sections()
    table = Table(title="Configuration Summary")
    table.add_column("Section", style="cyan")
    table.add_column("Status", style="green")
    table.add_column("Details", style="white")

    campaign_cfg = loader.campaign
    batch_cfg = loader.batch
    details = {
        "correlation": f"{loader.correlation.log_count} logs per alert",
        "campaign": (
            f"{campaign_cfg.campaign_type.value}/{campaign_cfg.complexity.value}, "
            f"detection rate {campaign_cfg.detection.detection_rate}"
        ),
        "batch": f"{batch_cfg.count} scenarios, concurrency {batch_cfg.concurrency}",
        "sink": f"{loader.sink.type} ({loader.sink.format})",
    }
    for section in ConfigLoader.SECTIONS:
        table.add_row(
            section.capitalize(),
            "✓" if section in loaded else "○",
            details[section] if section in loaded else "Using defaults",
        )
    console.print(table)


# ============================================================
# LIST Command
# ============================================================

@cli.command("list")
@click.argument("resource", type=click.Choice(["techniques", "templates", "campaigns", "profiles", "sinks"]))
@click.option("--tactic", "-t", type=str, help="Filter techniques by tactic")
def list_resources(resource: str, tactic: Optional[str]):
    """List available resources (techniques, templates, campaigns, profiles, sinks)."""
    if resource == "techniques":
        table = Table(title="Technique Catalog")
        table.add_column("ID", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Tactic", style="green")
        table.add_column("Severity", style="yellow")
        for tid, info in sorted(mitre.TECHNIQUES.items()):
            if tactic and info.tactic != tactic:
                continue
            table.add_row(tid, info.name, info.tactic, mitre.severity_for(tid).value)
        console.print(table)

    elif resource == "templates":
        registry = default_registry()
        table = Table(title="Log Templates")
        table.add_column("Family", style="cyan")
        table.add_column("Name", style="white")
        table.add_column("Narrative", style="dim")
        for tid in registry.technique_ids():
            table.add_row(tid, registry.templates[tid].name, narrative_for(tid))
        table.add_row("*", registry.default.name, narrative_for(""))
        console.print(table)

    elif resource == "campaigns":
        table = Table(title="Campaign Types")
        table.add_column("Type", style="cyan")
        table.add_column("Threat Actors", style="white")
        table.add_column("Stages", style="green")
        for campaign_type, stages in CAMPAIGN_STAGES.items():
            table.add_row(
                campaign_type.value,
                ", ".join(actor.name for actor in THREAT_ACTORS[campaign_type]),
                " → ".join(stage.name for stage in stages),
            )
        console.print(table)

        complexity = Table(title="Complexity Levels")
        complexity.add_column("Level", style="cyan")
        complexity.add_column("Description", style="white")
        for level, profile in PROFILES.items():
            complexity.add_row(level.value, profile.description)
        console.print(complexity)

    elif resource == "profiles":
        table = Table(title="Available Profile Templates")
        table.add_column("Profile", style="cyan")
        table.add_column("Description", style="white")
        for name, profile in PROFILE_TEMPLATES.items():
            table.add_row(name, profile.get("description", ""))
        console.print(table)

    elif resource == "sinks":
        table = Table(title="Supported Sinks")
        table.add_column("Sink", style="cyan")
        table.add_column("Description", style="white")
        table.add_row("file", "NDJSON or JSON file per collection")
        table.add_row("memory", "In-process collections (dry run)")
        console.print(table)


# ============================================================
# Entry Point
# ============================================================

if __name__ == "__main__":
    cli()
