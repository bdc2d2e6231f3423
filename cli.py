"""Implant triage — CLI demo runner.

Runs the full pipeline against the seeded demo dataset and renders a live
stage panel in the terminal using Rich, then prints the affected-device
ranking, registry gaps, hypothesis and containment plan.

Usage:
    uv run python cli.py                       # Queens CPU cluster, stub generators
    uv run python cli.py --preset brooklyn     # lot 536 latency cluster
    uv run python cli.py --llm                 # real OpenRouter generators

By default the generators are the deterministic stubs from stubs.py, so the
demo needs no API key.
"""

import argparse
import asyncio
import os
from datetime import datetime, timedelta

from rich.console import Console
from rich.table import Table

from core.errors import DownstreamGenerationError, TriageError
from core.runtime import TriageRuntime
from display.live import LiveDisplay
from gateways.memory import InMemoryDeviceRegistry, InMemoryEvidenceStore
from gateways.seed import NYC_BROOKLYN, NYC_QUEENS, DemoDataset, build_demo_dataset
from schemas.result import IncidentCase, TriageReport
from stubs import StubContainmentPlanner, StubHypothesisGenerator

console = Console()

DEFAULT_MODEL = "anthropic/claude-sonnet-4-6"

_PRESETS = {
    "queens": dict(center=NYC_QUEENS, metric="cpuUsagePct", threshold=48.0),
    "brooklyn": dict(center=NYC_BROOKLYN, metric="neuralLatencyMs", threshold=90.0),
}


# ── Result tables ─────────────────────────────────────────────────────────────

def _print_report(report: TriageReport) -> None:
    a = report.assessment
    risk_color = {"LOW": "green", "MEDIUM": "yellow", "HIGH": "red", "CRITICAL": "bold red"}[a.risk_level.value]
    console.print(
        f"\n  risk        [{risk_color}]{a.risk_level.value}[/{risk_color}]"
        f"  [dim]({a.exceed_count} readings over threshold across {a.evidence_group_count} implants)[/dim]"
    )
    console.print(f"  area        [cyan]{report.blast_radius.geo_summary}[/cyan]")
    console.print(f"  window      [cyan]{report.blast_radius.time_summary}[/cyan]")
    console.print(f"  lots        {', '.join(report.blast_radius.affected_lots) or '—'}")
    console.print(f"  models      {', '.join(report.blast_radius.affected_models) or '—'}")

    if not report.affected:
        console.print("\n[yellow]No implants reported inside the window.[/yellow]")
        return

    table = Table(title="Affected Implants", show_lines=False, border_style="bright_black")
    table.add_column("#",       style="dim",  width=3, justify="right")
    table.add_column("Serial",  style="bold", min_width=20)
    table.add_column("Score",   width=7,      justify="center")
    table.add_column("Lot",     width=6)
    table.add_column("Model",   min_width=14)
    table.add_column("Owner",   style="dim",  min_width=16)

    for i, d in enumerate(report.affected, 1):
        color = "red" if d.anomaly_score >= 0.8 else "yellow" if d.anomaly_score > 0 else "dim"
        table.add_row(
            str(i),
            d.serial_number,
            f"[{color}]{d.anomaly_score:.2f}[/{color}]",
            d.lot_number or "[dim]?[/dim]",
            d.model or "[dim]?[/dim]",
            d.owner_ref or "[dim]?[/dim]",
        )

    console.print()
    console.print(table)

    for gap in report.registry_gaps:
        console.print(f"  [yellow]registry gap[/yellow] {gap.serial_number}: {gap.detail}")


def _print_case(case: IncidentCase) -> None:
    h = case.hypothesis
    console.print(f"\n  hypothesis  [bold]{h.type.value}[/bold] [dim]({h.confidence:.0%})[/dim]")
    for item in h.evidence:
        console.print(f"    [dim]•[/dim] {item}")

    console.print("\n  containment plan")
    for i, step in enumerate(case.plan.steps, 1):
        console.print(f"    {i}. {step.text}")

    approval = (
        "[bold red]⚠  Requires human approval[/bold red]"
        if case.plan.requires_approval
        else "[bold green]✓  May proceed without sign-off[/bold green]"
    )
    console.print(f"\n{approval}")
    console.print(f"[dim]case: {case.id}[/dim]\n")


# ── Entry point ───────────────────────────────────────────────────────────────

def _parse_args() -> argparse.Namespace:
    parser = argparse.ArgumentParser(description="Run the implant triage demo.")
    parser.add_argument("--preset", choices=sorted(_PRESETS), default="queens")
    parser.add_argument("--radius", type=float, default=3000.0, help="meters")
    parser.add_argument("--hours", type=float, default=2.0, help="window length after the incident base time")
    parser.add_argument("--metric", help="override the preset metric")
    parser.add_argument("--threshold", type=float, help="override the preset threshold")
    parser.add_argument("--llm", action="store_true", help="use OpenRouter generators instead of stubs")
    return parser.parse_args()


def _build_runtime(dataset: DemoDataset, use_llm: bool) -> TriageRuntime:
    store = InMemoryEvidenceStore(dataset.entries)
    registry = InMemoryDeviceRegistry(dataset.records)

    if use_llm:
        from agents.containment_agent import ContainmentAgent
        from agents.hypothesis_agent import HypothesisAgent
        from llm.openrouter import OpenRouterClient

        llm = OpenRouterClient(os.environ.get("TRIAGE_MODEL", DEFAULT_MODEL))
        return TriageRuntime(
            store, registry,
            hypothesis_generator=HypothesisAgent(llm),
            containment_planner=ContainmentAgent(llm),
        )

    return TriageRuntime(
        store, registry,
        hypothesis_generator=StubHypothesisGenerator(),
        containment_planner=StubContainmentPlanner(),
    )


async def _run(args: argparse.Namespace) -> None:
    preset = _PRESETS[args.preset]
    dataset = build_demo_dataset(datetime.now())
    incident_base = dataset.incident_base
    signal = {
        "longitude": preset["center"].longitude,
        "latitude": preset["center"].latitude,
        "radius_meters": args.radius,
        "from_time": incident_base,
        "to_time": incident_base + timedelta(hours=args.hours),
        "metric": args.metric or preset["metric"],
        "threshold": args.threshold if args.threshold is not None else preset["threshold"],
    }

    runtime = _build_runtime(dataset, args.llm)
    display = LiveDisplay()
    event_queue: asyncio.Queue = asyncio.Queue()

    console.rule("[bold]Implant Triage[/bold]")
    console.print(f"  preset      [cyan]{args.preset}[/cyan]")
    console.print(f"  generators  [cyan]{'openrouter' if args.llm else 'stub'}[/cyan]")
    console.print()

    case = None
    report = None
    with display.make_live() as live:
        pipeline = asyncio.create_task(runtime.investigate(signal, event_queue=event_queue))
        consumer = asyncio.create_task(display.consume(event_queue, live))
        try:
            case = await pipeline
        except DownstreamGenerationError as exc:
            console.print(f"[red]{exc}[/red]")
            report = exc.report
        except TriageError as exc:
            console.print(f"[red]{exc.stage.value} failed:[/red] {exc}")
        finally:
            await event_queue.put(None)   # sentinel: tell consumer to stop
            await consumer

    if case is not None:
        _print_report(TriageReport(
            signal=case.signal,
            assessment=case.assessment,
            affected=case.affected,
            blast_radius=case.blast_radius,
            registry_gaps=case.registry_gaps,
        ))
        _print_case(case)
    elif report is not None:
        _print_report(report)


def main() -> None:
    asyncio.run(_run(_parse_args()))


if __name__ == "__main__":
    main()
