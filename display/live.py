"""Rich live display — one row per pipeline stage, updating in real time.

The display layer is fully decoupled from the runtime. It subscribes to an
asyncio.Queue of StageEvents and renders them into a live terminal table.
The runtime runs whether or not a display is attached; it just puts events
into the queue and never checks if anyone is reading.

Usage:
    event_queue = asyncio.Queue()
    display = LiveDisplay()

    with display.make_live() as live:
        pipeline = asyncio.create_task(runtime.investigate(signal, event_queue))
        consumer = asyncio.create_task(display.consume(event_queue, live))
        case = await pipeline
        await event_queue.put(None)  # sentinel: tells consume() to stop
        await consumer
"""

import asyncio
from dataclasses import dataclass

from rich.live import Live
from rich.panel import Panel
from rich.table import Table

from schemas.events import StageEvent, StageStatus, TriageStage


# ── Per-stage state ───────────────────────────────────────────────────────────

@dataclass
class _StageState:
    """Mutable state for one stage row.

    Updated by _apply() each time an event arrives.
    """
    stage: TriageStage
    status: str = "waiting"    # waiting | running | complete | error
    elapsed_ms: float = 0.0
    message: str = ""


# ── Display ───────────────────────────────────────────────────────────────────

class LiveDisplay:
    """Manages the Rich live layout and subscribes to the event queue.

    Attributes:
        _states: Stage → _StageState, updated as events arrive. Dict order
            follows TriageStage, which is pipeline order.
    """

    def __init__(self, stages: list[TriageStage] | None = None) -> None:
        stages = stages or list(TriageStage)
        self._states = {stage: _StageState(stage=stage) for stage in stages}

    def make_live(self) -> Live:
        """Return a Rich Live context manager ready to use with `with`."""
        return Live(self._render(), refresh_per_second=12, transient=False)

    async def consume(self, queue: asyncio.Queue, live: Live) -> None:
        """Read events from the queue and update the display until sentinel.

        Args:
            queue: The asyncio.Queue the runtime writes StageEvents into.
            live: The active Rich Live context to update on each event.
        """
        while True:
            event = await queue.get()
            if event is None:
                break
            self._apply(event)
            live.update(self._render())

    # ── Private ───────────────────────────────────────────────────────────────

    def _apply(self, event: StageEvent) -> None:
        """Update the stage state from an incoming event."""
        state = self._states.get(event.stage)
        if state is None:
            return

        state.elapsed_ms = event.timestamp_ms
        state.message = event.message

        if event.status == StageStatus.STARTED:
            state.status = "running"
        elif event.status == StageStatus.COMPLETE:
            state.status = "complete"
        elif event.status == StageStatus.ERROR:
            state.status = "error"

    def _render(self) -> Panel:
        """Build the stage table inside a bordered panel."""
        icons = {
            "waiting":  "[dim]○[/dim]",
            "running":  "[bold yellow]●[/bold yellow]",
            "complete": "[bold green]✓[/bold green]",
            "error":    "[bold red]✗[/bold red]",
        }

        table = Table.grid(padding=(0, 2))
        table.add_column(width=2)
        table.add_column(style="bold", min_width=24)
        table.add_column(style="dim", justify="right", width=8)
        table.add_column(style="dim")

        for state in self._states.values():
            elapsed = f"{state.elapsed_ms / 1000:.2f}s" if state.status != "waiting" else ""
            table.add_row(
                icons.get(state.status, "○"),
                state.stage.value.replace("_", " "),
                elapsed,
                state.message,
            )

        failed = any(s.status == "error" for s in self._states.values())
        return Panel(table, title="[bold]triage[/bold]", border_style="red" if failed else "bright_black")
