"""Command line entry point.

    firesim --zones zones.csv --events events.csv [--drones N] [--time-scale S]
            [--live] [--plot out.png] [--log-level L]

Unset options fall back to ``FIRESIM_*`` environment variables, then to the
built-in defaults of :class:`~firesim.config.SimulationConfig`.
"""

from __future__ import annotations

import argparse
import logging
import math
import sys

from rich.console import Console
from rich.live import Live
from rich.markup import escape
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from firesim.analysis import missions_dataframe, plot_mission_timeline, summarize_missions
from firesim.config import SimulationConfig
from firesim.coordinator import CoordinatorSnapshot
from firesim.errors import FiresimError
from firesim.feed import load_events, load_zones
from firesim.log import setup_logging
from firesim.simulator import Simulation, SimulationResult

logger = logging.getLogger(__name__)

CONSOLE = Console()


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="firesim",
        description="Simulate a firefighting drone swarm dispatched from a shared incident queue.",
    )
    parser.add_argument("--zones", required=True, help="zone CSV file: id,(x1;y1),(x2;y2)")
    parser.add_argument("--events", required=True, help="event CSV file: time,zone_id,type,severity")
    parser.add_argument("--drones", type=int, default=None, help="number of drones")
    parser.add_argument(
        "--time-scale",
        type=float,
        default=None,
        help="real seconds per simulated second (0 runs as fast as possible)",
    )
    parser.add_argument("--live", action="store_true", help="show a live drone status panel")
    parser.add_argument("--plot", default=None, help="write a mission timeline plot to this file")
    parser.add_argument("--log-level", default=None, help="DEBUG, INFO, WARNING or ERROR")
    return parser


def config_from_args(args: argparse.Namespace) -> SimulationConfig:
    overrides = {}
    if args.drones is not None:
        overrides["drone_count"] = args.drones
    if args.time_scale is not None:
        overrides["time_scale"] = args.time_scale
    if args.log_level is not None:
        overrides["log_level"] = args.log_level
    return SimulationConfig.from_env(**overrides)


def status_table(snapshot: CoordinatorSnapshot) -> Table:
    table = Table(title="Drone Status", expand=False)
    table.add_column("Drone", justify="right")
    table.add_column("State")
    table.add_column("Position", justify="right")
    table.add_column("Agent", justify="right")
    table.add_column("Mission")
    table.add_column("Fault")

    for drone in snapshot.drones:
        x, y = drone.position
        mission = f"zone {drone.current_mission.zone_id}" if drone.current_mission else "-"
        fault = Text(drone.fault.name, style="bold red") if drone.is_faulted else Text("-")
        table.add_row(
            str(drone.id),
            drone.state,
            f"({x:.0f}, {y:.0f})",
            f"{drone.agent_remaining:.0f}%",
            mission,
            fault,
        )
    return table


def status_panel(snapshot: CoordinatorSnapshot) -> Panel:
    t = Table.grid(padding=(0, 2))
    t.add_row("[b]Phase[/b]: ", snapshot.phase.name)
    t.add_row("[b]Pending Queue Size[/b]: ", str(snapshot.pending_count))
    t.add_row("[b]Completed Queue Size[/b]: ", str(snapshot.completed_count))
    t.add_row("[b]All Submitted[/b]: ", "yes" if snapshot.all_submitted else "no")
    t.add_section()
    t.add_row(status_table(snapshot))
    return Panel(t, title="Current States", padding=(1, 2))


def summary_table(result: SimulationResult) -> Table:
    summary = summarize_missions(missions_dataframe(result.missions))
    table = Table(title="Mission Summary")
    table.add_column("Drone", justify="right")
    for name in ("Missions", "Completed", "Partial", "Rejected", "Abandoned", "Agent Dropped", "Mean Duration"):
        table.add_column(name, justify="right")

    for drone_id, row in summary.iterrows():
        mean = "--" if math.isnan(row["mean_duration"]) else f"{row['mean_duration']:.1f} s"
        table.add_row(
            str(drone_id),
            str(int(row["missions"])),
            str(int(row["completed"])),
            str(int(row["partial"])),
            str(int(row["rejected"])),
            str(int(row["abandoned"])),
            f"{row['agent_dropped']:.0f}%",
            mean,
        )
    return table


def main(argv: list[str] | None = None) -> int:
    args = build_parser().parse_args(argv)

    try:
        config = config_from_args(args)
        setup_logging(config.log_level, console=CONSOLE if args.live else None)
        zones = load_zones(args.zones)
        events = load_events(args.events)
        sim = Simulation(config, zones, events)
    except (FiresimError, OSError) as e:
        CONSOLE.print(f"[bold red]error:[/bold red] {escape(str(e))}")
        return 2

    if args.live:
        with Live(status_panel(sim.coordinator.snapshot_status()), console=CONSOLE, auto_refresh=True) as live:
            result = sim.run(on_tick=lambda snapshot: live.update(status_panel(snapshot)))
    else:
        result = sim.run()

    CONSOLE.print(status_table(result.final_status))
    CONSOLE.print(summary_table(result))
    CONSOLE.print(
        f"[b]{len(result.completed)}[/b] of {len(events)} fires extinguished, "
        f"{result.unserviced} left pending, {result.wall_time:.2f} s wall time"
    )

    if args.plot:
        written = plot_mission_timeline(result.missions, args.plot)
        if written:
            CONSOLE.print(f"Timeline written to {written}")
        else:
            logger.warning("No missions to plot")

    return 1 if result.interrupted else 0


if __name__ == "__main__":
    sys.exit(main())
