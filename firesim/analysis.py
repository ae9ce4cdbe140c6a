"""Post-run mission analysis.

Turns the mission log of a run into a pandas DataFrame, aggregates it per
drone and draws a mission timeline. Plots are rendered off-screen (Agg backend)
and written to a file.
"""

from __future__ import annotations

from collections.abc import Iterable
from pathlib import Path

import matplotlib

matplotlib.use("Agg")

import matplotlib.pyplot as plt  # noqa: E402
import numpy as np  # noqa: E402
import pandas as pd  # noqa: E402

from firesim.mission import MissionOutcome, MissionRecord  # noqa: E402

COLUMNS = [
    "drone_id",
    "zone_id",
    "timestamp",
    "severity",
    "outcome",
    "travel_time",
    "extinguish_time",
    "return_time",
    "simulated_duration",
    "volume_required",
    "volume_dropped",
    "agent_left",
    "started_at",
    "ended_at",
]

OUTCOME_COLORS = {
    MissionOutcome.COMPLETED.name: "tab:green",
    MissionOutcome.PARTIAL.name: "tab:orange",
    MissionOutcome.REJECTED.name: "tab:gray",
    MissionOutcome.ABANDONED.name: "tab:red",
}


def missions_dataframe(records: Iterable[MissionRecord]) -> pd.DataFrame:
    """One row per mission record, ordered by start time.

    ``started_at``/``ended_at`` are rebased so the earliest mission starts at 0.
    """
    df = pd.DataFrame([r.as_dict() for r in records], columns=COLUMNS)
    if df.empty:
        return df
    origin = df["started_at"].min()
    df["started_at"] -= origin
    df["ended_at"] -= origin
    return df.sort_values("started_at", kind="stable").reset_index(drop=True)


def summarize_missions(df: pd.DataFrame) -> pd.DataFrame:
    """Aggregate a missions DataFrame per drone.

    Returns:
        pandas.DataFrame: Indexed by ``drone_id`` with the columns ``missions``,
        ``completed``, ``partial``, ``rejected``, ``abandoned``,
        ``agent_dropped``, ``mean_duration``, ``std_duration`` and
        ``completion_rate``. Durations are simulated seconds over the missions
        that actually flew (completed or partial).
    """
    columns = [
        "missions",
        "completed",
        "partial",
        "rejected",
        "abandoned",
        "agent_dropped",
        "mean_duration",
        "std_duration",
        "completion_rate",
    ]
    if df.empty:
        return pd.DataFrame(columns=columns, index=pd.Index([], name="drone_id"))

    rows = {}
    for drone_id, group in df.groupby("drone_id"):
        outcomes = group["outcome"].value_counts()
        flown = group.loc[group["outcome"].isin(["COMPLETED", "PARTIAL"]), "simulated_duration"]
        durations = flown.to_numpy(dtype=float)
        completed = int(outcomes.get("COMPLETED", 0))
        rows[drone_id] = {
            "missions": len(group),
            "completed": completed,
            "partial": int(outcomes.get("PARTIAL", 0)),
            "rejected": int(outcomes.get("REJECTED", 0)),
            "abandoned": int(outcomes.get("ABANDONED", 0)),
            "agent_dropped": float(group["volume_dropped"].sum()),
            "mean_duration": float(np.mean(durations)) if durations.size else np.nan,
            "std_duration": float(np.std(durations)) if durations.size else np.nan,
            "completion_rate": completed / len(group),
        }

    summary = pd.DataFrame.from_dict(rows, orient="index", columns=columns)
    summary.index.name = "drone_id"
    return summary.sort_index()


def plot_mission_timeline(
    records: Iterable[MissionRecord],
    path: str | Path,
    title: str = "Drone Mission Timeline",
) -> Path | None:
    """Draw one horizontal bar per mission, one lane per drone, and save it.

    Bars span the wall-clock interval of each mission and are colored by outcome.

    Returns:
        Path | None: The written file, or None if there was nothing to plot.
    """
    df = missions_dataframe(records)
    if df.empty:
        return None

    drone_ids = sorted(df["drone_id"].unique())
    fig, ax = plt.subplots(figsize=(12, 1.0 + 0.6 * len(drone_ids)))
    try:
        for lane, drone_id in enumerate(drone_ids):
            rows = df[df["drone_id"] == drone_id]
            spans = list(zip(rows["started_at"], rows["ended_at"] - rows["started_at"]))
            colors = [OUTCOME_COLORS[o] for o in rows["outcome"]]
            ax.broken_barh(spans, (lane - 0.4, 0.8), facecolors=colors, edgecolor="black", linewidth=0.5)

        ax.set_yticks(range(len(drone_ids)))
        ax.set_yticklabels([f"Drone {i}" for i in drone_ids])
        ax.set_xlabel("Wall-clock time since first mission (s)")
        ax.set_title(title)
        ax.grid(True, alpha=0.3, axis="x")

        for outcome, color in OUTCOME_COLORS.items():
            ax.plot([], [], color=color, linewidth=6, label=outcome.title())
        ax.legend(loc="upper right")

        fig.tight_layout()
        path = Path(path)
        fig.savefig(path)
    finally:
        plt.close(fig)
    return path
