"""
Visualizer for JumpEvo.

Produces:
  1. Fitness chart   – best and mean survival time over generations
  2. Episode chart   – agent altitude and obstacle positions over one replayed episode
  3. CSV log         – per-generation stats
"""

import os
import csv
import matplotlib
matplotlib.use("Agg")          # non-interactive backend (no display needed)
import matplotlib.pyplot as plt

from config import SAVE_DIR, LOG_CSV, MAX_EPISODE_TIME


# ──────────────────────────────────────────────────────────────────────────────
# Directory setup
# ──────────────────────────────────────────────────────────────────────────────

def ensure_dirs(base: str = SAVE_DIR):
    for sub in ("charts", "episodes"):
        os.makedirs(os.path.join(base, sub), exist_ok=True)


def _dark_axes(ax, fig):
    ax.set_facecolor("#111111")
    fig.patch.set_facecolor("#111111")
    ax.tick_params(colors="white")
    for spine in ax.spines.values():
        spine.set_edgecolor("#444444")


# ──────────────────────────────────────────────────────────────────────────────
# Fitness chart
# ──────────────────────────────────────────────────────────────────────────────

def save_fitness_chart(stats: list, base: str = SAVE_DIR,
                       filename: str = "fitness.png",
                       max_time: float = MAX_EPISODE_TIME):
    """Plot best and mean survival time across all generations."""
    if not stats:
        return
    gens = [s["generation"] for s in stats]
    best = [s["best"]       for s in stats]
    mean = [s["mean"]       for s in stats]

    fig, ax = plt.subplots(figsize=(12, 5), dpi=100)
    _dark_axes(ax, fig)

    ax.plot(gens, best, color="#44FF44", linewidth=1.2, label="Best", zorder=3)
    ax.plot(gens, mean, color="#CC44FF", linewidth=1.0, linestyle="--",
            label="Mean", zorder=2)
    ax.axhline(max_time, color="#FF8800", linewidth=0.8, alpha=0.6,
               label="Time cap")

    ax.set_xlabel("Generation", color="white")
    ax.set_ylabel("Survival time (s)", color="white")
    ax.set_ylim(0, max_time * 1.05)
    ax.legend(facecolor="#222222", labelcolor="white",
              loc="lower right", fontsize=8)
    ax.set_title("Evolutionary Progress", color="white", fontsize=12)

    plt.tight_layout()
    path = os.path.join(base, "charts", filename)
    plt.savefig(path, dpi=100, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# Episode replay
# ──────────────────────────────────────────────────────────────────────────────

class FrameRecorder:
    """Step observer that keeps every `Game.snapshot()` of an episode."""

    def __init__(self):
        self.frames = []

    def __call__(self, game):
        self.frames.append(game.snapshot())


def save_episode_chart(frames: list, height: float, label: str = "best",
                       base: str = SAVE_DIR):
    """
    Two stacked panels sharing the time axis:
      top    – agent altitude above the ground
      bottom – x position of every live obstacle, with the agent's span shaded
    """
    if not frames:
        return
    times = [f["time"] for f in frames]
    altitude = [height - (f["agent"][1] + f["agent"][3]) for f in frames]
    agent_x, _, agent_w, _ = frames[0]["agent"]

    fig, (top, bottom) = plt.subplots(2, 1, figsize=(10, 6), dpi=100,
                                      sharex=True)
    _dark_axes(top, fig)
    _dark_axes(bottom, fig)

    top.plot(times, altitude, color="#4499FF", linewidth=1.0)
    top.set_ylabel("Altitude (px)", color="white")

    ot, ox, colors = [], [], []
    for f in frames:
        for (x, _, w, _, color) in f["obstacles"]:
            ot.append(f["time"])
            ox.append(x + w / 2)
            colors.append(color)
    if ot:
        bottom.scatter(ot, ox, c=colors, s=1, linewidths=0)
    bottom.axhspan(agent_x, agent_x + agent_w, color="#4499FF", alpha=0.2)
    bottom.set_ylabel("Obstacle x (px)", color="white")
    bottom.set_xlabel("Time (s)", color="white")

    last = frames[-1]
    if not last["alive"]:
        for axis in (top, bottom):
            axis.axvline(last["time"], color="#FF4444", linewidth=1.0)

    outcome = "collision" if not last["alive"] else "time cap"
    top.set_title(f"Episode of {label}  ({last['time']:.2f}s, {outcome})",
                  color="white", fontsize=10)

    plt.tight_layout()
    path = os.path.join(base, "episodes", f"episode_{label}.png")
    plt.savefig(path, dpi=100, bbox_inches="tight",
                facecolor=fig.get_facecolor())
    plt.close(fig)
    return path


# ──────────────────────────────────────────────────────────────────────────────
# CSV log
# ──────────────────────────────────────────────────────────────────────────────

def append_csv(stats: dict, base: str = SAVE_DIR):
    """Append one generation's stats to a CSV file."""
    if not LOG_CSV:
        return
    path = os.path.join(base, "training_log.csv")
    file_exists = os.path.isfile(path)
    with open(path, "a", newline="") as f:
        writer = csv.DictWriter(f, fieldnames=list(stats.keys()))
        if not file_exists:
            writer.writeheader()
        writer.writerow(stats)
    return path
