"""
JumpEvo – Main Entry Point
==========================

Usage examples:
  python main.py                              # 100 generations, 50 genomes
  python main.py --gens 30 --pop 100          # custom parameters
  python main.py --mutation_mode fixed        # constant sigma = 0.2
  python main.py --seed 42 --workers 4        # reproducible, parallel episodes
  python main.py --no_mutation                # elites + clones only (demonstration)
"""

import argparse
import os

from game import Game
from trainer import Trainer
from visualizer import (ensure_dirs, save_fitness_chart, save_episode_chart,
                        append_csv, FrameRecorder)
from config import (SAVE_DIR, CHART_INTERVAL, POPULATION, MAX_GENERATIONS,
                    MUTATION_RATE, MUTATION_MODE, MUTATION_MODES,
                    ELITE_FRACTION, PLAYFIELD_WIDTH, PLAYFIELD_HEIGHT,
                    ConfigError)


# ──────────────────────────────────────────────────────────────────────────────
# CLI
# ──────────────────────────────────────────────────────────────────────────────

def build_parser():
    p = argparse.ArgumentParser(description="JumpEvo – evolve a jump policy for an obstacle runner")
    p.add_argument("--gens",       type=int,   default=MAX_GENERATIONS,
                   help="Number of generations to run")
    p.add_argument("--pop",        type=int,   default=POPULATION,
                   help="Population size")
    p.add_argument("--mutation",   type=float, default=MUTATION_RATE,
                   help="Per-gene mutation probability")
    p.add_argument("--mutation_mode", default=MUTATION_MODE,
                   choices=list(MUTATION_MODES),
                   help="Noise scale: fixed sigma or elite-spread adaptive sigma")
    p.add_argument("--elite",      type=float, default=ELITE_FRACTION,
                   help="Fraction of the population kept unchanged")
    p.add_argument("--no_mutation",action="store_true",
                   help="Set mutation rate to 0 (demonstration)")
    p.add_argument("--width",      type=float, default=PLAYFIELD_WIDTH,
                   help="Playfield width (normalisation only)")
    p.add_argument("--height",     type=float, default=PLAYFIELD_HEIGHT,
                   help="Playfield height")
    p.add_argument("--seed",       type=int,   default=None,
                   help="Random seed for reproducibility")
    p.add_argument("--workers",    type=int,   default=1,
                   help="Processes used to evaluate episodes")
    p.add_argument("--outdir",     default=SAVE_DIR,
                   help="Output directory")
    p.add_argument("--chart_interval", type=int, default=CHART_INTERVAL,
                   help="Refresh the fitness chart every N generations")
    p.add_argument("--no_output",  action="store_true",
                   help="Do not write charts or CSV")
    return p


# ──────────────────────────────────────────────────────────────────────────────
# Callbacks
# ──────────────────────────────────────────────────────────────────────────────

class TrainCallbacks:
    """Bundles the per-generation callbacks used by the trainer."""

    def __init__(self, outdir: str, chart_interval: int, all_stats: list):
        self.outdir         = outdir
        self.chart_interval = chart_interval
        self.all_stats      = all_stats

    def on_generation(self, gen_idx, stats, ranked):
        self.all_stats.append(stats)
        append_csv(stats, self.outdir)
        if gen_idx % self.chart_interval == 0 and gen_idx > 0:
            save_fitness_chart(self.all_stats, self.outdir)


def replay(genome, width, height, seed=None):
    """Play one episode with a frame recorder attached."""
    recorder = FrameRecorder()
    result = Game(genome, width, height, seed=seed, on_step=recorder).run()
    return result, recorder.frames


# ──────────────────────────────────────────────────────────────────────────────
# Main
# ──────────────────────────────────────────────────────────────────────────────

def main(argv=None):
    parser = build_parser()
    args = parser.parse_args(argv)
    mutation_rate = 0.0 if args.no_mutation else args.mutation
    if args.chart_interval < 1:
        parser.error("--chart_interval must be at least 1")

    all_stats = []
    callback = None
    if not args.no_output:
        ensure_dirs(args.outdir)
        callback = TrainCallbacks(args.outdir, args.chart_interval,
                                  all_stats).on_generation

    try:
        trainer = Trainer(
            population      = args.pop,
            max_generations = args.gens,
            mutation_rate   = mutation_rate,
            mutation_mode   = args.mutation_mode,
            elite_fraction  = args.elite,
            width           = args.width,
            height          = args.height,
            seed            = args.seed,
            workers         = args.workers,
            on_gen_callback = callback,
        )
    except ConfigError as exc:
        parser.error(str(exc))

    print("=" * 60)
    print("  JumpEvo – Genetic Jump Policy Trainer")
    print("=" * 60)
    print(f"  Population : {args.pop}")
    print(f"  Generations: {args.gens}")
    print(f"  Mutation   : {mutation_rate} ({args.mutation_mode})")
    print(f"  Elites     : {args.elite:.0%}")
    print(f"  Playfield  : {args.width:g}x{args.height:g}")
    print(f"  Workers    : {args.workers}")
    if not args.no_output:
        print(f"  Output dir : {args.outdir}")
    print("=" * 60)

    best = trainer.run()
    if best is None:
        return trainer

    result, frames = replay(best.genome, args.width, args.height, args.seed)
    outcome = "collision" if result.terminated else "time cap"
    print(f"\nReplay of best genome: {result.survival_time:.2f}s ({outcome})")

    if not args.no_output:
        print("Saving final charts …")
        chart = save_fitness_chart(all_stats, args.outdir, "fitness_final.png")
        print(f"  → {chart}")
        episode = save_episode_chart(frames, args.height, "best", args.outdir)
        print(f"  → {episode}")
        print("\nDone! All outputs saved to:", os.path.abspath(args.outdir))
    return trainer


if __name__ == "__main__":
    main()
