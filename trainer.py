"""
Genetic-algorithm trainer for JumpEvo.

Orchestrates the evolutionary loop:
  for each generation:
    1. Play one episode per genome (independent random stream each)
    2. Rank by survival time
    3. Keep the elites unchanged
    4. Fill the rest with mutated copies of random elites
    5. Replace the population wholesale and log stats
"""

import math
import threading
import time
from concurrent.futures import ProcessPoolExecutor
from dataclasses import dataclass
from enum import Enum
from functools import partial

import numpy as np
from game import simulate
from genome import (random_genome, check_genome, is_finite, clone_genome,
                    mutate_genome, fixed_sigmas, adaptive_sigmas)
from config import (
    PLAYFIELD_WIDTH, PLAYFIELD_HEIGHT, POPULATION, MAX_GENERATIONS,
    MUTATION_RATE, MUTATION_MODE, ELITE_FRACTION, FIXED_SIGMA, MIN_SIGMA,
    FAILED_FITNESS, PRINT_INTERVAL, ConfigError,
    validate_training, validate_playfield,
)


class TrainerState(Enum):
    IDLE      = "idle"
    RUNNING   = "running"
    PAUSED    = "paused"
    COMPLETED = "completed"


@dataclass
class FitnessRecord:
    genome: list
    fitness: float
    terminated: bool = True    # False when the episode hit the time cap
    failed: bool = False


# ──────────────────────────────────────────────────────────────────────────────
# Generation step (pure functions)
# ──────────────────────────────────────────────────────────────────────────────

def evaluate_genome(genome, seed=None, width=PLAYFIELD_WIDTH,
                    height=PLAYFIELD_HEIGHT) -> FitnessRecord:
    """
    Play one episode. A genome that cannot produce a finite survival time
    is ranked last instead of aborting the generation.
    """
    if not is_finite(genome):
        return FitnessRecord(list(genome), FAILED_FITNESS, False, True)
    try:
        result = simulate(genome, width, height, seed=seed)
    except (ValueError, FloatingPointError):
        return FitnessRecord(list(genome), FAILED_FITNESS, False, True)
    if not math.isfinite(result.survival_time):
        return FitnessRecord(list(genome), FAILED_FITNESS, False, True)
    return FitnessRecord(list(genome), result.survival_time, result.terminated)


def rank(records: list) -> list:
    """Best first. The sort is stable, so ties keep their input order."""
    return sorted(records, key=lambda r: r.fitness, reverse=True)


def best_of(records: list) -> list:
    """Genome of the fittest record."""
    if not records:
        raise ValueError("cannot pick the best of an empty population")
    return clone_genome(rank(records)[0].genome)


def elite_count(population_size: int, fraction: float = ELITE_FRACTION) -> int:
    # round() absorbs float noise such as 30 * 0.1 = 3.0000000000000004
    n = math.ceil(round(population_size * fraction, 9))
    return max(1, min(population_size, n))


def next_generation(ranked: list, population_size: int, mutation_rate: float,
                    n_elite: int, mutation_mode: str = MUTATION_MODE,
                    rng=None):
    """
    Build the next population from records sorted best first.
    Returns (new_population, sigmas).
    """
    if rng is None:
        rng = np.random.default_rng()
    elites = [r.genome for r in ranked[:n_elite]]

    if mutation_mode == "adaptive":
        sigmas = adaptive_sigmas(elites, MIN_SIGMA)
    else:
        sigmas = fixed_sigmas(FIXED_SIGMA)

    new_pop = [clone_genome(g) for g in elites]
    while len(new_pop) < population_size:
        parent = elites[int(rng.integers(0, len(elites)))]
        new_pop.append(mutate_genome(parent, mutation_rate, sigmas, rng))

    return new_pop[:population_size], sigmas


# ──────────────────────────────────────────────────────────────────────────────
# Trainer
# ──────────────────────────────────────────────────────────────────────────────

class Trainer:
    """
    Main training controller.
    """

    def __init__(
        self,
        population:       int   = POPULATION,
        max_generations:  int   = MAX_GENERATIONS,
        mutation_rate:    float = MUTATION_RATE,
        mutation_mode:    str   = MUTATION_MODE,
        elite_fraction:   float = ELITE_FRACTION,
        width:            float = PLAYFIELD_WIDTH,
        height:           float = PLAYFIELD_HEIGHT,
        seed:             int   = None,
        workers:          int   = 1,
        initial_population      = None,
        on_gen_callback         = None,    # called at end of each generation
        verbose:          bool  = True,
    ):
        validate_training(population, max_generations, mutation_rate,
                          mutation_mode, elite_fraction, workers)
        validate_playfield(width, height)
        self.population_size = population
        self.max_generations = max_generations
        self.mutation_rate   = mutation_rate
        self.mutation_mode   = mutation_mode
        self.elite_fraction  = elite_fraction
        self.width           = width
        self.height          = height
        self.workers         = workers
        self.on_gen_callback = on_gen_callback
        self.verbose         = verbose

        # Breeding and episodes draw from independent streams
        breed_seq, self._episode_seq = np.random.SeedSequence(seed).spawn(2)
        self.rng = np.random.default_rng(breed_seq)

        if initial_population is not None:
            if len(initial_population) != population:
                raise ConfigError(
                    f"initial population has {len(initial_population)} genomes, "
                    f"expected {population}")
            self.population = [check_genome(g) for g in initial_population]
        else:
            self.population = [random_genome(self.rng)
                               for _ in range(population)]

        # History
        self.generation  = 0
        self.stats       = []          # list of dicts, one per generation
        self.best_fitness_history = []
        self.best_record = None        # best ever seen, across generations
        self.last_ranked = []

        self.state = TrainerState.IDLE
        self._stop_event   = threading.Event()
        self._resume_event = threading.Event()
        self._resume_event.set()
        self._executor = None

    # ──────────────────────────────────────────────────────────────────────────
    # Public API
    # ──────────────────────────────────────────────────────────────────────────

    def run(self) -> FitnessRecord:
        """Train for max_generations (or until stopped); return the best record."""
        self.state = TrainerState.RUNNING
        if self.workers > 1:
            self._executor = ProcessPoolExecutor(max_workers=self.workers)
        try:
            while self.generation < self.max_generations:
                if not self._wait_at_boundary():
                    break
                self.train_generation()
        finally:
            if self._executor is not None:
                self._executor.shutdown()
                self._executor = None
            self.state = TrainerState.COMPLETED

        if self.verbose:
            if self._stop_event.is_set():
                print(f"  !! Training stopped after {self.generation} generations.")
            print("\n=== Training complete ===")
            if self.best_record is not None:
                print(f"  Best genome  : {self.best_record.genome}")
                print(f"  Best fitness : {self.best_record.fitness:.2f}s")
        return self.best_record

    def pause(self):
        """Suspend at the next generation boundary."""
        self._resume_event.clear()

    def resume(self):
        self._resume_event.set()

    def stop(self):
        """Cancel at the next generation boundary; the population stays intact."""
        self._stop_event.set()
        self._resume_event.set()

    @property
    def stopped(self) -> bool:
        return self._stop_event.is_set()

    @property
    def best_genome(self):
        if self.best_record is None:
            return None
        return clone_genome(self.best_record.genome)

    # ──────────────────────────────────────────────────────────────────────────
    # One generation
    # ──────────────────────────────────────────────────────────────────────────

    def evaluate(self, genomes: list, seeds: list) -> list:
        """One episode per genome; order of the result matches `genomes`."""
        play = partial(evaluate_genome, width=self.width, height=self.height)
        if self._executor is not None:
            return list(self._executor.map(play, genomes, seeds))
        return [play(g, s) for g, s in zip(genomes, seeds)]

    def train_generation(self) -> list:
        """
        Evaluate, rank and breed the current population. The new
        population replaces the old one wholesale and is returned.
        """
        gen_idx = self.generation
        t0 = time.time()

        seeds  = self._episode_seq.spawn(len(self.population))
        ranked = rank(self.evaluate(self.population, seeds))
        n_elite = elite_count(self.population_size, self.elite_fraction)
        new_pop, sigmas = next_generation(
            ranked, self.population_size, self.mutation_rate,
            n_elite, self.mutation_mode, self.rng)

        top = ranked[0]
        if not top.failed and (self.best_record is None
                               or top.fitness > self.best_record.fitness):
            self.best_record = FitnessRecord(clone_genome(top.genome),
                                             top.fitness, top.terminated)

        stats = self._compute_stats(ranked, n_elite, sigmas)
        stats["elapsed_s"] = round(time.time() - t0, 3)

        self.population  = new_pop
        self.last_ranked = ranked
        self.best_fitness_history.append(top.fitness)
        self.stats.append(stats)
        self._print_stats(gen_idx, stats)

        if self.on_gen_callback:
            self.on_gen_callback(gen_idx, stats, ranked)

        self.generation += 1
        return new_pop

    # ──────────────────────────────────────────────────────────────────────────
    # Pause / stop gate
    # ──────────────────────────────────────────────────────────────────────────

    def _wait_at_boundary(self) -> bool:
        """Block while paused. Returns False once stop() was called."""
        if not self._resume_event.is_set():
            self.state = TrainerState.PAUSED
            if self.verbose:
                print("  .. Training paused")
            self._resume_event.wait()
            if self.verbose and not self.stopped:
                print("  .. Training resumed")
        self.state = TrainerState.RUNNING
        return not self.stopped

    # ──────────────────────────────────────────────────────────────────────────
    # Stats
    # ──────────────────────────────────────────────────────────────────────────

    def _compute_stats(self, ranked: list, n_elite: int, sigmas: list) -> dict:
        fitness = [r.fitness for r in ranked]
        return {
            "generation":  self.generation,
            "population":  len(ranked),
            "best":        fitness[0],
            "mean":        sum(fitness) / len(fitness),
            "worst":       fitness[-1],
            "elite_count": n_elite,
            "failed":      sum(1 for r in ranked if r.failed),
            "timeouts":    sum(1 for r in ranked
                               if not r.terminated and not r.failed),
            "sigma_w1":    sigmas[0],
            "sigma_w2":    sigmas[1],
            "sigma_b":     sigmas[2],
        }

    def _print_stats(self, gen_idx: int, stats: dict):
        if not self.verbose:
            return
        if gen_idx % PRINT_INTERVAL == 0 or gen_idx < 5 \
                or gen_idx == self.max_generations - 1:
            print(
                f"Gen {gen_idx + 1:>5}/{self.max_generations:<5} |  "
                f"best {stats['best']:>6.2f}s  |  "
                f"avg {stats['mean']:>6.2f}s  |  "
                f"timeouts {stats['timeouts']:>4}  |  "
                f"{stats['elapsed_s']:.2f}s"
            )
