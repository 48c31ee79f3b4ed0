import threading
import time

import numpy as np
import pytest

from config import ConfigError, FAILED_FITNESS
from trainer import (Trainer, TrainerState, FitnessRecord, rank, best_of,
                     elite_count, next_generation, evaluate_genome)


def _quiet(**kwargs):
    kwargs.setdefault("verbose", False)
    return Trainer(**kwargs)


@pytest.mark.parametrize("size,expected", [
    (1, 1), (5, 1), (10, 1), (11, 2), (30, 3), (50, 5), (100, 10),
])
def test_elite_count_rounds_up(size, expected):
    assert elite_count(size, 0.1) == expected


def test_rank_is_descending_and_stable():
    records = [FitnessRecord([0, 0, i], f) for i, f in enumerate([1.0, 3.0, 1.0, 3.0])]
    ranked = rank(records)
    assert [r.fitness for r in ranked] == [3.0, 3.0, 1.0, 1.0]
    assert [r.genome[2] for r in ranked] == [1, 3, 0, 2]


def test_best_of_picks_fittest_genome():
    records = [FitnessRecord([0.1, 0.1, 0.1], 2.0),
               FitnessRecord([0.2, 0.2, 0.2], 7.5),
               FitnessRecord([0.3, 0.3, 0.3], 4.0)]
    assert best_of(records) == [0.2, 0.2, 0.2]
    with pytest.raises(ValueError):
        best_of([])


@pytest.mark.parametrize("mode", ["fixed", "adaptive"])
def test_next_generation_keeps_elites_verbatim(mode):
    rng = np.random.default_rng(0)
    ranked = rank([FitnessRecord([i / 10, -i / 10, 0.5], float(i)) for i in range(20)])
    new_pop, sigmas = next_generation(ranked, 20, 0.5, 2, mode, rng)
    assert len(new_pop) == 20
    assert new_pop[:2] == [ranked[0].genome, ranked[1].genome]
    assert new_pop[0] is not ranked[0].genome
    assert len(sigmas) == 3
    assert all(-2.0 <= v <= 2.0 for g in new_pop for v in g)


def test_one_generation_without_mutation_clones_the_elite():
    trainer = _quiet(population=10, max_generations=1, mutation_rate=0.0, seed=3)
    trainer.run()
    top = trainer.last_ranked[0].genome
    assert trainer.stats[0]["elite_count"] == 1
    assert len(trainer.population) == 10
    assert trainer.population[0] == top
    children = trainer.population[1:]
    assert len(children) == 9
    assert sum(1 for c in children if c != top) == 0


def test_elites_reappear_each_generation():
    trainer = _quiet(population=20, max_generations=4, mutation_rate=0.8, seed=11)
    for _ in range(4):
        new_pop = trainer.train_generation()
        n = elite_count(20)
        assert new_pop[:n] == [r.genome for r in trainer.last_ranked[:n]]
    assert trainer.generation == 4


def test_best_record_is_best_ever():
    trainer = _quiet(population=12, max_generations=5, seed=21)
    best = trainer.run()
    assert best.fitness == max(trainer.best_fitness_history)
    assert trainer.best_genome == best.genome
    assert trainer.state is TrainerState.COMPLETED


def test_same_seed_reproduces_training():
    a = _quiet(population=8, max_generations=3, seed=99)
    b = _quiet(population=8, max_generations=3, seed=99)
    a.run()
    b.run()
    assert a.best_fitness_history == b.best_fitness_history
    assert a.population == b.population


def test_parallel_evaluation_matches_serial():
    serial = _quiet(population=6, max_generations=2, seed=5)
    parallel = _quiet(population=6, max_generations=2, seed=5, workers=2)
    serial.run()
    parallel.run()
    assert serial.best_fitness_history == parallel.best_fitness_history
    assert serial.population == parallel.population


def test_failed_individual_ranks_last():
    population = [[0.0, 0.0, -1.0], [float("nan"), 0.0, 0.0],
                  [0.5, 0.5, -0.5], [0.1, -0.1, 0.0]]
    trainer = _quiet(population=4, max_generations=1, seed=0,
                     initial_population=population)
    trainer.train_generation()
    last = trainer.last_ranked[-1]
    assert last.failed
    assert last.fitness == FAILED_FITNESS
    assert trainer.stats[0]["failed"] == 1


def test_evaluate_genome_marks_non_finite_genome_failed():
    record = evaluate_genome([float("inf"), 0.0, 0.0], seed=1)
    assert record.failed and record.fitness == FAILED_FITNESS


@pytest.mark.parametrize("kwargs", [
    {"population": 0},
    {"population": -3},
    {"population": 2.5},
    {"max_generations": 0},
    {"mutation_rate": -0.1},
    {"mutation_rate": 1.5},
    {"mutation_rate": float("nan")},
    {"mutation_rate": "lots"},
    {"mutation_rate": None},
    {"mutation_mode": "bogus"},
    {"elite_fraction": 0.0},
    {"elite_fraction": "half"},
    {"width": 0},
    {"height": -1},
    {"workers": 0},
])
def test_invalid_configuration_fails_fast(kwargs):
    with pytest.raises(ConfigError):
        _quiet(**kwargs)


def test_initial_population_size_must_match():
    with pytest.raises(ConfigError):
        _quiet(population=3, initial_population=[[0, 0, 0]])


def test_stop_before_run_does_nothing():
    trainer = _quiet(population=5, max_generations=3, seed=0)
    before = [list(g) for g in trainer.population]
    trainer.stop()
    assert trainer.run() is None
    assert trainer.generation == 0
    assert trainer.population == before
    assert trainer.state is TrainerState.COMPLETED


def test_stop_at_generation_boundary_keeps_population():
    trainer = _quiet(population=6, max_generations=10, seed=4)

    def on_gen(gen_idx, stats, ranked):
        if gen_idx == 1:
            trainer.stop()

    trainer.on_gen_callback = on_gen
    trainer.run()
    assert trainer.generation == 2
    assert len(trainer.population) == 6
    assert trainer.stopped


def test_pause_suspends_between_generations():
    trainer = _quiet(population=4, max_generations=3, seed=1)
    seen = []

    def on_gen(gen_idx, stats, ranked):
        seen.append(gen_idx)
        if gen_idx == 0:
            trainer.pause()

    trainer.on_gen_callback = on_gen
    worker = threading.Thread(target=trainer.run)
    worker.start()

    deadline = time.time() + 30
    while trainer.state is not TrainerState.PAUSED and time.time() < deadline:
        time.sleep(0.01)
    assert trainer.state is TrainerState.PAUSED
    assert seen == [0]

    trainer.resume()
    worker.join(timeout=60)
    assert not worker.is_alive()
    assert seen == [0, 1, 2]
    assert trainer.state is TrainerState.COMPLETED


def test_progress_is_printed(capsys):
    Trainer(population=4, max_generations=2, seed=0).run()
    out = capsys.readouterr().out
    assert "Gen     1/2" in out
    assert "Training complete" in out
