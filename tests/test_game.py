import math

import numpy as np
import pytest

from config import (FIXED_DT, MAX_EPISODE_TIME, PLAYFIELD_HEIGHT,
                    AGENT_HEIGHT, ConfigError)
from game import Game, simulate
from world import World, Obstacle, boxes_overlap

NEVER_JUMP = [0.0, 0.0, -1.0]


def _force_spawn_delay(game, delay):
    game.world.min_spawn_delay = delay
    game.world.max_spawn_delay = delay
    game.world.next_spawn_delay = delay


@pytest.mark.parametrize("seed", range(20))
def test_never_jumping_policy_dies_on_first_obstacle(seed):
    game = Game(NEVER_JUMP, seed=seed)
    result = game.run()
    assert result.terminated
    # the longest spawn delay plus the slide towards the agent
    assert result.survival_time <= 2.5 + 390 / 250 + 2 * FIXED_DT


@pytest.mark.parametrize("delay", [0.8, 1.2, 1.9, 2.5])
def test_never_jumping_policy_dies_for_any_spawn_delay(delay):
    game = Game(NEVER_JUMP, seed=0)
    _force_spawn_delay(game, delay)
    result = game.run()
    assert result.terminated
    # spawn delay + time for the obstacle to slide 390 px, plus a frame of slack
    assert result.survival_time <= delay + 390 / 250 + 2 * FIXED_DT


@pytest.mark.parametrize("genome", [
    [0.0, 0.0, 1.0],
    [1.5, -2.0, 0.3],
    [-2.0, 2.0, -0.5],
    [0.7, 0.1, -0.2],
])
def test_episode_never_exceeds_time_cap(genome):
    for seed in range(3):
        result = simulate(genome, seed=seed)
        assert math.isfinite(result.survival_time)
        assert 0 < result.survival_time <= MAX_EPISODE_TIME + FIXED_DT + 1e-9


def test_time_cap_ends_episode_without_collision():
    game = Game(NEVER_JUMP, seed=0, max_time=2.0)
    _force_spawn_delay(game, 2.5)
    result = game.run()
    assert not result.terminated
    assert 2.0 <= result.survival_time <= 2.0 + FIXED_DT + 1e-9
    assert game.world.obstacles == []


def test_grounded_agent_stays_on_ground():
    game = Game(NEVER_JUMP, seed=0)
    _force_spawn_delay(game, 2.5)
    while not game.agent.grounded:
        game.step()
    floor = PLAYFIELD_HEIGHT - AGENT_HEIGHT
    for _ in range(60):
        game.step()
        assert game.agent.y == floor
        assert game.agent.velocity_y == 0.0
        assert game.agent.grounded


def test_jump_policy_leaves_the_ground():
    game = Game([0.0, 0.0, 1.0], seed=0)
    while not game.agent.grounded and game.agent.jumps == 0:
        game.step()
    game.step()
    assert game.agent.jumps >= 1
    assert game.agent.y < PLAYFIELD_HEIGHT - AGENT_HEIGHT


def test_same_seed_gives_identical_result():
    genome = [0.4, -1.3, 0.2]
    first = simulate(genome, seed=1234)
    second = simulate(genome, seed=1234)
    assert first == second
    third = simulate(genome, rng=np.random.default_rng(1234))
    assert third == first


def test_observer_sees_every_step_and_changes_nothing():
    frames = []
    game = Game([0.9, -0.4, -0.1], seed=7, on_step=lambda g: frames.append(g.snapshot()))
    observed = game.run()
    assert observed == simulate([0.9, -0.4, -0.1], seed=7)
    assert len(frames) == game.steps
    assert frames[-1]["alive"] == (not observed.terminated)
    assert frames[0]["time"] == pytest.approx(FIXED_DT)


def test_snapshot_counts_spawned_obstacles():
    game = Game(NEVER_JUMP, seed=4)
    assert game.snapshot()["spawned"] == 0
    game.run()
    # died on an obstacle, so at least one was spawned
    assert game.snapshot()["spawned"] >= 1
    assert game.snapshot()["spawned"] >= len(game.snapshot()["obstacles"])


def test_step_after_finish_is_a_noop():
    game = Game(NEVER_JUMP, seed=3)
    result = game.run()
    game.step()
    assert game.result() == result


def test_invalid_playfield_is_rejected():
    with pytest.raises(ConfigError):
        Game(NEVER_JUMP, width=0)
    with pytest.raises(ConfigError):
        simulate(NEVER_JUMP, height=-5)


def test_malformed_policy_is_rejected():
    with pytest.raises(ValueError):
        simulate([1.0, 2.0])


def test_nan_policy_still_yields_finite_time():
    result = simulate([float("nan"), 0.0, 0.0], seed=0)
    assert math.isfinite(result.survival_time)


# ──────────────────────────────────────────────────────────────────────────────
# World
# ──────────────────────────────────────────────────────────────────────────────

@pytest.mark.parametrize("a,b", [
    ((0, 0, 10, 10), (5, 5, 10, 10)),
    ((0, 0, 10, 10), (10, 10, 5, 5)),
    ((0, 0, 10, 10), (11, 0, 5, 5)),
    ((0, 0, 10, 10), (0, 20, 10, 10)),
    ((3, 3, 2, 2), (0, 0, 10, 10)),
])
def test_overlap_is_symmetric(a, b):
    assert boxes_overlap(*a, *b) == boxes_overlap(*b, *a)
    assert boxes_overlap(*a, *a)


def test_touching_edges_count_as_collision():
    assert boxes_overlap(0, 0, 10, 10, 10, 0, 10, 10)
    assert not boxes_overlap(0, 0, 10, 10, 10.5, 0, 10, 10)


def test_obstacles_are_dropped_once_off_screen():
    world = World(rng=np.random.default_rng(0))
    obstacle = world.spawn_obstacle()
    assert obstacle.x == world.width
    assert obstacle.y == world.height - obstacle.height
    # fully past the left edge after (width + obstacle width) / speed seconds
    for _ in range(int((world.width + obstacle.width) / obstacle.speed / FIXED_DT) + 2):
        world.update_obstacles(FIXED_DT)
    assert world.obstacles == []


def test_next_obstacle_ignores_obstacles_behind():
    world = World(rng=np.random.default_rng(0))
    world.obstacles = [Obstacle(100, 425), Obstacle(600, 425), Obstacle(450, 425)]
    assert world.next_obstacle(390).x == 450
    assert world.next_obstacle(700) is None


def test_spawn_delays_stay_in_range():
    world = World(rng=np.random.default_rng(42))
    for _ in range(200):
        delay = world._random_delay()
        assert world.min_spawn_delay <= delay <= world.max_spawn_delay


def test_sense_saturates_without_obstacles():
    game = Game(NEVER_JUMP, seed=0)
    norm_dist, norm_height = game.agent.sense(game.world)
    assert norm_dist == 1.0
    assert 0.0 < norm_height < 1.0
