"""
Headless episode engine for JumpEvo.

One Game is one episode: a single agent, its own obstacle stream and its
own random generator. The episode advances with a fixed timestep and
ends on the first collision or when the time cap is reached. The elapsed
time is the fitness of the genome that drove the agent.

Drawing code never lives here. A presentation layer can pass `on_step`,
which is called with the game after every step and may read
`game.snapshot()`, but must not change anything.
"""

from collections import namedtuple

import numpy as np
from agent import Agent
from world import World
from genome import check_genome
from config import (PLAYFIELD_WIDTH, PLAYFIELD_HEIGHT, FIXED_DT,
                    MAX_EPISODE_TIME, GRAVITY, JUMP_IMPULSE,
                    validate_playfield, validate_timing)


EpisodeResult = namedtuple("EpisodeResult", ["survival_time", "terminated"])


class Game:
    """
    A single bounded episode.
    """

    def __init__(
        self,
        genome,
        width:    float = PLAYFIELD_WIDTH,
        height:   float = PLAYFIELD_HEIGHT,
        seed            = None,    # int or np.random.SeedSequence
        rng             = None,    # overrides seed when given
        dt:       float = FIXED_DT,
        max_time: float = MAX_EPISODE_TIME,
        gravity:  float = GRAVITY,
        jump_impulse: float = JUMP_IMPULSE,
        on_step         = None,    # called after every step (for live viz)
    ):
        validate_playfield(width, height)
        validate_timing(dt, max_time)
        self.genome   = check_genome(genome)
        self.dt       = dt
        self.max_time = max_time
        self.rng      = rng if rng is not None else np.random.default_rng(seed)
        self.world    = World(width, height, self.rng)
        self.agent    = Agent(self.genome, width, height,
                              gravity=gravity, jump_impulse=jump_impulse)
        self.on_step  = on_step

        self.total_time = 0.0
        self.steps      = 0
        self.game_over  = False

    # ──────────────────────────────────────────────────────────────────────────

    @property
    def finished(self) -> bool:
        return self.game_over or self.total_time >= self.max_time

    def step(self):
        """Advance the episode by one fixed timestep."""
        if self.finished:
            return
        dt = self.dt

        # 1) Fitness is time survived
        self.total_time += dt
        self.steps += 1

        # 2-3) Physics and jump decision
        self.agent.step(self.world, dt)

        # 4) Spawn
        self.world.tick_spawner(dt)

        # 5) Move and cull
        self.world.update_obstacles(dt)

        # 6) Collision ends the episode for good
        if self.world.any_collision(self.agent):
            self.game_over = True

        if self.on_step:
            self.on_step(self)

    def run(self) -> EpisodeResult:
        while not self.finished:
            self.step()
        return self.result()

    def result(self) -> EpisodeResult:
        return EpisodeResult(self.total_time, self.game_over)

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot for visualisation
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self) -> dict:
        a = self.agent
        return {
            "time":      self.total_time,
            "agent":     (a.x, a.y, a.width, a.height),
            "grounded":  a.grounded,
            "obstacles": self.world.snapshot(),
            "alive":     not self.game_over,
            "spawned":   self.world.spawned,
        }


def simulate(genome, width: float = PLAYFIELD_WIDTH,
             height: float = PLAYFIELD_HEIGHT, seed=None, rng=None,
             **kwargs) -> EpisodeResult:
    """Run one full episode for `genome` and return its result."""
    return Game(genome, width, height, seed=seed, rng=rng, **kwargs).run()
