"""
Agent class for JumpEvo.

The agent is a box standing on the ground in the middle of the playfield.
It never moves horizontally; the only thing it can do is jump.

Every simulation step the agent:
  1. Integrates gravity and lands on the ground
  2. Senses the distance to the next obstacle and its own height
  3. Jumps if its linear policy says so and it is grounded
"""

from genome import policy_output
from config import (AGENT_WIDTH, AGENT_HEIGHT,
                    AGENT_START_X_OFFSET, AGENT_START_Y_OFFSET,
                    GRAVITY, JUMP_IMPULSE, NO_OBSTACLE_DISTANCE)


class Agent:
    """
    A single jumping agent driven by a genome.
    """
    __slots__ = (
        "x", "y", "width", "height", "velocity_y",
        "grounded", "genome", "gravity", "jump_impulse", "jumps",
    )

    def __init__(self, genome: list, world_width: float, world_height: float,
                 gravity: float = GRAVITY, jump_impulse: float = JUMP_IMPULSE):
        self.genome = genome
        self.width  = AGENT_WIDTH
        self.height = AGENT_HEIGHT
        self.x = world_width / 2 - AGENT_START_X_OFFSET
        self.y = world_height - AGENT_START_Y_OFFSET
        self.velocity_y = 0.0
        self.grounded   = False
        self.gravity      = gravity
        self.jump_impulse = jump_impulse
        self.jumps = 0

    # ──────────────────────────────────────────────────────────────────────────

    def apply_physics(self, dt: float, ground_y: float):
        """Gravity while airborne, then clamp to the ground."""
        if not self.grounded:
            self.velocity_y += self.gravity * dt
        self.y += self.velocity_y * dt

        floor = ground_y - self.height
        if self.y >= floor:
            self.y = floor
            self.velocity_y = 0.0
            self.grounded = True
        else:
            self.grounded = False

    def sense(self, world):
        """Return (normalised distance, normalised height), both finite."""
        nxt = world.next_obstacle(self.x)
        dist = (nxt.x - self.x) if nxt is not None else NO_OBSTACLE_DISTANCE
        norm_dist   = min(max(dist / world.width, 0.0), 1.0)
        norm_height = self.y / world.height
        return norm_dist, norm_height

    def decide(self, world) -> bool:
        norm_dist, norm_height = self.sense(world)
        return policy_output(self.genome, norm_dist, norm_height) > 0

    def jump(self):
        self.velocity_y = self.jump_impulse
        self.grounded = False
        self.jumps += 1

    def step(self, world, dt: float):
        """Execute one simulation step: physics → sense → act."""
        self.apply_physics(dt, world.height)
        if self.decide(world) and self.grounded:
            self.jump()
