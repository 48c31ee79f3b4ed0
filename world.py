"""
Playfield for JumpEvo.

The world is a fixed-size side-scrolling strip. Obstacles appear at the
right edge after a random delay, slide left at constant speed and are
dropped once they have fully left through the left edge. The world also
answers the sensing and collision queries the agent needs.
"""

import numpy as np
from config import (PLAYFIELD_WIDTH, PLAYFIELD_HEIGHT,
                    OBSTACLE_WIDTH, OBSTACLE_HEIGHT, OBSTACLE_SPEED,
                    OBSTACLE_COLOR, MIN_SPAWN_DELAY, MAX_SPAWN_DELAY,
                    validate_playfield)


def boxes_overlap(ax, ay, aw, ah, bx, by, bw, bh) -> bool:
    """Axis-aligned overlap test; touching edges count as a hit."""
    return not (
        ax + aw < bx or
        ax > bx + bw or
        ay + ah < by or
        ay > by + bh
    )


class Obstacle:
    """A box sliding leftwards along the ground."""
    __slots__ = ("x", "y", "width", "height", "speed", "color")

    def __init__(self, x: float, y: float, width: float = OBSTACLE_WIDTH,
                 height: float = OBSTACLE_HEIGHT, speed: float = OBSTACLE_SPEED,
                 color: str = OBSTACLE_COLOR):
        self.x = x
        self.y = y
        self.width  = width
        self.height = height
        self.speed  = speed
        self.color  = color

    def update(self, dt: float):
        self.x -= self.speed * dt

    def is_off_screen(self) -> bool:
        return self.x + self.width < 0

    def collides_with(self, box) -> bool:
        return boxes_overlap(box.x, box.y, box.width, box.height,
                             self.x, self.y, self.width, self.height)


class World:
    """
    Owns the obstacle set and the spawn timer of one episode.
    """

    def __init__(self, width: float = PLAYFIELD_WIDTH,
                 height: float = PLAYFIELD_HEIGHT, rng=None,
                 min_spawn_delay: float = MIN_SPAWN_DELAY,
                 max_spawn_delay: float = MAX_SPAWN_DELAY):
        validate_playfield(width, height)
        self.width  = width
        self.height = height
        self.rng    = rng if rng is not None else np.random.default_rng()
        self.min_spawn_delay = min_spawn_delay
        self.max_spawn_delay = max_spawn_delay
        self.obstacles = []        # ordered by spawn time
        self.spawn_timer = 0.0
        self.next_spawn_delay = self._random_delay()
        self.spawned = 0

    # ──────────────────────────────────────────────────────────────────────────
    # Obstacle lifecycle
    # ──────────────────────────────────────────────────────────────────────────

    def _random_delay(self) -> float:
        return float(self.rng.uniform(self.min_spawn_delay, self.max_spawn_delay))

    def tick_spawner(self, dt: float):
        """Advance the spawn timer; spawn one obstacle when it expires."""
        self.spawn_timer += dt
        if self.spawn_timer >= self.next_spawn_delay:
            self.spawn_timer = 0.0
            self.next_spawn_delay = self._random_delay()
            self.spawn_obstacle()

    def spawn_obstacle(self) -> Obstacle:
        """Put a new obstacle on the ground at the right edge."""
        obstacle = Obstacle(self.width, self.height - OBSTACLE_HEIGHT)
        self.obstacles.append(obstacle)
        self.spawned += 1
        return obstacle

    def update_obstacles(self, dt: float):
        """Move every obstacle left and drop those fully off screen."""
        for i in range(len(self.obstacles) - 1, -1, -1):
            self.obstacles[i].update(dt)
            if self.obstacles[i].is_off_screen():
                del self.obstacles[i]

    # ──────────────────────────────────────────────────────────────────────────
    # Queries used by the agent
    # ──────────────────────────────────────────────────────────────────────────

    def next_obstacle(self, x: float):
        """Nearest obstacle whose trailing edge is still right of `x`."""
        ahead = [o for o in self.obstacles if o.x + o.width > x]
        if not ahead:
            return None
        return min(ahead, key=lambda o: o.x)

    def any_collision(self, box) -> bool:
        return any(o.collides_with(box) for o in self.obstacles)

    # ──────────────────────────────────────────────────────────────────────────
    # Snapshot for visualisation
    # ──────────────────────────────────────────────────────────────────────────

    def snapshot(self):
        """List of (x, y, width, height, color) for every live obstacle."""
        return [(o.x, o.y, o.width, o.height, o.color) for o in self.obstacles]
