"""
JumpEvo Configuration
All tunable parameters for the obstacle-jumping simulation and its
genetic-algorithm trainer.
"""

import numbers

# ─── Playfield ────────────────────────────────────────────────────────────────
PLAYFIELD_WIDTH  = 800   # px, only used to normalise the distance input
PLAYFIELD_HEIGHT = 450   # px, ground is the bottom edge

# ─── Episode timing ───────────────────────────────────────────────────────────
FIXED_DT         = 1 / 60   # simulated seconds per step
MAX_EPISODE_TIME = 30.0     # hard cap on one episode (seconds)

# ─── Agent physics ────────────────────────────────────────────────────────────
GRAVITY       = 981.0    # px / s²
JUMP_IMPULSE  = -500.0   # px / s, negative is upwards
AGENT_WIDTH   = 20
AGENT_HEIGHT  = 20
AGENT_START_X_OFFSET = 10   # agent starts centred: x = width/2 - offset
AGENT_START_Y_OFFSET = 30   # y = height - offset (10 px above the ground)

# ─── Obstacles ────────────────────────────────────────────────────────────────
OBSTACLE_WIDTH   = 25
OBSTACLE_HEIGHT  = 25
OBSTACLE_SPEED   = 250.0    # px / s, leftwards
OBSTACLE_COLOR   = "red"    # presentation only
MIN_SPAWN_DELAY  = 0.8      # seconds
MAX_SPAWN_DELAY  = 2.5      # seconds
NO_OBSTACLE_DISTANCE = 999  # raw distance fed to the policy when nothing is ahead

# ─── Genetic algorithm ────────────────────────────────────────────────────────
POPULATION      = 50
MAX_GENERATIONS = 100
MUTATION_RATE   = 0.1      # probability that a single gene is perturbed
ELITE_FRACTION  = 0.1      # top 10% survive unchanged
GENOME_SIZE     = 3        # [w_distance, w_height, bias]

# Genes live in [-GENE_LIMIT, GENE_LIMIT]; without the bound repeated
# Gaussian noise lets weights drift without limit.
GENE_LIMIT      = 2.0
INIT_GENE_LIMIT = 1.0      # fresh genomes are uniform in [-1, 1]

# "fixed":    every mutated gene gets N(0, FIXED_SIGMA) noise
# "adaptive": sigma_k = max(MIN_SIGMA, spread of gene k across the elites)
MUTATION_MODES = ("fixed", "adaptive")
MUTATION_MODE  = "adaptive"
FIXED_SIGMA    = 0.2
# Floor for the adaptive scale; a converged elite set would otherwise
# produce sigma = 0 and stop exploring.
MIN_SIGMA      = 0.1

# Fitness given to an individual whose evaluation could not produce a
# finite survival time. Every real episode lasts at least one step.
FAILED_FITNESS = 0.0

# ─── Output / Logging ─────────────────────────────────────────────────────────
SAVE_DIR        = "output"   # directory for charts and CSV logs
LOG_CSV         = True       # write per-generation CSV log
CHART_INTERVAL  = 25         # refresh the fitness chart every N generations
PRINT_INTERVAL  = 10         # print progress every N generations


# ─── Validation ───────────────────────────────────────────────────────────────

class ConfigError(ValueError):
    """Raised when a simulation or training parameter is out of range."""


def validate_playfield(width, height):
    if not width > 0 or not height > 0:
        raise ConfigError(
            f"playfield dimensions must be positive, got {width}x{height}")


def validate_timing(dt, max_time):
    if not dt > 0:
        raise ConfigError(f"timestep must be positive, got {dt}")
    if not max_time > 0:
        raise ConfigError(f"maximum episode time must be positive, got {max_time}")


def validate_training(population, generations, mutation_rate,
                      mutation_mode=MUTATION_MODE,
                      elite_fraction=ELITE_FRACTION, workers=1):
    """Fail fast on bad trainer settings; nothing is silently clamped."""
    if isinstance(population, bool) or not isinstance(population, int) or population < 1:
        raise ConfigError(f"population size must be a positive integer, got {population!r}")
    if isinstance(generations, bool) or not isinstance(generations, int) or generations < 1:
        raise ConfigError(f"generation count must be a positive integer, got {generations!r}")
    if isinstance(mutation_rate, bool) or not isinstance(mutation_rate, numbers.Real) \
            or not 0.0 <= mutation_rate <= 1.0:
        raise ConfigError(f"mutation rate must be within [0, 1], got {mutation_rate!r}")
    if mutation_mode not in MUTATION_MODES:
        raise ConfigError(
            f"mutation mode must be one of {MUTATION_MODES}, got {mutation_mode!r}")
    if isinstance(elite_fraction, bool) or not isinstance(elite_fraction, numbers.Real) \
            or not 0.0 < elite_fraction <= 1.0:
        raise ConfigError(f"elite fraction must be within (0, 1], got {elite_fraction!r}")
    if not isinstance(workers, int) or workers < 1:
        raise ConfigError(f"worker count must be a positive integer, got {workers!r}")
