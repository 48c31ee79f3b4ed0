"""
Genome helpers for JumpEvo.

A genome is the parameter vector of a linear jump policy:

  index 0 : w1  weight on the normalised distance to the next obstacle
  index 1 : w2  weight on the normalised height of the agent
  index 2 : b   bias

The agent jumps whenever  w1·dist + w2·height + b > 0  and it is grounded.
"""

import math

import numpy as np
from config import (GENOME_SIZE, GENE_LIMIT, INIT_GENE_LIMIT,
                    FIXED_SIGMA, MIN_SIGMA)

# ──────────────────────────────────────────────────────────────────────────────
# Single genome
# ──────────────────────────────────────────────────────────────────────────────

def random_genome(rng=None) -> list:
    """Uniform weights and bias in [-INIT_GENE_LIMIT, INIT_GENE_LIMIT]."""
    if rng is None:
        rng = np.random.default_rng()
    return [float(g) for g in rng.uniform(-INIT_GENE_LIMIT, INIT_GENE_LIMIT,
                                          size=GENOME_SIZE)]


def check_genome(genome) -> list:
    """Return the genome as a list of floats, or raise ValueError."""
    values = [float(g) for g in genome]
    if len(values) != GENOME_SIZE:
        raise ValueError(
            f"genome must have {GENOME_SIZE} components, got {len(values)}")
    return values


def is_finite(genome) -> bool:
    return all(math.isfinite(g) for g in genome)


def clamp_gene(value: float, limit: float = GENE_LIMIT) -> float:
    return max(-limit, min(limit, value))


def policy_output(genome, norm_dist: float, norm_height: float) -> float:
    """Linear decision value; positive means jump."""
    w1, w2, b = genome
    return w1 * norm_dist + w2 * norm_height + b


# ──────────────────────────────────────────────────────────────────────────────
# Mutation
# ──────────────────────────────────────────────────────────────────────────────

def fixed_sigmas(sigma: float = FIXED_SIGMA) -> list:
    return [sigma] * GENOME_SIZE


def adaptive_sigmas(elite_genomes: list, floor: float = MIN_SIGMA) -> list:
    """
    Per-gene noise scale from the spread of the elite set:
        sigma_k = max(floor, max(gene_k) - min(gene_k))
    """
    # failed (non-finite) genomes would make the spread NaN
    elite_genomes = [g for g in elite_genomes if is_finite(g)]
    if not elite_genomes:
        return [floor] * GENOME_SIZE
    sigmas = []
    for k in range(GENOME_SIZE):
        column = [g[k] for g in elite_genomes]
        sigmas.append(max(floor, max(column) - min(column)))
    return sigmas


def mutate_genome(genome: list, rate: float, sigmas: list, rng=None) -> list:
    """
    Return a mutated copy.  Each gene is perturbed with probability `rate`
    by N(0, sigma_k) noise; every gene is then clamped to ±GENE_LIMIT.
    """
    if rng is None:
        rng = np.random.default_rng()
    child = []
    for gene, sigma in zip(genome, sigmas):
        if rng.random() < rate:
            gene = gene + float(rng.normal()) * sigma
        child.append(clamp_gene(float(gene)))
    return child


def clone_genome(genome: list) -> list:
    return [float(g) for g in genome]
