"""
ml/fitness.py
=============
Scoring policy for the evolutionary trainer.

``score`` rewards progress towards the target (how much closer the agent
ended than it started), adds a bonus for reaching it and scales down the
result of a damaged agent.  It is monotonic in progress and never lets a
damaged agent score above what it had accrued before the damage.
"""

from __future__ import annotations

from dataclasses import dataclass


@dataclass(frozen=True)
class FitnessPolicy:
    """Constants of :func:`score`."""

    reach_bonus: float = 5000.0
    """Added once when the agent reached the target."""

    damage_penalty: float = 0.1
    """Multiplier applied to the progress of a damaged agent."""


def score(
    start_distance: float,
    best_distance: float,
    damaged: bool,
    reached: bool,
    policy: FitnessPolicy = FitnessPolicy(),
) -> float:
    """Fitness of one agent at generation end.

    Parameters
    ----------
    start_distance : float
        Distance to the target at spawn.
    best_distance : float
        Closest the agent came to the target.
    damaged : bool
        Agent ended the generation damaged (any cause).
    reached : bool
        Agent came within the target radius.
    """
    progress = max(0.0, start_distance - best_distance)
    if reached:
        progress += policy.reach_bonus
    if damaged:
        progress *= policy.damage_penalty
    return progress
