"""
ml/history.py
=============
Per-generation training statistics with a pandas export.
"""

from __future__ import annotations

import logging
import os
from dataclasses import asdict, dataclass
from typing import List, Optional

import pandas as pd

log = logging.getLogger("trainer")


@dataclass(frozen=True)
class GenerationStats:
    generation: int
    best_fitness: float
    mean_fitness: float
    ticks: int
    population: int
    reached: int
    off_road: int
    collision: int
    stagnation: int
    timed_out: bool


class TrainingHistory:
    """Append-only record of completed generations."""

    def __init__(self) -> None:
        self.generations: List[GenerationStats] = []

    def __len__(self) -> int:
        return len(self.generations)

    def record(self, stats: GenerationStats) -> None:
        self.generations.append(stats)

    def best(self) -> Optional[GenerationStats]:
        if not self.generations:
            return None
        return max(self.generations, key=lambda s: s.best_fitness)

    def to_frame(self) -> pd.DataFrame:
        """One row per generation, indexed by generation number."""
        columns = list(GenerationStats.__dataclass_fields__)
        frame = pd.DataFrame([asdict(s) for s in self.generations], columns=columns)
        return frame.set_index("generation")

    def save_csv(self, path: str) -> str:
        folder = os.path.dirname(path)
        if folder:
            os.makedirs(folder, exist_ok=True)
        self.to_frame().to_csv(path)
        log.info("Training history (%d generations) written to %s", len(self), path)
        return path
