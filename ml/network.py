"""
ml/network.py
=============
Fixed-topology feed-forward controller.

A :class:`NeuralNetwork` is a chain of :class:`Level` transitions, each
holding a weight matrix of shape ``(inputs, outputs)`` and a bias vector.
Every layer applies ``tanh``, so outputs stay in ``(-1, 1)`` and the car
interprets the sign of each output as a pressed control.

:meth:`NeuralNetwork.clone` returns an independent deep copy and
:meth:`NeuralNetwork.mutate` perturbs a network in place; the two never
share numpy buffers.
"""

from __future__ import annotations

from typing import Any, Dict, List, Optional, Sequence

import numpy as np


class Level:
    """One layer transition: ``outputs = tanh(inputs @ weights + biases)``."""

    def __init__(self, input_count: int, output_count: int, rng: Optional[np.random.Generator] = None) -> None:
        rng = rng if rng is not None else np.random.default_rng()
        self.weights = rng.uniform(-1.0, 1.0, size=(input_count, output_count))
        self.biases = rng.uniform(-1.0, 1.0, size=output_count)

    @property
    def input_count(self) -> int:
        return self.weights.shape[0]

    @property
    def output_count(self) -> int:
        return self.weights.shape[1]

    def feed_forward(self, inputs: np.ndarray) -> np.ndarray:
        return np.tanh(inputs @ self.weights + self.biases)

    def clone(self) -> "Level":
        level = Level.__new__(Level)
        level.weights = self.weights.copy()
        level.biases = self.biases.copy()
        return level

    def as_dict(self) -> Dict[str, Any]:
        return {
            "inputs": self.input_count,
            "outputs": self.output_count,
            "weights": self.weights.tolist(),
            "biases": self.biases.tolist(),
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "Level":
        weights = np.asarray(data["weights"], dtype=float)
        biases = np.asarray(data["biases"], dtype=float)
        if weights.ndim != 2 or biases.shape != (weights.shape[1],):
            raise ValueError(f"level shape mismatch: weights {weights.shape}, biases {biases.shape}")
        level = cls.__new__(cls)
        level.weights = weights
        level.biases = biases
        return level


class NeuralNetwork:
    """Feed-forward network with ``tanh`` on every layer.

    Parameters
    ----------
    neuron_counts : sequence of int
        Layer sizes, e.g. ``[5, 6, 4]`` for 5 sensor inputs, one hidden
        layer of 6 and 4 control outputs.
    rng : numpy.random.Generator or None
        Source for the initial uniform ``[-1, 1]`` weights and biases.
    """

    def __init__(self, neuron_counts: Sequence[int], rng: Optional[np.random.Generator] = None) -> None:
        if len(neuron_counts) < 2:
            raise ValueError("a network needs at least an input and an output layer")
        rng = rng if rng is not None else np.random.default_rng()
        self.levels: List[Level] = [
            Level(neuron_counts[i], neuron_counts[i + 1], rng)
            for i in range(len(neuron_counts) - 1)
        ]

    def __repr__(self) -> str:
        return f"NeuralNetwork({self.neuron_counts})"

    @property
    def neuron_counts(self) -> List[int]:
        return [self.levels[0].input_count] + [lv.output_count for lv in self.levels]

    def feed_forward(self, inputs: Sequence[float]) -> List[float]:
        values = np.asarray(inputs, dtype=float)
        if values.shape != (self.levels[0].input_count,):
            raise ValueError(f"expected {self.levels[0].input_count} inputs, got {values.shape}")
        for level in self.levels:
            values = level.feed_forward(values)
        return values.tolist()

    def clone(self) -> "NeuralNetwork":
        """Deep value copy; mutating the clone never touches ``self``."""
        net = NeuralNetwork.__new__(NeuralNetwork)
        net.levels = [lv.clone() for lv in self.levels]
        return net

    def mutate(self, rate: float, rng: Optional[np.random.Generator] = None, max_delta: float = 1.0) -> None:
        """Perturb weights and biases in place.

        Each parameter independently, with probability *rate*, moves by a
        uniform delta in ``[-max_delta, max_delta]`` and is clipped back to
        ``[-1, 1]``.  ``rate == 0`` leaves the network unchanged.

        Raises
        ------
        ValueError
            If *rate* is outside ``[0, 1]``.
        """
        if not 0.0 <= rate <= 1.0:
            raise ValueError(f"mutation rate must be in [0, 1], got {rate}")
        if rate == 0.0:
            return
        rng = rng if rng is not None else np.random.default_rng()
        for level in self.levels:
            for params in (level.weights, level.biases):
                mask = rng.random(params.shape) < rate
                delta = rng.uniform(-max_delta, max_delta, size=params.shape)
                params += np.where(mask, delta, 0.0)
                np.clip(params, -1.0, 1.0, out=params)

    def equals(self, other: "NeuralNetwork") -> bool:
        if len(self.levels) != len(other.levels):
            return False
        return all(
            a.weights.shape == b.weights.shape
            and np.array_equal(a.weights, b.weights)
            and np.array_equal(a.biases, b.biases)
            for a, b in zip(self.levels, other.levels)
        )

    def as_dict(self) -> Dict[str, Any]:
        return {"levels": [lv.as_dict() for lv in self.levels]}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "NeuralNetwork":
        """Rebuild from :meth:`as_dict`.

        Raises
        ------
        ValueError
            If the record has no levels or consecutive levels do not chain.
        """
        levels = [Level.from_dict(lv) for lv in data["levels"]]
        if not levels:
            raise ValueError("controller snapshot has no levels")
        for prev, nxt in zip(levels, levels[1:]):
            if prev.output_count != nxt.input_count:
                raise ValueError("controller levels do not chain")
        net = cls.__new__(cls)
        net.levels = levels
        return net
