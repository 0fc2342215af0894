from __future__ import annotations

import logging
from typing import Iterable

import numpy as np

from sugar_sim.config.settings import LandscapeSettings
from sugar_sim.utils.types import Position

logger = logging.getLogger("sugar_sim.world")


def sugar_capacities(
    dims: tuple[int, int],
    peaks: Iterable[Position],
    max_sugar: int,
    dia: int = 4,
) -> np.ndarray:
    """Capacity grid that falls off in rings of width ``dia`` around the nearest peak."""
    width, height = dims
    peaks = list(peaks)
    if not peaks:
        return np.full((width, height), float(max_sugar))
    xs, ys = np.meshgrid(np.arange(width), np.arange(height), indexing="ij")
    nearest = np.full((width, height), np.inf)
    for px, py in peaks:
        dist = np.rint(np.sqrt((xs - px) ** 2 + (ys - py) ** 2))
        nearest = np.minimum(nearest, dist)
    return np.maximum(0, max_sugar - nearest // dia).astype(float)


class SugarLandscape:
    """Per-cell sugar capacity, current sugar and pollution, indexed ``[x, y]`` from 0."""

    def __init__(self, capacity: np.ndarray, sugar: np.ndarray | None = None) -> None:
        self.capacity = np.asarray(capacity, dtype=float)
        self.sugar = (
            self.capacity.copy() if sugar is None else np.asarray(sugar, dtype=float)
        )
        assert self.sugar.shape == self.capacity.shape, "sugar and capacity grids differ"
        self.pollution = np.zeros_like(self.capacity)
        self.is_summer_top = True

    @classmethod
    def from_settings(cls, cfg: LandscapeSettings) -> "SugarLandscape":
        capacity = sugar_capacities(
            (cfg.width, cfg.height), cfg.sugar_peaks, cfg.max_sugar, cfg.dia
        )
        return cls(capacity)

    @classmethod
    def empty(cls, width: int, height: int) -> "SugarLandscape":
        return cls(np.zeros((width, height)))

    @property
    def width(self) -> int:
        return int(self.capacity.shape[0])

    @property
    def height(self) -> int:
        return int(self.capacity.shape[1])

    def sugar_at(self, pos: Position) -> float:
        return float(self.sugar[pos])

    def set_sugar(self, pos: Position, amount: float, capacity: float | None = None) -> None:
        """Set a cell's sugar; ``capacity`` defaults to ``max(current capacity, amount)``."""
        if capacity is None:
            capacity = max(float(self.capacity[pos]), amount)
        assert 0.0 <= amount <= capacity, "cell sugar must lie within [0, capacity]"
        self.capacity[pos] = capacity
        self.sugar[pos] = amount

    def take_sugar(self, pos: Position) -> float:
        taken = float(self.sugar[pos])
        self.sugar[pos] = 0.0
        return taken

    def total_sugar(self) -> float:
        return float(self.sugar.sum())

    def pollution_at(self, pos: Position) -> float:
        return float(self.pollution[pos])

    def welfare_at(self, pos: Position) -> float:
        """Sugar discounted by pollution: ``sugar / (1 + pollution)``."""
        return float(self.sugar[pos]) / (1.0 + float(self.pollution[pos]))

    def add_pollution(self, pos: Position, amount: float) -> None:
        self.pollution[pos] += amount

    def diffuse_pollution(self) -> None:
        """Replace each cell's pollution with the mean of its in-bounds von Neumann neighbours."""
        src = self.pollution
        total = np.zeros_like(src)
        count = np.zeros_like(src)
        total[1:, :] += src[:-1, :]
        count[1:, :] += 1
        total[:-1, :] += src[1:, :]
        count[:-1, :] += 1
        total[:, 1:] += src[:, :-1]
        count[:, 1:] += 1
        total[:, :-1] += src[:, 1:]
        count[:, :-1] += 1
        # A 1x1 grid has no neighbours and keeps its value.
        self.pollution = np.where(count > 0, total / np.maximum(count, 1), src)

    def growback(self, rate: float) -> None:
        np.minimum(self.sugar + rate, self.capacity, out=self.sugar)

    def seasonal_growback(self, rate: float, winter_divisor: int) -> None:
        """Summer half grows at ``rate``, winter half at ``rate / winter_divisor``.

        The top half is ``y < height // 2``; ``is_summer_top`` says which half has summer.
        """
        top = np.arange(self.height) < self.height // 2
        summer_rows = top if self.is_summer_top else ~top
        rates = np.where(summer_rows, rate, rate / winter_divisor)
        np.minimum(self.sugar + rates[np.newaxis, :], self.capacity, out=self.sugar)

    def maybe_flip_season(self, tick: int, season_duration: int) -> None:
        if season_duration > 0 and tick > 0 and tick % season_duration == 0:
            self.is_summer_top = not self.is_summer_top
            logger.info(
                "SEASON-FLIP tick=%d summer=%s", tick, "top" if self.is_summer_top else "bottom"
            )
