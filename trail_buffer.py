"""
Fixed-capacity ring of recent ball positions for the cosmetic trail.
Lives outside the simulation: Layer 3 pushes the ball position from each
snapshot and clears it when a new serve starts.
"""

from typing import Iterator, Tuple

import numpy as np

TRAIL_SIZE = 28


class TrailBuffer:
    def __init__(self, size: int = TRAIL_SIZE):
        if size <= 0:
            raise ValueError("TrailBuffer size must be positive")
        self.size = int(size)
        self.x = np.zeros(self.size, dtype=np.float32)
        self.y = np.zeros(self.size, dtype=np.float32)
        self.count = 0
        self.head = 0

    def __len__(self) -> int:
        return self.count

    def clear(self) -> None:
        self.count = 0
        self.head = 0

    def push(self, px: float, py: float) -> None:
        i = self.head
        self.x[i] = px
        self.y[i] = py
        self.head = (i + 1) % self.size
        if self.count < self.size:
            self.count += 1

    def __iter__(self) -> Iterator[Tuple[float, float]]:
        """Oldest → newest."""
        base = (self.head - self.count) % self.size
        for k in range(self.count):
            idx = (base + k) % self.size
            yield float(self.x[idx]), float(self.y[idx])

    def points(self, ndigits: int = 1) -> list:
        return [[round(px, ndigits), round(py, ndigits)] for px, py in self]
