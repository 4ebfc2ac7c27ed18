"""
Fixed-size ring buffer for price series.

Backs the spot widget's mini chart: O(1) append, oldest points dropped
once ``max_points`` is reached, NumPy export for plotting.
"""

from collections import deque

import numpy as np


class RingBuffer:
    """
    Fixed-size circular buffer for (timestamp, value) points.

    When the buffer fills, oldest points are discarded (FIFO).

    Thread Safety: NOT thread-safe. Owners serialize access.
    """

    def __init__(self, max_points: int = 120):
        """
        Args:
            max_points: Maximum number of points to retain.
        """
        self.max_points = max_points
        self.timestamps: deque[int] = deque(maxlen=max_points)
        self.values: deque[float] = deque(maxlen=max_points)
        self._total_points_added = 0

    def append(self, ts: int, value: float) -> None:
        self.timestamps.append(ts)
        self.values.append(value)
        self._total_points_added += 1

    def get_numpy_arrays(self) -> tuple[np.ndarray, np.ndarray]:
        """
        Get data as NumPy arrays for plotting.

        Returns:
            Tuple of (timestamps as int64 ms, values as float64)
        """
        if not self.timestamps:
            return np.array([], dtype=np.int64), np.array([], dtype=np.float64)
        return (
            np.fromiter(self.timestamps, dtype=np.int64, count=len(self.timestamps)),
            np.fromiter(self.values, dtype=np.float64, count=len(self.values)),
        )

    @property
    def total_added(self) -> int:
        return self._total_points_added

    def __len__(self) -> int:
        return len(self.timestamps)

    def __repr__(self) -> str:
        return f"RingBuffer(size={len(self)}/{self.max_points}, total_added={self._total_points_added})"
