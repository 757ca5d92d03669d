"""
Time-compensated telescope position buffer.

Driver polls happen about once a second while consumers want a position
for every frame. InterpolatedPosition keeps the last few samples and
answers point-in-time queries by linear interpolation between the
bracketing samples, or by extrapolation along the trend of the two
nearest samples when the query falls outside the recorded range.
"""

import bisect
import logging
from collections import deque
from typing import Deque, Optional

import numpy as np

from telelink.exceptions import NoDataAvailableError
from telelink.types import PositionSample, Timestamp, Vector

logger = logging.getLogger(__name__)

DEFAULT_CAPACITY = 16


class InterpolatedPosition:
    """
    Bounded ring of position samples with interpolated lookup.

    Samples are ordered by server timestamp, which is the time axis used
    for interpolation. The oldest sample is evicted when the ring is full.

    Example:
        >>> buffer = InterpolatedPosition()
        >>> buffer.add(vector_a, client_timestamp=0.1, server_timestamp=0.0)
        >>> buffer.add(vector_b, client_timestamp=10.1, server_timestamp=10.0)
        >>> buffer.get(5.0)   # direction halfway between a and b
    """

    def __init__(self, capacity: int = DEFAULT_CAPACITY):
        if capacity < 2:
            raise ValueError("capacity must be at least 2")
        self._samples: Deque[PositionSample] = deque(maxlen=capacity)

    def __len__(self) -> int:
        return len(self._samples)

    @property
    def capacity(self) -> int:
        return self._samples.maxlen

    def add(
        self,
        vector: Vector,
        client_timestamp: Timestamp,
        server_timestamp: Timestamp,
    ) -> None:
        """Append a canonical-frame sample."""
        sample = PositionSample(
            vector=np.asarray(vector, dtype=float),
            server_timestamp=float(server_timestamp),
            client_timestamp=float(client_timestamp),
        )

        if self._samples and sample.server_timestamp < self._samples[-1].server_timestamp:
            logger.debug(f"Out-of-order position sample at {sample.server_timestamp}")
            samples = list(self._samples)
            keys = [s.server_timestamp for s in samples]
            samples.insert(bisect.bisect_right(keys, sample.server_timestamp), sample)
            self._samples.clear()
            self._samples.extend(samples)
        else:
            self._samples.append(sample)

    def latest(self) -> Optional[PositionSample]:
        """Most recent sample, or None if the buffer is empty."""
        return self._samples[-1] if self._samples else None

    def clear(self) -> None:
        self._samples.clear()

    def get(self, query_time: Timestamp) -> Vector:
        """
        Estimate the direction at query_time.

        Args:
            query_time: Time on the server-timestamp axis

        Returns:
            Unit vector in the canonical frame

        Raises:
            NoDataAvailableError: If no sample has been recorded
        """
        samples = self._samples
        if not samples:
            raise NoDataAvailableError("No telescope position available yet")
        if len(samples) == 1:
            return samples[0].vector.copy()

        keys = [s.server_timestamp for s in samples]
        index = bisect.bisect_right(keys, query_time)
        # Clamp to a valid pair; outside the range this extrapolates from
        # the two oldest or the two newest samples.
        index = min(max(index, 1), len(samples) - 1)
        before = samples[index - 1]
        after = samples[index]

        span = after.server_timestamp - before.server_timestamp
        if span <= 0.0:
            return after.vector.copy()

        fraction = (query_time - before.server_timestamp) / span
        blended = before.vector + (after.vector - before.vector) * fraction
        return _normalize(blended)


def _normalize(vector: Vector) -> Vector:
    norm = float(np.linalg.norm(vector))
    if norm == 0.0:
        return vector
    return vector / norm
