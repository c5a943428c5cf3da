"""
Coordination primitives for the hierarchical controller

- SequencerParamUpdate: a bundle of new tactical parameters sent by the
  strategic layer.
- ParameterUpdateChannel: bounded, lossy link between the layers. Sends
  never block: on a full channel the oldest pending update is evicted in
  favour of the newest. Receives never block either.
- GuardedParameters: the tactical layer's current parameter set, an
  immutable snapshot swapped under a lock by a single writer and read
  once per block.
"""

import logging
import threading
from collections import deque
from dataclasses import dataclass
from typing import Deque, Optional

logger = logging.getLogger(__name__)

DEFAULT_CHANNEL_CAPACITY = 10


@dataclass(frozen=True)
class SequencerParamUpdate:
    """Parameter update sent from the strategic layer to the tactical layer."""

    timestamp: float
    new_kp: float
    new_ki: float
    new_kd: float
    new_target_util: float
    new_max_fee_change: float
    throttling_active: bool = False
    throttling_intensity: float = 0.0    # 0.0-1.0
    reason: str = ""


@dataclass(frozen=True)
class SequencerParameters:
    """Active tactical-layer parameters."""

    kp: float
    ki: float
    kd: float
    target_utilization: float
    max_fee_change: float
    throttling_active: bool = False
    throttling_intensity: float = 0.0
    updated_at: float = 0.0
    reason: str = "Initial configuration"

    @classmethod
    def from_update(cls, update: SequencerParamUpdate, updated_at: Optional[float] = None) -> "SequencerParameters":
        """Parameters carried by an update, stamped with when they took effect (default: the update's timestamp)."""
        return cls(
            kp=update.new_kp,
            ki=update.new_ki,
            kd=update.new_kd,
            target_utilization=update.new_target_util,
            max_fee_change=update.new_max_fee_change,
            throttling_active=update.throttling_active,
            throttling_intensity=update.throttling_intensity,
            updated_at=update.timestamp if updated_at is None else updated_at,
            reason=update.reason,
        )


class ParameterUpdateChannel:
    """
    Bounded drop-oldest queue of parameter updates.

    Safe to use from a producer thread and a consumer thread.
    """

    def __init__(self, capacity: int = DEFAULT_CHANNEL_CAPACITY, name: str = "parameter-updates"):
        if capacity <= 0:
            raise ValueError(f"capacity must be positive, got {capacity}")

        self.capacity = capacity
        self.name = name
        self._queue: Deque[SequencerParamUpdate] = deque()
        self._lock = threading.Lock()
        self.dropped = 0

    def send(self, update: SequencerParamUpdate) -> bool:
        """
        Enqueue an update without blocking.

        Returns:
            True if no pending update had to be evicted, False otherwise
        """
        with self._lock:
            evicted = None
            if len(self._queue) >= self.capacity:
                evicted = self._queue.popleft()
                self.dropped += 1
            self._queue.append(update)

        if evicted is not None:
            logger.warning(
                f"{self.name}: channel full ({self.capacity}), dropped oldest update ({evicted.reason})"
            )
            return False
        return True

    def try_receive(self) -> Optional[SequencerParamUpdate]:
        """Dequeue the oldest pending update, or None if there is none."""
        with self._lock:
            if not self._queue:
                return None
            return self._queue.popleft()

    def clear(self) -> None:
        """Drop pending updates and reset the overflow counter."""
        with self._lock:
            self._queue.clear()
            self.dropped = 0

    def __len__(self) -> int:
        with self._lock:
            return len(self._queue)

    def __repr__(self) -> str:
        return f"ParameterUpdateChannel(name={self.name!r}, pending={len(self)}, capacity={self.capacity})"


class GuardedParameters:
    """Single-writer / multi-reader holder for the active SequencerParameters."""

    def __init__(self, initial: SequencerParameters):
        self._lock = threading.Lock()
        self._params = initial

    def snapshot(self) -> SequencerParameters:
        """Consistent read of every parameter at once."""
        with self._lock:
            return self._params

    def store(self, params: SequencerParameters) -> None:
        with self._lock:
            self._params = params
