"""Deduplication state for Reddit IRC Bot."""

from .codec import UINT64_MAX, encode
from .logging_config import create_execution_logger


class WatermarkTracker:
    """Holds the highest item identifier already delivered.

    The watermark never decreases: a cycle whose maximum is below the current
    value leaves it untouched.
    """

    def __init__(self, initial: int = 0, execution_id: str | None = None):
        """Initialize the tracker.

        Args:
            initial: Starting watermark value
            execution_id: Execution ID for logging context
        """
        self.logger = create_execution_logger("watermark", execution_id)
        self._value = 0
        self.set(initial)

    def get(self) -> int:
        """Return the current watermark."""
        return self._value

    def set(self, value: int) -> None:
        """Overwrite the watermark unconditionally."""
        if value < 0 or value > UINT64_MAX:
            raise ValueError(f"Watermark out of range: {value}")
        self._value = value

    def advance(self, candidate: int) -> bool:
        """Move the watermark forward to candidate if it is larger.

        Args:
            candidate: Largest identifier observed in the last cycle

        Returns:
            True if the watermark changed, False otherwise
        """
        if candidate > self._value:
            self.logger.debug(
                "Watermark advanced",
                watermark=encode(candidate),
                previous=encode(self._value),
            )
            self.set(candidate)
            return True

        if candidate < self._value:
            self.logger.warning(
                "Cycle maximum below watermark, keeping watermark",
                watermark=encode(self._value),
                cycle_max=encode(candidate),
            )
        return False


class CycleDedupSet:
    """Identifiers already seen during the current cycle."""

    def __init__(self):
        self._seen: set[int] = set()

    def add(self, item_id: int) -> bool:
        """Record item_id, returning False if it was already seen."""
        if item_id in self._seen:
            return False
        self._seen.add(item_id)
        return True

    def __contains__(self, item_id: int) -> bool:
        return item_id in self._seen

    def __len__(self) -> int:
        return len(self._seen)
