"""Poll delay schedule for the readiness watcher.

Port probes start fast and slow down geometrically up to a ceiling, so an
early listener is seen quickly while a slow one does not cost a busy loop.
"""

from dataclasses import dataclass


@dataclass(frozen=True, slots=True)
class ExponentialBackoff:
    """Capped exponential delay schedule.

    The delay formula is:
        delay = min(base * (multiplier ^ attempt), max_delay)

    Attributes:
        base: Delay in seconds after the first failed poll.
        max_delay: Ceiling for any single delay, in seconds.
        multiplier: Growth factor per attempt.
    """

    base: float = 0.2
    max_delay: float = 1.0
    multiplier: float = 1.25

    def delay(self, attempt: int) -> float:
        """Return the delay before poll ``attempt + 1``.

        Args:
            attempt: Zero-based count of polls that found no listener.

        Returns:
            The delay in seconds.
        """
        return min(self.base * (self.multiplier**attempt), self.max_delay)
