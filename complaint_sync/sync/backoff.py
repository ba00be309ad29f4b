"""Reconnection backoff - capped exponential delay with jitter"""
import random
from typing import Optional

from ..config.settings import Settings

# 2 ** 62 * any sane base is already far past any cap
MAX_EXPONENT = 62


class BackoffPolicy:
    """
    delay(attempt) = min(cap, base * 2 ** attempt) + jitter

    Jitter is uniform in [0, max_jitter) so clients dropped at the same
    moment do not reconnect in lockstep.
    """

    def __init__(
        self,
        base_seconds: float = 1.0,
        cap_seconds: float = 15.0,
        max_jitter_seconds: float = 0.3,
        rng: Optional[random.Random] = None
    ):
        if base_seconds < 0 or cap_seconds < 0 or max_jitter_seconds < 0:
            raise ValueError("Backoff parameters must be non-negative")
        self.base_seconds = base_seconds
        self.cap_seconds = cap_seconds
        self.max_jitter_seconds = max_jitter_seconds
        self._rng = rng or random.Random()

    @classmethod
    def from_settings(cls, settings: Settings) -> "BackoffPolicy":
        return cls(
            base_seconds=settings.ws_backoff_base_seconds,
            cap_seconds=settings.ws_backoff_cap_seconds,
            max_jitter_seconds=settings.ws_backoff_max_jitter_seconds,
        )

    @property
    def max_delay(self) -> float:
        """Upper bound of any delay this policy returns"""
        return self.cap_seconds + self.max_jitter_seconds

    def base_delay(self, attempt: int) -> float:
        """Delay before jitter for the given attempt (0-based)"""
        exponent = min(max(attempt, 0), MAX_EXPONENT)
        return min(self.cap_seconds, self.base_seconds * (2 ** exponent))

    def jitter(self) -> float:
        return self._rng.random() * self.max_jitter_seconds

    def next_delay(self, attempt: int) -> float:
        """Delay to wait before reconnection attempt ``attempt + 1``"""
        return self.base_delay(attempt) + self.jitter()
