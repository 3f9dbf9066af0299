"""
Request Pacing Module.

External sources used by the intent pipeline are rate-sensitive (anti-bot
detection on the job aggregator, quota on the search API). Throughput is
bounded by an explicit, optionally jittered sleep between network calls
instead of a token bucket: the pipeline is sequential, so the only decision
is how long to wait before the next call.

Usage:
    pacer = RequestPacer("kyujinbox", min_seconds=3.0, jitter_seconds=4.0)

    await pacer.wait()  # sleeps 3-7 seconds
    await page.goto(url)
"""

import asyncio
import random
from dataclasses import dataclass
from datetime import datetime
from typing import Awaitable, Callable, Optional


SleepFunc = Callable[[float], Awaitable[None]]


@dataclass
class PacingStats:
    """Statistics for request pacing."""
    waits_count: int = 0
    total_wait_time_seconds: float = 0.0
    last_wait_at: Optional[datetime] = None


class RequestPacer:
    """
    Sleeps a fixed minimum plus uniform jitter between calls.

    The sleep and random functions are injectable so tests can run without
    real delays and with deterministic jitter.
    """

    def __init__(
        self,
        provider: str,
        min_seconds: float = 0.0,
        jitter_seconds: float = 0.0,
        sleep: Optional[SleepFunc] = None,
        rng: Optional[random.Random] = None,
    ):
        """
        Initialize the pacer.

        Args:
            provider: Provider name for logging/stats
            min_seconds: Minimum delay per wait
            jitter_seconds: Upper bound of the uniform extra delay
            sleep: Async sleep function (default: asyncio.sleep)
            rng: Random source for jitter (default: module random)
        """
        if min_seconds < 0 or jitter_seconds < 0:
            raise ValueError("Pacing delays must be non-negative")
        self.provider = provider
        self.min_seconds = min_seconds
        self.jitter_seconds = jitter_seconds
        self._sleep = sleep or asyncio.sleep
        self._rng = rng or random.Random()
        self._stats = PacingStats()

    def next_delay(self) -> float:
        """Draw the next delay in seconds."""
        if self.jitter_seconds == 0:
            return self.min_seconds
        return self.min_seconds + self._rng.uniform(0.0, self.jitter_seconds)

    async def wait(self) -> float:
        """Sleep for the next delay. Returns the delay used."""
        delay = self.next_delay()
        if delay > 0:
            await self._sleep(delay)
        self._stats.waits_count += 1
        self._stats.total_wait_time_seconds += delay
        self._stats.last_wait_at = datetime.utcnow()
        return delay

    def get_stats(self) -> PacingStats:
        """Get pacing statistics."""
        return self._stats
