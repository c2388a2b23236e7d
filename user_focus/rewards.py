import math
import uuid
import random
import datetime

from .clock import Clock, SystemClock
from .models import Badge, BadgeCategory


def compute_due_awards(interval_sec: float, elapsed_sec: float, already_awarded: int) -> int:
    """Awards owed for ``elapsed_sec``: whole intervals elapsed minus those already paid."""
    if interval_sec <= 0:
        raise ValueError(f"interval must be positive, got {interval_sec}")
    earned = math.floor(elapsed_sec / interval_sec) if elapsed_sec > 0 else 0
    return max(0, earned - int(already_awarded))


def upcoming_award_times(
    start_time: datetime.datetime,
    interval_sec: float,
    already_awarded: int,
    count: int,
) -> list[datetime.datetime]:
    return [
        start_time + datetime.timedelta(seconds=interval_sec * (already_awarded + k))
        for k in range(1, count + 1)
    ]


class RewardEngine:
    def __init__(self, rng: random.Random | None = None, clock: Clock | None = None):
        self._rng = rng or random.Random()
        self._clock = clock or SystemClock()

    compute_due_awards = staticmethod(compute_due_awards)
    upcoming_award_times = staticmethod(upcoming_award_times)

    def mint_badge(self, category: BadgeCategory | None = None) -> Badge:
        if category is None:
            category = self._rng.choice(list(BadgeCategory))
        return Badge(
            id=uuid.uuid4().hex,
            emoji=self._rng.choice(category.palette),
            category=category,
            earned_at=self._clock.now(),
        )

    def mint_badges(self, count: int) -> list[Badge]:
        return [self.mint_badge() for _ in range(max(0, count))]
