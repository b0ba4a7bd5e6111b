from datetime import UTC, datetime, timedelta


class SystemClock:
    def now_utc(self) -> datetime:
        return datetime.now(UTC)

    def epoch_seconds(self) -> int:
        return int(self.now_utc().timestamp())


class FixedClock:
    """Clock that only moves when told to (tests, replay tooling)."""

    def __init__(self, start: datetime) -> None:
        self._now = start

    def now_utc(self) -> datetime:
        return self._now

    def epoch_seconds(self) -> int:
        return int(self._now.timestamp())

    def advance(self, **delta: float) -> None:
        self._now = self._now + timedelta(**delta)
