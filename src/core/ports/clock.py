from datetime import datetime
from typing import Protocol


class ClockPort(Protocol):
    def now_utc(self) -> datetime:
        """Return current time as an aware UTC datetime."""
        ...

    def epoch_seconds(self) -> int:
        """Return current Unix time in whole seconds."""
        ...
