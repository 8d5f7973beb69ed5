from __future__ import annotations


def worked_minutes(seconds: int) -> int:
    """Whole minutes for a number of studied seconds, rounding half up.

    Any non-zero amount reports at least one minute; zero stays zero.
    """
    if seconds <= 0:
        return 0
    return max(1, (seconds + 30) // 60)


class StudyAccumulator:
    """Counts seconds actually spent studying.

    One call to `observe` per tick; only ticks seen while studying count, so
    pauses and breaks never inflate the total.
    """

    def __init__(self) -> None:
        self._seconds = 0

    @property
    def seconds(self) -> int:
        return self._seconds

    @property
    def worked_minutes(self) -> int:
        return worked_minutes(self._seconds)

    def observe(self, studying: bool) -> None:
        if studying:
            self._seconds += 1

    def clear(self) -> int:
        """Zeroes the counter and returns what it held."""
        seconds, self._seconds = self._seconds, 0
        return seconds
