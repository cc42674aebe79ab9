"""Business Calendar - Deadline arithmetic over business days"""
from datetime import date, datetime, time, timedelta
from typing import FrozenSet, Iterable, Optional, Union

from ..config.settings import settings
from ..domain.errors import InvalidArgumentError

DateLike = Union[date, datetime]

ONE_DAY = timedelta(days=1)


class BusinessCalendar:
    """
    Add business days or business hours to a start instant

    A business day is Monday to Friday and not a configured holiday.
    Instances are immutable; holiday dates compare by calendar date, so the
    time zone of a datetime argument is kept as-is.
    """

    def __init__(self, holidays: Optional[Iterable[date]] = None):
        self._holidays: FrozenSet[date] = frozenset(
            h.date() if isinstance(h, datetime) else h for h in (holidays or ())
        )

    @classmethod
    def from_settings(cls) -> "BusinessCalendar":
        return cls(settings.holidays_list)

    @property
    def holidays(self) -> FrozenSet[date]:
        return self._holidays

    def with_holidays(self, holidays: Iterable[date]) -> "BusinessCalendar":
        """New calendar with additional holidays"""
        return BusinessCalendar(set(self._holidays) | set(holidays))

    def is_business_day(self, value: DateLike) -> bool:
        day = value.date() if isinstance(value, datetime) else value
        return day.weekday() < 5 and day not in self._holidays

    def next_business_day(self, value: DateLike) -> DateLike:
        """Earliest business day on or after value (time of day kept)"""
        while not self.is_business_day(value):
            value = value + ONE_DAY
        return value

    def add_business_days(self, start: DateLike, days: int) -> DateLike:
        """
        Add business days to start

        A non-business start is first moved to the next business day keeping
        its time of day; days=0 returns that normalized start.

        Raises:
            InvalidArgumentError: If days is negative
        """
        if days < 0:
            raise InvalidArgumentError(
                "Business days must not be negative", details={"days": days}
            )

        current = self.next_business_day(start)
        counted = 0
        while counted < days:
            current = current + ONE_DAY
            if self.is_business_day(current):
                counted += 1
        return current

    def add_business_hours(self, start: datetime, hours: Union[int, float]) -> datetime:
        """
        Add business hours to start

        Only time inside business days elapses. A non-business start begins
        counting at 00:00 of the next business day. Jumps a day at a time, so
        the cost is proportional to the number of days spanned.

        Raises:
            InvalidArgumentError: If hours is negative
        """
        if hours < 0:
            raise InvalidArgumentError(
                "Business hours must not be negative", details={"hours": hours}
            )

        current = start
        if not self.is_business_day(current):
            current = self._start_of_day(self.next_business_day(current))

        remaining = timedelta(hours=hours)
        while True:
            end_of_day = self._start_of_day(current) + ONE_DAY
            available = end_of_day - current
            if remaining <= available:
                return current + remaining
            remaining -= available
            current = self.next_business_day(end_of_day)

    @staticmethod
    def _start_of_day(value: datetime) -> datetime:
        return datetime.combine(value.date(), time.min, tzinfo=value.tzinfo)
