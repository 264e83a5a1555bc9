"""Calendar conversion and stem-branch pillars backed by lunar_python."""

from datetime import date, datetime
from typing import Optional, Tuple

from lunar_python import Lunar, Solar

from exceptions import InvalidDateError, InvalidDateTimeError
from ziwei import FourPillars, LunarMoment, Pillar


DATE_TYPES = ('solar', 'lunar')


def parse_date(date_string: str):
    """Split 'YYYY-MM-DD' into integers."""
    try:
        year, month, day = (int(part) for part in date_string.strip().split('-'))
    except (AttributeError, ValueError):
        raise InvalidDateError(f"Invalid date '{date_string}', expected YYYY-MM-DD")
    return year, month, day


def parse_time(time_string: str) -> Tuple[int, int]:
    """Split 'HH:MM' (minutes optional) into hour and minute."""
    try:
        parts = time_string.strip().split(':')
        hour = int(parts[0])
        minute = int(parts[1]) if len(parts) > 1 and parts[1] else 0
    except (AttributeError, ValueError, IndexError):
        raise InvalidDateTimeError(f"Invalid birth_time '{time_string}', expected HH:MM")
    if not 0 <= hour <= 23:
        raise InvalidDateTimeError(f"birth_time hour must be between 0 and 23, got {hour}")
    if not 0 <= minute <= 59:
        raise InvalidDateTimeError(f"birth_time minute must be between 0 and 59, got {minute}")
    return hour, minute


class CalendarService:
    """Solar/lunar conversion, four pillars, zodiac and constellation."""

    def _lunar_for(self, date_string: str, date_type: str, hour: int = 0,
                   minute: int = 0, is_leap_month: bool = False) -> Lunar:
        if date_type not in DATE_TYPES:
            raise InvalidDateError(f"Unknown date type: {date_type}")
        year, month, day = parse_date(date_string)
        try:
            if date_type == 'solar':
                date(year, month, day)
                return Solar.fromYmdHms(year, month, day, hour, minute, 0).getLunar()
            # lunar_python marks a leap month with a negative month number
            lunar_month = -month if is_leap_month else month
            lunar = Lunar.fromYmdHms(year, lunar_month, day, hour, minute, 0)
            solar = lunar.getSolar()
            resolved = Solar.fromYmd(solar.getYear(), solar.getMonth(), solar.getDay()).getLunar()
        except Exception as e:
            raise InvalidDateError(f"Date '{date_string}' is outside the {date_type} calendar: {e}")
        # lunar_python rolls a day past the month's end into the next month
        if (resolved.getYear(), resolved.getMonth(), resolved.getDay()) != (year, lunar_month, day):
            raise InvalidDateError(
                f"Date '{date_string}' is outside the {date_type} calendar: "
                f"{'leap ' if is_leap_month else ''}month {month} of {year} has no day {day}"
            )
        return lunar

    @staticmethod
    def _to_moment(lunar: Lunar, hour: int, minute: int) -> LunarMoment:
        solar = lunar.getSolar()
        return LunarMoment(
            year=lunar.getYear(),
            month=abs(lunar.getMonth()),
            day=lunar.getDay(),
            year_pillar=Pillar(lunar.getYearGan(), lunar.getYearZhi()),
            hour=hour,
            minute=minute,
            is_leap_month=lunar.getMonth() < 0,
            solar_date=date(solar.getYear(), solar.getMonth(), solar.getDay()),
            label=f"{lunar.getYearInChinese()}年{lunar.getMonthInChinese()}月{lunar.getDayInChinese()}",
        )

    def to_lunar_moment(self, date_string: str, date_type: str = 'solar', hour: int = 0,
                        minute: int = 0, is_leap_month: bool = False) -> LunarMoment:
        lunar = self._lunar_for(date_string, date_type, hour, minute, is_leap_month)
        return self._to_moment(lunar, hour, minute)

    def moment_at(self, dt: datetime) -> LunarMoment:
        """Lunar moment for a wall-clock datetime."""
        lunar = Solar.fromYmdHms(dt.year, dt.month, dt.day, dt.hour, dt.minute, dt.second).getLunar()
        return self._to_moment(lunar, dt.hour, dt.minute)

    def compute_four_pillars(self, moment: LunarMoment, hour: Optional[int] = None,
                             minute: Optional[int] = None,
                             place: Optional[str] = None) -> FourPillars:
        # place is accepted for true solar time corrections; pillars use local clock time
        hour = moment.hour if hour is None else hour
        minute = moment.minute if minute is None else minute
        if moment.solar_date is not None:
            solar = Solar.fromYmdHms(moment.solar_date.year, moment.solar_date.month,
                                     moment.solar_date.day, hour, minute, 0)
        else:
            lunar_month = -moment.month if moment.is_leap_month else moment.month
            solar = Lunar.fromYmd(moment.year, lunar_month, moment.day).getSolar()
            solar = Solar.fromYmdHms(solar.getYear(), solar.getMonth(), solar.getDay(), hour, minute, 0)

        eight_char = solar.getLunar().getEightChar()
        return FourPillars(
            year=Pillar(eight_char.getYearGan(), eight_char.getYearZhi()),
            month=Pillar(eight_char.getMonthGan(), eight_char.getMonthZhi()),
            day=Pillar(eight_char.getDayGan(), eight_char.getDayZhi()),
            hour=Pillar(eight_char.getTimeGan(), eight_char.getTimeZhi()),
        )

    def chinese_zodiac(self, year: int) -> str:
        return Lunar.fromYmd(year, 1, 1).getYearShengXiao()

    def constellation(self, month: int, day: int) -> str:
        # 2000 is a leap year, so Feb 29 resolves
        return Solar.fromYmd(2000, month, day).getXingZuo()
