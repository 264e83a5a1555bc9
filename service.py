"""Chart calculation across the calendar, star placement and synthesis stages."""

import asyncio
import logging
from datetime import datetime
from typing import Dict, Optional

from calendar_service import CalendarService, parse_time
from chart_primitive import ChartPrimitive
from config import settings
from exceptions import ChartCalculationError, InvalidDateTimeError, ZiweiAPIException
from ziwei import (
    BirthMoment,
    ChartResult,
    Gender,
    LunarMoment,
    RelatedPalaces,
    TransformationType,
    ZiweiChart,
    related_palaces,
)

logger = logging.getLogger(__name__)


class ZiweiService:
    """
    Runs the collaborators off the event loop, then the pure chart synthesis.

    The collaborators can be swapped for canned ones in tests.
    """

    def __init__(self,
                 calendar: Optional[CalendarService] = None,
                 chart_primitive: Optional[ChartPrimitive] = None,
                 tz=None):
        self.calendar = calendar or CalendarService()
        self.chart_primitive = chart_primitive or ChartPrimitive()
        self.tz = tz or settings.tzinfo

    async def _collaborate(self, stage: str, func, *args):
        try:
            return await asyncio.to_thread(func, *args)
        except ZiweiAPIException:
            raise
        except Exception as e:
            raise ChartCalculationError(f"{stage} failed: {e}") from e

    async def build_chart(self,
                          birth_date: str,
                          date_type: str,
                          birth_time: str,
                          gender: Gender,
                          birth_place: Optional[str] = None,
                          is_leap_month: bool = False) -> ZiweiChart:
        hour, minute = parse_time(birth_time)

        moment = await self._collaborate(
            'calendar conversion', self.calendar.to_lunar_moment,
            birth_date, date_type, hour, minute, is_leap_month,
        )
        four_pillars = await self._collaborate(
            'four pillars', self.calendar.compute_four_pillars,
            moment, hour, minute, birth_place,
        )
        raw_chart = await self._collaborate(
            'chart primitive', self.chart_primitive.compute_raw_chart,
            moment.year, moment.month, moment.day, hour, minute, gender, moment.is_leap_month,
        )

        zodiac = self.calendar.chinese_zodiac(moment.year)
        constellation = ''
        if moment.solar_date is not None:
            constellation = self.calendar.constellation(moment.solar_date.month, moment.solar_date.day)

        return ZiweiChart(
            birth=BirthMoment(moment, gender),
            four_pillars=four_pillars,
            raw_chart=raw_chart,
            zodiac=zodiac,
            constellation=constellation,
        )

    async def as_of_moment(self, as_of: Optional[datetime] = None) -> LunarMoment:
        """Lunar moment of as_of (default: now) in the configured timezone."""
        if as_of is None:
            as_of = datetime.now(self.tz)
        elif as_of.tzinfo is not None:
            as_of = as_of.astimezone(self.tz)
        return await self._collaborate('calendar conversion', self.calendar.moment_at, as_of)

    async def calculate_chart(self,
                              birth_date: str,
                              date_type: str,
                              birth_time: str,
                              gender: Gender,
                              birth_place: Optional[str] = None,
                              is_leap_month: bool = False,
                              as_of: Optional[datetime] = None) -> ChartResult:
        logger.info("Calculating ziwei chart: date=%s type=%s time=%s gender=%s",
                    birth_date, date_type, birth_time, gender.value)
        try:
            chart = await self.build_chart(birth_date, date_type, birth_time, gender,
                                           birth_place, is_leap_month)
            as_of_moment = await self.as_of_moment(as_of)
            result = chart.generate_full_chart(as_of_moment)
        except InvalidDateTimeError as e:
            logger.warning("Rejected birth input: %s", e)
            raise
        except ZiweiAPIException:
            logger.exception("Ziwei chart calculation failed")
            raise
        except Exception as e:
            logger.exception("Ziwei chart calculation failed")
            raise ChartCalculationError(f"Chart calculation failed: {e}") from e

        logger.info("Ziwei chart calculated")
        return result

    def triple_square_palaces(self, palace_name: str) -> RelatedPalaces:
        return related_palaces(palace_name)

    async def check_palace_transformation(self,
                                          birth_date: str,
                                          date_type: str,
                                          birth_time: str,
                                          gender: Gender,
                                          palace_name: str,
                                          transformation_type: TransformationType,
                                          birth_place: Optional[str] = None,
                                          is_leap_month: bool = False) -> Dict:
        # Reject an unknown palace before any collaborator runs
        related_palaces(palace_name)
        chart = await self.build_chart(birth_date, date_type, birth_time, gender,
                                       birth_place, is_leap_month)
        return chart.check_transformation(palace_name, transformation_type)
