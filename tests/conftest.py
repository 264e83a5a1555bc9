from __future__ import annotations

from datetime import date

import pytest

from exceptions import ChartPrimitiveError, InvalidDateError
from ziwei import (
    BirthMoment,
    FourPillars,
    Gender,
    LuckPeriod,
    LunarMoment,
    Palace,
    Pillar,
    RawChart,
    ZiweiConfig,
)

# Stars per canonical palace; star names are unique across the chart
CHART_STARS = {
    '命宫': ('紫微', '天府'),
    '兄弟宫': ('天机', '左辅'),
    '夫妻宫': (),
    '子女宫': ('太阳', '擎羊', '红鸾'),
    '财帛宫': ('武曲', '禄存'),
    '疾厄宫': ('天同', '陀罗'),
    '迁移宫': ('廉贞', '文昌'),
    '交友宫': (),
    '官禄宫': ('太阴', '天马', '火星'),
    '田宅宫': ('贪狼', '文曲'),
    '福德宫': ('巨门', '地空'),
    '父母宫': ('天相', '天梁', '七杀', '破军', '天喜'),
}


def build_palaces(stars_by_name=None) -> tuple[Palace, ...]:
    stars_by_name = CHART_STARS if stars_by_name is None else stars_by_name
    return tuple(
        Palace(name=name, position=index + 1, stars=stars_by_name.get(name, ()))
        for index, name in enumerate(ZiweiConfig.PALACE_NAMES)
    )


def build_major_periods() -> tuple[LuckPeriod, ...]:
    return tuple(
        LuckPeriod(
            start_age=3 + 10 * i,
            end_age=13 + 10 * i,
            palace=name,
            label=f"{3 + 10 * i}-{12 + 10 * i}岁大限",
        )
        for i, name in enumerate(ZiweiConfig.PALACE_NAMES)
    )


def lunar_moment(year: int, month: int, day: int, hour: int, pillar: str) -> LunarMoment:
    return LunarMoment(
        year=year,
        month=month,
        day=day,
        hour=hour,
        year_pillar=Pillar(pillar[0], pillar[1]),
    )


BIRTH_MOMENT = LunarMoment(
    year=1990,
    month=4,
    day=21,
    hour=8,
    minute=30,
    year_pillar=Pillar('庚', '午'),
    solar_date=date(1990, 5, 15),
    label='一九九〇年四月廿一',
)

AS_OF_MOMENT = lunar_moment(2026, 8, 27, 10, '丙午')

FOUR_PILLARS = FourPillars(
    year=Pillar('甲', '午'),
    month=Pillar('辛', '巳'),
    day=Pillar('己', '卯'),
    hour=Pillar('戊', '辰'),
)


class StubCalendar:
    """Canned calendar collaborator."""

    def to_lunar_moment(self, date_string, date_type='solar', hour=0, minute=0, is_leap_month=False):
        if date_string == '1990-02-30':
            raise InvalidDateError(f"Invalid date '{date_string}'")
        return BIRTH_MOMENT

    def moment_at(self, dt):
        return AS_OF_MOMENT

    def compute_four_pillars(self, moment, hour=None, minute=None, place=None):
        return FOUR_PILLARS

    def chinese_zodiac(self, year):
        return '马'

    def constellation(self, month, day):
        return '金牛'


class StubChartPrimitive:
    """Canned star placement collaborator."""

    def __init__(self, palaces=None, fail=False):
        self.palaces = build_palaces() if palaces is None else palaces
        self.fail = fail
        self.calls = []

    def compute_raw_chart(self, year, month, day, hour, minute, gender, is_leap_month=False):
        self.calls.append((year, month, day, hour, minute, gender, is_leap_month))
        if self.fail:
            raise ChartPrimitiveError("chart primitive failed: placement rules did not resolve")
        return RawChart(palaces=self.palaces, major_periods=build_major_periods())


@pytest.fixture
def palaces() -> tuple[Palace, ...]:
    return build_palaces()


@pytest.fixture
def major_periods() -> tuple[LuckPeriod, ...]:
    return build_major_periods()


@pytest.fixture
def male_birth() -> BirthMoment:
    return BirthMoment(BIRTH_MOMENT, Gender.MALE)


@pytest.fixture
def female_birth() -> BirthMoment:
    return BirthMoment(BIRTH_MOMENT, Gender.FEMALE)


@pytest.fixture
def as_of() -> LunarMoment:
    return AS_OF_MOMENT
