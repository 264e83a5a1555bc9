from __future__ import annotations

import asyncio
from datetime import datetime

import pytest

from calendar_service import CalendarService
from conftest import StubCalendar, StubChartPrimitive
from exceptions import (
    ChartCalculationError,
    ChartPrimitiveError,
    InvalidDateError,
    InvalidDateTimeError,
    InvalidPalaceError,
)
from service import ZiweiService
from ziwei import Gender, TransformationType

AS_OF = datetime(2026, 8, 27, 10, 0)


def _calculate(service: ZiweiService, **overrides):
    arguments = {
        'birth_date': '1990-05-15',
        'date_type': 'solar',
        'birth_time': '08:30',
        'gender': Gender.MALE,
        'birth_place': '北京',
        'as_of': AS_OF,
    }
    arguments.update(overrides)
    return asyncio.run(service.calculate_chart(**arguments))


def test_solar_birth_with_real_calendar() -> None:
    primitive = StubChartPrimitive()
    service = ZiweiService(calendar=CalendarService(), chart_primitive=primitive)

    result = _calculate(service)

    # 1990-05-15 is the 21st day of the 4th lunar month
    assert primitive.calls == [(1990, 4, 21, 8, 30, Gender.MALE, False)]
    assert result.solar_date == '1990-05-15'
    assert result.zodiac == '马'
    assert result.constellation == '金牛'
    assert str(result.four_pillars.year) == '庚午'
    assert result.stars_info.main_stars['命宫'] == ['紫微', '天府']
    assert [p.name for p in result.palaces if p.is_void] == ['夫妻宫', '交友宫']
    assert result.luck_periods.annual.heavenly_stem == '丙'
    assert result.luck_periods.annual.earthly_branch == '午'


def test_lunar_birth_passes_lunar_fields() -> None:
    primitive = StubChartPrimitive()
    service = ZiweiService(calendar=CalendarService(), chart_primitive=primitive)

    result = _calculate(service, birth_date='1990-4-21', date_type='lunar')

    assert primitive.calls[0][:3] == (1990, 4, 21)
    assert result.solar_date == '1990-05-15'


def test_primitive_failure_propagates() -> None:
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=StubChartPrimitive(fail=True))

    with pytest.raises(ChartPrimitiveError, match="chart primitive failed"):
        _calculate(service)


def test_bad_time_is_rejected_before_collaborators_run() -> None:
    primitive = StubChartPrimitive()
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=primitive)

    with pytest.raises(InvalidDateTimeError):
        _calculate(service, birth_time='25:00')
    assert primitive.calls == []


def test_invalid_date_is_reported() -> None:
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=StubChartPrimitive())

    with pytest.raises(InvalidDateError):
        _calculate(service, birth_date='1990-02-30')


def test_unexpected_collaborator_error_is_wrapped() -> None:
    class BrokenCalendar(StubCalendar):
        def compute_four_pillars(self, moment, hour=None, minute=None, place=None):
            raise KeyError('pillar')

    service = ZiweiService(calendar=BrokenCalendar(), chart_primitive=StubChartPrimitive())

    with pytest.raises(ChartCalculationError, match="four pillars failed"):
        _calculate(service)


def test_check_palace_transformation() -> None:
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=StubChartPrimitive())

    result = asyncio.run(service.check_palace_transformation(
        '1990-05-15', 'solar', '08:30', Gender.MALE, '命宫', TransformationType.HUAKE,
    ))

    assert result['exists'] is True
    assert result['details'][0]['star'] == '武曲'


def test_check_palace_transformation_unknown_palace() -> None:
    primitive = StubChartPrimitive()
    service = ZiweiService(calendar=StubCalendar(), chart_primitive=primitive)

    with pytest.raises(InvalidPalaceError):
        asyncio.run(service.check_palace_transformation(
            '1990-05-15', 'solar', '08:30', Gender.MALE, '天宫', TransformationType.HUAKE,
        ))
    assert primitive.calls == []
