"""Star placement backed by py_iztro."""

from typing import Dict, List

from py_iztro import Astro

from exceptions import ChartPrimitiveError
from ziwei import Gender, LuckPeriod, Palace, RawChart, hour_branch_index


IZTRO_GENDERS = {
    Gender.MALE: '男',
    Gender.FEMALE: '女',
}

# py_iztro names that differ from the canonical palace names
PALACE_ALIASES = {
    '仆役': '交友宫',
    '奴仆': '交友宫',
    '交友': '交友宫',
    '官禄': '官禄宫',
    '事业': '官禄宫',
}


def normalize_palace_name(name: str) -> str:
    if name in PALACE_ALIASES:
        return PALACE_ALIASES[name]
    if name.endswith('宫'):
        return name
    return f"{name}宫"


def iztro_time_index(hour: int) -> int:
    """py_iztro splits 子 into early (0) and late (12)."""
    if hour == 23:
        return 12
    return hour_branch_index(hour)


def _star_names(palace: Dict) -> List[str]:
    names = []
    for group in ('majorStars', 'minorStars', 'adjectiveStars'):
        for star in palace.get(group) or []:
            names.append(star['name'])
    return names


def _major_period(palace: Dict, name: str) -> LuckPeriod:
    decadal = palace['decadal']
    start, end = decadal['range']
    stem = decadal.get('heavenlyStem')
    branch = decadal.get('earthlyBranch')
    return LuckPeriod(
        # iztro ranges are inclusive nominal ages (birth year = 1); ages here
        # count from 0 in the birth year
        start_age=start - 1,
        end_age=end,
        palace=name,
        label=f"{stem}{branch}大限" if stem and branch else f"{start}-{end}岁大限",
        heavenly_stem=stem,
        earthly_branch=branch,
    )


def raw_chart_from_astrolabe(chart: Dict) -> RawChart:
    """Convert a py_iztro astrolabe dump (by_alias=True) into a RawChart."""
    palaces = []
    major_periods = []
    # palaces[0] is the palace on 寅, i.e. ring position 1
    for index, palace in enumerate(chart['palaces']):
        name = normalize_palace_name(palace['name'])
        palaces.append(Palace(name=name, position=index + 1, stars=tuple(_star_names(palace))))
        if palace.get('decadal') and palace['decadal'].get('range'):
            major_periods.append(_major_period(palace, name))

    major_periods.sort(key=lambda p: p.start_age)
    return RawChart(palaces=tuple(palaces), major_periods=tuple(major_periods))


class ChartPrimitive:
    """Places the stars of a birth moment into the twelve palaces."""

    def compute_raw_chart(self, year: int, month: int, day: int, hour: int, minute: int,
                          gender: Gender, is_leap_month: bool = False) -> RawChart:
        """Chart for a lunar birth date."""
        try:
            astro = Astro()
            astrolabe = astro.by_lunar(
                f"{year}-{month}-{day}",
                iztro_time_index(hour),
                IZTRO_GENDERS[gender],
                is_leap_month,
            )
            return raw_chart_from_astrolabe(astrolabe.model_dump(by_alias=True))
        except ChartPrimitiveError:
            raise
        except Exception as e:
            raise ChartPrimitiveError(f"chart primitive failed: {e}")
