"""
Ziwei Doushu chart synthesis

Turns the twelve palaces produced by the star placement library into the
finished chart: luck periods at six granularities, star classification,
the four transformations of the year and day stems, and the fixed
three-harmonies-and-square geometry between palaces.

Everything in this module is pure and synchronous. Calendar conversion and
star placement live in calendar_service.py and chart_primitive.py.
"""

from dataclasses import dataclass, asdict
from datetime import date, datetime, timezone
from enum import Enum
from typing import Dict, List, Optional, Sequence, Tuple

from exceptions import InvalidPalaceError


STEMS = ('甲', '乙', '丙', '丁', '戊', '己', '庚', '辛', '壬', '癸')
BRANCHES = ('子', '丑', '寅', '卯', '辰', '巳', '午', '未', '申', '酉', '戌', '亥')


class Gender(Enum):
    MALE = "male"
    FEMALE = "female"


class TransformationType(Enum):
    HUAQUAN = "huaquan"
    HUAKE = "huake"
    HUAXING = "huaxing"
    HUAJI = "huaji"


TRANSFORMATION_ORDER = (
    TransformationType.HUAQUAN,
    TransformationType.HUAKE,
    TransformationType.HUAXING,
    TransformationType.HUAJI,
)


class ZiweiConfig:
    """Constant tables shared by every chart."""

    # Ring order; position = index + 1
    PALACE_NAMES = (
        '命宫', '兄弟宫', '夫妻宫', '子女宫', '财帛宫', '疾厄宫',
        '迁移宫', '交友宫', '官禄宫', '田宅宫', '福德宫', '父母宫',
    )

    DIRECTIONS = ('正北', '东北', '正东', '东南', '正南', '西南', '正西', '西北')

    PALACE_SIGNIFICANCE = {
        '命宫': '代表个人性格、先天运势、整体命运',
        '兄弟宫': '代表兄弟姐妹、朋友、合作伙伴关系',
        '夫妻宫': '代表婚姻、配偶、感情关系',
        '子女宫': '代表子女、晚辈、创造力',
        '财帛宫': '代表财富、收入、理财能力',
        '疾厄宫': '代表健康、疾病、体质',
        '迁移宫': '代表外出、旅行、人际关系',
        '交友宫': '代表朋友、同事、社交圈',
        '官禄宫': '代表事业、工作、职业发展',
        '田宅宫': '代表房产、家庭、祖业',
        '福德宫': '代表福气、精神生活、兴趣爱好',
        '父母宫': '代表父母、长辈、上司',
    }
    UNKNOWN_PALACE = '未知宫位'

    MAIN_STARS = frozenset({
        '紫微', '天机', '太阳', '武曲', '天同', '廉贞', '天府',
        '太阴', '贪狼', '巨门', '天相', '天梁', '七杀', '破军',
    })
    LUCKY_STARS = frozenset({'左辅', '右弼', '文昌', '文曲', '天魁', '天钺', '禄存', '天马'})
    EVIL_STARS = frozenset({'擎羊', '陀罗', '火星', '铃星', '地空', '地劫'})

    KEY_STARS = ('紫微', '天府', '太阳', '太阴', '禄存', '天马')

    # 权, 科, 禄, 忌 -- same order as TRANSFORMATION_ORDER
    STEM_TRANSFORMATIONS = {
        '甲': ('破军', '武曲', '廉贞', '太阳'),
        '乙': ('天梁', '紫微', '天机', '太阴'),
        '丙': ('天机', '文昌', '天同', '廉贞'),
        '丁': ('天同', '天机', '太阴', '巨门'),
        '戊': ('太阴', '右弼', '贪狼', '天机'),
        '己': ('贪狼', '天梁', '武曲', '文曲'),
        '庚': ('武曲', '太阴', '太阳', '天同'),
        '辛': ('太阳', '文曲', '巨门', '文昌'),
        '壬': ('紫微', '左辅', '天梁', '武曲'),
        '癸': ('巨门', '太阴', '破军', '贪狼'),
    }

    TRANSFORMATION_NAMES = {
        TransformationType.HUAQUAN: '化权',
        TransformationType.HUAKE: '化科',
        TransformationType.HUAXING: '化禄',
        TransformationType.HUAJI: '化忌',
    }

    # Birth year branch -> branch where the minor limit starts at nominal age 1
    MINOR_LIMIT_START = {
        '寅': '辰', '午': '辰', '戌': '辰',
        '申': '戌', '子': '戌', '辰': '戌',
        '巳': '未', '酉': '未', '丑': '未',
        '亥': '丑', '卯': '丑', '未': '丑',
    }


def hour_branch_index(hour: int) -> int:
    """Index of the double hour; 子 covers 23:00-00:59."""
    return ((hour + 1) // 2) % 12


def branch_of_position(position: int) -> str:
    """Earthly branch under a ring position (position 1 sits on 寅)."""
    return BRANCHES[(position + 1) % 12]


def position_of_branch(branch_index: int) -> int:
    return (branch_index - 2) % 12 + 1


def palace_name_at(position: int) -> str:
    """Canonical palace name for a ring position, wrapping cyclically."""
    return ZiweiConfig.PALACE_NAMES[(position - 1) % 12]


def position_of(palace_name: str) -> int:
    try:
        return ZiweiConfig.PALACE_NAMES.index(palace_name) + 1
    except ValueError:
        raise InvalidPalaceError(f"Unknown palace: {palace_name}") from None


@dataclass(frozen=True)
class Pillar:
    """One stem-branch pair of the sexagenary cycle."""
    stem: str
    branch: str

    def __post_init__(self):
        if self.stem not in STEMS:
            raise ValueError(f"Unknown heavenly stem: {self.stem}")
        if self.branch not in BRANCHES:
            raise ValueError(f"Unknown earthly branch: {self.branch}")

    @property
    def stem_index(self) -> int:
        return STEMS.index(self.stem)

    @property
    def branch_index(self) -> int:
        return BRANCHES.index(self.branch)

    def __str__(self):
        return f"{self.stem}{self.branch}"


@dataclass(frozen=True)
class FourPillars:
    year: Pillar
    month: Pillar
    day: Pillar
    hour: Pillar


@dataclass(frozen=True)
class LunarMoment:
    """A lunar calendar instant as produced by the calendar service."""
    year: int
    month: int
    day: int
    year_pillar: Pillar
    hour: int = 0
    minute: int = 0
    is_leap_month: bool = False
    solar_date: Optional[date] = None
    label: str = ''

    @property
    def hour_branch_index(self) -> int:
        return hour_branch_index(self.hour)


@dataclass(frozen=True)
class BirthMoment:
    moment: LunarMoment
    gender: Gender

    @property
    def year(self) -> int:
        return self.moment.year

    @property
    def month(self) -> int:
        return self.moment.month

    @property
    def day(self) -> int:
        return self.moment.day

    @property
    def hour(self) -> int:
        return self.moment.hour

    @property
    def minute(self) -> int:
        return self.moment.minute

    @property
    def year_pillar(self) -> Pillar:
        return self.moment.year_pillar


@dataclass(frozen=True)
class Palace:
    """One of the twelve palaces with the stars placed in it."""
    name: str
    position: int
    stars: Tuple[str, ...] = ()

    def __post_init__(self):
        if not 1 <= self.position <= 12:
            raise ValueError(f"Palace position must be between 1 and 12, got {self.position}")
        object.__setattr__(self, 'stars', tuple(self.stars))

    @property
    def earthly_branch(self) -> str:
        return branch_of_position(self.position)

    @property
    def is_void(self) -> bool:
        return not self.stars


@dataclass(frozen=True)
class LuckPeriod:
    """A span of ages (or a single point in time) governed by one palace."""
    start_age: int
    end_age: int
    palace: str
    label: str = ''
    heavenly_stem: Optional[str] = None
    earthly_branch: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    hour: Optional[int] = None

    def contains(self, age: int) -> bool:
        return self.start_age <= age < self.end_age


@dataclass(frozen=True)
class LuckPeriods:
    major: Tuple[LuckPeriod, ...]
    current_major: Optional[LuckPeriod]
    minor: LuckPeriod
    annual: LuckPeriod
    monthly: LuckPeriod
    daily: LuckPeriod
    hourly: LuckPeriod


@dataclass(frozen=True)
class RawChart:
    """Output of the star placement library."""
    palaces: Tuple[Palace, ...]
    major_periods: Tuple[LuckPeriod, ...] = ()


@dataclass(frozen=True)
class StarInfo:
    main_stars: Dict[str, List[str]]
    lucky_stars: Dict[str, List[str]]
    evil_stars: Dict[str, List[str]]
    key_stars_location: Dict[str, str]


@dataclass(frozen=True)
class Transformation:
    star: str
    type: TransformationType

    @property
    def name(self) -> str:
        return ZiweiConfig.TRANSFORMATION_NAMES[self.type]


@dataclass(frozen=True)
class StemTransformations:
    stem: str
    transformations: Tuple[Transformation, ...]


@dataclass(frozen=True)
class TransformationInfo:
    year_stem: StemTransformations
    day_stem: StemTransformations
    palaces: Dict[str, List[Transformation]]


@dataclass(frozen=True)
class RelatedPalaces:
    original_palace: str
    triple_palaces: Tuple[str, ...]
    square_palaces: Tuple[str, ...]
    all_related_palaces: Tuple[str, ...]


@dataclass(frozen=True)
class EnrichedPalace:
    name: str
    position: int
    earthly_branch: str
    stars: Tuple[str, ...]
    is_void: bool
    direction: str
    significance: str


@dataclass(frozen=True)
class ChartResult:
    zodiac: str
    constellation: str
    solar_date: str
    lunar_date: str
    gender: Optional[Gender]
    four_pillars: FourPillars
    palaces: Tuple[EnrichedPalace, ...]
    luck_periods: LuckPeriods
    stars_info: StarInfo
    transformations: TransformationInfo
    calculation_time: str

    def to_dict(self) -> Dict:
        return asdict(self, dict_factory=_plain_dict)


def _plain_dict(items) -> Dict:
    return {key: value.value if isinstance(value, Enum) else value for key, value in items}


# Palace geometry

def _build_related_table() -> Dict[str, RelatedPalaces]:
    table = {}
    for index, name in enumerate(ZiweiConfig.PALACE_NAMES):
        position = index + 1
        triple = (palace_name_at(position + 4), palace_name_at(position - 4))
        square = (palace_name_at(position + 6),)
        related: List[str] = []
        for related_name in (name, *triple, *square):
            if related_name not in related:
                related.append(related_name)
        table[name] = RelatedPalaces(
            original_palace=name,
            triple_palaces=triple,
            square_palaces=square,
            all_related_palaces=tuple(related),
        )
    return table


RELATED_PALACES = _build_related_table()


def related_palaces(palace_name: str) -> RelatedPalaces:
    """Three harmonies (offsets of 4) and the square (offset 6) of a palace."""
    try:
        return RELATED_PALACES[palace_name]
    except KeyError:
        raise InvalidPalaceError(f"Unknown palace: {palace_name}") from None


# Luck periods

def _palace_on_branch(palaces: Sequence[Palace], branch_index: int) -> Palace:
    position = position_of_branch(branch_index)
    for palace in palaces:
        if palace.position == position:
            return palace
    return palaces[0]


def _age_at(birth: BirthMoment, as_of: LunarMoment) -> int:
    return as_of.year - birth.year


def select_current_major(periods: Sequence[LuckPeriod], age: int) -> Optional[LuckPeriod]:
    """
    First period containing age, else the first period.
    An empty sequence gives None.
    """
    if not periods:
        return None
    for period in periods:
        if period.contains(age):
            return period
    return periods[0]


def calculate_minor_period(birth: BirthMoment, palaces: Sequence[Palace],
                           as_of: LunarMoment) -> LuckPeriod:
    age = _age_at(birth, as_of)
    start = BRANCHES.index(ZiweiConfig.MINOR_LIMIT_START[birth.year_pillar.branch])
    step = 1 if birth.gender == Gender.MALE else -1
    # Nominal age 1 sits on the start branch
    branch_index = (start + step * age) % 12
    palace = _palace_on_branch(palaces, branch_index)
    return LuckPeriod(
        start_age=age,
        end_age=age,
        palace=palace.name,
        label=f"小限 {age + 1}岁",
        earthly_branch=BRANCHES[branch_index],
        year=as_of.year,
    )


def calculate_annual_period(birth: BirthMoment, palaces: Sequence[Palace],
                            as_of: LunarMoment) -> LuckPeriod:
    age = _age_at(birth, as_of)
    pillar = as_of.year_pillar
    palace = _palace_on_branch(palaces, pillar.branch_index)
    return LuckPeriod(
        start_age=age,
        end_age=age,
        palace=palace.name,
        label=f"流年 {pillar}",
        heavenly_stem=pillar.stem,
        earthly_branch=pillar.branch,
        year=as_of.year,
    )


def _monthly_branch_index(birth: BirthMoment, as_of: LunarMoment) -> int:
    # 斗君: back from the annual branch by birth month, forward by birth hour
    dou_jun = as_of.year_pillar.branch_index - (birth.month - 1) + birth.moment.hour_branch_index
    return (dou_jun + as_of.month - 1) % 12


def calculate_monthly_period(birth: BirthMoment, palaces: Sequence[Palace],
                             as_of: LunarMoment) -> LuckPeriod:
    age = _age_at(birth, as_of)
    branch_index = _monthly_branch_index(birth, as_of)
    palace = _palace_on_branch(palaces, branch_index)
    return LuckPeriod(
        start_age=age,
        end_age=age,
        palace=palace.name,
        label=f"流月 {as_of.month}月",
        earthly_branch=BRANCHES[branch_index],
        year=as_of.year,
        month=as_of.month,
    )


def calculate_daily_period(birth: BirthMoment, palaces: Sequence[Palace],
                           as_of: LunarMoment) -> LuckPeriod:
    age = _age_at(birth, as_of)
    branch_index = (_monthly_branch_index(birth, as_of) + as_of.day - 1) % 12
    palace = _palace_on_branch(palaces, branch_index)
    return LuckPeriod(
        start_age=age,
        end_age=age,
        palace=palace.name,
        label=f"流日 {as_of.month}月{as_of.day}日",
        earthly_branch=BRANCHES[branch_index],
        year=as_of.year,
        month=as_of.month,
        day=as_of.day,
    )


def calculate_hourly_period(birth: BirthMoment, palaces: Sequence[Palace],
                            as_of: LunarMoment) -> LuckPeriod:
    age = _age_at(birth, as_of)
    daily_index = (_monthly_branch_index(birth, as_of) + as_of.day - 1) % 12
    branch_index = (daily_index + as_of.hour_branch_index) % 12
    palace = _palace_on_branch(palaces, branch_index)
    return LuckPeriod(
        start_age=age,
        end_age=age,
        palace=palace.name,
        label=f"流时 {BRANCHES[as_of.hour_branch_index]}时",
        earthly_branch=BRANCHES[branch_index],
        year=as_of.year,
        month=as_of.month,
        day=as_of.day,
        hour=as_of.hour,
    )


def synthesize(birth: BirthMoment, palaces: Sequence[Palace],
               major_periods: Sequence[LuckPeriod], as_of: LunarMoment) -> LuckPeriods:
    """Luck periods at every granularity for the instant as_of."""
    major = tuple(sorted(major_periods, key=lambda p: p.start_age))
    return LuckPeriods(
        major=major,
        current_major=select_current_major(major, _age_at(birth, as_of)),
        minor=calculate_minor_period(birth, palaces, as_of),
        annual=calculate_annual_period(birth, palaces, as_of),
        monthly=calculate_monthly_period(birth, palaces, as_of),
        daily=calculate_daily_period(birth, palaces, as_of),
        hourly=calculate_hourly_period(birth, palaces, as_of),
    )


# Stars

def classify_star(star: str) -> Optional[str]:
    if star in ZiweiConfig.MAIN_STARS:
        return 'main'
    elif star in ZiweiConfig.LUCKY_STARS:
        return 'lucky'
    elif star in ZiweiConfig.EVIL_STARS:
        return 'evil'
    return None


def find_star_palace(palaces: Sequence[Palace], star: str) -> Optional[str]:
    for palace in palaces:
        if star in palace.stars:
            return palace.name
    return None


def locate_key_stars(palaces: Sequence[Palace]) -> Dict[str, str]:
    locations = {}
    for star in ZiweiConfig.KEY_STARS:
        palace_name = find_star_palace(palaces, star)
        if palace_name is not None:
            locations[star] = palace_name
    return locations


def classify_stars(palaces: Sequence[Palace]) -> StarInfo:
    """Split every palace's stars into main, lucky and evil; others are dropped."""
    by_category: Dict[str, Dict[str, List[str]]] = {'main': {}, 'lucky': {}, 'evil': {}}
    for palace in palaces:
        for star in palace.stars:
            category = classify_star(star)
            if category is None:
                continue
            by_category[category].setdefault(palace.name, []).append(star)

    return StarInfo(
        main_stars=by_category['main'],
        lucky_stars=by_category['lucky'],
        evil_stars=by_category['evil'],
        key_stars_location=locate_key_stars(palaces),
    )


# Four transformations

def transformations_for_stem(stem: str) -> Tuple[Transformation, ...]:
    if stem not in ZiweiConfig.STEM_TRANSFORMATIONS:
        raise ValueError(f"Unknown heavenly stem: {stem}")
    stars = ZiweiConfig.STEM_TRANSFORMATIONS[stem]
    return tuple(Transformation(star, kind) for star, kind in zip(stars, TRANSFORMATION_ORDER))


def locate_transformations(transformations: Sequence[Transformation],
                           palaces: Sequence[Palace]) -> Dict[str, List[Transformation]]:
    located: Dict[str, List[Transformation]] = {}
    for transformation in transformations:
        palace_name = find_star_palace(palaces, transformation.star)
        if palace_name is None:
            continue
        located.setdefault(palace_name, []).append(transformation)
    return located


def resolve_transformations(four_pillars: FourPillars,
                            palaces: Sequence[Palace]) -> TransformationInfo:
    """
    Four transformations of the year and day stems.

    Every stem always yields its four pairs. Only pairs whose star is on the
    chart appear in the palace map.
    """
    year = StemTransformations(
        stem=four_pillars.year.stem,
        transformations=transformations_for_stem(four_pillars.year.stem),
    )
    day = StemTransformations(
        stem=four_pillars.day.stem,
        transformations=transformations_for_stem(four_pillars.day.stem),
    )
    return TransformationInfo(
        year_stem=year,
        day_stem=day,
        palaces=locate_transformations(year.transformations + day.transformations, palaces),
    )


def check_palace_transformation(palaces: Sequence[Palace], year_stem: str,
                                palace_name: str,
                                transformation_type: TransformationType) -> Dict:
    """Look for a natal transformation of one type in a palace's three harmonies and square."""
    related = related_palaces(palace_name)
    natal = {
        t.star: t for t in transformations_for_stem(year_stem)
        if t.type == transformation_type
    }

    details = []
    for palace in palaces:
        if palace.name not in related.all_related_palaces:
            continue
        for star in palace.stars:
            if star in natal:
                details.append({
                    'palace': palace.name,
                    'star': star,
                    'transformation': natal[star].name,
                })

    return {'exists': len(details) > 0, 'details': details}


# Assembly

def palace_direction(position: int) -> str:
    return ZiweiConfig.DIRECTIONS[(position - 1) % 8]


def palace_significance(palace_name: str) -> str:
    return ZiweiConfig.PALACE_SIGNIFICANCE.get(palace_name, ZiweiConfig.UNKNOWN_PALACE)


def enrich_palace(palace: Palace) -> EnrichedPalace:
    return EnrichedPalace(
        name=palace.name,
        position=palace.position,
        earthly_branch=palace.earthly_branch,
        stars=palace.stars,
        is_void=palace.is_void,
        direction=palace_direction(palace.position),
        significance=palace_significance(palace.name),
    )


def assemble(four_pillars: FourPillars,
             palaces: Sequence[Palace],
             luck_periods: LuckPeriods,
             stars_info: StarInfo,
             transformations: TransformationInfo,
             zodiac: str,
             constellation: str,
             birth: Optional[BirthMoment] = None,
             calculated_at: Optional[datetime] = None) -> ChartResult:
    calculated_at = calculated_at or datetime.now(timezone.utc)
    solar_date = ''
    lunar_date = ''
    if birth is not None:
        if birth.moment.solar_date is not None:
            solar_date = birth.moment.solar_date.isoformat()
        lunar_date = birth.moment.label

    return ChartResult(
        zodiac=zodiac,
        constellation=constellation,
        solar_date=solar_date,
        lunar_date=lunar_date,
        gender=birth.gender if birth is not None else None,
        four_pillars=four_pillars,
        palaces=tuple(enrich_palace(p) for p in sorted(palaces, key=lambda p: p.position)),
        luck_periods=luck_periods,
        stars_info=stars_info,
        transformations=transformations,
        calculation_time=calculated_at.isoformat(),
    )


class ZiweiChart:
    """Chart synthesis for one birth moment from collaborator output."""

    def __init__(self,
                 birth: BirthMoment,
                 four_pillars: FourPillars,
                 raw_chart: RawChart,
                 zodiac: str = '',
                 constellation: str = ''):
        if len(raw_chart.palaces) != 12:
            raise ValueError(f"A chart needs 12 palaces, got {len(raw_chart.palaces)}")

        self.birth = birth
        self.four_pillars = four_pillars
        self.palaces = raw_chart.palaces
        self.major_periods = raw_chart.major_periods
        self.zodiac = zodiac
        self.constellation = constellation

    def calculate_luck_periods(self, as_of: LunarMoment) -> LuckPeriods:
        return synthesize(self.birth, self.palaces, self.major_periods, as_of)

    def classify_stars(self) -> StarInfo:
        return classify_stars(self.palaces)

    def resolve_transformations(self) -> TransformationInfo:
        return resolve_transformations(self.four_pillars, self.palaces)

    def check_transformation(self, palace_name: str,
                             transformation_type: TransformationType) -> Dict:
        return check_palace_transformation(
            self.palaces, self.four_pillars.year.stem, palace_name, transformation_type
        )

    def generate_full_chart(self, as_of: LunarMoment,
                            calculated_at: Optional[datetime] = None) -> ChartResult:
        return assemble(
            four_pillars=self.four_pillars,
            palaces=self.palaces,
            luck_periods=self.calculate_luck_periods(as_of),
            stars_info=self.classify_stars(),
            transformations=self.resolve_transformations(),
            zodiac=self.zodiac,
            constellation=self.constellation,
            birth=self.birth,
            calculated_at=calculated_at,
        )
