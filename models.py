"""Pydantic models for Ziwei Doushu API request/response validation."""

from datetime import datetime
from enum import Enum
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from calendar_service import parse_time
from exceptions import InvalidDateTimeError


# Enums
class GenderEnum(str, Enum):
    """Gender of the chart subject."""
    MALE = "male"
    FEMALE = "female"


class DateTypeEnum(str, Enum):
    """Calendar the birth date is given in."""
    SOLAR = "solar"
    LUNAR = "lunar"


class TransformationTypeEnum(str, Enum):
    """The four transformations."""
    HUAQUAN = "huaquan"
    HUAKE = "huake"
    HUAXING = "huaxing"
    HUAJI = "huaji"


# Request Models
class ZiweiChartRequest(BaseModel):
    """Request model for ziwei chart calculation."""

    birth_date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{1,2}-\d{1,2}$",
        description="Birth date as YYYY-MM-DD",
        examples=["1990-05-15"]
    )
    date_type: DateTypeEnum = Field(
        default=DateTypeEnum.SOLAR,
        description="Whether birth_date is a solar or a lunar date"
    )
    birth_time: str = Field(
        ...,
        pattern=r"^\d{1,2}(:\d{1,2})?$",
        description="Birth time as HH:MM (24-hour clock)",
        examples=["08:30"]
    )
    gender: GenderEnum = Field(
        ...,
        description="Gender of the chart subject"
    )
    birth_place: Optional[str] = Field(
        None,
        description="Birth place, kept for reference"
    )
    is_leap_month: bool = Field(
        default=False,
        description="For lunar dates, whether the month is a leap month"
    )
    as_of: Optional[datetime] = Field(
        None,
        description="Moment for the annual/monthly/daily/hourly periods (defaults to now)"
    )

    @field_validator('birth_time')
    @classmethod
    def validate_birth_time(cls, v: str) -> str:
        """Validate hour and minute ranges."""
        try:
            parse_time(v)
        except InvalidDateTimeError as e:
            raise ValueError(str(e))
        return v

    model_config = ConfigDict(
        json_schema_extra={
            "examples": [{
                "birth_date": "1990-05-15",
                "date_type": "solar",
                "birth_time": "08:30",
                "gender": "male",
                "birth_place": "北京"
            }]
        }
    )


class ZiweiChartRequestWithId(ZiweiChartRequest):
    """Chart request with optional ID for batch operations."""
    id: Optional[str] = Field(
        None,
        description="Optional identifier for this chart in batch operations"
    )


class ZiweiChartBatchRequest(BaseModel):
    """Request model for batch chart calculations."""
    charts: list[ZiweiChartRequestWithId] = Field(
        ...,
        description="List of charts to calculate"
    )


class TripleSquareRequest(BaseModel):
    """Request model for the three harmonies and square of a palace."""
    palace_name: str = Field(
        ...,
        description="Palace name, e.g. 命宫",
        examples=["命宫"]
    )


class CheckTransformationRequest(BaseModel):
    """Request model for checking a transformation around a palace."""
    chart: ZiweiChartRequest = Field(
        ...,
        description="Birth data of the chart to inspect"
    )
    palace_name: str = Field(
        ...,
        description="Palace whose three harmonies and square are searched"
    )
    transformation_type: TransformationTypeEnum = Field(
        ...,
        description="Transformation to look for"
    )


class AlmanacRequest(BaseModel):
    """Request model for a daily almanac lookup."""
    date: str = Field(
        ...,
        pattern=r"^\d{4}-\d{1,2}-\d{1,2}$",
        description="Solar date as YYYY-MM-DD",
        examples=["2024-02-10"]
    )


# Response Models
class PillarData(BaseModel):
    """One stem-branch pillar."""
    stem: str
    branch: str


class FourPillarsData(BaseModel):
    """Year, month, day and hour pillars."""
    year: PillarData
    month: PillarData
    day: PillarData
    hour: PillarData


class PalaceData(BaseModel):
    """A palace with its stars and static metadata."""
    name: str
    position: int
    earthly_branch: str
    stars: list[str]
    is_void: bool
    direction: str
    significance: str


class LuckPeriodData(BaseModel):
    """A luck period or a single point-in-time marker."""
    start_age: int
    end_age: int
    palace: str
    label: str = ""
    heavenly_stem: Optional[str] = None
    earthly_branch: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    day: Optional[int] = None
    hour: Optional[int] = None


class LuckPeriodsData(BaseModel):
    """Luck periods at every granularity."""
    major: list[LuckPeriodData]
    current_major: Optional[LuckPeriodData] = None
    minor: LuckPeriodData
    annual: LuckPeriodData
    monthly: LuckPeriodData
    daily: LuckPeriodData
    hourly: LuckPeriodData


class StarInfoData(BaseModel):
    """Stars by category and palace."""
    main_stars: dict[str, list[str]]
    lucky_stars: dict[str, list[str]]
    evil_stars: dict[str, list[str]]
    key_stars_location: dict[str, str]


class TransformationData(BaseModel):
    """A star and the transformation it takes."""
    star: str
    type: TransformationTypeEnum


class StemTransformationsData(BaseModel):
    """The four transformations of one stem."""
    stem: str
    transformations: list[TransformationData]


class TransformationInfoData(BaseModel):
    """Transformations of the year and day stems and where they land."""
    year_stem: StemTransformationsData
    day_stem: StemTransformationsData
    palaces: dict[str, list[TransformationData]]


class ZiweiChartResponse(BaseModel):
    """Complete ziwei chart response."""
    zodiac: str
    constellation: str
    solar_date: str
    lunar_date: str
    gender: Optional[GenderEnum] = None
    four_pillars: FourPillarsData
    palaces: list[PalaceData]
    luck_periods: LuckPeriodsData
    stars_info: StarInfoData
    transformations: TransformationInfoData
    calculation_time: str


class TripleSquareResponse(BaseModel):
    """Three harmonies and square of a palace."""
    original_palace: str
    triple_palaces: list[str]
    square_palaces: list[str]
    all_related_palaces: list[str]


class TransformationDetail(BaseModel):
    """A transformation found in a related palace."""
    palace: str
    star: str
    transformation: str


class CheckTransformationResponse(BaseModel):
    """Result of a transformation check."""
    exists: bool
    details: list[TransformationDetail]


class ErrorDetail(BaseModel):
    """Error detail for batch operations."""
    type: str
    message: str
    detail: Optional[dict] = None


class BatchResultItem(BaseModel):
    """Single result in a batch operation."""
    id: Optional[str]
    success: bool
    data: Optional[ZiweiChartResponse] = None
    error: Optional[ErrorDetail] = None


class BatchSummary(BaseModel):
    """Summary statistics for batch operation."""
    total: int
    successful: int
    failed: int


class BatchResponse(BaseModel):
    """Response for batch operations."""
    results: list[BatchResultItem]
    summary: BatchSummary


class PalaceDefinitionResponse(BaseModel):
    """Canonical palace with its static metadata."""
    name: str
    position: int
    direction: str
    significance: str
    triple_palaces: list[str]
    square_palaces: list[str]


class ConfigPalacesResponse(BaseModel):
    """Configuration response for palaces."""
    palaces: list[PalaceDefinitionResponse]


class ConfigTransformationsResponse(BaseModel):
    """Configuration response for the stem transformation table."""
    stems: dict[str, list[TransformationData]]


# Almanac Models
class SolarDateData(BaseModel):
    year: int
    month: int
    day: int
    week: int


class LunarDateData(BaseModel):
    year: int
    month: int
    day: int
    leap: bool
    month_name: str
    day_name: str


class GanzhiData(BaseModel):
    year: str
    month: str
    day: str
    day_gan: str
    day_zhi: str


class AlmanacDateData(BaseModel):
    solar: SolarDateData
    lunar: LunarDateData
    ganzhi: GanzhiData


class ZodiacInfoData(BaseModel):
    year: str
    day: str
    year_ganzhi: str
    year_shengxiao: str


class SolarTermMarker(BaseModel):
    name: str
    date: str


class SuitabilityData(BaseModel):
    suitable: list[str]
    avoid: list[str]


class DirectionsData(BaseModel):
    """Directions of the day's gods."""
    xi_shen: str
    cai_shen: str
    gui_shen: str
    fu_shen: str


class GodsData(BaseModel):
    lucky: list[str]
    evil: list[str]


class AlmanacResponse(BaseModel):
    """Daily almanac."""
    date: AlmanacDateData
    zodiac: ZodiacInfoData
    constellation: str
    jieqi: Optional[SolarTermMarker] = None
    festival: list[str]
    suitability: SuitabilityData
    directions: DirectionsData
    peng_zu_bai_ji: list[str]
    gods: GodsData
    twelve_buildings: str
    lunar_mansion: str


class LuckyDayData(BaseModel):
    date: str
    lunar_date: str
    ganzhi: str
    suitable: list[str]
    lucky_type: str


class LuckyDaysResponse(BaseModel):
    """Lucky days of a month."""
    year: int
    month: int
    count: int
    days: list[LuckyDayData]


class SolarTermData(BaseModel):
    name: str
    date: str
    time: str
    description: str
    customs: list[str]


class SolarTermsResponse(BaseModel):
    """The 24 solar terms of a year."""
    year: int
    terms: list[SolarTermData]
    spring_start: Optional[str] = None
    summer_start: Optional[str] = None
    autumn_start: Optional[str] = None
    winter_start: Optional[str] = None


class SuitableAvoidResponse(BaseModel):
    """Suitable and avoided activities of a date."""
    date: str
    suitable: list[str]
    avoid: list[str]
