"""API routers for the Ziwei Doushu API."""

from fastapi import APIRouter, Depends, Query

from almanac import Almanac
from exceptions import ChartCalculationError, InvalidDateTimeError, InvalidPalaceError
from models import (
    ZiweiChartRequest,
    ZiweiChartBatchRequest,
    TripleSquareRequest,
    CheckTransformationRequest,
    AlmanacRequest,
    ZiweiChartResponse,
    TripleSquareResponse,
    CheckTransformationResponse,
    BatchResponse,
    BatchResultItem,
    BatchSummary,
    ErrorDetail,
    ConfigPalacesResponse,
    ConfigTransformationsResponse,
    PalaceDefinitionResponse,
    TransformationData,
    AlmanacResponse,
    LuckyDaysResponse,
    SolarTermsResponse,
    SuitableAvoidResponse,
)
from service import ZiweiService
from ziwei import (
    Gender,
    TransformationType,
    ZiweiConfig,
    palace_direction,
    palace_significance,
    related_palaces,
    transformations_for_stem,
)

router = APIRouter()

_service = ZiweiService()
_almanac = Almanac()


def get_ziwei_service() -> ZiweiService:
    return _service


def get_almanac() -> Almanac:
    return _almanac


# Helper Functions
def _chart_arguments(request: ZiweiChartRequest) -> dict:
    """Convert request model to ZiweiService arguments."""
    return {
        'birth_date': request.birth_date,
        'date_type': request.date_type.value,
        'birth_time': request.birth_time,
        'gender': Gender(request.gender.value),
        'birth_place': request.birth_place,
        'is_leap_month': request.is_leap_month,
    }


async def _calculate(service: ZiweiService, request: ZiweiChartRequest) -> ZiweiChartResponse:
    result = await service.calculate_chart(**_chart_arguments(request), as_of=request.as_of)
    return ZiweiChartResponse(**result.to_dict())


# Configuration Endpoints
@router.get(
    "/config/palaces",
    response_model=ConfigPalacesResponse,
    summary="List Palaces",
    description="List the twelve palaces with direction, meaning and related palaces."
)
async def get_palaces():
    """List all palaces with their static metadata."""
    palaces = []
    for index, name in enumerate(ZiweiConfig.PALACE_NAMES):
        related = related_palaces(name)
        palaces.append(PalaceDefinitionResponse(
            name=name,
            position=index + 1,
            direction=palace_direction(index + 1),
            significance=palace_significance(name),
            triple_palaces=list(related.triple_palaces),
            square_palaces=list(related.square_palaces),
        ))
    return ConfigPalacesResponse(palaces=palaces)


@router.get(
    "/config/transformations",
    response_model=ConfigTransformationsResponse,
    summary="List Four Transformations",
    description="Get the four transformations (power, fame, glory, adversity) of every heavenly stem."
)
async def get_transformations():
    """List the stem to transformation table."""
    return ConfigTransformationsResponse(
        stems={
            stem: [
                TransformationData(star=t.star, type=t.type.value)
                for t in transformations_for_stem(stem)
            ]
            for stem in ZiweiConfig.STEM_TRANSFORMATIONS
        }
    )


# Ziwei Chart Endpoints
@router.post(
    "/ziwei/calculate",
    response_model=ZiweiChartResponse,
    summary="Calculate Ziwei Chart",
    description="""
    Calculate a complete Ziwei Doushu chart including:
    - Four pillars, Chinese zodiac and constellation
    - The twelve palaces with their stars, direction and meaning
    - Major periods and the current minor, annual, monthly, daily and hourly periods
    - Main, lucky and evil stars per palace and key star locations
    - Four transformations of the year and day stems
    """,
    responses={
        200: {"description": "Successful calculation"},
        422: {"description": "Validation error - invalid birth data"},
        500: {"description": "Calculation error - calendar or star placement failure"}
    }
)
async def calculate_chart(request: ZiweiChartRequest,
                          service: ZiweiService = Depends(get_ziwei_service)):
    """Calculate a single ziwei chart."""
    try:
        return await _calculate(service, request)
    except (InvalidDateTimeError, ChartCalculationError):
        raise
    except Exception as e:
        raise ChartCalculationError(f"Chart calculation failed: {str(e)}")


@router.post(
    "/ziwei/calculate/batch",
    response_model=BatchResponse,
    summary="Calculate Multiple Ziwei Charts",
    description="""
    Calculate multiple charts in a single request.

    Each chart is processed independently - partial failures are allowed.
    The response includes individual results for each chart with success/error status,
    plus summary statistics of total, successful, and failed calculations.
    """,
    responses={
        200: {"description": "Batch processing complete (may include partial failures)"},
        422: {"description": "Validation error in request structure"}
    }
)
async def calculate_chart_batch(request: ZiweiChartBatchRequest,
                                service: ZiweiService = Depends(get_ziwei_service)):
    """Calculate multiple charts in batch."""
    results = []

    for idx, chart_req in enumerate(request.charts):
        try:
            results.append(BatchResultItem(
                id=chart_req.id or f"chart_{idx}",
                success=True,
                data=await _calculate(service, chart_req),
                error=None
            ))
        except Exception as e:
            results.append(BatchResultItem(
                id=chart_req.id or f"chart_{idx}",
                success=False,
                data=None,
                error=ErrorDetail(
                    type=type(e).__name__,
                    message=str(e),
                    detail=None
                )
            ))

    return BatchResponse(
        results=results,
        summary=BatchSummary(
            total=len(results),
            successful=sum(1 for r in results if r.success),
            failed=sum(1 for r in results if not r.success)
        )
    )


@router.post(
    "/ziwei/triple-square-palaces",
    response_model=TripleSquareResponse,
    summary="Get Three Harmonies and Square",
    description="Look up the three-harmony and square palaces of a palace by name.",
    responses={
        200: {"description": "Successful lookup"},
        422: {"description": "Unknown palace name"}
    }
)
async def get_triple_square_palaces(request: TripleSquareRequest,
                                    service: ZiweiService = Depends(get_ziwei_service)):
    """Three harmonies and square of a palace."""
    related = service.triple_square_palaces(request.palace_name)
    return TripleSquareResponse(
        original_palace=related.original_palace,
        triple_palaces=list(related.triple_palaces),
        square_palaces=list(related.square_palaces),
        all_related_palaces=list(related.all_related_palaces),
    )


@router.post(
    "/ziwei/check-transformation",
    response_model=CheckTransformationResponse,
    summary="Check Palace Transformation",
    description="""
    Check whether a transformation of the natal year stem lands in the three
    harmonies and square of a palace.
    """,
    responses={
        200: {"description": "Successful check"},
        422: {"description": "Validation error - invalid birth data or palace name"},
        500: {"description": "Calculation error"}
    }
)
async def check_transformation(request: CheckTransformationRequest,
                               service: ZiweiService = Depends(get_ziwei_service)):
    """Look for a transformation around a palace."""
    try:
        result = await service.check_palace_transformation(
            **_chart_arguments(request.chart),
            palace_name=request.palace_name,
            transformation_type=TransformationType(request.transformation_type.value),
        )
        return CheckTransformationResponse(**result)
    except (InvalidDateTimeError, InvalidPalaceError, ChartCalculationError):
        raise
    except Exception as e:
        raise ChartCalculationError(f"Transformation check failed: {str(e)}")


# Almanac Endpoints
@router.post(
    "/almanac/daily",
    response_model=AlmanacResponse,
    summary="Get Daily Almanac",
    description="""
    Get the almanac of a solar date including:
    - Lunar date, ganzhi and zodiac
    - Solar term and festivals
    - Suitable and avoided activities
    - Directions of the day's gods, PengZu taboos, lucky gods and evil spirits
    - Twelve officers and lunar mansion
    """
)
async def get_daily_almanac(request: AlmanacRequest, almanac: Almanac = Depends(get_almanac)):
    """Almanac of one date."""
    return AlmanacResponse(**almanac.daily(request.date))


@router.get(
    "/almanac/lucky-days",
    response_model=LuckyDaysResponse,
    summary="Get Lucky Days",
    description="List the lucky days of a month with their suitable activities."
)
async def get_lucky_days(year: int = Query(..., ge=1900, le=2100),
                         month: int = Query(..., ge=1, le=12),
                         almanac: Almanac = Depends(get_almanac)):
    """Lucky days of a month."""
    return LuckyDaysResponse(**almanac.lucky_days(year, month))


@router.get(
    "/almanac/solar-terms",
    response_model=SolarTermsResponse,
    summary="Get Solar Terms",
    description="List the 24 solar terms of a year with date, time, description and customs."
)
async def get_solar_terms(year: int = Query(..., ge=1900, le=2100),
                          almanac: Almanac = Depends(get_almanac)):
    """Solar terms of a year."""
    return SolarTermsResponse(**almanac.solar_terms(year))


@router.get(
    "/almanac/suitable-avoid",
    response_model=SuitableAvoidResponse,
    summary="Get Suitable and Avoided Activities",
    description="Get the suitable and avoided activities of a date."
)
async def get_suitable_avoid(date: str = Query(..., pattern=r"^\d{4}-\d{1,2}-\d{1,2}$"),
                             almanac: Almanac = Depends(get_almanac)):
    """Suitable and avoided activities of a date."""
    return SuitableAvoidResponse(**almanac.suitable_avoid(date))
