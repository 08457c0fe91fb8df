from datetime import date

from fastapi import APIRouter, HTTPException, Query

from abfi.schemas.rating import (
    AbfiScoreResponse,
    CalculateScoreRequest,
    CarbonQuickScore,
    ReliabilityInputs,
    ScoreTier,
)
from abfi.services.provenance import build_rating_provenance
from abfi.services.rating_calculator import (
    calculate_abfi_score,
    calculate_carbon_intensity_score,
    calculate_quality_score,
    calculate_reliability_score,
    calculate_sustainability_score,
    get_score_tier,
)

router = APIRouter(prefix="/api/v1", tags=["Rating"])

# Reliability assumed for feedstocks with no platform history yet.
NEW_FEEDSTOCK_RELIABILITY = ReliabilityInputs(
    delivery_performance=95,
    volume_consistency=5,
    quality_consistency=3,
    response_time_hours=24,
    platform_months=0,
    transaction_count=0,
)


def _calculate_partial(payload: CalculateScoreRequest):
    if payload.calculate_only == "sustainability":
        if payload.sustainability is None:
            raise HTTPException(status_code=400, detail="sustainability data required")
        return calculate_sustainability_score(payload.sustainability)

    if payload.calculate_only == "carbonIntensity":
        if payload.carbon_intensity_value is None:
            raise HTTPException(status_code=400, detail="carbon_intensity_value required")
        return calculate_carbon_intensity_score(payload.carbon_intensity_value)

    if payload.calculate_only == "quality":
        if payload.quality is None:
            raise HTTPException(status_code=400, detail="quality data required")
        return calculate_quality_score(payload.quality)

    if payload.calculate_only == "reliability":
        if payload.reliability is None:
            raise HTTPException(status_code=400, detail="reliability data required")
        return calculate_reliability_score(payload.reliability)

    raise HTTPException(status_code=400, detail="Invalid calculate_only value")


@router.post("/calculate-score")
def calculate_score(payload: CalculateScoreRequest):
    """
    Calculate the ABFI composite score, or a single pillar when
    ``calculate_only`` is set.
    """
    if payload.calculate_only:
        return _calculate_partial(payload)

    if payload.sustainability is None or payload.carbon_intensity_value is None or payload.quality is None:
        raise HTTPException(
            status_code=400,
            detail="sustainability, carbon_intensity_value, and quality are required for full calculation",
        )

    reliability = payload.reliability or NEW_FEEDSTOCK_RELIABILITY
    result = calculate_abfi_score(
        payload.sustainability,
        payload.carbon_intensity_value,
        payload.quality,
        reliability,
    )

    inputs = {
        "sustainability": payload.sustainability.model_dump(mode="json"),
        "carbon_intensity_value": payload.carbon_intensity_value,
        "quality": payload.quality.model_dump(mode="json"),
        "reliability": reliability.model_dump(mode="json"),
    }
    provenance = build_rating_provenance(result, inputs, as_of=payload.as_of or date.today())

    return AbfiScoreResponse(
        **result.model_dump(),
        tier=get_score_tier(result.abfi_score),
        provenance=provenance,
    )


@router.get("/calculate-score/carbon", response_model=CarbonQuickScore)
def carbon_quick_score(ci: float = Query(..., description="Carbon intensity, gCO2e/MJ")):
    result = calculate_carbon_intensity_score(ci)
    return CarbonQuickScore(value=ci, score=result.score, rating=result.rating)


@router.get("/score-tier/{score}")
def score_tier(score: float) -> dict:
    tier: ScoreTier = get_score_tier(score)
    return {"score": score, "tier": tier.value}
