"""
ABFI Score Calculation Engine
=============================
Composite score (0-100) from four weighted pillars:

    Sustainability     (30%)
    Carbon intensity   (30%)
    Quality            (25%)
    Reliability        (15%)

All functions are pure. Rounding is half-up (``floor(x + 0.5)``) so that
scores match certificates issued by the marketplace front end.
"""

import logging
import math
from typing import Mapping, Optional

from abfi.schemas.rating import (
    AbfiScoreBreakdown,
    AbfiScoreResult,
    CarbonBreakdown,
    CarbonIntensityScore,
    CarbonRating,
    FeedstockCategory,
    QualityInputs,
    QualityParameterSpec,
    QualityScore,
    ReliabilityBreakdown,
    ReliabilityInputs,
    ReliabilityScore,
    ScoreTier,
    ScoringWeights,
    SustainabilityBreakdown,
    SustainabilityInputs,
    SustainabilityScore,
)
from abfi.services import scoring_tables as tables
from abfi.services.exceptions import InvalidCategory

logger = logging.getLogger(__name__)


def round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


def clamp(value: float, lo: float = 0, hi: float = 100) -> float:
    return max(lo, min(hi, value))


def _points(flag: bool, points: int) -> int:
    return points if flag else 0


# ---------- Sustainability ----------

def calculate_sustainability_score(inputs: SustainabilityInputs) -> SustainabilityScore:
    certification = 0
    if inputs.certification_type is not None:
        certification = tables.CERTIFICATION_POINTS[inputs.certification_type]

    breakdown = SustainabilityBreakdown(
        certification=certification,
        no_deforestation=_points(inputs.no_deforestation_verified, tables.NO_DEFORESTATION_POINTS),
        no_hcv_conversion=_points(inputs.no_hcv_land_conversion, tables.NO_HCV_CONVERSION_POINTS),
        no_peatland=_points(inputs.no_peatland_drainage, tables.NO_PEATLAND_POINTS),
        indigenous_rights=_points(inputs.indigenous_rights_compliance, tables.INDIGENOUS_RIGHTS_POINTS),
        fair_work=_points(inputs.fair_work_certified, tables.FAIR_WORK_POINTS),
        community_benefit=_points(inputs.community_benefit_documented, tables.COMMUNITY_BENEFIT_POINTS),
        supply_chain_transparency=_points(
            inputs.supply_chain_transparent, tables.SUPPLY_CHAIN_TRANSPARENCY_POINTS
        ),
        regenerative=_points(inputs.regenerative_practice_certified, tables.REGENERATIVE_POINTS),
        soil_carbon=_points(inputs.soil_carbon_measured, tables.SOIL_CARBON_POINTS),
        biodiversity=_points(inputs.biodiversity_corridor_maintained, tables.BIODIVERSITY_POINTS),
    )

    return SustainabilityScore(score=min(100, breakdown.total()), breakdown=breakdown)


# ---------- Carbon intensity ----------

def calculate_carbon_intensity_score(ci_value: float) -> CarbonIntensityScore:
    """
    Lower is better. Bands are half-open on the lower bound, so 10.0 is
    rated "A" and 9.999 is "A+".
    """
    if ci_value < tables.CARBON_A_PLUS_CEILING:
        score = tables.CARBON_A_PLUS_BASE + (tables.CARBON_A_PLUS_CEILING - ci_value) * tables.CARBON_A_PLUS_SLOPE
        rating = CarbonRating.A_PLUS
    else:
        for upper, base, band_rating in tables.CARBON_BANDS:
            if ci_value < upper:
                score = base + (upper - ci_value)
                rating = band_rating
                break
        else:
            score = max(0.0, tables.CARBON_F_BASE - (ci_value - tables.CARBON_F_FLOOR))
            rating = CarbonRating.F

    return CarbonIntensityScore(score=clamp(score), rating=rating)


# ---------- Quality ----------

def resolve_category(category) -> FeedstockCategory:
    try:
        return FeedstockCategory(category)
    except ValueError:
        raise InvalidCategory(category) from None


def score_quality_parameter(value: Optional[float], spec: QualityParameterSpec) -> float:
    """
    Full points on the right side of ``optimal``, none on the wrong side of
    ``acceptable``, linear in between. A missing value scores 0.
    """
    if value is None:
        return 0.0

    if spec.higher_is_better:
        if value >= spec.optimal:
            return float(spec.points)
        if value >= spec.acceptable:
            return spec.points * ((value - spec.acceptable) / (spec.optimal - spec.acceptable))
        return 0.0

    if value <= spec.optimal:
        return float(spec.points)
    if value <= spec.acceptable:
        return spec.points * (1 - (value - spec.optimal) / (spec.acceptable - spec.optimal))
    return 0.0


def calculate_quality_score(
    inputs: QualityInputs,
    specs: Mapping[FeedstockCategory, Mapping[str, QualityParameterSpec]] = tables.QUALITY_SPECS,
) -> QualityScore:
    category = resolve_category(inputs.category)
    category_specs = specs.get(category)
    if category_specs is None:
        raise InvalidCategory(inputs.category)

    breakdown = {}
    total = 0.0
    for name, spec in category_specs.items():
        param_score = score_quality_parameter(inputs.parameters.get(name), spec)
        breakdown[name] = round_half_up(param_score)
        total += param_score

    return QualityScore(score=int(clamp(round_half_up(total))), breakdown=breakdown)


# ---------- Reliability ----------

def _response_time_points(hours: float) -> float:
    for max_hours, points in tables.RESPONSE_TIME_STEPS:
        if hours <= max_hours:
            return points
    last_hours, last_points = tables.RESPONSE_TIME_STEPS[-1]
    return max(0.0, last_points - (hours - last_hours) / tables.RESPONSE_TIME_DECAY_HOURS)


def calculate_reliability_score(inputs: ReliabilityInputs) -> ReliabilityScore:
    delivery = 0.0
    if inputs.delivery_performance is not None:
        delivery = min(
            tables.DELIVERY_MAX_POINTS,
            (inputs.delivery_performance / 100) * tables.DELIVERY_MAX_POINTS,
        )

    volume = 0
    if inputs.volume_consistency is not None:
        volume = round_half_up(
            max(0.0, tables.VOLUME_MAX_POINTS - inputs.volume_consistency * tables.VOLUME_VARIANCE_PENALTY)
        )

    quality = 0
    if inputs.quality_consistency is not None:
        quality = round_half_up(
            max(0.0, tables.QUALITY_CONSISTENCY_MAX_POINTS - inputs.quality_consistency * tables.QUALITY_COV_PENALTY)
        )

    response = 0
    if inputs.response_time_hours is not None:
        response = round_half_up(_response_time_points(inputs.response_time_hours))

    months_score = 0.0
    if inputs.platform_months is not None:
        months_score = min(tables.HISTORY_COMPONENT_CAP, inputs.platform_months / tables.HISTORY_MONTHS_DIVISOR)
    transactions_score = 0.0
    if inputs.transaction_count is not None:
        transactions_score = min(
            tables.HISTORY_COMPONENT_CAP, inputs.transaction_count / tables.HISTORY_TRANSACTIONS_DIVISOR
        )

    breakdown = ReliabilityBreakdown(
        delivery_performance=delivery,
        volume_consistency=volume,
        quality_consistency=quality,
        response_time=response,
        platform_history=round_half_up(months_score + transactions_score),
    )

    return ReliabilityScore(score=int(clamp(round_half_up(breakdown.total()))), breakdown=breakdown)


# ---------- Composite ----------

def calculate_abfi_score(
    sustainability_inputs: SustainabilityInputs,
    carbon_intensity_value: float,
    quality_inputs: QualityInputs,
    reliability_inputs: ReliabilityInputs,
    weights: ScoringWeights = tables.DEFAULT_WEIGHTS,
    quality_specs: Mapping[FeedstockCategory, Mapping[str, QualityParameterSpec]] = tables.QUALITY_SPECS,
) -> AbfiScoreResult:
    sustainability = calculate_sustainability_score(sustainability_inputs)
    carbon = calculate_carbon_intensity_score(carbon_intensity_value)
    quality = calculate_quality_score(quality_inputs, quality_specs)
    reliability = calculate_reliability_score(reliability_inputs)

    composite = round_half_up(
        sustainability.score * weights.sustainability
        + carbon.score * weights.carbon_intensity
        + quality.score * weights.quality
        + reliability.score * weights.reliability
    )

    logger.debug(
        "ABFI score %d (S=%d C=%.2f Q=%d R=%d)",
        composite, sustainability.score, carbon.score, quality.score, reliability.score,
    )

    return AbfiScoreResult(
        abfi_score=int(clamp(composite)),
        sustainability_score=sustainability.score,
        carbon_intensity_score=carbon.score,
        quality_score=quality.score,
        reliability_score=reliability.score,
        breakdown=AbfiScoreBreakdown(
            sustainability=sustainability.breakdown,
            carbon=CarbonBreakdown(value=carbon_intensity_value, rating=carbon.rating),
            quality=quality.breakdown,
            reliability=reliability.breakdown,
        ),
    )


def get_score_tier(score: float) -> ScoreTier:
    for minimum, tier in tables.SCORE_TIERS:
        if score >= minimum:
            return tier
    return ScoreTier.POOR
