"""
Fixed scoring tables for the ABFI rating engine.

Every table keyed by an enum must cover all of its members; this is
checked when the module is imported so that adding a certification or a
feedstock category cannot silently score 0.
"""

from types import MappingProxyType
from typing import Mapping, Tuple

from abfi.schemas.rating import (
    CarbonRating,
    CertificationType,
    FeedstockCategory,
    QualityParameterSpec,
    ScoreTier,
    ScoringWeights,
)


def _require_complete(table: Mapping, enum_cls, name: str) -> Mapping:
    missing = [member.value for member in enum_cls if member not in table]
    if missing:
        raise RuntimeError(f"{name} has no entry for: {', '.join(missing)}")
    return MappingProxyType(dict(table))


DEFAULT_WEIGHTS = ScoringWeights()

# Certification tier (0-40). No certification scores 0.
CERTIFICATION_POINTS = _require_complete(
    {
        CertificationType.ISCC_EU: 40,
        CertificationType.ISCC_PLUS: 40,
        CertificationType.RSB: 38,
        CertificationType.RED_II: 25,
        CertificationType.ABFI: 30,
        CertificationType.GO: 20,
        CertificationType.OTHER: 10,
    },
    CertificationType,
    "CERTIFICATION_POINTS",
)

# Land use compliance (0-25)
NO_DEFORESTATION_POINTS = 10
NO_HCV_CONVERSION_POINTS = 8
NO_PEATLAND_POINTS = 5
INDIGENOUS_RIGHTS_POINTS = 2

# Social compliance (0-20)
FAIR_WORK_POINTS = 10
COMMUNITY_BENEFIT_POINTS = 5
SUPPLY_CHAIN_TRANSPARENCY_POINTS = 5

# Biodiversity & soil (0-15)
REGENERATIVE_POINTS = 8
SOIL_CARBON_POINTS = 4
BIODIVERSITY_POINTS = 3


# Carbon intensity bands, gCO2e/MJ. (upper bound exclusive, base score, rating)
# Inside a band: score = base + (upper - ci). Values >= 70 fall through to F.
CARBON_BANDS: Tuple[Tuple[float, float, CarbonRating], ...] = (
    (20, 85, CarbonRating.A),
    (30, 75, CarbonRating.B_PLUS),
    (40, 65, CarbonRating.B),
    (50, 55, CarbonRating.C_PLUS),
    (60, 45, CarbonRating.C),
    (70, 35, CarbonRating.D),
)
CARBON_A_PLUS_CEILING = 10
CARBON_A_PLUS_BASE = 95
CARBON_A_PLUS_SLOPE = 0.5
CARBON_F_FLOOR = 70
CARBON_F_BASE = 35


def _spec(optimal, acceptable, higher_is_better, points) -> QualityParameterSpec:
    return QualityParameterSpec(
        optimal=optimal,
        acceptable=acceptable,
        higher_is_better=higher_is_better,
        points=points,
    )


HIGHER, LOWER = True, False

# Quality specifications by feedstock category. Points sum to 100 per category.
QUALITY_SPECS: Mapping[FeedstockCategory, Mapping[str, QualityParameterSpec]] = _require_complete(
    {
        FeedstockCategory.OILSEED: MappingProxyType({
            "oil_content": _spec(42, 38, HIGHER, 25),
            "free_fatty_acid": _spec(2, 4, LOWER, 25),
            "moisture": _spec(8, 10, LOWER, 20),
            "impurities": _spec(2, 4, LOWER, 15),
            "phosphorus": _spec(15, 30, LOWER, 15),
        }),
        FeedstockCategory.UCO: MappingProxyType({
            "free_fatty_acid": _spec(5, 15, LOWER, 30),
            "moisture": _spec(0.5, 1, LOWER, 25),
            "impurities": _spec(1, 2, LOWER, 20),
            "iodine_value": _spec(100, 80, HIGHER, 15),
            "miu": _spec(3, 5, LOWER, 10),
        }),
        FeedstockCategory.TALLOW: MappingProxyType({
            "free_fatty_acid": _spec(5, 15, LOWER, 30),
            "moisture": _spec(0.5, 1, LOWER, 25),
            "titre": _spec(43, 40, HIGHER, 20),
            "impurities": _spec(0.5, 1, LOWER, 15),
            "category": _spec(3, 2, HIGHER, 10),
        }),
        FeedstockCategory.LIGNOCELLULOSIC: MappingProxyType({
            "moisture": _spec(15, 25, LOWER, 25),
            "ash_content": _spec(5, 10, LOWER, 25),
            "calorific_value": _spec(18, 15, HIGHER, 20),
            "particle_consistency": _spec(90, 80, HIGHER, 15),
            "contaminants": _spec(100, 80, HIGHER, 15),
        }),
        FeedstockCategory.WASTE: MappingProxyType({
            "contamination_rate": _spec(3, 8, LOWER, 30),
            "organic_content": _spec(90, 80, HIGHER, 25),
            "moisture": _spec(60, 75, LOWER, 20),
            "homogeneity": _spec(90, 70, HIGHER, 15),
            "heavy_metals": _spec(100, 80, HIGHER, 10),
        }),
        FeedstockCategory.ALGAE: MappingProxyType({
            "lipid_content": _spec(30, 20, HIGHER, 30),
            "moisture": _spec(10, 20, LOWER, 25),
            "ash_content": _spec(10, 15, LOWER, 20),
            "protein_content": _spec(50, 40, HIGHER, 15),
            "contamination": _spec(2, 5, LOWER, 10),
        }),
        FeedstockCategory.BAMBOO: MappingProxyType({
            "moisture": _spec(12, 18, LOWER, 25),
            "ash_content": _spec(3, 6, LOWER, 25),
            "calorific_value": _spec(19, 16, HIGHER, 25),
            "fiber_content": _spec(60, 50, HIGHER, 15),
            "lignin_content": _spec(25, 20, HIGHER, 10),
        }),
        FeedstockCategory.OTHER: MappingProxyType({
            "general_quality": _spec(90, 70, HIGHER, 100),
        }),
    },
    FeedstockCategory,
    "QUALITY_SPECS",
)

# Reliability components
DELIVERY_MAX_POINTS = 30
VOLUME_MAX_POINTS = 25
VOLUME_VARIANCE_PENALTY = 2.5
QUALITY_CONSISTENCY_MAX_POINTS = 20
QUALITY_COV_PENALTY = 4
RESPONSE_TIME_STEPS = ((4, 15), (24, 12), (48, 8))  # (max hours, points)
RESPONSE_TIME_DECAY_HOURS = 24
HISTORY_MONTHS_DIVISOR = 2.4
HISTORY_TRANSACTIONS_DIVISOR = 2
HISTORY_COMPONENT_CAP = 5

# Score tiers, highest first. (minimum score inclusive, tier)
SCORE_TIERS: Tuple[Tuple[int, ScoreTier], ...] = (
    (85, ScoreTier.EXCELLENT),
    (70, ScoreTier.GOOD),
    (55, ScoreTier.AVERAGE),
    (40, ScoreTier.BELOW_AVERAGE),
)
