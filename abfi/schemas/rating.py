import datetime
from enum import Enum
from typing import Dict, List, Optional

from pydantic import BaseModel, ConfigDict, Field, model_validator

from abfi.schemas.provenance import MethodologyProvenance


class CertificationType(str, Enum):
    ISCC_EU = "ISCC_EU"
    ISCC_PLUS = "ISCC_PLUS"
    RSB = "RSB"
    RED_II = "RED_II"
    ABFI = "ABFI"
    GO = "GO"
    OTHER = "OTHER"


class FeedstockCategory(str, Enum):
    OILSEED = "oilseed"
    UCO = "UCO"
    TALLOW = "tallow"
    LIGNOCELLULOSIC = "lignocellulosic"
    WASTE = "waste"
    ALGAE = "algae"
    BAMBOO = "bamboo"
    OTHER = "other"


class CarbonRating(str, Enum):
    A_PLUS = "A+"
    A = "A"
    B_PLUS = "B+"
    B = "B"
    C_PLUS = "C+"
    C = "C"
    D = "D"
    F = "F"


class ScoreTier(str, Enum):
    EXCELLENT = "Excellent"
    GOOD = "Good"
    AVERAGE = "Average"
    BELOW_AVERAGE = "Below Average"
    POOR = "Poor"


# ---------- Inputs ----------

class SustainabilityInputs(BaseModel):
    """Certification and compliance evidence. Unset flags count as not verified."""

    model_config = ConfigDict(frozen=True)

    certification_type: Optional[CertificationType] = Field(None, examples=["ISCC_EU"])

    # Land use
    no_deforestation_verified: bool = False
    no_hcv_land_conversion: bool = False
    no_peatland_drainage: bool = False
    indigenous_rights_compliance: bool = False

    # Social
    fair_work_certified: bool = False
    community_benefit_documented: bool = False
    supply_chain_transparent: bool = False

    # Biodiversity & soil
    regenerative_practice_certified: bool = False
    soil_carbon_measured: bool = False
    biodiversity_corridor_maintained: bool = False


class QualityInputs(BaseModel):
    """
    Lab results for a batch. ``category`` is kept as a raw tag so that an
    unknown value reaches the engine and fails there with InvalidCategory.
    """

    model_config = ConfigDict(frozen=True)

    category: str = Field(..., examples=["UCO"])
    parameters: Dict[str, float] = Field(default_factory=dict, examples=[{"free_fatty_acid": 5.0}])


class ReliabilityInputs(BaseModel):
    """Operational history. ``None`` means no evidence and scores 0 for that component."""

    model_config = ConfigDict(frozen=True)

    delivery_performance: Optional[float] = Field(None, examples=[95.0])  # % OTIF
    volume_consistency: Optional[float] = Field(None, examples=[5.0])  # variance from contracted
    quality_consistency: Optional[float] = Field(None, examples=[3.0])  # batch CoV
    response_time_hours: Optional[float] = Field(None, examples=[24.0])
    platform_months: Optional[float] = Field(None, examples=[6.0])
    transaction_count: Optional[int] = Field(None, examples=[12])


# ---------- Configuration ----------

class QualityParameterSpec(BaseModel):
    model_config = ConfigDict(frozen=True)

    optimal: float
    acceptable: float
    higher_is_better: bool
    points: float


class ScoringWeights(BaseModel):
    model_config = ConfigDict(frozen=True)

    sustainability: float = 0.30
    carbon_intensity: float = 0.30
    quality: float = 0.25
    reliability: float = 0.15

    @model_validator(mode="after")
    def check_total(self):
        total = self.sustainability + self.carbon_intensity + self.quality + self.reliability
        if abs(total - 1.0) > 1e-9:
            raise ValueError(f"Scoring weights must sum to 1.0, got {total}")
        return self


# ---------- Breakdowns ----------

class SustainabilityBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    certification: int = 0
    no_deforestation: int = 0
    no_hcv_conversion: int = 0
    no_peatland: int = 0
    indigenous_rights: int = 0
    fair_work: int = 0
    community_benefit: int = 0
    supply_chain_transparency: int = 0
    regenerative: int = 0
    soil_carbon: int = 0
    biodiversity: int = 0

    def total(self) -> int:
        return (
            self.certification
            + self.no_deforestation
            + self.no_hcv_conversion
            + self.no_peatland
            + self.indigenous_rights
            + self.fair_work
            + self.community_benefit
            + self.supply_chain_transparency
            + self.regenerative
            + self.soil_carbon
            + self.biodiversity
        )


class ReliabilityBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    delivery_performance: float = 0.0
    volume_consistency: int = 0
    quality_consistency: int = 0
    response_time: int = 0
    platform_history: int = 0

    def total(self) -> float:
        return (
            self.delivery_performance
            + self.volume_consistency
            + self.quality_consistency
            + self.response_time
            + self.platform_history
        )


class CarbonBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    value: float
    rating: CarbonRating


# ---------- Results ----------

class SustainabilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    breakdown: SustainabilityBreakdown


class CarbonIntensityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: float = Field(..., ge=0, le=100)
    rating: CarbonRating


class QualityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    breakdown: Dict[str, int]


class ReliabilityScore(BaseModel):
    model_config = ConfigDict(frozen=True)

    score: int = Field(..., ge=0, le=100)
    breakdown: ReliabilityBreakdown


class AbfiScoreBreakdown(BaseModel):
    model_config = ConfigDict(frozen=True)

    sustainability: SustainabilityBreakdown
    carbon: CarbonBreakdown
    quality: Dict[str, int]
    reliability: ReliabilityBreakdown


class AbfiScoreResult(BaseModel):
    model_config = ConfigDict(frozen=True)

    abfi_score: int = Field(..., ge=0, le=100)
    sustainability_score: int
    carbon_intensity_score: float
    quality_score: int
    reliability_score: int
    breakdown: AbfiScoreBreakdown


class RatingInsights(BaseModel):
    overall: str
    strengths: List[str]
    improvements: List[str]
    source: str  # "openai" or "rules"


# ---------- API ----------

class CalculateScoreRequest(BaseModel):
    sustainability: Optional[SustainabilityInputs] = None
    carbon_intensity_value: Optional[float] = Field(None, examples=[25.0])
    quality: Optional[QualityInputs] = None
    reliability: Optional[ReliabilityInputs] = None
    # "sustainability" | "carbonIntensity" | "quality" | "reliability"
    calculate_only: Optional[str] = None
    as_of: Optional[datetime.date] = None  # provenance date, defaults to today


class AbfiScoreResponse(AbfiScoreResult):
    tier: ScoreTier
    provenance: MethodologyProvenance


class CarbonQuickScore(CarbonIntensityScore):
    value: float
