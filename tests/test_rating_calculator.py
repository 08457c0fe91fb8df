"""
Tests for the ABFI rating engine.
Covers:
    - sustainability points and ceiling
    - carbon intensity bands and boundaries
    - quality interpolation and invalid categories
    - reliability components and ceiling
    - composite weighting, tiers and the end-to-end worked example
"""

import pytest

from abfi.schemas.rating import (
    CarbonRating,
    CertificationType,
    FeedstockCategory,
    QualityInputs,
    QualityParameterSpec,
    ReliabilityInputs,
    ScoreTier,
    ScoringWeights,
    SustainabilityInputs,
)
from abfi.services import scoring_tables as tables
from abfi.services.exceptions import EngineError, InvalidCategory
from abfi.services.rating_calculator import (
    calculate_abfi_score,
    calculate_carbon_intensity_score,
    calculate_quality_score,
    calculate_reliability_score,
    calculate_sustainability_score,
    get_score_tier,
    round_half_up,
    score_quality_parameter,
)


# ---------- Fixtures ----------

def _base_sustainability(**overrides) -> SustainabilityInputs:
    defaults = {
        "certification_type": CertificationType.ISCC_EU,
        "no_deforestation_verified": True,
        "no_hcv_land_conversion": True,
        "no_peatland_drainage": True,
        "indigenous_rights_compliance": True,
    }
    defaults.update(overrides)
    return SustainabilityInputs(**defaults)


def _base_quality(**overrides) -> QualityInputs:
    defaults = {"category": "UCO", "parameters": {"free_fatty_acid": 5}}
    defaults.update(overrides)
    return QualityInputs(**defaults)


def _base_reliability(**overrides) -> ReliabilityInputs:
    defaults = {
        "delivery_performance": 90,
        "volume_consistency": 2,
        "quality_consistency": 1,
        "response_time_hours": 10,
        "platform_months": 6,
        "transaction_count": 12,
    }
    defaults.update(overrides)
    return ReliabilityInputs(**defaults)


ALL_FLAGS = {
    "no_deforestation_verified": True,
    "no_hcv_land_conversion": True,
    "no_peatland_drainage": True,
    "indigenous_rights_compliance": True,
    "fair_work_certified": True,
    "community_benefit_documented": True,
    "supply_chain_transparent": True,
    "regenerative_practice_certified": True,
    "soil_carbon_measured": True,
    "biodiversity_corridor_maintained": True,
}


# ---------- Rounding ----------

class TestRounding:
    def test_half_rounds_up(self):
        assert round_half_up(63.5) == 64
        assert round_half_up(2.5) == 3

    def test_below_half_rounds_down(self):
        assert round_half_up(63.45) == 63


# ---------- Sustainability ----------

class TestSustainability:
    def test_iscc_eu_with_land_use_flags_scores_65(self):
        result = calculate_sustainability_score(_base_sustainability())
        assert result.score == 65
        assert result.breakdown.certification == 40
        assert result.breakdown.fair_work == 0

    def test_every_flag_and_top_certification_scores_100(self):
        result = calculate_sustainability_score(
            SustainabilityInputs(certification_type=CertificationType.ISCC_EU, **ALL_FLAGS)
        )
        assert result.score == 100

    def test_no_evidence_scores_zero(self):
        result = calculate_sustainability_score(SustainabilityInputs())
        assert result.score == 0
        assert result.breakdown.total() == 0

    @pytest.mark.parametrize(
        "certification, points",
        [
            (CertificationType.ISCC_PLUS, 40),
            (CertificationType.RSB, 38),
            (CertificationType.RED_II, 25),
            (CertificationType.ABFI, 30),
            (CertificationType.GO, 20),
            (CertificationType.OTHER, 10),
        ],
    )
    def test_certification_points(self, certification, points):
        result = calculate_sustainability_score(SustainabilityInputs(certification_type=certification))
        assert result.score == points

    def test_score_equals_sum_of_breakdown(self):
        result = calculate_sustainability_score(
            SustainabilityInputs(certification_type=CertificationType.RSB, fair_work_certified=True)
        )
        assert result.score == result.breakdown.total() == 48


# ---------- Carbon intensity ----------

class TestCarbonBands:
    def test_ten_is_in_a_band(self):
        result = calculate_carbon_intensity_score(10)
        # 85 + (20 - 10); continuous with the A+ band below
        assert result.score == 95.0
        assert result.rating == CarbonRating.A

    def test_top_of_a_band_approaches_85(self):
        assert calculate_carbon_intensity_score(19.5).score == pytest.approx(85.5)

    def test_just_below_ten_is_a_plus(self):
        result = calculate_carbon_intensity_score(9.999)
        assert result.rating == CarbonRating.A_PLUS
        assert result.score == pytest.approx(95.0005)

    def test_zero_is_a_plus_100(self):
        result = calculate_carbon_intensity_score(0)
        assert result.score == 100
        assert result.rating == CarbonRating.A_PLUS

    def test_seventy_is_f_35(self):
        result = calculate_carbon_intensity_score(70)
        assert result.score == 35
        assert result.rating == CarbonRating.F

    def test_very_high_intensity_floors_at_zero(self):
        assert calculate_carbon_intensity_score(130).score == 0
        assert calculate_carbon_intensity_score(500).score == 0

    @pytest.mark.parametrize(
        "ci, score, rating",
        [
            (25, 80, CarbonRating.B_PLUS),
            (30, 75, CarbonRating.B),
            (45, 60, CarbonRating.C_PLUS),
            (55, 50, CarbonRating.C),
            (69, 36, CarbonRating.D),
        ],
    )
    def test_band_scores(self, ci, score, rating):
        result = calculate_carbon_intensity_score(ci)
        assert result.score == pytest.approx(score)
        assert result.rating == rating

    def test_fractional_score_is_not_rounded(self):
        assert calculate_carbon_intensity_score(25.5).score == pytest.approx(79.5)

    def test_negative_intensity_is_clamped_to_100(self):
        assert calculate_carbon_intensity_score(-50).score == 100


# ---------- Quality ----------

class TestQualityParameter:
    LOWER = QualityParameterSpec(optimal=5, acceptable=15, higher_is_better=False, points=30)
    HIGHER = QualityParameterSpec(optimal=100, acceptable=80, higher_is_better=True, points=15)

    def test_at_optimal_gets_full_points(self):
        assert score_quality_parameter(5, self.LOWER) == 30
        assert score_quality_parameter(100, self.HIGHER) == 15

    def test_better_than_optimal_gets_full_points(self):
        assert score_quality_parameter(1, self.LOWER) == 30
        assert score_quality_parameter(120, self.HIGHER) == 15

    def test_at_acceptable_gets_zero(self):
        assert score_quality_parameter(15, self.LOWER) == 0
        assert score_quality_parameter(80, self.HIGHER) == 0

    def test_beyond_acceptable_gets_zero(self):
        assert score_quality_parameter(20, self.LOWER) == 0
        assert score_quality_parameter(50, self.HIGHER) == 0

    def test_midpoint_interpolates(self):
        assert score_quality_parameter(10, self.LOWER) == pytest.approx(15)
        assert score_quality_parameter(90, self.HIGHER) == pytest.approx(7.5)

    def test_interpolation_is_monotonic(self):
        scores = [score_quality_parameter(v, self.LOWER) for v in range(5, 16)]
        assert scores == sorted(scores, reverse=True)

    def test_missing_value_scores_zero(self):
        assert score_quality_parameter(None, self.LOWER) == 0


class TestQualityScore:
    def test_uco_with_optimal_ffa_only_scores_30(self):
        result = calculate_quality_score(_base_quality())
        assert result.score == 30
        assert result.breakdown["free_fatty_acid"] == 30
        assert result.breakdown["moisture"] == 0

    def test_breakdown_lists_every_category_parameter(self):
        result = calculate_quality_score(_base_quality())
        assert set(result.breakdown) == set(tables.QUALITY_SPECS[FeedstockCategory.UCO])

    def test_perfect_parameters_score_100(self):
        params = {name: spec.optimal for name, spec in tables.QUALITY_SPECS[FeedstockCategory.OILSEED].items()}
        result = calculate_quality_score(QualityInputs(category="oilseed", parameters=params))
        assert result.score == 100

    def test_unknown_parameters_are_ignored(self):
        result = calculate_quality_score(_base_quality(parameters={"free_fatty_acid": 5, "colour": 3}))
        assert result.score == 30
        assert "colour" not in result.breakdown

    def test_other_category_uses_general_quality(self):
        result = calculate_quality_score(QualityInputs(category="other", parameters={"general_quality": 80}))
        assert result.score == 50

    def test_invalid_category_raises(self):
        with pytest.raises(InvalidCategory) as exc:
            calculate_quality_score(QualityInputs(category="not_a_real_category", parameters={}))
        assert exc.value.value == "not_a_real_category"
        assert exc.value.code == "invalid_category"

    def test_invalid_category_is_an_engine_error(self):
        with pytest.raises(EngineError):
            calculate_quality_score(QualityInputs(category="", parameters={}))


class TestScoringTables:
    def test_every_category_has_quality_specs(self):
        assert set(tables.QUALITY_SPECS) == set(FeedstockCategory)

    def test_every_certification_has_points(self):
        assert set(tables.CERTIFICATION_POINTS) == set(CertificationType)

    @pytest.mark.parametrize("category", list(FeedstockCategory))
    def test_category_points_sum_to_100(self, category):
        assert sum(spec.points for spec in tables.QUALITY_SPECS[category].values()) == 100

    def test_tables_are_read_only(self):
        with pytest.raises(TypeError):
            tables.QUALITY_SPECS[FeedstockCategory.UCO] = {}


# ---------- Reliability ----------

class TestReliability:
    def test_worked_example_components(self):
        result = calculate_reliability_score(_base_reliability())
        assert result.breakdown.delivery_performance == pytest.approx(27)
        assert result.breakdown.volume_consistency == 20
        assert result.breakdown.quality_consistency == 16
        assert result.breakdown.response_time == 12
        assert result.breakdown.platform_history == 8
        assert result.score == 83

    def test_perfect_inputs_score_100(self):
        result = calculate_reliability_score(
            ReliabilityInputs(
                delivery_performance=100,
                volume_consistency=0,
                quality_consistency=0,
                response_time_hours=4,
                platform_months=12,
                transaction_count=24,
            )
        )
        assert result.score == 100

    def test_missing_evidence_scores_zero(self):
        result = calculate_reliability_score(ReliabilityInputs())
        assert result.score == 0

    @pytest.mark.parametrize("hours, points", [(2, 15), (4, 15), (5, 12), (24, 12), (48, 8), (96, 6), (500, 0)])
    def test_response_time_steps(self, hours, points):
        result = calculate_reliability_score(ReliabilityInputs(response_time_hours=hours))
        assert result.breakdown.response_time == points

    def test_large_variance_floors_at_zero(self):
        result = calculate_reliability_score(ReliabilityInputs(volume_consistency=50, quality_consistency=50))
        assert result.breakdown.volume_consistency == 0
        assert result.breakdown.quality_consistency == 0

    def test_delivery_above_100_is_capped(self):
        result = calculate_reliability_score(ReliabilityInputs(delivery_performance=120))
        assert result.breakdown.delivery_performance == 30


# ---------- Composite ----------

class TestAbfiScore:
    def _score(self, **kwargs):
        return calculate_abfi_score(
            kwargs.get("sustainability", _base_sustainability()),
            kwargs.get("carbon", 25),
            kwargs.get("quality", _base_quality()),
            kwargs.get("reliability", _base_reliability()),
            kwargs.get("weights", tables.DEFAULT_WEIGHTS),
        )

    def test_end_to_end_example_scores_63(self):
        result = self._score()
        assert result.sustainability_score == 65
        assert result.carbon_intensity_score == pytest.approx(80)
        assert result.quality_score == 30
        assert result.reliability_score == 83
        assert result.abfi_score == 63

    def test_breakdown_carries_carbon_value_and_rating(self):
        result = self._score()
        assert result.breakdown.carbon.value == 25
        assert result.breakdown.carbon.rating == CarbonRating.B_PLUS

    def test_is_deterministic(self):
        assert self._score() == self._score()

    def test_weighted_composite_matches_sub_scores(self):
        result = self._score(carbon=47.3)
        expected = round_half_up(
            0.30 * result.sustainability_score
            + 0.30 * result.carbon_intensity_score
            + 0.25 * result.quality_score
            + 0.15 * result.reliability_score
        )
        assert result.abfi_score == expected

    def test_alternate_weights(self):
        weights = ScoringWeights(sustainability=0.25, carbon_intensity=0.25, quality=0.25, reliability=0.25)
        result = self._score(weights=weights)
        # (65 + 80 + 30 + 83) / 4 = 64.5
        assert result.abfi_score == 65

    def test_weights_must_sum_to_one(self):
        with pytest.raises(ValueError):
            ScoringWeights(sustainability=0.5, carbon_intensity=0.5, quality=0.5, reliability=0.5)

    def test_invalid_category_propagates(self):
        with pytest.raises(InvalidCategory):
            self._score(quality=QualityInputs(category="biochar", parameters={}))


# ---------- Tiers ----------

class TestScoreTier:
    @pytest.mark.parametrize(
        "score, tier",
        [
            (100, ScoreTier.EXCELLENT),
            (85, ScoreTier.EXCELLENT),
            (84, ScoreTier.GOOD),
            (70, ScoreTier.GOOD),
            (69, ScoreTier.AVERAGE),
            (55, ScoreTier.AVERAGE),
            (54, ScoreTier.BELOW_AVERAGE),
            (40, ScoreTier.BELOW_AVERAGE),
            (39, ScoreTier.POOR),
            (0, ScoreTier.POOR),
        ],
    )
    def test_tier_boundaries(self, score, tier):
        assert get_score_tier(score) == tier
