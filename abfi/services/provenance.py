"""
Methodology provenance records.

Lender-facing outputs are stored together with the inputs, data sources and
calculation steps that produced them. The caller supplies ``as_of`` so the
records stay reproducible.
"""

from datetime import date
from typing import Optional

from abfi.config import get_settings
from abfi.schemas.provenance import CalculationStep, InputSource, MethodologyProvenance
from abfi.schemas.rating import AbfiScoreResult
from abfi.schemas.stress_test import CovenantStatus, StressTestBaseline, StressTestResult

STRESS_TEST_METHODOLOGY = "ABFI Stress Testing Engine"
RATING_METHODOLOGY = "ABFI Composite Rating Engine"

STRESS_TEST_UNCERTAINTY = (
    "Results based on historical data and market assumptions. "
    "Actual outcomes may vary significantly."
)
RATING_UNCERTAINTY = (
    "Score reflects the evidence supplied at assessment time. "
    "Missing quality parameters or reliability history score zero."
)


def build_stress_test_provenance(
    result: StressTestResult,
    baseline: StressTestBaseline,
    as_of: date,
    methodology_version: Optional[str] = None,
) -> MethodologyProvenance:
    version = methodology_version or get_settings().methodology_version
    scenario = result.scenario_type.value

    return MethodologyProvenance(
        entity_type="stress_test",
        methodology_name=STRESS_TEST_METHODOLOGY,
        methodology_version=version,
        input_data={
            "scenario_type": scenario,
            "parameters": result.parameters.model_dump(mode="json", exclude_none=True),
            "baseline": baseline.model_dump(mode="json"),
        },
        input_sources=[
            InputSource(source="Buyer Transaction History", date=as_of),
            InputSource(source="Platform Market Data", date=as_of),
        ],
        calculation_steps=[
            CalculationStep(step=1, operation=f"Run {scenario} scenario", result=result.financial_impact),
            CalculationStep(step=2, operation="Calculate risk score", result=result.risk_score),
            CalculationStep(
                step=3,
                operation="Assess covenant status",
                result=1 if result.covenant_status == CovenantStatus.COMPLIANT else 0,
            ),
        ],
        output_data=result.model_dump(mode="json"),
        confidence_level="medium",
        uncertainty_notes=STRESS_TEST_UNCERTAINTY,
    )


def build_rating_provenance(
    result: AbfiScoreResult,
    inputs: dict,
    as_of: date,
    methodology_version: Optional[str] = None,
) -> MethodologyProvenance:
    """``inputs`` is the JSON snapshot of the four input groups as submitted."""
    version = methodology_version or get_settings().methodology_version

    return MethodologyProvenance(
        entity_type="abfi_score",
        methodology_name=RATING_METHODOLOGY,
        methodology_version=version,
        input_data=inputs,
        input_sources=[
            InputSource(source="Supplier Certification Submission", date=as_of),
            InputSource(source="Laboratory Quality Results", date=as_of),
            InputSource(source="Platform Transaction History", date=as_of),
        ],
        calculation_steps=[
            CalculationStep(step=1, operation="Score sustainability", result=result.sustainability_score),
            CalculationStep(step=2, operation="Score carbon intensity", result=result.carbon_intensity_score),
            CalculationStep(step=3, operation="Score quality", result=result.quality_score),
            CalculationStep(step=4, operation="Score reliability", result=result.reliability_score),
            CalculationStep(step=5, operation="Weight composite score", result=result.abfi_score),
        ],
        output_data=result.model_dump(mode="json"),
        confidence_level="high",
        uncertainty_notes=RATING_UNCERTAINTY,
    )
