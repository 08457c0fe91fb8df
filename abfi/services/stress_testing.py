"""
Stress Testing Engine for the ABFI bankability module.

Scenario analysis for lenders and buyers:
    - price shocks
    - supply disruption and supplier default
    - combined covenant pressure
    - regulatory (carbon intensity threshold) change
    - custom combinations of the above

Financial impact is signed: negative numbers are additional cost to the
buyer. Risk scores run 0-100, higher is worse.
"""

import logging
from types import MappingProxyType
from typing import Callable, List, Mapping, Optional

from abfi.schemas.rating import FeedstockCategory
from abfi.schemas.stress_test import (
    CovenantStatus,
    CovenantThresholds,
    MitigationOption,
    ScenarioTemplate,
    ScenarioType,
    SensitivityFactor,
    StressTestBaseline,
    StressTestParameters,
    StressTestResult,
)
from abfi.services.exceptions import InvalidScenario

logger = logging.getLogger(__name__)

# Default shock magnitudes (percentage)
PRICE_SHOCKS = MappingProxyType({"mild": 15, "moderate": 30, "severe": 50, "extreme": 100})
SUPPLY_DISRUPTIONS = MappingProxyType({"minor": 10, "moderate": 25, "major": 50, "critical": 75})

# Carbon price scenarios (AUD per tonne CO2)
CARBON_PRICES = MappingProxyType({"current": 35, "moderate_increase": 75, "high": 150, "eu_parity": 100})

DEFAULT_COVENANT_THRESHOLDS = CovenantThresholds()

# Alternative sourcing premium (multiplier on market price)
SPOT_PREMIUM = 1.15
URGENT_PREMIUM = 1.35
SPOT_SOURCED_SHARE = 0.6  # remainder sourced at urgent premium

COMPLIANT_FEEDSTOCK_PREMIUM = 1.3
NON_COMPLIANT_SHARE_PER_UNIT = 2  # % of supply per 1 gCO2e/MJ tightening
CARBON_CREDIT_VOLUME_SHARE = 0.5

# Baseline defaults
DEFAULT_ANNUAL_VOLUME = 10000
DEFAULT_AVERAGE_PRICE = 850
DEFAULT_TOP_SUPPLIER_PERCENTAGE = 0.4
DEFAULT_SUPPLIER_COUNT = 3
DEFAULT_FUEL_BLEND_MANDATE = 7.5  # Australian mandate, %


def _first_set(value: Optional[float], default: float) -> float:
    # Zero counts as unset, matching the marketplace forms.
    return value if value else default


def _tiered_status(value: float, warning_above: float, breach_above: float) -> CovenantStatus:
    if value > breach_above:
        return CovenantStatus.BREACH
    if value > warning_above:
        return CovenantStatus.WARNING
    return CovenantStatus.COMPLIANT


def _bounded_risk(value: float) -> float:
    return max(0.0, min(value, 100))


def _mitigation(option: str, cost_impact: float, days: int, effectiveness: int) -> MitigationOption:
    return MitigationOption(
        option=option,
        cost_impact=cost_impact,
        implementation_time_days=days,
        effectiveness_score=effectiveness,
    )


def _sensitivity(variable: str, base_value: float, impact_per_unit: float) -> SensitivityFactor:
    return SensitivityFactor(variable=variable, base_value=base_value, impact_per_unit=impact_per_unit)


# ---------- Scenarios ----------

def run_price_shock_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    shock_percentage = _first_set(parameters.price_shock_percentage, PRICE_SHOCKS["moderate"])
    duration_months = _first_set(parameters.duration_months, 12)

    price = baseline.current_average_price
    shocked_price = price * (1 + shock_percentage / 100)

    annual_volume = baseline.annual_volume_required
    monthly_volume = annual_volume / 12
    affected_volume = monthly_volume * duration_months
    additional_cost_per_tonne = shocked_price - price
    financial_impact = -1 * affected_volume * additional_cost_per_tonne

    severity_score = min(shock_percentage / 100, 1) * 50
    duration_score = min(duration_months / 24, 1) * 30
    concentration_score = baseline.concentration_top_supplier_percentage * 20
    risk_score = _bounded_risk(severity_score + duration_score + concentration_score)

    price_variance = shock_percentage / 100
    status = _tiered_status(
        price_variance,
        warning_above=thresholds.price_variance_max,
        breach_above=thresholds.price_variance_max * 1.5,
    )
    breaches = []
    if status != CovenantStatus.COMPLIANT:
        breaches.append(f"Price variance exceeds {thresholds.price_variance_max:.0%} threshold")

    mitigation_options = [
        _mitigation("Negotiate longer-term fixed-price contracts", financial_impact * 0.3, 60, 75),
        _mitigation("Diversify supplier base to reduce concentration", financial_impact * 0.2, 90, 65),
        _mitigation("Implement price hedging instruments", financial_impact * 0.4, 30, 80),
        # 10% inventory buffer at 5% carrying cost
        _mitigation("Increase strategic inventory buffer", -price * annual_volume * 0.1 * 0.05, 14, 60),
    ]

    sensitivity_analysis = [
        _sensitivity("Price Shock Magnitude (%)", shock_percentage, (affected_volume * price) / 100),
        _sensitivity("Duration (months)", duration_months, monthly_volume * additional_cost_per_tonne),
        _sensitivity("Annual Volume (tonnes)", annual_volume, additional_cost_per_tonne * (duration_months / 12)),
    ]

    return StressTestResult(
        scenario_type=ScenarioType.PRICE_SHOCK,
        parameters=StressTestParameters(
            price_shock_percentage=shock_percentage,
            duration_months=duration_months,
        ),
        financial_impact=financial_impact,
        supply_gap_tonnes=0,
        alternative_cost_per_tonne=shocked_price,
        risk_score=risk_score,
        covenant_status=status,
        covenant_breaches=breaches,
        mitigation_options=mitigation_options,
        sensitivity_analysis=sensitivity_analysis,
    )


def run_supply_disruption_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
    scenario_type: ScenarioType = ScenarioType.SUPPLY_DISRUPTION,
) -> StressTestResult:
    reduction_percentage = _first_set(parameters.supply_reduction_percentage, SUPPLY_DISRUPTIONS["moderate"])
    duration_months = _first_set(parameters.duration_months, 6)

    price = baseline.current_average_price
    annual_volume = baseline.annual_volume_required
    monthly_volume = annual_volume / 12
    supply_gap_monthly = monthly_volume * (reduction_percentage / 100)
    total_supply_gap = supply_gap_monthly * duration_months

    spot_volume = total_supply_gap * SPOT_SOURCED_SHARE
    urgent_volume = total_supply_gap * (1 - SPOT_SOURCED_SHARE)

    spot_cost = spot_volume * price * SPOT_PREMIUM
    urgent_cost = urgent_volume * price * URGENT_PREMIUM
    normal_cost = total_supply_gap * price

    financial_impact = -1 * (spot_cost + urgent_cost - normal_cost)
    if total_supply_gap > 0:
        alternative_cost_per_tonne = (spot_cost + urgent_cost) / total_supply_gap
    else:
        alternative_cost_per_tonne = price * SPOT_PREMIUM

    volume_score = (reduction_percentage / 100) * 40
    duration_score = min(duration_months / 12, 1) * 25
    concentration_score = baseline.concentration_top_supplier_percentage * 35
    risk_score = _bounded_risk(volume_score + duration_score + concentration_score)

    volume_shortfall = reduction_percentage / 100
    status = _tiered_status(
        volume_shortfall,
        warning_above=thresholds.volume_shortfall_max,
        breach_above=thresholds.volume_shortfall_max * 2,
    )
    breaches = []
    if status != CovenantStatus.COMPLIANT:
        breaches.append(f"Volume shortfall exceeds {thresholds.volume_shortfall_max:.0%} threshold")

    mitigation_options = [
        _mitigation("Activate backup supplier agreements", financial_impact * 0.5, 7, 85),
        _mitigation("Source from international markets", financial_impact * 0.3, 21, 70),
        # lost margin on 10% of annual volume
        _mitigation("Reduce production/blending temporarily", -annual_volume * 0.1 * price * 0.2, 1, 40),
        _mitigation("Draw down strategic inventory", 0, 1, 90),
    ]

    sensitivity_analysis = [
        _sensitivity(
            "Supply Reduction (%)",
            reduction_percentage,
            (monthly_volume * duration_months * price * (SPOT_PREMIUM - 1)) / 100,
        ),
        _sensitivity("Duration (months)", duration_months, supply_gap_monthly * price * (SPOT_PREMIUM - 1)),
        _sensitivity("Spot Market Premium (%)", (SPOT_PREMIUM - 1) * 100, (spot_volume * price) / 100),
    ]

    return StressTestResult(
        scenario_type=scenario_type,
        parameters=StressTestParameters(
            supply_reduction_percentage=reduction_percentage,
            duration_months=duration_months,
            affected_categories=parameters.affected_categories or [],
        ),
        financial_impact=financial_impact,
        supply_gap_tonnes=total_supply_gap,
        alternative_cost_per_tonne=alternative_cost_per_tonne,
        risk_score=risk_score,
        covenant_status=status,
        covenant_breaches=breaches,
        mitigation_options=mitigation_options,
        sensitivity_analysis=sensitivity_analysis,
    )


def run_supplier_default_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    """The largest supplier stops delivering: lose its share of volume."""
    reduction = parameters.supply_reduction_percentage
    if not reduction:
        reduction = baseline.concentration_top_supplier_percentage * 100

    return run_supply_disruption_scenario(
        baseline,
        parameters.model_copy(update={"supply_reduction_percentage": reduction}),
        thresholds,
        scenario_type=ScenarioType.SUPPLIER_DEFAULT,
    )


def run_covenant_breach_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    """Several covenant pressures at once: price, supply and carbon price."""
    price_increase = _first_set(parameters.price_shock_percentage, 20)
    supply_reduction = _first_set(parameters.supply_reduction_percentage, 15)
    carbon_price_increase = _first_set(parameters.carbon_price_increase, 50)

    price = baseline.current_average_price
    annual_volume = baseline.annual_volume_required

    price_impact = annual_volume * price * (price_increase / 100)

    supply_gap = annual_volume * (supply_reduction / 100)
    supply_impact = supply_gap * price * (SPOT_PREMIUM - 1)

    new_carbon_price = baseline.carbon_credit_price * (1 + carbon_price_increase / 100)
    carbon_credit_volume = annual_volume * CARBON_CREDIT_VOLUME_SHARE
    carbon_impact = carbon_credit_volume * (new_carbon_price - baseline.carbon_credit_price)

    financial_impact = -1 * (price_impact + supply_impact) + carbon_impact

    breaches = []
    if baseline.concentration_top_supplier_percentage > thresholds.supply_concentration_max:
        breaches.append(f"Supply concentration exceeds {thresholds.supply_concentration_max:.0%} threshold")
    if price_increase / 100 > thresholds.price_variance_max:
        breaches.append(f"Price variance exceeds {thresholds.price_variance_max:.0%} threshold")
    if supply_reduction / 100 > thresholds.volume_shortfall_max:
        breaches.append(f"Volume shortfall exceeds {thresholds.volume_shortfall_max:.0%} threshold")

    if len(breaches) >= 2:
        status = CovenantStatus.BREACH
    elif len(breaches) == 1:
        status = CovenantStatus.WARNING
    else:
        status = CovenantStatus.COMPLIANT

    risk_score = _bounded_risk(
        30  # base risk for a covenant scenario
        + (price_increase / 100) * 25
        + (supply_reduction / 100) * 25
        + baseline.concentration_top_supplier_percentage * 20,
    )

    mitigation_options = [
        _mitigation("Proactive lender communication and covenant waiver request", -50000, 14, 70),
        _mitigation("Accelerate supplier diversification program", financial_impact * 0.25, 90, 80),
        _mitigation("Implement cost reduction measures to offset impact", financial_impact * 0.15, 30, 55),
        _mitigation("Raise additional equity or subordinated debt", -100000, 60, 85),
    ]

    sensitivity_analysis = [
        _sensitivity("Price Increase (%)", price_increase, (annual_volume * price) / 100),
        _sensitivity("Supply Reduction (%)", supply_reduction, (annual_volume * price * (SPOT_PREMIUM - 1)) / 100),
        _sensitivity(
            "Carbon Price Increase (%)",
            carbon_price_increase,
            (carbon_credit_volume * baseline.carbon_credit_price) / 100,
        ),
    ]

    return StressTestResult(
        scenario_type=ScenarioType.COVENANT_BREACH,
        parameters=StressTestParameters(
            price_shock_percentage=price_increase,
            supply_reduction_percentage=supply_reduction,
            carbon_price_increase=carbon_price_increase,
            duration_months=parameters.duration_months,
        ),
        financial_impact=financial_impact,
        supply_gap_tonnes=supply_gap,
        alternative_cost_per_tonne=price * SPOT_PREMIUM,
        risk_score=risk_score,
        covenant_status=status,
        covenant_breaches=breaches,
        mitigation_options=mitigation_options,
        sensitivity_analysis=sensitivity_analysis,
    )


def run_regulatory_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    """
    Carbon intensity threshold tightens (e.g. -10 gCO2e/MJ) and the carbon
    price rises. Part of current supply becomes non-compliant and must be
    replaced with certified low-CI feedstock.
    """
    threshold_change = _first_set(parameters.regulatory_threshold_change, -10)
    carbon_price_increase = _first_set(parameters.carbon_price_increase, 100)

    price = baseline.current_average_price
    annual_volume = baseline.annual_volume_required

    non_compliant_percentage = abs(threshold_change) * NON_COMPLIANT_SHARE_PER_UNIT
    non_compliant_volume = annual_volume * (non_compliant_percentage / 100)

    switching_cost = non_compliant_volume * price * (COMPLIANT_FEEDSTOCK_PREMIUM - 1)

    new_carbon_price = baseline.carbon_credit_price * (1 + carbon_price_increase / 100)
    carbon_value_change = annual_volume * CARBON_CREDIT_VOLUME_SHARE * (new_carbon_price - baseline.carbon_credit_price)

    financial_impact = carbon_value_change - switching_cost

    regulatory_risk = min(abs(threshold_change) * 5, 50)
    compliance_risk = non_compliant_percentage * 1.5
    risk_score = _bounded_risk(regulatory_risk + compliance_risk + 10)

    status = _tiered_status(non_compliant_percentage, warning_above=15, breach_above=30)
    breaches = []
    if status != CovenantStatus.COMPLIANT:
        breaches.append(
            f"{non_compliant_percentage:.0f}% of supply non-compliant at "
            f"{thresholds.ci_threshold_max + threshold_change:g} gCO2e/MJ"
        )

    mitigation_options = [
        # long-term, halves the premium
        _mitigation("Accelerate transition to certified low-CI feedstocks", switching_cost * -0.5, 180, 90),
        _mitigation("Invest in supplier carbon reduction programs", -500000, 365, 85),
        _mitigation("Lock in forward contracts with compliant suppliers", switching_cost * -0.3, 60, 75),
        _mitigation("Develop in-house feedstock processing capability", -2000000, 730, 95),
    ]

    sensitivity_analysis = [
        _sensitivity(
            "CI Threshold Change (gCO2e/MJ)",
            threshold_change,
            annual_volume * (NON_COMPLIANT_SHARE_PER_UNIT / 100) * price * (COMPLIANT_FEEDSTOCK_PREMIUM - 1),
        ),
        _sensitivity(
            "Carbon Price Increase (%)",
            carbon_price_increase,
            (annual_volume * CARBON_CREDIT_VOLUME_SHARE * baseline.carbon_credit_price) / 100,
        ),
        _sensitivity(
            "Compliant Feedstock Premium (%)",
            (COMPLIANT_FEEDSTOCK_PREMIUM - 1) * 100,
            (non_compliant_volume * price) / 100,
        ),
    ]

    return StressTestResult(
        scenario_type=ScenarioType.REGULATORY,
        parameters=StressTestParameters(
            regulatory_threshold_change=threshold_change,
            carbon_price_increase=carbon_price_increase,
        ),
        financial_impact=financial_impact,
        supply_gap_tonnes=non_compliant_volume,
        alternative_cost_per_tonne=price * COMPLIANT_FEEDSTOCK_PREMIUM,
        risk_score=risk_score,
        covenant_status=status,
        covenant_breaches=breaches,
        mitigation_options=mitigation_options,
        sensitivity_analysis=sensitivity_analysis,
    )


def run_custom_scenario(
    baseline: StressTestBaseline,
    parameters: StressTestParameters,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    """Combine the price, supply and regulatory scenarios for whichever parameters are set."""
    financial_impact = 0.0
    supply_gap = 0.0
    combined_risk = 0.0
    breaches: List[str] = []
    mitigation_options: List[MitigationOption] = []
    sensitivity_analysis: List[SensitivityFactor] = []

    components = []
    if parameters.price_shock_percentage:
        components.append((
            run_price_shock_scenario(
                baseline,
                StressTestParameters(
                    price_shock_percentage=parameters.price_shock_percentage,
                    duration_months=parameters.duration_months,
                ),
                thresholds,
            ),
            0.3,
        ))
    if parameters.supply_reduction_percentage:
        components.append((
            run_supply_disruption_scenario(
                baseline,
                StressTestParameters(
                    supply_reduction_percentage=parameters.supply_reduction_percentage,
                    duration_months=parameters.duration_months,
                    affected_categories=parameters.affected_categories,
                ),
                thresholds,
            ),
            0.35,
        ))
    if parameters.carbon_price_increase or parameters.regulatory_threshold_change:
        components.append((
            run_regulatory_scenario(
                baseline,
                StressTestParameters(
                    carbon_price_increase=parameters.carbon_price_increase,
                    regulatory_threshold_change=parameters.regulatory_threshold_change,
                ),
                thresholds,
            ),
            0.35,
        ))

    for result, weight in components:
        financial_impact += result.financial_impact
        supply_gap += result.supply_gap_tonnes
        combined_risk += result.risk_score * weight
        breaches.extend(result.covenant_breaches)
        mitigation_options.extend(result.mitigation_options[:2])
        sensitivity_analysis.extend(result.sensitivity_analysis)

    baseline_value = baseline.annual_volume_required * baseline.current_average_price
    impact_ratio = abs(financial_impact) / baseline_value if baseline_value else 0.0
    status = _tiered_status(impact_ratio, warning_above=0.1, breach_above=0.25)

    return StressTestResult(
        scenario_type=ScenarioType.CUSTOM,
        parameters=parameters,
        financial_impact=financial_impact,
        supply_gap_tonnes=supply_gap,
        alternative_cost_per_tonne=baseline.current_average_price * SPOT_PREMIUM,
        risk_score=_bounded_risk(combined_risk),
        covenant_status=status,
        covenant_breaches=breaches,
        mitigation_options=mitigation_options,
        sensitivity_analysis=sensitivity_analysis,
    )


ScenarioRunner = Callable[[StressTestBaseline, StressTestParameters, CovenantThresholds], StressTestResult]

SCENARIO_RUNNERS: Mapping[ScenarioType, ScenarioRunner] = MappingProxyType({
    ScenarioType.PRICE_SHOCK: run_price_shock_scenario,
    ScenarioType.SUPPLY_DISRUPTION: run_supply_disruption_scenario,
    ScenarioType.SUPPLIER_DEFAULT: run_supplier_default_scenario,
    ScenarioType.COVENANT_BREACH: run_covenant_breach_scenario,
    ScenarioType.REGULATORY: run_regulatory_scenario,
    ScenarioType.CUSTOM: run_custom_scenario,
})

_missing_runners = set(ScenarioType) - set(SCENARIO_RUNNERS)
if _missing_runners:
    raise RuntimeError(f"No stress test runner for: {sorted(s.value for s in _missing_runners)}")


def resolve_scenario_type(scenario_type) -> ScenarioType:
    try:
        return ScenarioType(scenario_type)
    except ValueError:
        raise InvalidScenario(scenario_type) from None


def run_stress_test(
    scenario_type,
    baseline: StressTestBaseline,
    parameters: Optional[StressTestParameters] = None,
    thresholds: CovenantThresholds = DEFAULT_COVENANT_THRESHOLDS,
) -> StressTestResult:
    """
    Run one scenario. ``scenario_type`` may be a ScenarioType or its string
    value; anything else raises InvalidScenario.
    """
    resolved = resolve_scenario_type(scenario_type)
    runner = SCENARIO_RUNNERS[resolved]
    logger.debug("Running %s stress test", resolved.value)
    return runner(baseline, parameters or StressTestParameters(), thresholds)


def generate_default_baseline(
    annual_volume_requirement: Optional[float] = None,
    average_price: Optional[float] = None,
    top_supplier_percentage: Optional[float] = None,
    supplier_count: Optional[int] = None,
) -> StressTestBaseline:
    """Fill unset buyer figures with platform-wide defaults."""
    return StressTestBaseline(
        annual_volume_required=_first_set(annual_volume_requirement, DEFAULT_ANNUAL_VOLUME),
        current_average_price=_first_set(average_price, DEFAULT_AVERAGE_PRICE),
        carbon_credit_price=CARBON_PRICES["current"],
        fuel_blend_mandate=DEFAULT_FUEL_BLEND_MANDATE,
        current_supplier_count=int(_first_set(supplier_count, DEFAULT_SUPPLIER_COUNT)),
        concentration_top_supplier_percentage=_first_set(
            top_supplier_percentage, DEFAULT_TOP_SUPPLIER_PERCENTAGE
        ),
    )


def get_scenario_templates() -> List[ScenarioTemplate]:
    return [
        ScenarioTemplate(
            type=ScenarioType.PRICE_SHOCK,
            name="Moderate Price Shock",
            description="30% price increase over 12 months",
            parameters=StressTestParameters(price_shock_percentage=30, duration_months=12),
        ),
        ScenarioTemplate(
            type=ScenarioType.PRICE_SHOCK,
            name="Severe Price Shock",
            description="50% price increase over 6 months",
            parameters=StressTestParameters(price_shock_percentage=50, duration_months=6),
        ),
        ScenarioTemplate(
            type=ScenarioType.SUPPLY_DISRUPTION,
            name="Major Supplier Failure",
            description="Loss of 40% supply for 6 months",
            parameters=StressTestParameters(supply_reduction_percentage=40, duration_months=6),
        ),
        ScenarioTemplate(
            type=ScenarioType.SUPPLY_DISRUPTION,
            name="Category Shortage",
            description="25% UCO supply reduction for 12 months",
            parameters=StressTestParameters(
                supply_reduction_percentage=25,
                duration_months=12,
                affected_categories=[FeedstockCategory.UCO],
            ),
        ),
        ScenarioTemplate(
            type=ScenarioType.SUPPLIER_DEFAULT,
            name="Top Supplier Default",
            description="Largest supplier stops delivering for 6 months",
            parameters=StressTestParameters(duration_months=6),
        ),
        ScenarioTemplate(
            type=ScenarioType.COVENANT_BREACH,
            name="Combined Stress Event",
            description="20% price increase + 15% supply reduction",
            parameters=StressTestParameters(
                price_shock_percentage=20,
                supply_reduction_percentage=15,
                duration_months=6,
            ),
        ),
        ScenarioTemplate(
            type=ScenarioType.REGULATORY,
            name="RED III Tightening",
            description="CI threshold reduced by 10 gCO2e/MJ, carbon price doubles",
            parameters=StressTestParameters(regulatory_threshold_change=-10, carbon_price_increase=100),
        ),
        ScenarioTemplate(
            type=ScenarioType.CUSTOM,
            name="Black Swan Event",
            description="Extreme scenario: 50% price + 50% supply + regulatory change",
            parameters=StressTestParameters(
                price_shock_percentage=50,
                supply_reduction_percentage=50,
                carbon_price_increase=200,
                regulatory_threshold_change=-15,
                duration_months=12,
            ),
        ),
    ]
