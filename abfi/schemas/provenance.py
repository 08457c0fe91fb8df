import datetime
from typing import Any, Dict, List

from pydantic import BaseModel


class InputSource(BaseModel):
    source: str
    date: datetime.date
    verified: bool = True


class CalculationStep(BaseModel):
    step: int
    operation: str
    result: float


class MethodologyProvenance(BaseModel):
    """Inputs, sources and steps behind a lender-facing number."""

    entity_type: str
    methodology_name: str
    methodology_version: str
    input_data: Dict[str, Any]
    input_sources: List[InputSource]
    calculation_steps: List[CalculationStep]
    output_data: Dict[str, Any]
    confidence_level: str
    uncertainty_notes: str
