from datetime import date
from typing import List, Optional

from pydantic import BaseModel, Field

from abfi.schemas.rating import AbfiScoreResult


class CertificateData(BaseModel):
    feedstock_id: int
    feedstock_name: str = Field(..., examples=["Riverina Canola Seed"])
    feedstock_category: str = Field(..., examples=["oilseed"])
    supplier_name: str
    supplier_abn: str = Field(..., examples=["51 824 753 556"])
    location: str
    state: str = Field(..., examples=["NSW"])

    certificate_number: str = Field(..., examples=["ABFI-2026-000123"])
    issue_date: date
    assessment_date: date
    valid_until: Optional[date] = None

    annual_volume: Optional[float] = None  # tonnes
    certifications: List[str] = Field(default_factory=list)


class CertificateRequest(BaseModel):
    certificate: CertificateData
    result: AbfiScoreResult
