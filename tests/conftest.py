from datetime import date

import pytest

from abfi.schemas.certificate import CertificateData
from abfi.schemas.rating import QualityInputs, ReliabilityInputs, SustainabilityInputs
from abfi.services.rating_calculator import calculate_abfi_score


@pytest.fixture
def abfi_result():
    """The worked example: 65 / 80 / 30 / 83, composite 63."""
    return calculate_abfi_score(
        SustainabilityInputs(
            certification_type="ISCC_EU",
            no_deforestation_verified=True,
            no_hcv_land_conversion=True,
            no_peatland_drainage=True,
            indigenous_rights_compliance=True,
        ),
        25,
        QualityInputs(category="UCO", parameters={"free_fatty_acid": 5}),
        ReliabilityInputs(
            delivery_performance=90,
            volume_consistency=2,
            quality_consistency=1,
            response_time_hours=10,
            platform_months=6,
            transaction_count=12,
        ),
    )


@pytest.fixture
def certificate_data():
    return CertificateData(
        feedstock_id=123,
        feedstock_name="Western Sydney UCO",
        feedstock_category="UCO",
        supplier_name="Parramatta Oil Recyclers",
        supplier_abn="51 824 753 556",
        location="Parramatta",
        state="NSW",
        certificate_number="ABFI-2025-000123",
        issue_date=date(2025, 4, 1),
        assessment_date=date(2025, 3, 28),
        annual_volume=4200,
        certifications=["ISCC EU"],
    )
