import unicodedata
from datetime import date, timedelta
from typing import List, Tuple

from fpdf import FPDF
from fpdf.enums import XPos, YPos

from abfi.config import get_settings
from abfi.schemas.certificate import CertificateData
from abfi.schemas.rating import AbfiScoreResult
from abfi.services.rating_calculator import get_score_tier


def certificate_valid_until(data: CertificateData) -> date:
    if data.valid_until:
        return data.valid_until
    return data.issue_date + timedelta(days=get_settings().certificate_validity_days)


DATA_FONT = "CertificateSans"


def pdf_safe_text(text: str) -> str:
    """
    Reduce text to what the core PDF fonts can encode (Latin-1). Characters
    outside it lose their diacritics ("Ō" -> "O", "₂" -> "2"); anything left
    over becomes "?".
    """
    out = []
    for ch in text:
        if ord(ch) < 256:
            out.append(ch)
            continue
        base = "".join(
            c for c in unicodedata.normalize("NFKD", ch) if not unicodedata.combining(c) and ord(c) < 256
        )
        out.append(base or "?")
    return "".join(out)


def build_certificate_sections(
    data: CertificateData, result: AbfiScoreResult
) -> List[Tuple[str, List[Tuple[str, str]]]]:
    """
    Labelled certificate content. Scores come straight from ``result`` and the
    tier from get_score_tier; nothing is recomputed here.
    """
    carbon = result.breakdown.carbon

    feedstock = [
        ("Feedstock", data.feedstock_name),
        ("Category", data.feedstock_category),
        ("Supplier", data.supplier_name),
        ("ABN", data.supplier_abn),
        ("Location", f"{data.location}, {data.state}"),
    ]
    if data.annual_volume is not None:
        feedstock.append(("Annual Volume", f"{data.annual_volume:,.0f} tonnes"))
    if data.certifications:
        feedstock.append(("Certifications", ", ".join(data.certifications)))

    rating = [
        ("ABFI Score", f"{result.abfi_score} / 100"),
        ("Tier", get_score_tier(result.abfi_score).value),
        ("Sustainability", str(result.sustainability_score)),
        ("Carbon Intensity", f"{result.carbon_intensity_score:g}"),
        ("Quality", str(result.quality_score)),
        ("Reliability", str(result.reliability_score)),
        ("Carbon Rating", f"{carbon.rating.value} ({carbon.value:g} gCO2e/MJ)"),
    ]

    metadata = [
        ("Certificate No.", data.certificate_number),
        ("Assessment Date", data.assessment_date.isoformat()),
        ("Issue Date", data.issue_date.isoformat()),
        ("Valid Until", certificate_valid_until(data).isoformat()),
    ]

    return [
        ("Feedstock Details", feedstock),
        ("ABFI Rating", rating),
        ("Certificate", metadata),
    ]


def generate_rating_certificate_pdf(data: CertificateData, result: AbfiScoreResult) -> bytes:
    """
    Generate an ABFI feedstock rating certificate.
    Returns PDF as raw bytes.
    """
    settings = get_settings()

    pdf = FPDF(orientation="P", unit="mm", format="A4")
    pdf.set_auto_page_break(auto=True, margin=15)
    pdf.add_page()

    if settings.certificate_font_path:
        pdf.add_font(DATA_FONT, "", settings.certificate_font_path)
        data_font, render = DATA_FONT, str
    else:
        data_font, render = "Helvetica", pdf_safe_text

    # Header bar
    pdf.set_fill_color(16, 185, 129)
    pdf.rect(0, 0, pdf.w, 35, style="F")
    pdf.set_text_color(255, 255, 255)
    pdf.set_xy(20, 10)
    pdf.set_font("Helvetica", "B", 28)
    pdf.cell(0, 10, "ABFI", new_x=XPos.LMARGIN, new_y=YPos.NEXT)
    pdf.set_x(20)
    pdf.set_font("Helvetica", "", 10)
    pdf.cell(0, 6, pdf_safe_text(settings.certificate_issuer), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    # Title
    pdf.set_text_color(55, 65, 81)
    pdf.set_y(45)
    pdf.set_font("Helvetica", "B", 20)
    pdf.cell(0, 10, "FEEDSTOCK RATING CERTIFICATE", align="C", new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    for heading, rows in build_certificate_sections(data, result):
        pdf.ln(6)
        pdf.set_font("Helvetica", "B", 14)
        pdf.cell(0, 8, heading, new_x=XPos.LMARGIN, new_y=YPos.NEXT)

        for label, value in rows:
            pdf.set_font("Helvetica", "", 11)
            pdf.cell(50, 7, f"{label}:")
            pdf.set_font(data_font, "", 11)
            pdf.cell(0, 7, render(value), new_x=XPos.LMARGIN, new_y=YPos.NEXT)

    # Footer
    pdf.ln(10)
    pdf.set_font("Helvetica", "I", 9)
    pdf.multi_cell(
        0,
        5,
        "This certificate reports the ABFI composite rating computed from verified "
        "sustainability, carbon intensity, quality and reliability evidence at the "
        "assessment date.",
    )

    return bytes(pdf.output())
