import io

from fastapi import APIRouter
from fastapi.responses import StreamingResponse

from abfi.schemas.certificate import CertificateRequest
from abfi.services.certificate_generator import generate_rating_certificate_pdf

router = APIRouter(prefix="/api/v1/reports", tags=["Reports"])


@router.post("/certificate")
def create_rating_certificate(payload: CertificateRequest):
    """
    Generate a PDF rating certificate from a computed ABFI score.
    """
    pdf_bytes = generate_rating_certificate_pdf(payload.certificate, payload.result)
    buffer = io.BytesIO(pdf_bytes)
    filename = f"abfi_certificate_{payload.certificate.certificate_number}.pdf"

    return StreamingResponse(
        buffer,
        media_type="application/pdf",
        headers={"Content-Disposition": f"attachment; filename={filename}"},
    )
