from fastapi import APIRouter

from abfi.schemas.rating import AbfiScoreResult, RatingInsights
from abfi.services.rating_insights import generate_rating_insights

router = APIRouter(prefix="/api/v1/insights", tags=["AI Insights"])


@router.post("/rating", response_model=RatingInsights)
def rating_insights(result: AbfiScoreResult):
    """
    Generate narrative insights for a computed ABFI score.
    """
    return generate_rating_insights(result)
