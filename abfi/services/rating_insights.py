# abfi/services/rating_insights.py

import json
import logging
from typing import List, Tuple

from openai import OpenAI, OpenAIError

from abfi.config import get_settings
from abfi.schemas.rating import AbfiScoreResult, RatingInsights
from abfi.services.rating_calculator import get_score_tier

logger = logging.getLogger(__name__)


def _pillars(result: AbfiScoreResult) -> List[Tuple[str, float]]:
    return [
        ("sustainability", result.sustainability_score),
        ("carbon intensity", result.carbon_intensity_score),
        ("quality", result.quality_score),
        ("reliability", result.reliability_score),
    ]


# ---------- Fallback (no OpenAI / API error) ----------

_IMPROVEMENT_HINTS = {
    "sustainability": (
        "Pursue a top-tier certification (ISCC EU/PLUS or RSB) and document land-use, "
        "social and biodiversity compliance."
    ),
    "carbon intensity": (
        "Reduce carbon intensity through process energy, transport and land-use changes; "
        "each gCO2e/MJ below a band boundary lifts the score."
    ),
    "quality": (
        "Submit complete lab results for every category parameter; missing parameters score zero."
    ),
    "reliability": (
        "Improve on-time-in-full delivery and response times, and build platform transaction history."
    ),
}


def _fallback_insights(result: AbfiScoreResult) -> RatingInsights:
    """
    Rule-based insights used when OpenAI is not configured or the call
    fails, so buyers and suppliers still see guidance.
    """
    tier = get_score_tier(result.abfi_score)
    carbon = result.breakdown.carbon

    overall = (
        f"This feedstock holds an ABFI score of {result.abfi_score} ({tier.value}), "
        f"with a carbon intensity rating of {carbon.rating.value} at {carbon.value:g} gCO2e/MJ."
    )

    ranked = sorted(_pillars(result), key=lambda p: p[1], reverse=True)
    strengths = [f"Strong {name} score of {score:g}." for name, score in ranked if score >= 70]
    improvements = [_IMPROVEMENT_HINTS[name] for name, score in reversed(ranked) if score < 70]

    if not strengths:
        strengths = [f"Best-performing pillar is {ranked[0][0]} at {ranked[0][1]:g}."]
    if not improvements:
        improvements = ["All pillars score 70 or above; maintain evidence currency for re-assessment."]

    return RatingInsights(overall=overall, strengths=strengths, improvements=improvements, source="rules")


def generate_rating_insights(result: AbfiScoreResult) -> RatingInsights:
    settings = get_settings()

    if not settings.openai_api_key:
        return _fallback_insights(result)

    client = OpenAI(api_key=settings.openai_api_key)

    pillar_lines = "\n".join(f"- {name}: {score:g}" for name, score in _pillars(result))
    prompt = f"""
You are given the ABFI rating of a bioenergy feedstock.

ABFI score: {result.abfi_score} ({get_score_tier(result.abfi_score).value})
Pillar scores (0-100):
{pillar_lines}
Carbon intensity: {result.breakdown.carbon.value:g} gCO2e/MJ, rating {result.breakdown.carbon.rating.value}

Breakdown:
{json.dumps(result.breakdown.model_dump(mode="json"), indent=2)}

Produce:
1. A short OVERALL narrative (2-4 sentences) for buyers and lenders.
2. 2-4 strengths.
3. 2-4 practical improvements for the supplier.
    """.strip()

    try:
        completion = client.chat.completions.create(
            model=settings.openai_model,
            messages=[
                {
                    "role": "system",
                    "content": "You are a bioenergy feedstock analyst. Always respond in valid JSON.",
                },
                {"role": "user", "content": prompt},
            ],
            response_format={
                "type": "json_schema",
                "json_schema": {
                    "name": "RatingInsights",
                    "schema": {
                        "type": "object",
                        "properties": {
                            "overall": {"type": "string"},
                            "strengths": {"type": "array", "items": {"type": "string"}},
                            "improvements": {"type": "array", "items": {"type": "string"}},
                        },
                        "required": ["overall", "strengths", "improvements"],
                        "additionalProperties": False,
                    },
                    "strict": True,
                },
            },
            max_tokens=600,
        )

        content = completion.choices[0].message.content
        if not content:
            # refusals come back with no content
            logger.warning("OpenAI returned no rating insights content, using rule-based fallback")
            return _fallback_insights(result)

        data = json.loads(content)

        return RatingInsights(
            overall=data.get("overall", ""),
            strengths=data.get("strengths") or [],
            improvements=data.get("improvements") or [],
            source="openai",
        )

    except (OpenAIError, ValueError) as e:
        logger.warning("OpenAI rating insights failed, using rule-based fallback: %s", e)
        return _fallback_insights(result)
