# backend/services/ai_service.py
import google.generativeai as genai
import structlog

from config import get_settings
from errors import AIGatewayError

logger = structlog.get_logger(__name__)

PLANNING = "planning"
SUMMARY = "summary"

def model_name_for(profile: str) -> str:
    settings = get_settings()
    profiles = {PLANNING: settings.PLANNING_MODEL, SUMMARY: settings.SUMMARY_MODEL}
    if profile not in profiles:
        raise ValueError(f"Unknown model profile: {profile}")
    return profiles[profile]

def get_model(profile: str):
    api_key = get_settings().GOOGLE_AI_API_KEY
    if not api_key:
        raise AIGatewayError("GOOGLE_AI_API_KEY is not set!")
    genai.configure(api_key=api_key) # type: ignore
    return genai.GenerativeModel(model_name_for(profile)) # type: ignore

async def generate_text(prompt: str, profile: str) -> str:
    """Sends ``prompt`` to the model selected by ``profile`` and returns the trimmed completion."""
    model = get_model(profile)
    try:
        response = await model.generate_content_async(prompt)
        text = response.text
    except Exception as e:
        # The SDK has no common base class for its transport and provider errors
        logger.error("ai_generation_failed", profile=profile, error=repr(e))
        raise AIGatewayError(f"Generation with profile '{profile}' failed: {e}") from e
    if not text or not text.strip():
        raise AIGatewayError(f"Generation with profile '{profile}' returned no text")
    return text.strip()
