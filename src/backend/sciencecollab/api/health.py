"""Health check endpoint."""
import logging

from fastapi import APIRouter

from sciencecollab.config import settings

logger = logging.getLogger(__name__)
router = APIRouter()


@router.get("/health")
async def health_check():
    return {"status": "ok", "service": settings.app_name}


@router.get("/api/health/config")
async def config_check():
    """Diagnostic endpoint: shows whether optional services are configured (no secrets)."""
    return {
        "llm_base_url_set": bool(settings.llm_base_url),
        "llm_api_key_set": bool(settings.llm_api_key),
        "llm_model_id": settings.llm_model_id,
        "ncbi_api_key_set": bool(settings.ncbi_api_key),
        "openfda_api_key_set": bool(settings.openfda_api_key),
        "tool_timeout_seconds": settings.tool_timeout_seconds,
        "session_max_duration_seconds": settings.session_max_duration_seconds,
    }
