"""
Science Collab — FastAPI Backend
"""
import logging

from fastapi import FastAPI
from fastapi.middleware.cors import CORSMiddleware

from sciencecollab.api import collaborate, health, ws
from sciencecollab.config import settings

logging.basicConfig(level=logging.INFO, format="%(asctime)s %(name)s %(levelname)s %(message)s")
logger = logging.getLogger(__name__)

app = FastAPI(
    title="Science Collab",
    description="Multi-agent scientific investigation over public research databases",
    version="0.1.0",
)

# CORS for frontend
app.add_middleware(
    CORSMiddleware,
    allow_origins=settings.cors_origins,
    allow_credentials=True,
    allow_methods=["*"],
    allow_headers=["*"],
)

# Routes
app.include_router(health.router, tags=["health"])
app.include_router(collaborate.router, prefix="/api/collaborate", tags=["collaborate"])
app.include_router(ws.router, prefix="/ws", tags=["websocket"])


@app.on_event("startup")
async def startup():
    """Log configuration on startup."""
    def _mask(val: str) -> str:
        if not val:
            return "(empty)"
        if len(val) <= 8:
            return "***"
        return val[:4] + "..." + val[-4:]

    logger.info("=== Science Collab Backend Starting ===")
    logger.info(f"  llm_base_url      : {settings.llm_base_url or '(empty)'}")
    logger.info(f"  llm_model_id      : {settings.llm_model_id}")
    logger.info(f"  llm_api_key       : {_mask(settings.llm_api_key)}")
    logger.info(f"  ncbi_api_key      : {_mask(settings.ncbi_api_key)}")
    logger.info(f"  tool_timeout      : {settings.tool_timeout_seconds}s")
    logger.info(f"  session ceiling   : {settings.session_max_duration_seconds}s")
    logger.info(f"  cors_origins      : {settings.cors_origins}")

    if not settings.llm_base_url:
        logger.warning("LLM_BASE_URL is empty -- tool selection and synthesis use deterministic fallbacks")
