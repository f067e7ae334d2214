"""
Application configuration via environment variables.
"""
from pydantic_settings import BaseSettings
from typing import List, Optional


class Settings(BaseSettings):
    """Application settings loaded from environment / .env file."""

    # App
    app_name: str = "Science Collab"
    debug: bool = True

    # CORS
    cors_origins: List[str] = [
        "http://localhost:3000",
        "http://localhost:5173",
    ]

    # Reasoning service (OpenAI-compatible endpoint, optional)
    llm_model_id: str = "claude-haiku-4-5"
    llm_api_key: str = ""
    llm_base_url: str = ""  # empty = deterministic fallbacks only

    # External APIs
    ncbi_api_key: str = ""  # Optional, increases E-utilities rate limits
    openfda_api_key: str = ""  # Optional, increases rate limits
    contact_email: str = "collab@example.org"  # CrossRef polite pool
    user_agent: str = "ScienceCollab/1.0 (research bot)"

    # Timeouts (seconds)
    tool_timeout_seconds: float = 10.0
    selection_timeout_seconds: float = 6.0
    synthesis_timeout_seconds: float = 15.0

    # Agents
    tools_per_agent: int = 3
    agreement_probability: float = 0.45
    agreement_seed: Optional[int] = None
    pacing_enabled: bool = True

    # Sessions / transport
    session_max_duration_seconds: float = 120.0
    heartbeat_interval_seconds: float = 15.0
    session_ttl_seconds: int = 3600

    model_config = {
        "env_file": ".env",
        "env_file_encoding": "utf-8",
    }


settings = Settings()
