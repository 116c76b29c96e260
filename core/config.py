"""
Runtime configuration for the image gateway.

Settings are read once from the environment (and an optional .env file)
and handed to the dispatcher explicitly. Provider clients are never
constructed at import time.
"""
import os
import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Dict, Optional, Tuple

from dotenv import load_dotenv

logger = logging.getLogger(__name__)

# Environment variable holding each provider's credential
CREDENTIAL_ENV_VARS = {
    "huggingface": "HUGGINGFACE_API_KEY",
    "stability": "STABILITY_API_KEY",
    "openai": "OPENAI_API_KEY",
    "replicate": "REPLICATE_API_TOKEN",
}

LOG_LEVELS = ("CRITICAL", "ERROR", "WARNING", "INFO", "DEBUG")


@dataclass(frozen=True)
class PollingSettings:
    """Delay and attempt bound for the asynchronous job poller."""
    interval: float = 1.0
    max_attempts: int = 20


@dataclass(frozen=True)
class Settings:
    """
    Immutable configuration passed into the dispatcher at construction.

    Credentials are keyed by provider tag ("huggingface", "stability",
    "openai", "replicate"). A missing key means the provider can only be
    used with a request-supplied credential.
    """
    credentials: Dict[str, str] = field(default_factory=dict)
    huggingface_api_url: str = "https://api-inference.huggingface.co"
    huggingface_model: str = "stabilityai/stable-diffusion-xl-base-1.0"
    stability_api_url: str = "https://api.stability.ai"
    openai_base_url: str = "https://api.openai.com/v1"
    openai_image_model: str = "dall-e-3"
    replicate_api_url: str = "https://api.replicate.com"
    replicate_model_version: Optional[str] = None
    polling: PollingSettings = field(default_factory=PollingSettings)
    http_timeout: float = 120.0
    cors_origins: Tuple[str, ...] = ("*",)
    frontend_dir: Optional[Path] = None
    log_level: str = "INFO"
    host: str = "0.0.0.0"
    port: int = 3000

    def credential_for(self, provider: str) -> Optional[str]:
        return self.credentials.get(provider)


def _env_float(name: str, default: float) -> float:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return float(raw)
    except ValueError:
        raise ValueError(f"{name} must be a number, got {raw!r}")


def _env_int(name: str, default: int) -> int:
    raw = os.getenv(name)
    if raw is None or not raw.strip():
        return default
    try:
        return int(raw)
    except ValueError:
        raise ValueError(f"{name} must be an integer, got {raw!r}")


def load_settings(env_file: Optional[Path] = None) -> Settings:
    """
    Build Settings from environment variables.

    Loads a .env file first (the project root one unless env_file is
    given). Variables already present in the environment win.

    Args:
        env_file: Optional explicit path to a .env file

    Returns:
        Settings: The resolved configuration

    Raises:
        ValueError: If a numeric variable cannot be parsed or is out of range,
            or LOG_LEVEL is not a logging level name
    """
    if env_file is None:
        env_file = Path(__file__).parent.parent / ".env"
    load_dotenv(env_file)

    credentials = {}
    for provider, env_name in CREDENTIAL_ENV_VARS.items():
        value = os.getenv(env_name)
        if value:
            credentials[provider] = value
        else:
            logger.warning(f"{env_name} not set - {provider} requires a request-supplied key")

    max_attempts = _env_int("REPLICATE_MAX_ATTEMPTS", 20)
    if max_attempts < 1:
        raise ValueError("REPLICATE_MAX_ATTEMPTS must be at least 1")

    poll_interval = _env_float("REPLICATE_POLL_INTERVAL", 1.0)
    if poll_interval <= 0:
        raise ValueError(f"REPLICATE_POLL_INTERVAL must be positive, got {poll_interval}")

    http_timeout = _env_float("HTTP_TIMEOUT", 120.0)
    if http_timeout <= 0:
        raise ValueError(f"HTTP_TIMEOUT must be positive, got {http_timeout}")

    log_level = os.getenv("LOG_LEVEL", "INFO").strip().upper() or "INFO"
    if log_level not in LOG_LEVELS:
        raise ValueError(f"LOG_LEVEL must be one of {', '.join(LOG_LEVELS)}, got {log_level!r}")

    replicate_version = os.getenv("REPLICATE_MODEL_VERSION") or None
    if not replicate_version:
        logger.warning("REPLICATE_MODEL_VERSION not set - replicate requests must name a model version")

    origins = os.getenv("CORS_ORIGINS", "*")
    frontend_dir = os.getenv("FRONTEND_DIR")

    return Settings(
        credentials=credentials,
        huggingface_api_url=os.getenv("HUGGINGFACE_API_URL", Settings.huggingface_api_url),
        huggingface_model=os.getenv("HUGGINGFACE_MODEL", Settings.huggingface_model),
        stability_api_url=os.getenv("STABILITY_API_URL", Settings.stability_api_url),
        openai_base_url=os.getenv("OPENAI_BASE_URL", Settings.openai_base_url),
        openai_image_model=os.getenv("OPENAI_IMAGE_MODEL", Settings.openai_image_model),
        replicate_api_url=os.getenv("REPLICATE_API_URL", Settings.replicate_api_url),
        replicate_model_version=replicate_version,
        polling=PollingSettings(
            interval=poll_interval,
            max_attempts=max_attempts,
        ),
        http_timeout=http_timeout,
        cors_origins=tuple(o.strip() for o in origins.split(",") if o.strip()) or ("*",),
        frontend_dir=Path(frontend_dir) if frontend_dir else None,
        log_level=log_level,
        host=os.getenv("HOST", Settings.host),
        port=_env_int("PORT", 3000),
    )
