# =============================================================================
# Multimodal Vision Demo - Centralized Configuration
# =============================================================================
# Provides a single Config dataclass containing all tunable parameters for
# both the proxy server and the client front end. Parameters are overridable
# via environment variables with the VISION_DEMO_ prefix
# (e.g., VISION_DEMO_PROVIDER_TIMEOUT_SECONDS=10). The provider credential is
# read from GEMINI_API_KEY.
# =============================================================================

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

# Project root directory (where this file lives)
_PROJECT_ROOT = str(Path(__file__).parent.resolve())

_ENV_PREFIX = "VISION_DEMO_"
_API_KEY_ENV = "GEMINI_API_KEY"


def _read_api_key() -> Optional[str]:
    """
    Read the provider credential from the environment.

    Returns:
        The API key, or None when unset or blank.
    """
    return os.environ.get(_API_KEY_ENV, "").strip() or None


@dataclass
class Config:
    """
    Centralized configuration for the Multimodal Vision Demo.

    All fields except ``gemini_api_key`` can be overridden via environment
    variables prefixed with VISION_DEMO_.
    """

    # -- Networking --
    server_host: str = "127.0.0.1"
    server_port: int = 8000

    # -- Model provider --
    gemini_api_key: Optional[str] = field(default_factory=_read_api_key)
    model_name: str = "gemini-1.5-flash"
    provider_timeout_seconds: float = 30.0

    # -- Request limits --
    max_upload_bytes: int = 2 * 1024 * 1024  # 2 MiB, enforced on both sides
    # requests applies this to the connect and to each socket read, not to
    # the whole round trip; a server trickling bytes can outlast it.
    client_timeout_seconds: float = 30.0
    response_cache_max_age: int = 3600

    # -- Client result cache --
    cache_db_path: str = field(
        default_factory=lambda: os.path.join(_PROJECT_ROOT, "result_cache.db")
    )
    cache_namespace: str = "gemini-vision-cache-"

    # -- Logging --
    log_level: str = "INFO"

    # -- Derived (computed post-init) --
    server_url: str = field(init=False)

    def __post_init__(self):
        """Apply environment variable overrides and compute derived fields."""
        self._apply_env_overrides()
        self.server_url = f"http://{self.server_host}:{self.server_port}"

    @property
    def provider_configured(self) -> bool:
        """Whether a provider credential is available."""
        return bool(self.gemini_api_key)

    def _apply_env_overrides(self):
        """
        Override config fields from environment variables.

        Looks for VISION_DEMO_<FIELD_NAME_UPPERCASE> environment variables and
        applies them with appropriate type conversion.
        """
        field_types = {
            "server_host": str,
            "server_port": int,
            "model_name": str,
            "provider_timeout_seconds": float,
            "max_upload_bytes": int,
            "client_timeout_seconds": float,
            "response_cache_max_age": int,
            "cache_db_path": str,
            "cache_namespace": str,
            "log_level": str,
        }
        for field_name, field_type in field_types.items():
            env_key = f"{_ENV_PREFIX}{field_name.upper()}"
            env_value = os.environ.get(env_key)
            if env_value is not None:
                setattr(self, field_name, field_type(env_value))


# ---------------------------------------------------------------------------
# Singleton accessor
# ---------------------------------------------------------------------------
_config_instance: Optional[Config] = None


def get_config() -> Config:
    """
    Return the singleton Config instance, creating it on first call.

    Returns:
        Config: The global configuration object.
    """
    global _config_instance
    if _config_instance is None:
        _config_instance = Config()
    return _config_instance


def reset_config() -> None:
    """Drop the cached singleton so the next get_config() re-reads the environment."""
    global _config_instance
    _config_instance = None
