"""Process-wide settings loaded from environment variables (+ optional .env in the working directory)."""

import os
from functools import lru_cache

from dotenv import find_dotenv, load_dotenv
from pydantic import BaseModel, Field

from taskboard.errors import MisconfiguredBackend

ENV_PREFIX = "TASKBOARD"


def _k(suffix: str) -> str:
    """Build env var name with the project prefix."""
    return f"{ENV_PREFIX}_{suffix}"


def _first_env(*names: str) -> str | None:
    for name in names:
        value = os.getenv(name)
        if value is not None and value.strip() != "":
            return value.strip()
    return None


def _env_list(name: str, default: list[str]) -> list[str]:
    raw = os.getenv(name)
    if raw is None or raw.strip() == "":
        return list(default)
    return [part.strip() for part in raw.replace(",", " ").split() if part.strip()]


class Settings(BaseModel):
    """Configuration shared by every request."""

    backend_url: str | None = Field(default=None, description="Base URL of the hosted backend")
    backend_api_key: str | None = Field(default=None, description="Public (anon) API key of the backend")
    request_timeout: float = Field(default=10.0, gt=0)
    log_level: str = Field(default="INFO")
    cors_origins: list[str] = Field(default_factory=lambda: ["http://localhost:3000"])

    def require_backend(self) -> tuple[str, str]:
        """Return ``(url, api_key)`` or raise ``MisconfiguredBackend``."""
        missing = []
        if not self.backend_url or "placeholder" in self.backend_url:
            missing.append(_k("BACKEND_URL"))
        if not self.backend_api_key:
            missing.append(_k("BACKEND_API_KEY"))
        if missing:
            raise MisconfiguredBackend(
                details=f"Backend environment variables are missing: {', '.join(missing)}. "
                "Set them in the environment or in a .env file."
            )
        return self.backend_url.rstrip("/"), self.backend_api_key


def load_settings() -> Settings:
    """Build ``Settings`` from the environment after loading a local .env."""
    load_dotenv(find_dotenv(usecwd=True), override=False)
    values: dict[str, object] = {
        "backend_url": _first_env(_k("BACKEND_URL"), "SUPABASE_URL"),
        "backend_api_key": _first_env(_k("BACKEND_API_KEY"), "SUPABASE_ANON_KEY"),
        "cors_origins": _env_list(_k("CORS_ORIGINS"), ["http://localhost:3000"]),
    }
    timeout = _first_env(_k("REQUEST_TIMEOUT"))
    if timeout is not None:
        values["request_timeout"] = timeout
    log_level = _first_env(_k("LOG_LEVEL"))
    if log_level is not None:
        values["log_level"] = log_level.upper()
    return Settings.model_validate(values)


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    """Settings for this process, loaded on first use."""
    return load_settings()
