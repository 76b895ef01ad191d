from __future__ import annotations

from functools import lru_cache

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(env_file=None, extra="ignore")

    # Runtime
    environment: str = Field(default="development", validation_alias="NODE_ENV")
    port: int = Field(default=8080, validation_alias="PORT")
    log_level: str = Field(default="INFO", validation_alias="LOG_LEVEL")

    # CORS / Frontend
    frontend_base_url: str = Field(
        default="http://localhost:3000", validation_alias="FRONTEND_BASE_URL"
    )
    frontend_urls: str | None = Field(default=None, validation_alias="FRONTEND_URLS")

    # Mitigation strategy generator.
    # "builtin" | "http" | "openai"; empty means http when a URL is set, else builtin.
    mitigation_generator: str | None = Field(default=None, validation_alias="MITIGATION_GENERATOR")
    mitigation_generator_url: str | None = Field(
        default=None, validation_alias="MITIGATION_GENERATOR_URL"
    )
    mitigation_generator_timeout_seconds: float = Field(
        default=10.0, validation_alias="MITIGATION_GENERATOR_TIMEOUT_SECONDS"
    )

    # OpenAI (only used by the "openai" generator)
    openai_api_key: str | None = Field(default=None, validation_alias="OPENAI_API_KEY")
    openai_model: str = Field(default="gpt-4o-mini", validation_alias="OPENAI_MODEL")

    # Opportunity snapshot seed: a JSON list, or {"opportunities": [...]}.
    # Example: OPPORTUNITIES_SEED_PATH=backend/data/opportunities.sample.json
    opportunities_seed_path: str | None = Field(
        default=None, validation_alias="OPPORTUNITIES_SEED_PATH"
    )

    # ---- helpers / derived flags ----
    @property
    def normalized_environment(self) -> str:
        v = (self.environment or "").strip().lower()
        if v in ("prod", "production"):
            return "production"
        if v in ("stage", "staging"):
            return "staging"
        if v in ("dev", "development"):
            return "development"
        return v or "development"

    @property
    def is_production(self) -> bool:
        return self.normalized_environment == "production"

    @property
    def resolved_mitigation_generator(self) -> str:
        v = str(self.mitigation_generator or "").strip().lower()
        if v in ("builtin", "http", "openai"):
            return v
        if self.mitigation_generator_url and str(self.mitigation_generator_url).strip():
            return "http"
        return "builtin"

    def require_in_production(self) -> None:
        """
        Enforce required settings in production.

        Development/staging may run with partial config (generators then fail
        over to the static catalog), but production must be fully configured.
        """
        if not self.is_production:
            return

        missing: list[str] = []
        kind = self.resolved_mitigation_generator
        if kind == "http" and not (self.mitigation_generator_url or "").strip():
            missing.append("MITIGATION_GENERATOR_URL")
        if kind == "openai" and not (self.openai_api_key or "").strip():
            missing.append("OPENAI_API_KEY")

        if missing:
            raise RuntimeError(
                "Missing required production environment variables: "
                + ", ".join(missing)
            )

    def to_log_safe_dict(self) -> dict[str, object]:
        """
        A redacted representation safe for structured logs.
        """
        def _has(v: object) -> bool:
            return v is not None and str(v).strip() != ""

        return {
            "environment": self.normalized_environment,
            "port": self.port,
            "log_level": self.log_level,
            "frontend": {
                "frontend_base_url": self.frontend_base_url,
                "frontend_urls": self.frontend_urls,
            },
            "mitigation": {
                "generator": self.resolved_mitigation_generator,
                "generator_url": self.mitigation_generator_url if _has(self.mitigation_generator_url) else None,
                "timeout_seconds": self.mitigation_generator_timeout_seconds,
                "openai_api_key_configured": _has(self.openai_api_key),
                "openai_model": self.openai_model,
            },
            "opportunities_seed_path": self.opportunities_seed_path,
        }


@lru_cache(maxsize=1)
def get_settings() -> Settings:
    s = Settings()
    s.require_in_production()
    return s


# Backwards-compatible module-level singleton.
settings = get_settings()
