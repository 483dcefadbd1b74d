"""
Gateway configuration.

GatewayConfig is built once (usually from the process environment and an
optional .env file) and passed explicitly into the extraction gateway and the
HTTP app, so tests can construct one directly with keyword arguments.
"""

from typing import Literal, Optional

from loguru import logger
from pydantic import AliasChoices, Field, SecretStr, field_validator
from pydantic_settings import BaseSettings, SettingsConfigDict

from agenda_gateway.utils.prompts import PROMPT_TEMPLATES, DEFAULT_TEMPLATE

DEFAULT_MODEL = "gemini-1.5-pro"
DEFAULT_ENDPOINT = "https://generativelanguage.googleapis.com/v1beta"
MEGABYTE = 1024 * 1024

RecordMode = Literal["passthrough", "coerce", "strict"]


def _env(field: str, *names: str) -> AliasChoices:
    """Accept the field name (keyword construction) or the listed env vars."""
    return AliasChoices(field, *names)


class GatewayConfig(BaseSettings):
    """
    Settings for the extraction gateway.

    Attributes:
        api_key: Upstream model credential (GEMINI_API_KEY, then GOOGLE_API_KEY)
        model: Model identifier used in the generateContent URL (GEMINI_MODEL)
        model_endpoint: Base URL of the inference API (GEMINI_ENDPOINT)
        prompt_template: Name of the registered prompt template (PROMPT_TEMPLATE)
        timeout_ms: Upstream request timeout in milliseconds (UPSTREAM_TIMEOUT_MS)
        max_retries: Retries on transient transport failures (UPSTREAM_MAX_RETRIES)
        record_mode: How parsed records are validated (RECORD_MODE)
        max_body_mb: Largest accepted request body in MB (MAX_BODY_MB)
        port: Listening port for the HTTP server (PORT)
        environment: Deployment mode flag (APP_ENV)
        cors_origins: Comma-separated allowed origins, or "*" (CORS_ORIGINS)
        log_dir: Directory for the rotating log file, "" disables it (LOG_DIR)
    """

    api_key: Optional[SecretStr] = Field(
        default=None, validation_alias=_env("api_key", "GEMINI_API_KEY", "GOOGLE_API_KEY")
    )
    model: str = Field(default=DEFAULT_MODEL, validation_alias=_env("model", "GEMINI_MODEL"))
    model_endpoint: str = Field(
        default=DEFAULT_ENDPOINT, validation_alias=_env("model_endpoint", "GEMINI_ENDPOINT")
    )
    prompt_template: str = Field(
        default=DEFAULT_TEMPLATE, validation_alias=_env("prompt_template", "PROMPT_TEMPLATE")
    )
    timeout_ms: int = Field(
        default=60_000, gt=0, validation_alias=_env("timeout_ms", "UPSTREAM_TIMEOUT_MS")
    )
    max_retries: int = Field(
        default=1, ge=0, le=3, validation_alias=_env("max_retries", "UPSTREAM_MAX_RETRIES")
    )
    record_mode: RecordMode = Field(
        default="coerce", validation_alias=_env("record_mode", "RECORD_MODE")
    )
    max_body_mb: float = Field(default=50, gt=0, validation_alias=_env("max_body_mb", "MAX_BODY_MB"))
    port: int = Field(default=3001, validation_alias=_env("port", "PORT"))
    environment: str = Field(default="development", validation_alias=_env("environment", "APP_ENV"))
    cors_origins: str = Field(default="*", validation_alias=_env("cors_origins", "CORS_ORIGINS"))
    log_dir: str = Field(default="logs", validation_alias=_env("log_dir", "LOG_DIR"))

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_ignore_empty=True,
        case_sensitive=True,
        extra="ignore",
        protected_namespaces=("settings_",),
    )

    @field_validator("prompt_template")
    @classmethod
    def _known_template(cls, value: str) -> str:
        if value not in PROMPT_TEMPLATES:
            raise ValueError(
                f"Unknown prompt template '{value}'. "
                f"Available: {', '.join(sorted(PROMPT_TEMPLATES))}"
            )
        return value

    @field_validator("model_endpoint")
    @classmethod
    def _strip_slash(cls, value: str) -> str:
        return value.rstrip("/")

    @property
    def has_api_key(self) -> bool:
        return self.api_key is not None and bool(self.api_key.get_secret_value())

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    @property
    def max_body_bytes(self) -> int:
        return int(self.max_body_mb * MEGABYTE)

    @property
    def origins_list(self) -> list[str]:
        if self.cors_origins == "*":
            return ["*"]
        return [o.strip() for o in self.cors_origins.split(",") if o.strip()]

    def api_key_prefix(self) -> str:
        """Short non-secret prefix of the credential, for diagnostics only."""
        if not self.has_api_key:
            return "<unset>"
        return self.api_key.get_secret_value()[:6] + "..."

    @classmethod
    def from_env(cls, load_env_file: bool = True) -> "GatewayConfig":
        """
        Build configuration from the process environment.

        Args:
            load_env_file: Also read the .env file in the working directory

        Returns:
            GatewayConfig populated from environment variables

        Raises:
            pydantic.ValidationError: If a variable has an invalid value
        """
        config = cls(_env_file=".env" if load_env_file else None)
        logger.debug(
            f"Loaded config: model={config.model}, template={config.prompt_template}, "
            f"api_key_set={config.has_api_key}"
        )
        return config
