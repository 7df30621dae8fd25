"""Application settings loaded from the environment."""

import os
from dataclasses import dataclass, field

from app.clients.anthropic import AnthropicConfig


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    return value.strip().lower() in {"1", "true", "yes", "on"}


def _env_list(name: str, default: list[str]) -> list[str]:
    value = os.getenv(name)
    if not value:
        return default
    return [item.strip() for item in value.split(",") if item.strip()]


@dataclass
class Settings:
    """Runtime configuration for the recruiting agent service."""

    anthropic_api_key: str | None = None
    model: str = "claude-3-5-sonnet-20241022"
    max_tokens: int = 4096
    temperature: float = 0.1

    # Tool rounds executed per client request; 1 reproduces a single follow-up turn
    max_tool_rounds: int = 3
    parallel_tool_execution: bool = False

    model_turn_timeout_seconds: float = 120.0
    tool_timeout_seconds: float = 30.0

    max_message_chars: int = 4000
    session_timeout_minutes: int = 60

    log_level: str = "INFO"
    cors_origins: list[str] = field(default_factory=lambda: ["*"])

    @classmethod
    def from_env(cls) -> "Settings":
        """Build settings from environment variables, falling back to defaults."""
        defaults = cls()
        return cls(
            anthropic_api_key=os.getenv("ANTHROPIC_API_KEY"),
            model=os.getenv("ANTHROPIC_MODEL", defaults.model),
            max_tokens=int(os.getenv("ANTHROPIC_MAX_TOKENS", defaults.max_tokens)),
            temperature=float(os.getenv("ANTHROPIC_TEMPERATURE", defaults.temperature)),
            max_tool_rounds=int(os.getenv("MAX_TOOL_ROUNDS", defaults.max_tool_rounds)),
            parallel_tool_execution=_env_bool("PARALLEL_TOOL_EXECUTION", defaults.parallel_tool_execution),
            model_turn_timeout_seconds=float(
                os.getenv("MODEL_TURN_TIMEOUT_SECONDS", defaults.model_turn_timeout_seconds)
            ),
            tool_timeout_seconds=float(os.getenv("TOOL_TIMEOUT_SECONDS", defaults.tool_timeout_seconds)),
            max_message_chars=int(os.getenv("MAX_MESSAGE_CHARS", defaults.max_message_chars)),
            session_timeout_minutes=int(os.getenv("SESSION_TIMEOUT_MINUTES", defaults.session_timeout_minutes)),
            log_level=os.getenv("LOG_LEVEL", defaults.log_level),
            cors_origins=_env_list("CORS_ORIGINS", defaults.cors_origins),
        )

    def anthropic_config(self) -> AnthropicConfig:
        """Client configuration derived from these settings."""
        return AnthropicConfig(
            model=self.model,
            max_tokens=self.max_tokens,
            temperature=self.temperature,
        )


_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings.from_env()
    return _settings
