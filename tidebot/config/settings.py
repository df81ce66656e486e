"""
Application settings and configuration management.

Uses Pydantic Settings for validation and environment variable support.
"""

from pathlib import Path
from typing import Literal

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict

DEFAULT_SYSTEM_ROLE = (
    "You are Tidebot, a friendly assistant chatting on behalf of its operators. "
    "Answer concisely in the language the user writes in. "
    "Use the available tools when they help answer the question."
)


class AssistantSettings(BaseSettings):
    """Assistant identity: system prompt and sensitivity marker."""

    system_role: str = Field(
        default=DEFAULT_SYSTEM_ROLE,
        description="System message seeded into every new conversation. Empty disables it.",
    )
    system_role_file: Path | None = Field(
        default=None,
        description="If set, the system message is read from this file instead of system_role.",
    )
    sensitive_marker: str = Field(
        default="",
        description="Literal prefix the model uses to flag a sensitive reply when it does not "
                    "return an explicit flag, e.g. '[NSFW]'. Empty disables marker parsing.",
    )

    model_config = SettingsConfigDict(env_prefix="ASSISTANT_")

    def resolve_system_role(self) -> str:
        """Return the system prompt text, preferring system_role_file when configured."""
        if self.system_role_file is not None:
            return self.system_role_file.read_text(encoding="utf-8").strip()
        return self.system_role


class LLMSettings(BaseSettings):
    """LLM API configuration."""

    model: str = Field(
        default="openai/gpt-4o-mini",
        description="LiteLLM model string, e.g. 'openai/gpt-4o-mini', "
                    "'anthropic/claude-3-5-sonnet-20241022', 'ollama/llama3'. The provider "
                    "prefix tells LiteLLM which API to route the request to.",
    )
    max_tokens: int = Field(default=1024, description="Maximum tokens in response")
    temperature: float = Field(default=0.7, description="Sampling temperature")
    api_key: str = Field(default="", description="API key for the model's provider")
    api_base: str | None = Field(
        default=None, description="Override the provider endpoint (OpenAI-compatible servers)"
    )
    structured_output: bool = Field(
        default=True,
        description="Ask the model for a JSON reply matching the assistant response schema "
                    "(text, language, sensitive). When off, the reply text is used as-is.",
    )

    model_config = SettingsConfigDict(env_prefix="LLM_")


class StorageSettings(BaseSettings):
    """Conversation storage configuration."""

    backend: Literal["memory", "sqlite"] = Field(
        default="memory", description="Where conversations are persisted"
    )
    sqlite_path: str = Field(
        default="data/conversations.db", description="SQLite database file (sqlite backend)"
    )

    model_config = SettingsConfigDict(env_prefix="STORAGE_")


class BotSettings(BaseSettings):
    """Discord bot configuration."""

    name: str = Field(default="Tidebot", description="Bot display name")
    command_prefix: str = Field(default="!", description="Command prefix for bot commands")
    token: str = Field(default="", description="Discord bot token")
    allowed_channel_ids: list[int] = Field(
        default_factory=list,
        description="If non-empty, bot only responds in these channel IDs. "
                    "Set via BOT__ALLOWED_CHANNEL_IDS='[123456,789012]'",
    )
    max_length: int = Field(
        default=2000, description="Replies longer than this are truncated (Discord limit: 2000)"
    )
    sensitive_spoiler: bool = Field(
        default=True, description="Wrap replies flagged sensitive in a Discord spoiler"
    )

    model_config = SettingsConfigDict(env_prefix="BOT_")


class ToolSettings(BaseSettings):
    """Built-in tool configuration."""

    self_info: bool = Field(default=True, description="Enable the self_info tool")
    local_info: bool = Field(default=True, description="Enable the local_info tool")
    image_generator: bool = Field(
        default=False, description="Enable the image_generator tool"
    )
    image_model: str = Field(
        default="openai/dall-e-3", description="LiteLLM image generation model"
    )
    image_api_key: str = Field(
        default="", description="API key for the image model (falls back to LLM api_key)"
    )

    model_config = SettingsConfigDict(env_prefix="TOOL_")


class Settings(BaseSettings):
    """Main application settings."""

    # Environment
    environment: Literal["development", "production"] = Field(
        default="development", description="Deployment environment"
    )

    # Logging
    log_level: Literal["DEBUG", "INFO", "WARNING", "ERROR", "CRITICAL"] = Field(
        default="INFO", description="Logging level"
    )
    log_file: Path | None = Field(default=None, description="Log file path")

    # Sub-configurations
    assistant: AssistantSettings = Field(default_factory=AssistantSettings)
    llm: LLMSettings = Field(default_factory=LLMSettings)
    storage: StorageSettings = Field(default_factory=StorageSettings)
    bot: BotSettings = Field(default_factory=BotSettings)
    tools: ToolSettings = Field(default_factory=ToolSettings)

    model_config = SettingsConfigDict(
        env_file=".env",
        env_file_encoding="utf-8",
        env_nested_delimiter="__",
        case_sensitive=False,
        extra="ignore",
    )


# Global settings instance
_settings: Settings | None = None


def get_settings() -> Settings:
    """Get or create the global settings instance."""
    global _settings
    if _settings is None:
        _settings = Settings()
    return _settings


def load_settings(env_file: str | Path | None = None) -> Settings:
    """
    Load settings from file and environment.

    Args:
        env_file: Path to .env file (optional)

    Returns:
        Loaded settings instance
    """
    global _settings
    if env_file:
        _settings = Settings(_env_file=env_file)
    else:
        _settings = Settings()
    return _settings
