"""Application configuration."""

from __future__ import annotations

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    """Environment-driven settings validated at startup."""

    model_config = SettingsConfigDict(env_file=".env", env_file_encoding="utf-8", extra="ignore")

    lark_app_id: str = Field(..., alias="LARK_APP_ID")
    lark_app_secret: str = Field(..., alias="LARK_APP_SECRET")
    lark_domain: str = Field(default="https://open.feishu.cn", alias="LARK_DOMAIN")
    # Compared against the token in incoming webhook payloads when non-empty.
    lark_verification_token: str = Field(default="", alias="LARK_VERIFICATION_TOKEN")

    glm_api_key: str = Field(..., alias="GLM_API_KEY")
    glm_base_url: str = Field(default="https://api.z.ai/api/paas/v4", alias="GLM_BASE_URL")
    glm_model: str = Field(default="glm-4.7", alias="GLM_MODEL")
    llm_temperature: float = Field(default=0.7, alias="LLM_TEMPERATURE")
    llm_max_tokens: int = Field(default=4096, alias="LLM_MAX_TOKENS")
    # Sent as {"thinking": {"type": ...}}; empty omits the field.
    glm_thinking: str = Field(default="enabled", alias="GLM_THINKING")
    request_timeout_seconds: float = Field(default=30.0, alias="REQUEST_TIMEOUT_SECONDS")

    # Empty means the in-process store and dedup guard are used.
    redis_url: str = Field(default="", alias="REDIS_URL")
    conversation_ttl_seconds: int = Field(default=3600, alias="CONVERSATION_TTL_SECONDS")
    max_conversations: int = Field(default=100, alias="MAX_CONVERSATIONS")
    context_window_messages: int = Field(default=10, alias="CONTEXT_WINDOW_MESSAGES")
    tool_context_window_messages: int = Field(default=20, alias="TOOL_CONTEXT_WINDOW_MESSAGES")
    history_cap_messages: int = Field(default=20, alias="HISTORY_CAP_MESSAGES")
    history_cap_with_tools_messages: int = Field(default=30, alias="HISTORY_CAP_WITH_TOOLS_MESSAGES")

    # Comma-separated tool name prefixes; empty enables every tool.
    enabled_tool_prefixes: str = Field(default="", alias="ENABLED_TOOL_PREFIXES")
    # Comma-separated exact tool names removed after prefix filtering.
    disabled_tools: str = Field(default="", alias="DISABLED_TOOLS")

    dedup_window_seconds: int = Field(default=300, alias="DEDUP_WINDOW_SECONDS")
    send_max_retries: int = Field(default=3, alias="SEND_MAX_RETRIES")
    send_backoff_seconds: float = Field(default=1.0, alias="SEND_BACKOFF_SECONDS")

    log_level: str = Field(default="INFO", alias="LOG_LEVEL")
    server_host: str = Field(default="0.0.0.0", alias="SERVER_HOST")
    port: int = Field(default=3000, alias="PORT")
    webhook_path: str = Field(default="/webhook/event", alias="WEBHOOK_PATH")


def load_settings() -> Settings:
    """Load and validate settings."""

    return Settings()


def enabled_tool_prefixes(settings: Settings) -> tuple[str, ...]:
    """Return the tool name prefixes allowed into the catalog."""

    return _split_csv(settings.enabled_tool_prefixes)


def disabled_tool_names(settings: Settings) -> tuple[str, ...]:
    """Return the tool names explicitly removed from the catalog."""

    return _split_csv(settings.disabled_tools)


def _split_csv(raw: str) -> tuple[str, ...]:
    return tuple(item.strip() for item in raw.split(",") if item.strip())
