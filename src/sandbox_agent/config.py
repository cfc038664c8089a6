# config.py
# Settings for the model client and the sandbox root.
#
# Values come from keyword overrides (command-line flags), then environment
# variables (a .env file is loaded first), then defaults.

import os
from typing import Literal

from dotenv import load_dotenv
from pydantic import BaseModel, Field, ValidationError, model_validator

from sandbox_agent.errors import ConfigError

Provider = Literal["openrouter", "openai", "anthropic", "deepseek", "dashscope", "custom"]

ENV_PREFIX = "SANDBOX_AGENT_"

DEFAULT_PROVIDER = "openrouter"
DEFAULT_MODEL = "anthropic/claude-3.5-haiku"

BASE_URLS: dict[str, str | None] = {
    "openrouter": "https://openrouter.ai/api/v1",
    "openai": None,
    "anthropic": "https://api.anthropic.com/v1/",
    "deepseek": "https://api.deepseek.com",
    "dashscope": "https://dashscope.aliyuncs.com/compatible-mode/v1",
    "custom": None,
}

API_KEY_VARS: dict[str, tuple[str, ...]] = {
    "openrouter": ("OPENROUTER_API_KEY",),
    "openai": ("OPENAI_API_KEY",),
    "anthropic": ("ANTHROPIC_API_KEY",),
    "deepseek": ("DEEPSEEK_API_KEY",),
    "dashscope": ("DASHSCOPE_API_KEY", "ALIBABA_CLOUD_API_KEY"),
    "custom": ("API_KEY",),
}


class Settings(BaseModel):
    """Validated runtime configuration."""

    provider: Provider = DEFAULT_PROVIDER
    model: str = Field(default=DEFAULT_MODEL, min_length=1)
    api_key: str | None = None
    base_url: str | None = None
    temperature: float = Field(default=0.7, ge=0.0, le=1.0)
    max_tokens: int = Field(default=4096, gt=0)
    working_directory: str = Field(default_factory=os.getcwd)

    @model_validator(mode="after")
    def _check_base_url(self) -> "Settings":
        if self.provider == "custom" and not self.base_url:
            raise ValueError("The custom provider needs a base URL (SANDBOX_AGENT_BASE_URL).")
        return self

    @property
    def resolved_base_url(self) -> str | None:
        return self.base_url or BASE_URLS[self.provider]


def api_key_for(provider: str) -> str | None:
    """First non-empty API key variable for `provider`."""
    for name in API_KEY_VARS.get(provider, ("API_KEY",)):
        value = os.getenv(name)
        if value:
            return value
    return None


def load_settings(**overrides: object) -> Settings:
    """
    Build Settings from overrides, then the environment, then defaults.

    Overrides whose value is None are ignored, so argparse results can be
    passed straight through. Raises ConfigError on invalid values.
    """
    load_dotenv()

    values: dict[str, object] = {}
    for field in ("provider", "model", "base_url", "temperature", "max_tokens"):
        env_value = os.getenv(ENV_PREFIX + field.upper())
        if env_value:
            values[field] = env_value
    workdir = os.getenv(ENV_PREFIX + "WORKDIR")
    if workdir:
        values["working_directory"] = workdir

    values.update({key: value for key, value in overrides.items() if value is not None})
    if "provider" in values:
        values["provider"] = str(values["provider"]).lower()
    if not values.get("api_key"):
        values["api_key"] = api_key_for(str(values.get("provider", DEFAULT_PROVIDER)))

    try:
        return Settings(**values)
    except ValidationError as exc:
        raise ConfigError(str(exc)) from exc
