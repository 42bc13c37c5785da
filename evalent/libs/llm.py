"""LLM utilities for creating and configuring AI agents."""


import logging
from typing import Optional, Dict, Any

from pydantic_ai import Agent
from pydantic_ai.models.anthropic import AnthropicModel, AnthropicModelSettings
from pydantic_ai.providers.anthropic import AnthropicProvider

from evalent.libs.config_loader import ConfigType, get_config, get_secret


# Fix up logging level for httpx to WARNING to reduce noise
logging.getLogger("httpx").setLevel(logging.WARNING)

DEFAULT_MODEL = "claude-sonnet-4-20250514"


def create_agent(configs: ConfigType,
                 model: Optional[str] = None,
                 settings_dict: Optional[Dict[str, Any]] = None,
                 system_prompt: Optional[str] = None,
                 api_key: Optional[str] = None) -> Agent:
    """
    Create a pydantic-ai Agent configured with an Anthropic model.

    Args:
        configs: Configuration dictionary (required)
        model: Model to use (overrides config value)
        settings_dict: Pydantic AI settings dict (overrides config values)
        system_prompt: System prompt for the agent (optional)
        api_key: Anthropic API key (overrides config and environment)

    Returns:
        Configured Agent

    Raises:
        KeyError: If no Anthropic API key is found in config or environment
    """
    api_key = api_key or get_secret("anthropic.api_key", "ANTHROPIC_API_KEY", configs)
    if not api_key:
        raise KeyError("Key anthropic.api_key not found in configuration")
    model = model or get_config("anthropic.model", configs, default=DEFAULT_MODEL)
    base_settings = get_config("anthropic.pydantic_ai_settings", configs, default={}) or {}

    settings_dict = base_settings | (settings_dict or {})
    model_settings = AnthropicModelSettings(**settings_dict) if settings_dict else None
    anthropic_model = AnthropicModel(model, provider=AnthropicProvider(api_key=api_key))
    if system_prompt:
        agent = Agent(
            model=anthropic_model,
            model_settings=model_settings,
            system_prompt=system_prompt,
            retries=0,
        )
    else:
        agent = Agent(
            model=anthropic_model,
            model_settings=model_settings,
            retries=0,
        )
    return agent
