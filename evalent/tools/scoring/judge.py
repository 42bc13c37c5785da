"""The LLM judge: a narrow ``judge(system, user) -> text`` capability.

Evaluators and narrative generators only depend on the ``Judge`` protocol,
so tests can pass any async callable. ``AgentJudge`` is the production
implementation backed by a pydantic-ai Agent.
"""

import asyncio
import logging
from typing import Any, Dict, Optional, Protocol

from evalent.libs.config_loader import ConfigType, get_config, get_secret
from evalent.libs.llm import create_agent
from .errors import JudgeError, JudgeUnavailableError

LOG = logging.getLogger(__name__)

DEFAULT_TIMEOUT_SECONDS = 45.0


class Judge(Protocol):
    async def __call__(self, system: str, user: str, *, max_tokens: Optional[int] = None) -> str:
        ...


class AgentJudge:
    """Judge backed by an Anthropic model through pydantic-ai."""

    def __init__(self, configs: ConfigType,
                 model: Optional[str] = None,
                 settings: Optional[Dict[str, Any]] = None,
                 timeout: Optional[float] = None):
        """
        Args:
            configs: Configuration dictionary (required)
            model: Model to use (overrides config value)
            settings: Pydantic AI settings dict (overrides config values)
            timeout: Seconds before a call is abandoned (overrides config value)
        """
        self.configs = configs
        self.model_name = model
        self.settings = settings
        self.timeout = float(
            timeout if timeout is not None
            else get_config("anthropic.timeout_seconds", configs, default=DEFAULT_TIMEOUT_SECONDS)
        )
        self.api_key = get_secret("anthropic.api_key", "ANTHROPIC_API_KEY", configs)

    @property
    def is_configured(self) -> bool:
        return bool(self.api_key)

    async def __call__(self, system: str, user: str, *, max_tokens: Optional[int] = None) -> str:
        if not self.api_key:
            raise JudgeUnavailableError("Anthropic API key not configured")

        settings = dict(self.settings or {})
        if max_tokens:
            settings["max_tokens"] = max_tokens
        agent = create_agent(
            configs=self.configs,
            model=self.model_name,
            settings_dict=settings,
            system_prompt=system,
            api_key=self.api_key,
        )

        try:
            result = await asyncio.wait_for(agent.run(user), timeout=self.timeout)
        except asyncio.TimeoutError as e:
            raise JudgeError(f"Judge call timed out after {self.timeout:.0f}s") from e
        except Exception as e:  # pylint: disable=broad-except
            raise JudgeError(f"Judge call failed: {e}") from e

        return str(result.output).strip()
