from __future__ import annotations

from typing import Optional

from tools.llm_client import LLMClient, ChatMessage
from utils.config import AppConfig, load_config
from utils.logging import get_logger


class BaseAgent:
    def __init__(
        self,
        name: str,
        role: str,
        llm: Optional[LLMClient] = None,
        config: Optional[AppConfig] = None,
    ):
        self.name = name
        self.role = role
        self.logger = get_logger(f"agent.{name}")
        self.config = config or load_config()
        self._llm = llm

    @property
    def llm(self) -> LLMClient:
        # Built on first use so agents that never call out need no credentials.
        if self._llm is None:
            self._llm = LLMClient(self.config)
        return self._llm

    async def acomplete(self, system_prompt: str, user_content: str, temperature: float = 0.2) -> str:
        messages = [ChatMessage(role="user", content=user_content)]
        return await self.llm.acomplete(system_prompt, messages, temperature=temperature)
