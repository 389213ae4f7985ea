from __future__ import annotations

from dataclasses import dataclass
from typing import List, Optional
import asyncio

from utils.config import AppConfig, load_config
from utils.logging import get_logger


logger = get_logger(__name__)

TRANSIENT_STATUS_CODES = {408, 429, 500, 502, 503, 504, 529}
TRANSIENT_MARKERS = ("429", "503", "overloaded", "rate limit", "rate_limit", "timed out", "timeout", "connection error")
# Provider SDK connection failures carry no status code.
TRANSIENT_ERROR_NAMES = {"APIConnectionError", "APITimeoutError", "ConnectError", "ReadTimeout"}


@dataclass
class ChatMessage:
    role: str
    content: str


class LLMError(Exception):
    pass


class TransientLLMError(LLMError):
    """Rate-limit, overload or timeout: worth retrying after a pause."""


def classify_error(e: BaseException) -> LLMError:
    if isinstance(e, LLMError):
        return e
    if isinstance(e, asyncio.TimeoutError):
        return TransientLLMError("request timed out")
    if any(cls.__name__ in TRANSIENT_ERROR_NAMES for cls in type(e).__mro__):
        return TransientLLMError(str(e) or type(e).__name__)
    status = getattr(e, "status_code", None)
    if status in TRANSIENT_STATUS_CODES:
        return TransientLLMError(str(e))
    text = str(e).lower()
    if any(marker in text for marker in TRANSIENT_MARKERS):
        return TransientLLMError(str(e))
    return LLMError(str(e))


class LLMClient:
    def __init__(self, config: Optional[AppConfig] = None):
        self.config = config or load_config()
        self._provider, self._model = self._parse_model_preference(self.config.model_preference)
        self._ready: bool = True
        self._unavailable_reason: Optional[str] = None
        # Credential and package checks up front so an unusable provider fails fast.
        if self._provider == "openai":
            if not self.config.openai_api_key:
                self._ready = False
                self._unavailable_reason = "missing_openai_api_key"
            else:
                try:
                    import openai  # noqa: F401
                except ImportError:
                    self._ready = False
                    self._unavailable_reason = "missing_openai_package"
        elif self._provider == "anthropic":
            if not self.config.anthropic_api_key:
                self._ready = False
                self._unavailable_reason = "missing_anthropic_api_key"
            else:
                try:
                    from anthropic import AsyncAnthropic  # noqa: F401
                except ImportError:
                    self._ready = False
                    self._unavailable_reason = "missing_anthropic_package"
        else:
            self._ready = False
            self._unavailable_reason = f"unsupported_provider:{self._provider}"
        status = "ready" if self._ready else f"unavailable:{self._unavailable_reason}"
        logger.info(f"LLM preflight provider={self._provider} model={self._model} status={status}")

    @property
    def ready(self) -> bool:
        return self._ready

    @staticmethod
    def _parse_model_preference(pref: str) -> tuple[str, str]:
        if ":" in pref:
            provider, model = pref.split(":", 1)
        else:
            provider, model = "openai", pref
        return provider, model

    async def acomplete(self, system_prompt: str, messages: List[ChatMessage], temperature: float = 0.2) -> str:
        if not self._ready:
            reason = self._unavailable_reason or "provider_unavailable"
            logger.info(f"LLM provider unavailable: {reason}")
            raise LLMError(reason)
        max_retries = max(1, self.config.max_retries)
        delay = self.config.retry_base_delay_seconds
        for attempt in range(1, max_retries + 1):
            try:
                return await self._dispatch(system_prompt, messages, temperature)
            except TransientLLMError as e:
                logger.warning(f"LLM request failed (attempt {attempt}/{max_retries}): {e}")
                if attempt == max_retries:
                    raise
                logger.info(f"Retrying in {delay:.1f}s")
                await asyncio.sleep(delay)
                delay *= 2
        raise LLMError("retries exhausted")

    async def _dispatch(self, system_prompt: str, messages: List[ChatMessage], temperature: float) -> str:
        timeout = self.config.request_timeout_seconds
        if self._provider == "openai":
            return await self._openai_complete(system_prompt, messages, temperature, timeout)
        if self._provider == "anthropic":
            return await self._anthropic_complete(system_prompt, messages, temperature, timeout)
        raise LLMError(f"Unsupported provider: {self._provider}")

    async def _openai_complete(self, system_prompt: str, messages: List[ChatMessage], temperature: float, timeout: int) -> str:
        try:
            import openai
            client = openai.AsyncOpenAI(api_key=self.config.openai_api_key, max_retries=0)
            full_messages = ([{"role": "system", "content": system_prompt}] +
                             [{"role": m.role, "content": m.content} for m in messages])
            resp = await asyncio.wait_for(
                client.chat.completions.create(
                    model=self._model,
                    messages=full_messages,
                    temperature=temperature,
                ),
                timeout=timeout,
            )
            return resp.choices[0].message.content or ""
        except Exception as e:
            raise classify_error(e) from e

    async def _anthropic_complete(self, system_prompt: str, messages: List[ChatMessage], temperature: float, timeout: int) -> str:
        try:
            from anthropic import AsyncAnthropic
            client = AsyncAnthropic(api_key=self.config.anthropic_api_key, max_retries=0)
            turns = [{"role": m.role, "content": m.content} for m in messages if m.role in ("user", "assistant")]
            resp = await asyncio.wait_for(
                client.messages.create(
                    model=self._model,
                    system=system_prompt,
                    max_tokens=1500,
                    temperature=temperature,
                    messages=turns,
                ),
                timeout=timeout,
            )
            return resp.content[0].text if resp.content else ""
        except Exception as e:
            raise classify_error(e) from e
