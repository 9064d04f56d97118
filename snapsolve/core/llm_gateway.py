"""LLM gateway for snapsolve.

Sends one prompt (text and image blocks) to an OpenAI-compatible chat
completions endpoint and returns the response text. Transport failures are
mapped onto the pipeline's error taxonomy, and a cancellation token can abort
the call while it is in flight.
"""
import asyncio
import json
import logging
import os
from typing import Iterable, Mapping, Optional, Sequence, Union

import openai
from openai import AsyncOpenAI

from .cancellation import CancellationToken
from .errors import (
    AuthError,
    ConfigurationError,
    RateLimitError,
    RequestCancelledError,
    TransportError,
)
from .models import ImageBlock, TextBlock

logger = logging.getLogger(__name__)

# First non-empty variable wins; the second is the legacy name.
API_KEY_ENV_VARS = ("OPENAI_API_KEY", "openai_key")

DEFAULT_MODEL = "gpt-4o"
DEFAULT_MAX_TOKENS = 4096
DEFAULT_TEMPERATURE = 0.7

PromptPart = Union[TextBlock, ImageBlock]


def load_api_key(environ: Optional[Mapping[str, str]] = None) -> Optional[str]:
    """Return the API key from the primary or legacy environment variable."""
    environ = os.environ if environ is None else environ
    for name in API_KEY_ENV_VARS:
        value = (environ.get(name) or "").strip()
        if value:
            if name != API_KEY_ENV_VARS[0]:
                logger.info(f"Loaded API key from legacy environment variable {name}")
            return value
    logger.warning("Could not find an LLM API key in environment variables")
    return None


def _to_content_block(part: PromptPart) -> dict:
    if isinstance(part, TextBlock):
        return {"type": "text", "text": part.text}
    if isinstance(part, ImageBlock):
        return {
            "type": "image_url",
            "image_url": {"url": f"data:{part.media_type};base64,{part.data}"},
        }
    raise TypeError(f"Unsupported prompt part: {type(part).__name__}")


def _error_body(exc: openai.APIStatusError) -> str:
    if isinstance(exc.body, str):
        return exc.body
    if exc.body is not None:
        return json.dumps(exc.body)
    return exc.response.text


class LLMGateway:
    """Stateless apart from credentials: one ``send`` per prompt."""

    def __init__(self,
                 api_key: Optional[str],
                 model: str = DEFAULT_MODEL,
                 base_url: Optional[str] = None,
                 timeout: float = 120.0,
                 max_retries: int = 0,
                 client=None):
        self.api_key = api_key
        self.model = model
        self._client = client
        if self._client is None and api_key:
            self._client = AsyncOpenAI(
                api_key=api_key,
                base_url=base_url,
                timeout=timeout,
                max_retries=max_retries,
            )

    @classmethod
    def from_config(cls, config_manager, environ: Optional[Mapping[str, str]] = None) -> "LLMGateway":
        return cls(
            api_key=load_api_key(environ),
            model=config_manager.get("llm", "model", DEFAULT_MODEL),
            base_url=config_manager.get("llm", "base_url"),
            timeout=float(config_manager.get("llm", "timeout", 120.0)),
            max_retries=int(config_manager.get("llm", "max_retries", 0)),
        )

    def is_configured(self) -> bool:
        return bool(self.api_key) and self._client is not None

    async def send(self,
                   parts: Sequence[PromptPart],
                   *,
                   max_tokens: Optional[int] = None,
                   temperature: Optional[float] = None,
                   system_prompt: str = "",
                   token: Optional[CancellationToken] = None) -> str:
        """Send one prompt and return the concatenated response text."""
        if not self.is_configured():
            raise ConfigurationError(
                "LLM API key not configured. Set OPENAI_API_KEY in your environment or .env file."
            )
        if token is not None:
            token.raise_if_cancelled()

        messages = []
        if system_prompt:
            messages.append({"role": "system", "content": system_prompt})
        messages.append({"role": "user", "content": [_to_content_block(p) for p in parts]})

        call = asyncio.ensure_future(self._client.chat.completions.create(
            model=self.model,
            messages=messages,
            max_tokens=DEFAULT_MAX_TOKENS if max_tokens is None else max_tokens,
            temperature=DEFAULT_TEMPERATURE if temperature is None else temperature,
        ))
        try:
            response = await self._await_call(call, token)
        except openai.AuthenticationError as e:
            raise AuthError("Invalid API key", status=e.status_code, body=_error_body(e)) from e
        except openai.RateLimitError as e:
            raise RateLimitError("Rate limit exceeded", status=e.status_code, body=_error_body(e)) from e
        except openai.APIStatusError as e:
            body = _error_body(e)
            raise TransportError(f"API error ({e.status_code}): {body}", status=e.status_code, body=body) from e
        except openai.APIError as e:
            raise TransportError(f"Network error: {e}") from e

        if token is not None:
            token.raise_if_cancelled()
        return self._extract_text(response.choices)

    @staticmethod
    async def _await_call(call: asyncio.Future, token: Optional[CancellationToken]):
        if token is None:
            return await call

        waiter = asyncio.ensure_future(token.wait())
        try:
            done, _ = await asyncio.wait({call, waiter}, return_when=asyncio.FIRST_COMPLETED)
        except asyncio.CancelledError:
            call.cancel()
            raise
        finally:
            waiter.cancel()

        if call not in done:
            call.cancel()
            # Reap the aborted request so nothing is left running.
            await asyncio.gather(call, return_exceptions=True)
            logger.info("LLM request cancelled while in flight")
            raise RequestCancelledError()
        return call.result()

    @staticmethod
    def _extract_text(choices: Iterable) -> str:
        segments = []
        for choice in choices or []:
            content = getattr(choice.message, "content", None)
            if content:
                segments.append(content)
        return "".join(segments)
