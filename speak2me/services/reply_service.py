"""Reply service contract and HTTP implementations."""

import asyncio
import logging
from abc import ABC, abstractmethod
from typing import Optional

import aiohttp

from ..exceptions import ReplyServiceError

logger = logging.getLogger(__name__)

DEFAULT_SYSTEM_PROMPT = "You are a concise, helpful voice assistant. Keep answers short and actionable."


class AbstractReplyService(ABC):
    """Turns the user's transcribed text into the assistant's reply."""

    @abstractmethod
    async def reply_async(self, text: str) -> str:
        """Return the reply for text.

        Raises:
            ReplyServiceError: the service failed or returned an invalid payload
        """
        pass

    def reply(self, text: str) -> str:
        """Blocking wrapper around reply_async()."""
        return asyncio.run(self.reply_async(text))


class ChatApiReplyService(AbstractReplyService):
    """Posts to a voice-assistant backend's /chat endpoint."""

    def __init__(self, base_url: str, timeout: float = 30.0):
        """Initialize chat API client.

        Args:
            base_url: Backend root URL, e.g. http://localhost:8080
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.timeout = timeout
        logger.info(f"ChatApiReplyService initialized with base URL: {self.base_url}")

    async def reply_async(self, text: str) -> str:
        url = f"{self.base_url}/chat"
        try:
            async with aiohttp.ClientSession(timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                async with session.post(url, json={"text": text}) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ReplyServiceError(f"Chat API error: {response.status} - {error_text}")
                    payload = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ReplyServiceError(f"Chat API request to {url} failed: {e}") from e
        except ValueError as e:
            raise ReplyServiceError(f"Chat API returned invalid JSON: {e}") from e

        if not isinstance(payload, dict):
            raise ReplyServiceError(f"Chat API returned an invalid payload: {payload!r}")
        reply = payload.get("reply") or ""
        if not isinstance(reply, str):
            raise ReplyServiceError(f"Chat API returned a non-text reply: {reply!r}")
        return reply.strip()


class LlmReplyService(AbstractReplyService):
    """Talks to an OpenAI-compatible chat completions API, falling back to Ollama's native API."""

    def __init__(self,
                 base_url: str = "https://api.openai.com/v1",
                 api_key: Optional[str] = None,
                 model: str = "gpt-4o-mini",
                 system_prompt: str = DEFAULT_SYSTEM_PROMPT,
                 timeout: float = 60.0):
        """Initialize LLM client.

        Args:
            base_url: API root; '/v1' is appended for the OpenAI-style call if missing
            api_key: Bearer token (required by OpenAI, ignored by Ollama)
            model: Model name
            system_prompt: System message sent with every request
            timeout: Total request timeout in seconds
        """
        self.base_url = base_url.rstrip('/')
        self.api_key = api_key
        self.model = model
        self.system_prompt = system_prompt
        self.timeout = timeout
        logger.info(f"LlmReplyService initialized with model: {model}")

    def _messages(self, text: str) -> list:
        return [
            {"role": "system", "content": self.system_prompt},
            {"role": "user", "content": text},
        ]

    async def reply_async(self, text: str) -> str:
        headers = {"Content-Type": "application/json"}
        if self.api_key:
            headers["Authorization"] = f"Bearer {self.api_key}"

        openai_base = self.base_url if self.base_url.lower().endswith("/v1") else f"{self.base_url}/v1"
        ollama_base = self.base_url[:-3] if self.base_url.lower().endswith("/v1") else self.base_url

        try:
            async with aiohttp.ClientSession(headers=headers,
                                             timeout=aiohttp.ClientTimeout(total=self.timeout)) as session:
                data = {"model": self.model, "messages": self._messages(text)}
                async with session.post(f"{openai_base}/chat/completions", json=data) as response:
                    if response.status == 200:
                        result = await response.json()
                        return result["choices"][0]["message"]["content"].strip()
                    logger.warning(f"OpenAI-style API returned {response.status}, trying Ollama API")

                data = {"model": self.model, "messages": self._messages(text), "stream": False}
                async with session.post(f"{ollama_base}/api/chat", json=data) as response:
                    if response.status != 200:
                        error_text = await response.text()
                        raise ReplyServiceError(f"LLM API error: {response.status} - {error_text}")
                    result = await response.json()
        except (aiohttp.ClientError, asyncio.TimeoutError) as e:
            raise ReplyServiceError(f"LLM request failed: {e}") from e
        except (KeyError, IndexError, TypeError, AttributeError, ValueError) as e:
            raise ReplyServiceError(f"LLM API returned an invalid payload: {e}") from e

        message = result.get("message") if isinstance(result, dict) else None
        if isinstance(message, dict) and isinstance(message.get("content"), str) and message["content"]:
            return message["content"].strip()
        return "I couldn't get a response from the model."


class FallbackReplyService(AbstractReplyService):
    """Asks the primary service first and the fallback when the primary fails."""

    def __init__(self, primary: AbstractReplyService, fallback: AbstractReplyService):
        self.primary = primary
        self.fallback = fallback

    async def reply_async(self, text: str) -> str:
        try:
            return await self.primary.reply_async(text)
        except ReplyServiceError as e:
            logger.warning(f"Primary reply service failed, using fallback: {e}")
            return await self.fallback.reply_async(text)
