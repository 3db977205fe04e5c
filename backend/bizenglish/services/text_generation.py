"""
Text Generation Service

Thin wrapper around the OpenAI chat completions API. Used for:
1. Persona replies in text-mode conversations
2. Provider-generated flashcards
3. Optional coaching analysis of a finished transcript
"""
import httpx
import logging
from typing import List, Dict, Optional
from ..config import settings
from ..core.errors import ConfigurationError, ProviderUnavailableError

logger = logging.getLogger("uvicorn.error")


class ChatCompletionService:
    """OpenAI chat completion client"""

    @property
    def api_key(self) -> Optional[str]:
        return settings.openai_api_key

    @property
    def model(self) -> str:
        return settings.gpt_model

    @property
    def api_url(self) -> str:
        return settings.openai_api_url

    def is_available(self) -> bool:
        """Check if API key is configured"""
        return bool(self.api_key)

    async def complete(
        self,
        system_prompt: str,
        messages: List[Dict[str, str]],
        temperature: float = 0.7,
        max_tokens: Optional[int] = None,
        json_object: bool = False,
    ) -> str:
        """
        Run one chat completion and return the assistant's text.

        Parameters:
            system_prompt: System message placed before `messages`
            messages: [{"role": "user" | "assistant", "content": "..."}]
            json_object: Ask the model for a JSON object response

        Raises:
            ConfigurationError: OPENAI_API_KEY is not set
            ProviderUnavailableError: network error, timeout, non-2xx or malformed body
        """
        if not self.is_available():
            raise ConfigurationError("OPENAI_API_KEY is not configured")

        headers = {
            "Authorization": f"Bearer {self.api_key}",
            "Content-Type": "application/json"
        }
        payload = {
            "model": self.model,
            "messages": [{"role": "system", "content": system_prompt}, *messages],
            "temperature": temperature,
        }
        if max_tokens:
            payload["max_tokens"] = max_tokens
        if json_object:
            payload["response_format"] = {"type": "json_object"}

        logger.info("[gpt] Calling %s with %d messages", self.model, len(messages))
        try:
            async with httpx.AsyncClient(timeout=settings.provider_timeout_sec) as client:
                resp = await client.post(self.api_url, headers=headers, json=payload)
                resp.raise_for_status()
                result = resp.json()
            return result["choices"][0]["message"]["content"] or ""
        except httpx.HTTPError as e:
            raise ProviderUnavailableError(f"Chat completion failed: {e}") from e
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise ProviderUnavailableError(f"Unexpected chat completion response: {e}") from e


# Global singleton
chat_completion = ChatCompletionService()
