from __future__ import annotations

import logging
import os
from typing import Any

import aisuite as ai  # type: ignore

from tripplanner.core.errors import (
    ConfigurationError,
    ItineraryError,
    MalformedResponse,
    TransientServiceError,
)

try:
    import google.generativeai as genai  # type: ignore
except Exception:
    genai = None  # optional

logger = logging.getLogger(__name__)

MAX_OUTPUT_TOKENS = 2048

_INVALID_KEY_MARKERS = ("API_KEY_INVALID", "invalid api key", "incorrect api key")


def classify_provider_error(exc: Exception) -> ItineraryError:
    """Map a raw provider exception onto the retry taxonomy."""
    message = str(exc)
    lowered = message.lower()
    if any(marker.lower() in lowered for marker in _INVALID_KEY_MARKERS):
        return ConfigurationError("Invalid generation API key. Please check your configuration.")
    if "resource_exhausted" in lowered or "quota" in lowered:
        return TransientServiceError(f"Generation limit reached: {message}")
    return TransientServiceError(f"Generation service error: {message}")


class LLMProvider:
    def __init__(self, model: str, temperature: float = 0.2) -> None:
        self.model = model
        self.temperature = temperature
        self._client = None
        self._genai_model: Any | None = None

        # Route to google-generativeai if model starts with google-genai:
        if self.model.startswith("google-genai:"):
            if genai is None:
                raise ConfigurationError("google-generativeai is not installed")
            api_key = os.getenv("GOOGLE_API_KEY")
            if not api_key:
                raise ConfigurationError("GOOGLE_API_KEY is not set")
            genai.configure(api_key=api_key)
            model_id = self.model.split(":", 1)[1]
            self._genai_model = genai.GenerativeModel(
                model_id,
                generation_config={
                    "temperature": temperature,
                    "top_k": 32,
                    "top_p": 0.9,
                    "max_output_tokens": MAX_OUTPUT_TOKENS,
                },
            )
        else:
            try:
                self._client = ai.Client()
            except Exception as exc:  # fail fast if aisuite cannot initialize
                raise ConfigurationError("Failed to initialize aisuite client") from exc

    def chat(self, messages: list[dict[str, Any]], temperature: float | None = None) -> str:
        """Send a chat completion request. messages: list of dicts with keys: role (system|user|assistant), content (str)"""
        if temperature is None:
            temperature = self.temperature

        try:
            if self._genai_model is not None:
                # Map OpenAI-style messages to a single prompt for simplicity
                prompt = "\n".join(
                    f"{m.get('role','user')}: {m.get('content','')}" for m in messages
                )
                response = self._genai_model.generate_content(prompt)
                text = response.text or ""
            else:
                resp = self._client.chat.completions.create(
                    model=self.model,
                    messages=messages,
                    temperature=temperature,
                )
                text = resp.choices[0].message.content or ""
        except Exception as exc:
            raise classify_provider_error(exc) from exc

        if not text.strip():
            raise MalformedResponse("No response received from generation service")

        logger.debug(f"[LLM] Raw response ({len(text)} chars): {text[:300]}")
        return text

    async def chat_async(
        self, messages: list[dict[str, Any]], temperature: float | None = None
    ) -> str:
        """Async version of chat completion request. Runs the sync call in a worker thread."""
        import asyncio

        return await asyncio.to_thread(self.chat, messages, temperature)

    async def generate(self, prompt: str) -> str:
        """Single-prompt generation used by the itinerary orchestrator."""
        return await self.chat_async([{"role": "user", "content": prompt}])
