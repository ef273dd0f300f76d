"""Remote multimodal generation client backed by Gemini."""

from __future__ import annotations

import logging
from typing import TYPE_CHECKING, Any, Protocol

if TYPE_CHECKING:
    from app.config import Settings

logger = logging.getLogger(__name__)

Part = dict[str, Any]
Content = dict[str, Any]

# One attempt per stage; the provider client counts the first call as an attempt.
SINGLE_ATTEMPT = 1


class GenerationClient(Protocol):
    """Hosted generation capability used by the pipeline."""

    async def generate(self, model: str, contents: list[Content]) -> str | None:
        """Generate text for ``contents``; raise on transport or service failure."""


def user_content(parts: list[Part]) -> list[Content]:
    """Wrap ordered parts into a single user-role message."""
    return [{"role": "user", "parts": parts}]


def _to_langchain_block(part: Part) -> dict[str, Any]:
    if "text" in part:
        return {"type": "text", "text": part["text"]}
    inline = part.get("inline_data")
    if isinstance(inline, dict):
        return {
            "type": "file",
            "source_type": "base64",
            "mime_type": inline["mime_type"],
            "data": inline["data"],
        }
    raise ValueError(f"Unsupported content part keys: {sorted(part)}")


def to_langchain_messages(contents: list[Content]) -> list[dict[str, Any]]:
    """Translate role/parts contents into LangChain multimodal message dicts."""
    return [
        {
            "role": item.get("role", "user"),
            "content": [_to_langchain_block(part) for part in item.get("parts", [])],
        }
        for item in contents
    ]


class GeminiGenerationClient:
    """Gemini-backed generation client with one chat model per model id."""

    def __init__(
        self,
        google_api_key: str,
        *,
        timeout_seconds: float | None = None,
        temperature: float | None = None,
    ) -> None:
        self._google_api_key = google_api_key
        self._timeout_seconds = timeout_seconds
        self._temperature = temperature
        self._models: dict[str, Any] = {}

    def _chat_model(self, model: str) -> Any:
        chat_model = self._models.get(model)
        if chat_model is None:
            from langchain_google_genai import ChatGoogleGenerativeAI

            kwargs: dict[str, Any] = {
                "model": model,
                "google_api_key": self._google_api_key,
                "max_retries": SINGLE_ATTEMPT,
            }
            if self._timeout_seconds is not None:
                kwargs["timeout"] = self._timeout_seconds
            if self._temperature is not None:
                kwargs["temperature"] = self._temperature
            chat_model = ChatGoogleGenerativeAI(**kwargs)
            self._models[model] = chat_model
        return chat_model

    @staticmethod
    def _to_text(response: Any) -> str:
        if hasattr(response, "content"):
            content = response.content
            if isinstance(content, str):
                return content
            if isinstance(content, list):
                blocks: list[str] = []
                for block in content:
                    if isinstance(block, str):
                        blocks.append(block)
                    elif isinstance(block, dict) and "text" in block:
                        blocks.append(str(block["text"]))
                return "\n".join(blocks)
        if response is None:
            return ""
        return str(response)

    async def generate(self, model: str, contents: list[Content]) -> str | None:
        messages = to_langchain_messages(contents)
        logger.debug("generation.request model=%s parts=%s", model, sum(len(m["content"]) for m in messages))
        response = await self._chat_model(model).ainvoke(messages)
        return self._to_text(response)


def build_generation_client(settings: "Settings") -> GenerationClient:
    """Build the configured client; raises ConfigError without credentials."""
    return GeminiGenerationClient(
        settings.require_api_key(),
        timeout_seconds=settings.generation_timeout_seconds,
        temperature=settings.generation_temperature,
    )
