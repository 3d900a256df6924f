# tutor_app/llm_client.py
from __future__ import annotations
import os
from typing import Any, Dict, List, Optional
import httpx

API_BASE = os.getenv("LLM_API_BASE", "https://api.openai.com/v1")
API_KEY = os.getenv("LLM_API_KEY")
MODEL = os.getenv("LLM_MODEL", "gpt-4o-mini")
TIMEOUT = float(os.getenv("LLM_TIMEOUT", "60"))


class LLMResponseError(RuntimeError):
    pass


def _collect_content(data: Any) -> str:
    # OpenAI-compatible: {"choices": [{"message": {"content": "..."}}]}
    if isinstance(data, dict):
        choices = data.get("choices")
        if isinstance(choices, list) and choices:
            first = choices[0] if isinstance(choices[0], dict) else {}
            message = first.get("message") or {}
            content = message.get("content") if isinstance(message, dict) else None
            if isinstance(content, str):
                return content
            # some gateways still answer in the legacy completion shape
            if isinstance(first.get("text"), str):
                return first["text"]
    raise LLMResponseError("Completion response has no message content")


class LLMClient:
    """Chat-completions client; ``generate`` is the prompt -> text capability."""

    def __init__(
        self,
        api_key: Optional[str] = None,
        api_base: Optional[str] = None,
        model: Optional[str] = None,
        transport: Optional[httpx.AsyncBaseTransport] = None,
    ):
        self.api_key = api_key or API_KEY
        if not self.api_key:
            raise RuntimeError("LLM_API_KEY is not set")
        self.api_base = (api_base or API_BASE).rstrip("/")
        self.model = model or MODEL
        self._transport = transport

    async def _http_post(self, path: str, payload: Dict[str, Any]):
        headers = {"accept": "application/json", "authorization": f"Bearer {self.api_key}"}
        async with httpx.AsyncClient(timeout=TIMEOUT, transport=self._transport) as client:
            r = await client.post(f"{self.api_base}{path}", headers=headers, json=payload)
            r.raise_for_status()
            return r.json()

    async def chat(self, messages: List[Dict[str, str]]) -> str:
        data = await self._http_post("/chat/completions", {"model": self.model, "messages": messages})
        return _collect_content(data)

    async def generate(self, prompt: str) -> str:
        return await self.chat([{"role": "user", "content": prompt}])


async def generate_text(prompt: str) -> str:
    # client (and its key check) is only built when a completion is needed
    return await LLMClient().generate(prompt)
