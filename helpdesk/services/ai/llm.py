"""LLM adapter helpers (Ollama)."""

from __future__ import annotations

import json
from typing import Any

import httpx

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AIUnavailableError


def ollama_generate(prompt: str, *, json_mode: bool = False, timeout: float | None = None) -> str:
    base_url = settings.OLLAMA_BASE_URL.rstrip("/")
    options = {"temperature": 0.1}
    try:
        with httpx.Client(timeout=timeout or settings.AI_CLASSIFICATION_TIMEOUT_SECONDS) as client:
            generate_payload: dict[str, Any] = {
                "model": settings.OLLAMA_MODEL,
                "prompt": prompt,
                "stream": False,
                "options": options,
            }
            if json_mode:
                generate_payload["format"] = "json"
            response = client.post(f"{base_url}/api/generate", json=generate_payload)
            if response.status_code == 404:
                chat_payload: dict[str, Any] = {
                    "model": settings.OLLAMA_MODEL,
                    "messages": [{"role": "user", "content": prompt}],
                    "stream": False,
                    "options": options,
                }
                if json_mode:
                    chat_payload["format"] = "json"
                chat_response = client.post(f"{base_url}/api/chat", json=chat_payload)
                chat_response.raise_for_status()
                data = chat_response.json()
                message = data.get("message") if isinstance(data, dict) else None
                if isinstance(message, dict):
                    return str(message.get("content", "")).strip()
                return ""
            response.raise_for_status()
            data = response.json()
            return str(data.get("response", "")).strip()
    except httpx.HTTPError as exc:
        raise AIUnavailableError(f"Ollama request failed: {exc}") from exc


def extract_json(text: str) -> dict[str, Any] | None:
    start = text.find("{")
    end = text.rfind("}")
    if start == -1 or end == -1 or end <= start:
        return None
    snippet = text[start : end + 1]
    try:
        data = json.loads(snippet)
    except json.JSONDecodeError:
        return None
    return data if isinstance(data, dict) else None
