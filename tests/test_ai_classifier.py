from __future__ import annotations

import httpx
import pytest

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AIResponseParsingError, AIUnavailableError
from helpdesk.models.enums import TicketPriority
from helpdesk.services.ai import classifier, llm

DEPARTMENTS = [
    {"id": "d-it", "name": "IT", "description": "Laptops, VPN, accounts"},
    {"id": "d-fac", "name": "Facilities", "description": "Buildings"},
]
CATEGORIES = [
    {"id": "c-vpn", "name": "VPN", "department_id": "d-it", "department_name": "IT"},
    {"id": "c-hvac", "name": "HVAC", "department_id": "d-fac", "department_name": "Facilities"},
]


def test_parse_classification_drops_unknown_ids_and_bad_priority() -> None:
    result = classifier.parse_classification(
        {"department_id": "d-hr", "category_id": "c-vpn", "priority": "urgent", "reasoning": "  guess "},
        departments=DEPARTMENTS,
        categories=CATEGORIES,
    )

    assert result.department_id is None
    assert result.category_id == "c-vpn"
    assert result.priority is None
    assert result.reasoning == "guess"


def test_parse_classification_rejects_category_from_other_department() -> None:
    result = classifier.parse_classification(
        {"department_id": "d-it", "category_id": "c-hvac", "priority": "HIGH", "confidence": {"department": 1.7}},
        departments=DEPARTMENTS,
        categories=CATEGORIES,
    )

    assert result.department_id == "d-it"
    assert result.category_id is None
    assert result.priority == TicketPriority.high
    assert result.confidence == {"department": 1.0}


def test_classify_returns_none_when_disabled() -> None:
    assert classifier.classify_ticket_fields("VPN", "down", DEPARTMENTS, CATEGORIES) is None


def test_classify_parses_llm_reply(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(settings, "AI_CLASSIFICATION_ENABLED", True)
    prompts = []

    def fake_generate(prompt: str, *, json_mode: bool = False, timeout=None) -> str:  # noqa: ANN001
        prompts.append(prompt)
        assert json_mode is True
        return 'Sure! {"department_id": "d-it", "category_id": "c-vpn", "priority": "critical"}'

    monkeypatch.setattr(classifier, "ollama_generate", fake_generate)

    result = classifier.classify_ticket_fields("VPN down", "Cannot connect", DEPARTMENTS, CATEGORIES)

    assert result.department_id == "d-it"
    assert result.category_id == "c-vpn"
    assert result.priority == TicketPriority.critical
    assert "VPN down" in prompts[0]
    assert "d-fac" in prompts[0]


def test_classify_raises_on_unparseable_reply(monkeypatch) -> None:  # noqa: ANN001
    monkeypatch.setattr(settings, "AI_CLASSIFICATION_ENABLED", True)
    monkeypatch.setattr(classifier, "ollama_generate", lambda prompt, **kwargs: "I cannot help with that")

    with pytest.raises(AIResponseParsingError):
        classifier.classify_ticket_fields("VPN down", "Cannot connect", DEPARTMENTS, CATEGORIES)


def test_extract_json_handles_wrapped_and_invalid_text() -> None:
    assert llm.extract_json('```json\n{"priority": "low"}\n```') == {"priority": "low"}
    assert llm.extract_json("no json here") is None
    assert llm.extract_json("{not: valid}") is None
    assert llm.extract_json("[1, 2]") is None


def test_ollama_generate_falls_back_to_chat_endpoint(monkeypatch) -> None:  # noqa: ANN001
    calls = []

    def handler(request: httpx.Request) -> httpx.Response:
        calls.append(request.url.path)
        if request.url.path == "/api/generate":
            return httpx.Response(404)
        return httpx.Response(200, json={"message": {"role": "assistant", "content": " {\"ok\": true} "}})

    transport = httpx.MockTransport(handler)
    real_client = httpx.Client
    monkeypatch.setattr(llm.httpx, "Client", lambda **kwargs: real_client(transport=transport, **kwargs))

    assert llm.ollama_generate("hello", json_mode=True) == '{"ok": true}'
    assert calls == ["/api/generate", "/api/chat"]


def test_ollama_generate_wraps_transport_errors(monkeypatch) -> None:  # noqa: ANN001
    def handler(request: httpx.Request) -> httpx.Response:
        raise httpx.ConnectError("connection refused", request=request)

    transport = httpx.MockTransport(handler)
    real_client = httpx.Client
    monkeypatch.setattr(llm.httpx, "Client", lambda **kwargs: real_client(transport=transport, **kwargs))

    with pytest.raises(AIUnavailableError):
        llm.ollama_generate("hello")
