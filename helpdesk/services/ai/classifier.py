"""AI-assisted ticket field classification (department, category, priority)."""

from __future__ import annotations

import logging
from collections.abc import Sequence
from dataclasses import dataclass, field
from typing import Any

from helpdesk.core.config import settings
from helpdesk.core.exceptions import AIResponseParsingError
from helpdesk.models.enums import TicketPriority
from helpdesk.services.ai.llm import extract_json, ollama_generate
from helpdesk.services.ai.prompts import build_ticket_fields_prompt

logger = logging.getLogger(__name__)


@dataclass
class TicketClassification:
    department_id: str | None = None
    category_id: str | None = None
    priority: TicketPriority | None = None
    confidence: dict[str, float] = field(default_factory=dict)
    reasoning: str | None = None


def _pick_id(value: Any, candidates: Sequence[dict[str, Any]]) -> str | None:
    if value is None:
        return None
    wanted = str(value).strip()
    for row in candidates:
        if str(row["id"]) == wanted:
            return wanted
    return None


def _pick_priority(value: Any) -> TicketPriority | None:
    if value is None:
        return None
    try:
        return TicketPriority(str(value).strip().lower())
    except ValueError:
        return None


def _normalize_confidence(value: Any) -> dict[str, float]:
    if not isinstance(value, dict):
        return {}
    result: dict[str, float] = {}
    for key, raw in value.items():
        try:
            score = float(raw)
        except (TypeError, ValueError):
            continue
        result[str(key)] = max(0.0, min(1.0, score))
    return result


def parse_classification(
    data: dict[str, Any],
    *,
    departments: Sequence[dict[str, Any]],
    categories: Sequence[dict[str, Any]],
) -> TicketClassification:
    """Keep only suggestions that point at known candidates."""
    department_id = _pick_id(data.get("department_id"), departments)
    category_id = _pick_id(data.get("category_id"), categories)
    if category_id and department_id:
        category = next(row for row in categories if str(row["id"]) == category_id)
        owner = category.get("department_id")
        if owner is not None and str(owner) != department_id:
            category_id = None
    reasoning = data.get("reasoning")
    return TicketClassification(
        department_id=department_id,
        category_id=category_id,
        priority=_pick_priority(data.get("priority")),
        confidence=_normalize_confidence(data.get("confidence")),
        reasoning=str(reasoning).strip() if reasoning else None,
    )


def classify_ticket_fields(
    title: str,
    description: str,
    departments: Sequence[dict[str, Any]],
    categories: Sequence[dict[str, Any]],
    priorities: Sequence[str] | None = None,
) -> TicketClassification | None:
    """Ask the LLM for missing triage fields.

    Returns ``None`` when classification is disabled. Transport and parsing
    failures raise; callers treat the whole step as best effort.
    """
    if not settings.ai_classification_ready:
        return None
    priorities = list(priorities or [p.value for p in TicketPriority])
    prompt = build_ticket_fields_prompt(
        title=title,
        description=description,
        departments=departments,
        categories=categories,
        priorities=priorities,
    )
    reply = ollama_generate(prompt, json_mode=True)
    data = extract_json(reply)
    if not data:
        raise AIResponseParsingError()
    result = parse_classification(data, departments=departments, categories=categories)
    logger.info(
        "Ticket classified: department=%s category=%s priority=%s",
        result.department_id,
        result.category_id,
        result.priority.value if result.priority else None,
    )
    return result
