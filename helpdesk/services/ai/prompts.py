"""Prompt builders for AI-assisted ticket triage."""

from __future__ import annotations

from collections.abc import Sequence
from typing import Any

MAX_DESCRIPTION_CHARS = 4000


def _format_candidates(rows: Sequence[dict[str, Any]], *, extra_key: str | None = None) -> str:
    if not rows:
        return "  (none)\n"
    lines = []
    for row in rows:
        line = f"  - id={row['id']} name={row['name']}"
        if row.get("description"):
            line += f" description={row['description']}"
        if extra_key and row.get(extra_key):
            line += f" {extra_key}={row[extra_key]}"
        lines.append(line)
    return "\n".join(lines) + "\n"


def build_ticket_fields_prompt(
    *,
    title: str,
    description: str,
    departments: Sequence[dict[str, Any]],
    categories: Sequence[dict[str, Any]],
    priorities: Sequence[str],
) -> str:
    description = (description or "")[:MAX_DESCRIPTION_CHARS]
    return (
        "You are a help desk triage assistant. Return ONLY valid JSON.\n"
        "Pick the department, category and priority that best fit the ticket.\n"
        "Rules:\n"
        "- Use only ids listed below. Never invent an id.\n"
        "- The category should belong to the chosen department when possible.\n"
        "- If nothing fits, use null for that field.\n"
        "JSON schema:\n"
        "{\n"
        '  "department_id": "id | null",\n'
        '  "category_id": "id | null",\n'
        f'  "priority": "{"|".join(priorities)} | null",\n'
        '  "confidence": {"department": 0.0, "category": 0.0, "priority": 0.0},\n'
        '  "reasoning": "one short sentence"\n'
        "}\n\n"
        "Departments:\n"
        f"{_format_candidates(departments)}"
        "Categories:\n"
        f"{_format_candidates(categories, extra_key='department_name')}"
        f"Title: {title}\n"
        f"Description: {description}\n"
    )
