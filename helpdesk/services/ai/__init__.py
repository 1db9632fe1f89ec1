"""AI service public API."""

from __future__ import annotations

__all__ = ["classify_ticket_fields"]


def classify_ticket_fields(*args, **kwargs):
    from helpdesk.services.ai.classifier import classify_ticket_fields as _classify_ticket_fields

    return _classify_ticket_fields(*args, **kwargs)
