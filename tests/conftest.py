from __future__ import annotations

import sys
from pathlib import Path

import pytest

BASE_DIR = Path(__file__).resolve().parents[1]
if str(BASE_DIR) not in sys.path:
    sys.path.insert(0, str(BASE_DIR))


@pytest.fixture(autouse=True)
def _no_llm_by_default(monkeypatch):  # noqa: ANN001
    """Keep tests offline unless a test opts back in."""
    from helpdesk.core.config import settings

    monkeypatch.setattr(settings, "AI_CLASSIFICATION_ENABLED", False)
    monkeypatch.setattr(settings, "RATE_LIMIT_ENABLED", False)
