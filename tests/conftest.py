"""
Root Pytest Fixtures.

Shared fixtures available to all test types.
"""

import itertools
from collections.abc import Callable
from datetime import datetime, timedelta, timezone
from typing import Any

import pytest

from modules.client.schemas.note import Note

BASE_TIME = datetime(2020, 1, 1, 9, 0, tzinfo=timezone.utc)


# =============================================================================
# Note Fixtures
# =============================================================================


@pytest.fixture
def make_note() -> Callable[..., Note]:
    """
    Factory for notes owned by "user-1".

    Each call without an explicit created_at is one minute newer than the
    previous one, so creation order is predictable.

    Usage:
        def test_something(make_note):
            note = make_note(title="Grocery")
            older = make_note(id="7", minutes=-30)
    """
    counter = itertools.count(1)

    def _make(
        id: str | None = None,
        title: str = "",
        content: str = "",
        owner_id: str = "user-1",
        media_url: str | None = None,
        minutes: int | None = None,
        **extra: Any,
    ) -> Note:
        n = next(counter)
        offset = minutes if minutes is not None else n
        return Note(
            id=id or str(n),
            owner_id=owner_id,
            title=title,
            content=content,
            media_url=media_url,
            created_at=BASE_TIME + timedelta(minutes=offset),
            **extra,
        )

    return _make
