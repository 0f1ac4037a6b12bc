"""Shared builders for season records used across the test suite."""

from __future__ import annotations

from typing import Any

from app.models import ShowSeason


def make_season(season_id: str, title: str = "Show", **overrides: Any) -> ShowSeason:
    data: dict[str, Any] = {
        "id": season_id,
        "title": title,
        "seasonNumber": 1,
        "userRating": 3.0,
        "createdAt": 1_700_000_000_000,
    }
    data.update(overrides)
    return ShowSeason.model_validate(data)
