"""Built-in seed collection used when no other data source is available."""

from __future__ import annotations

from typing import Any

from .models import ShowSeason
from .utils import now_millis


DEFAULT_SHOW_PAYLOADS: tuple[dict[str, Any], ...] = (
    {
        "id": "default-1",
        "title": "The Bear",
        "seasonNumber": 3,
        "network": "FX / Hulu",
        "genres": ["Drama", "Comedy"],
        "userRating": 4.8,
        "aggregateRatings": {"imdb": 8.6, "metacritic": 80, "rottenTomatoes": 96},
        "urls": {
            "imdb": "https://www.imdb.com/title/tt14452792/",
            "rottenTomatoes": "https://www.rottentomatoes.com/tv/the_bear/s03",
            "trailer": "https://www.youtube.com/watch?v=UHiwdDLuJ_s",
        },
        "status": "Watching",
        "review": (
            "Incredible tension and character growth. The cinematography in the "
            "kitchen scenes remains unmatched."
        ),
        "synopsis": (
            "Carmy, Sydney, and Richie work to transform their grimy sandwich shop "
            "into a next-level dining destination."
        ),
        "isOngoing": True,
        "startDate": "2025-01-10",
    },
    {
        "id": "default-2",
        "title": "Succession",
        "seasonNumber": 4,
        "network": "HBO",
        "genres": ["Drama", "Satire"],
        "userRating": 5.0,
        "aggregateRatings": {"imdb": 8.9, "metacritic": 92, "rottenTomatoes": 97},
        "urls": {
            "imdb": "https://www.imdb.com/title/tt7632684/",
            "rottenTomatoes": "https://www.rottentomatoes.com/tv/succession/s04",
            "trailer": "https://www.youtube.com/watch?v=t3DREm9uL8E",
        },
        "status": "Completed",
        "review": (
            "The perfect ending to a near-perfect show. The writing is sharp, "
            "cruel, and hilarious."
        ),
        "synopsis": (
            "The sale of media conglomerate Waystar Royco to tech visionary Lukas "
            "Matsson moves ever closer."
        ),
        "isOngoing": False,
        "endDate": "2024-05-28",
    },
)


def default_shows() -> list[ShowSeason]:
    """Return fresh copies of the seed seasons, newest first."""

    now = now_millis()
    return [
        ShowSeason.model_validate({**payload, "createdAt": now - 1000 * (index + 1)})
        for index, payload in enumerate(DEFAULT_SHOW_PAYLOADS)
    ]
