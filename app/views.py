"""Filtering and ordering of the in-memory season collection."""

from __future__ import annotations

import unicodedata
from typing import Any, Callable, Sequence

from .models import ShowSeason, SortKey
from .utils import iso_date_from_millis

ALL_YEARS = "All"


def title_sort_key(title: str) -> tuple[str, str, str]:
    """Collation key for titles: accents and case only break ties."""

    decomposed = unicodedata.normalize("NFKD", title)
    base = "".join(char for char in decomposed if not unicodedata.combining(char))
    return base.casefold(), title.casefold(), title


_SORTERS: dict[str, tuple[Callable[[ShowSeason], Any], bool]] = {
    "created-desc": (lambda season: season.created_at, True),
    "rating-desc": (lambda season: season.user_rating, True),
    "rating-asc": (lambda season: season.user_rating, False),
    "title-asc": (lambda season: title_sort_key(season.title), False),
    "title-desc": (lambda season: title_sort_key(season.title), True),
    "season-desc": (lambda season: season.season_number, True),
    "season-asc": (lambda season: season.season_number, False),
    "date-desc": (
        lambda season: season.start_date.isoformat() if season.start_date else "",
        True,
    ),
}


def effective_date(season: ShowSeason) -> str:
    """Return the ISO date used for year grouping.

    End date wins over start date; seasons with neither fall back to the day
    they were added.
    """

    if season.end_date:
        return season.end_date.isoformat()
    if season.start_date:
        return season.start_date.isoformat()
    return iso_date_from_millis(season.created_at)


def matches_query(season: ShowSeason, query: str) -> bool:
    needle = query.casefold()
    if not needle:
        return True
    return any(needle in value.casefold() for value in season.searchable_text())


def matches_year(season: ShowSeason, year: str | int | None) -> bool:
    if year is None:
        return True
    selected = str(year).strip()
    if not selected or selected == ALL_YEARS:
        return True
    return effective_date(season).startswith(selected)


def filter_and_sort(
    seasons: Sequence[ShowSeason],
    *,
    query: str = "",
    year: str | int | None = None,
    sort: SortKey | str = "created-desc",
) -> list[ShowSeason]:
    """Return a new list of matching seasons in the requested order.

    Equal sort keys keep their relative order from ``seasons``.
    """

    key, descending = _SORTERS.get(sort, _SORTERS["created-desc"])
    selected = [
        season
        for season in seasons
        if matches_query(season, query or "") and matches_year(season, year)
    ]
    return sorted(selected, key=key, reverse=descending)


def available_years(seasons: Sequence[ShowSeason]) -> list[str]:
    """Return the distinct years present in the collection, newest first."""

    years = {effective_date(season).split("-")[0] for season in seasons}
    years.discard("")
    return sorted(years, reverse=True)


def sort_keys() -> tuple[str, ...]:
    return tuple(_SORTERS)
