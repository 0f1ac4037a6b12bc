"""Aggregate statistics over a list of seasons."""

from __future__ import annotations

from collections import Counter
from dataclasses import dataclass, field
from datetime import date
from typing import Any, Sequence

from .models import ShowSeason, ShowStatus

MONTH_LABELS = (
    "Jan", "Feb", "Mar", "Apr", "May", "Jun",
    "Jul", "Aug", "Sep", "Oct", "Nov", "Dec",
)

HOURS_STATUSES = frozenset({ShowStatus.COMPLETED, ShowStatus.WATCHING})


@dataclass(frozen=True, slots=True)
class Persona:
    title: str
    description: str


@dataclass(slots=True)
class CollectionStats:
    """Summary figures shown on the statistics view."""

    total: int
    total_hours: float
    status_counts: dict[str, int]
    rating_distribution: list[int]
    monthly: list[dict[str, Any]]
    top_genres: list[tuple[str, int]] = field(default_factory=list)
    efficiency: int | None = None
    average_rating: float | None = None
    persona: Persona | None = None

    def to_payload(self) -> dict[str, Any]:
        return {
            "total": self.total,
            "totalHours": round(self.total_hours, 1),
            "statusCounts": self.status_counts,
            "ratingDistribution": [
                {"name": f"{index + 1} ★", "count": count}
                for index, count in enumerate(self.rating_distribution)
            ],
            "monthly": self.monthly,
            "topGenres": [
                {"name": name, "count": count} for name, count in self.top_genres
            ],
            "efficiency": self.efficiency,
            "averageRating": (
                round(self.average_rating, 2) if self.average_rating is not None else None
            ),
            "persona": (
                {"title": self.persona.title, "description": self.persona.description}
                if self.persona
                else None
            ),
        }


def total_hours(seasons: Sequence[ShowSeason]) -> float:
    """Hours watched across completed and in-progress seasons."""

    minutes = sum(
        (season.episode_count or 0) * (season.avg_episode_length or 0)
        for season in seasons
        if season.status in HOURS_STATUSES
    )
    return minutes / 60


def status_counts(seasons: Sequence[ShowSeason]) -> dict[str, int]:
    counts = Counter(season.status for season in seasons)
    return {status.value: counts.get(status, 0) for status in ShowStatus}


def rating_distribution(seasons: Sequence[ShowSeason]) -> list[int]:
    """Bucket ratings into five one-star bins; 5.0 lands in the top bin."""

    bins = [0, 0, 0, 0, 0]
    for season in seasons:
        index = min(int(season.user_rating - 1), 4)
        if index >= 0:
            bins[index] += 1
    return bins


def monthly_activity(seasons: Sequence[ShowSeason], year: int) -> list[dict[str, Any]]:
    """Count seasons started and finished per month of ``year``."""

    months = [{"month": label, "started": 0, "ended": 0} for label in MONTH_LABELS]
    for season in seasons:
        if season.start_date and season.start_date.year == year:
            months[season.start_date.month - 1]["started"] += 1
        if season.end_date and season.end_date.year == year:
            months[season.end_date.month - 1]["ended"] += 1
    return months


def describe_persona(average_rating: float) -> Persona:
    if average_rating >= 4.5:
        return Persona("The Easy Pleaser", "You find the gold in everything you watch!")
    if average_rating >= 3.8:
        return Persona(
            "The Connoisseur",
            "You have refined taste but know quality when you see it.",
        )
    if average_rating <= 2.5:
        return Persona(
            "The Harsh Critic",
            "Extremely hard to impress. Most shows don't make the cut.",
        )
    return Persona(
        "The Goldilocks", "Not too high, not too low. You're perfectly balanced."
    )


def compute_stats(
    seasons: Sequence[ShowSeason], *, year: int | None = None
) -> CollectionStats:
    """Compute the statistics view for ``seasons``.

    ``year`` selects the calendar year for the monthly breakdown and defaults
    to the current year.
    """

    target_year = year if year is not None else date.today().year
    stats = CollectionStats(
        total=len(seasons),
        total_hours=total_hours(seasons),
        status_counts=status_counts(seasons),
        rating_distribution=rating_distribution(seasons),
        monthly=monthly_activity(seasons, target_year),
    )
    if not seasons:
        return stats

    genre_counts = Counter(genre for season in seasons for genre in season.genres)
    stats.top_genres = genre_counts.most_common(3)

    completed = stats.status_counts[ShowStatus.COMPLETED.value]
    dropped = stats.status_counts[ShowStatus.DROPPED.value]
    stats.efficiency = round(completed / ((completed + dropped) or 1) * 100)

    stats.average_rating = sum(season.user_rating for season in seasons) / len(seasons)
    stats.persona = describe_persona(stats.average_rating)
    return stats
