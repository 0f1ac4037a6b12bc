"""Statistics view computations."""

from __future__ import annotations

from app.stats import compute_stats, describe_persona, monthly_activity, rating_distribution

from helpers import make_season


def test_empty_collection_has_zeroed_stats() -> None:
    stats = compute_stats([], year=2024)

    payload = stats.to_payload()
    assert payload["total"] == 0
    assert payload["totalHours"] == 0
    assert payload["averageRating"] is None
    assert payload["persona"] is None
    assert payload["efficiency"] is None
    assert len(payload["monthly"]) == 12


def test_hours_count_only_completed_and_watching() -> None:
    seasons = [
        make_season("a", status="Completed", episodeCount=10, avgEpisodeLength=60),
        make_season("b", status="Watching", episodeCount=6, avgEpisodeLength=30),
        make_season("c", status="Dropped", episodeCount=8, avgEpisodeLength=60),
    ]

    stats = compute_stats(seasons, year=2024)

    assert stats.total_hours == 13
    assert stats.status_counts["Completed"] == 1
    assert stats.status_counts["On Hold"] == 0
    assert stats.efficiency == 50


def test_rating_distribution_puts_five_stars_in_top_bin() -> None:
    seasons = [
        make_season("a", userRating=1.0),
        make_season("b", userRating=4.9),
        make_season("c", userRating=5.0),
    ]

    assert rating_distribution(seasons) == [1, 0, 0, 1, 1]


def test_monthly_activity_counts_starts_and_ends_in_year() -> None:
    seasons = [
        make_season("a", startDate="2024-01-15", endDate="2024-03-01"),
        make_season("b", startDate="2023-01-15"),
    ]

    months = monthly_activity(seasons, 2024)

    assert months[0] == {"month": "Jan", "started": 1, "ended": 0}
    assert months[2]["ended"] == 1


def test_top_genres_and_persona() -> None:
    seasons = [
        make_season("a", genres=["Drama", "Comedy"], userRating=5.0),
        make_season("b", genres=["Drama"], userRating=4.5),
    ]

    stats = compute_stats(seasons, year=2024)

    assert stats.top_genres[0] == ("Drama", 2)
    assert stats.persona is not None
    assert stats.persona.title == "The Easy Pleaser"


def test_persona_thresholds() -> None:
    assert describe_persona(4.0).title == "The Connoisseur"
    assert describe_persona(2.5).title == "The Harsh Critic"
    assert describe_persona(3.0).title == "The Goldilocks"
