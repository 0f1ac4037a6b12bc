"""Merge-on-import semantics."""

from __future__ import annotations

from app.merge import merge_incoming
from app.sharing import export_document, parse_import_document

from helpers import make_season


def test_duplicate_is_skipped_and_new_record_is_prepended() -> None:
    existing = [make_season("a", "Local A"), make_season("b", "Local B")]
    incoming = [make_season("a", "Remote A"), make_season("c", "Remote C")]

    result = merge_incoming(existing, incoming)

    assert [season.id for season in result.merged] == ["c", "a", "b"]
    assert result.merged[1].title == "Local A"
    assert result.skipped_ids == ["a"]
    assert [season.id for season in result.added] == ["c"]


def test_repeated_incoming_ids_keep_the_first_occurrence() -> None:
    incoming = [make_season("x", "First"), make_season("x", "Second")]

    result = merge_incoming([], incoming)

    assert [season.title for season in result.merged] == ["First"]
    assert result.skipped_ids == ["x"]


def test_export_then_import_into_empty_collection_keeps_ids() -> None:
    seasons = [make_season("a"), make_season("b"), make_season("c")]

    result = merge_incoming([], parse_import_document(export_document(seasons)))

    assert [season.id for season in result.merged] == ["a", "b", "c"]


def test_preview_payload_flags_pending_confirmation() -> None:
    result = merge_incoming([make_season("a")], [make_season("a"), make_season("b")])

    payload = result.to_payload()

    assert payload["committed"] is False
    assert payload["requiresConfirmation"] is True
    assert payload["incoming"] == 2
    assert payload["added"] == 1
    assert payload["addedIds"] == ["b"]
    assert payload["skipped"] == 1
    assert payload["total"] == 2
