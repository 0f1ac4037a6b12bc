"""Share links, export files and import parsing."""

from __future__ import annotations

import json
from urllib.parse import parse_qs, urlparse

import pytest

from app.sharing import (
    build_share_url,
    decode_share_payload,
    encode_share_payload,
    export_document,
    parse_import_document,
)

from helpers import make_season


def test_share_payload_round_trips_non_ascii_titles() -> None:
    seasons = [
        make_season("a", "Amélie à Paris", genres=["Comédie"], review="très bien ★"),
        make_season("b", "進撃の巨人", seasonNumber=4, userRating=4.5),
    ]

    decoded = decode_share_payload(encode_share_payload(seasons))

    assert decoded == seasons


def test_share_url_carries_token_in_data_parameter() -> None:
    seasons = [make_season("a", "Dark")]

    url = build_share_url("https://tracker.example.com/", seasons)

    parsed = urlparse(url)
    assert parsed.netloc == "tracker.example.com"
    token = parse_qs(parsed.query)["data"][0]
    assert decode_share_payload(token) == seasons


def test_decoder_tolerates_plus_signs_turned_into_spaces() -> None:
    seasons = [make_season("a", "Dark?>>", review="~~~???")]
    token = encode_share_payload(seasons)

    assert decode_share_payload(token.replace("+", " ")) == seasons


@pytest.mark.parametrize("token", ["", "not base64!!", "aGVsbG8=", "eyJpZCI6ICJ4In0="])
def test_invalid_share_tokens_raise_value_error(token: str) -> None:
    with pytest.raises(ValueError):
        decode_share_payload(token)


def test_export_is_pretty_printed_json_array() -> None:
    seasons = [make_season("a", "Dark")]

    document = export_document(seasons)

    assert document.startswith("[\n  {")
    assert json.loads(document)[0]["id"] == "a"


def test_import_accepts_bytes_with_bom() -> None:
    content = ("\ufeff" + export_document([make_season("a", "Dark")])).encode("utf-8")

    assert [season.id for season in parse_import_document(content)] == ["a"]


def test_import_rejects_non_array_documents() -> None:
    with pytest.raises(ValueError):
        parse_import_document('{"id": "a"}')
    with pytest.raises(ValueError):
        parse_import_document("{broken")
