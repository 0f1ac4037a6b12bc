"""Share-link, export and import codecs for the season collection."""

from __future__ import annotations

import base64
import binascii
import json
from typing import Any, Iterable
from urllib.parse import urlencode

from .models import ShowSeason, collection_payload, parse_collection

SHARE_PARAM = "data"
EXPORT_FILENAME = "cinetrack_backup.json"


def encode_share_payload(seasons: Iterable[ShowSeason]) -> str:
    """Serialise seasons into the text token carried by a share link.

    The JSON is UTF-8 encoded and then base64 encoded so non-ASCII titles
    survive the trip through a query string.
    """

    text = json.dumps(
        collection_payload(seasons), ensure_ascii=False, separators=(",", ":")
    )
    return base64.b64encode(text.encode("utf-8")).decode("ascii")


def decode_share_payload(token: str) -> list[ShowSeason]:
    """Reverse :func:`encode_share_payload`.

    Raises ``ValueError`` for tokens that are not valid base64, UTF-8, JSON or
    season records.
    """

    cleaned = (token or "").strip().replace(" ", "+")
    if not cleaned:
        raise ValueError("Share payload is empty")
    try:
        raw = base64.b64decode(cleaned, validate=True)
        text = raw.decode("utf-8")
        data = json.loads(text)
    except (binascii.Error, UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise ValueError("Share payload could not be decoded") from exc
    return parse_collection(data)


def build_share_url(base_url: str, seasons: Iterable[ShowSeason]) -> str:
    query = urlencode({SHARE_PARAM: encode_share_payload(seasons)})
    return f"{base_url.rstrip('/')}/?{query}"


def export_document(seasons: Iterable[ShowSeason]) -> str:
    """Return the pretty-printed JSON file offered for download."""

    return json.dumps(collection_payload(seasons), ensure_ascii=False, indent=2)


def parse_import_document(content: bytes | str) -> list[ShowSeason]:
    """Parse an uploaded JSON file into season records.

    Raises ``ValueError`` when the file is not a JSON array of valid records.
    """

    if isinstance(content, bytes):
        try:
            content = content.decode("utf-8-sig")
        except UnicodeDecodeError as exc:
            raise ValueError("Import file is not UTF-8 text") from exc
    try:
        data: Any = json.loads(content)
    except json.JSONDecodeError as exc:
        raise ValueError("Import file is not valid JSON") from exc
    return parse_collection(data)
