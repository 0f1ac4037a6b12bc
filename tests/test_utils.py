from app.utils import (
    coerce_int,
    extract_json_object,
    iso_date_from_millis,
    normalize_url,
    parse_iso_date,
)


def test_extract_json_object_from_markdown():
    payload = """
    Here is your payload:
    ```json
    {"network": "HBO"}
    ```
    """
    assert extract_json_object(payload) == {"network": "HBO"}


def test_normalize_url_adds_scheme():
    assert normalize_url("www.imdb.com/title/tt1") == "https://www.imdb.com/title/tt1"
    assert normalize_url("http://example.com") == "http://example.com"
    assert normalize_url("  ") == ""


def test_iso_date_from_millis_uses_utc():
    assert iso_date_from_millis(0) == "1970-01-01"


def test_parse_iso_date_reads_leading_date():
    assert parse_iso_date("2024-05-28T10:00:00Z").isoformat() == "2024-05-28"
    assert parse_iso_date("not a date") is None


def test_coerce_int_with_default():
    assert coerce_int("42") == 42
    assert coerce_int("N/A", default=0) == 0
