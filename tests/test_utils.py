from pathlib import Path

from api.utils import json_utils, time_utils


def test_json_round_trip(tmp_path: Path) -> None:
    payload = {"message": "xin chào", "count": 2}
    dumped = json_utils.json_dump(payload)
    assert "xin chào" in dumped
    assert json_utils.json_load(dumped) == payload

    path = tmp_path / "nested" / "payload.json"
    json_utils.write_json_file(path, payload)
    assert json_utils.read_json_file(path, {}) == payload
    assert not path.with_suffix(".json.tmp").exists()
    assert json_utils.read_json_file(tmp_path / "missing.json", {"fallback": True}) == {"fallback": True}

    json_utils.remove_json_file(path)
    json_utils.remove_json_file(path)
    assert not path.exists()


def test_time_utils_parsing() -> None:
    zulu = "2024-01-01T12:00:00Z"
    parsed_zulu = time_utils.parse_iso_timestamp(zulu)
    assert parsed_zulu is not None
    assert parsed_zulu.tzinfo is not None

    assert time_utils.parse_iso_timestamp("") is None
    assert time_utils.parse_iso_timestamp(123) is None
    assert time_utils.parse_iso_timestamp("yesterday") is None


def test_iso_to_ms() -> None:
    assert time_utils.iso_to_ms("1970-01-01T00:00:01Z") == 1000
    # naive timestamps are read as UTC
    assert time_utils.iso_to_ms("1970-01-01T00:00:02") == 2000
    assert time_utils.iso_to_ms("nope") is None
    assert time_utils.now_ms() > 1_700_000_000_000
