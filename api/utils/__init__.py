"""Utility modules."""
from api.utils.json_utils import (
    json_dump,
    json_load,
    read_json_file,
    remove_json_file,
    write_json_file,
)
from api.utils.time_utils import iso_to_ms, now_ms, parse_iso_timestamp

__all__ = [
    "json_dump",
    "json_load",
    "read_json_file",
    "remove_json_file",
    "write_json_file",
    "iso_to_ms",
    "now_ms",
    "parse_iso_timestamp",
]
