from __future__ import annotations

import base64
import binascii
import io
import logging
import mimetypes
import re
from pathlib import PurePosixPath
from urllib.parse import unquote_to_bytes

from PIL import Image, UnidentifiedImageError

log = logging.getLogger(__name__)


METAFILE_EXTENSIONS = {".wmf", ".emf"}
DEFAULT_MIME = "application/octet-stream"

_DATA_URL_RE = re.compile(r"^data:(?P<mime>[\w.+-]+/[\w.+-]+)?(?P<b64>;base64)?,(?P<data>.*)$", re.S)

_EXTENSION_OVERRIDES = {
    "image/jpeg": ".jpg",
    "image/svg+xml": ".svg",
    "image/x-wmf": ".wmf",
    "image/wmf": ".wmf",
    "image/x-emf": ".emf",
    "image/emf": ".emf",
}


def _convert_with_pillow(blob: bytes, name: str) -> bytes | None:
    try:
        with Image.open(io.BytesIO(blob)) as img:
            img.load()
            out = io.BytesIO()
            img.save(out, format="PNG")
    except (UnidentifiedImageError, OSError) as exc:
        log.warning("Failed to convert metafile %s to PNG: %s", name, exc)
        return None
    return out.getvalue()


def convert_metafile_to_png(blob: bytes, name: str) -> bytes | None:
    """
    Attempt WMF/EMF -> PNG conversion.
    Returns the PNG bytes, or None if the asset is not a metafile or Pillow
    cannot read it on this platform.
    """
    if PurePosixPath(name).suffix.lower() not in METAFILE_EXTENSIONS:
        return None
    converted = _convert_with_pillow(blob, name)
    if converted:
        log.info("Converted metafile %s to PNG", name)
    return converted


def guess_mime(name: str) -> str:
    mime, _ = mimetypes.guess_type(name)
    suffix = PurePosixPath(name).suffix.lower()
    if suffix == ".wmf":
        return "image/wmf"
    if suffix == ".emf":
        return "image/emf"
    return mime or DEFAULT_MIME


def blob_to_data_url(name: str, blob: bytes) -> str:
    """Materialize a binary asset as an inline data URL usable as an image reference."""
    png = convert_metafile_to_png(blob, name)
    if png is not None:
        blob, mime = png, "image/png"
    else:
        mime = guess_mime(name)
    return f"data:{mime};base64,{base64.b64encode(blob).decode('ascii')}"


def is_data_url(value: object) -> bool:
    return isinstance(value, str) and value.startswith("data:")


def data_url_to_blob(value: str) -> tuple[bytes, str] | None:
    """
    Decode a data URL back into (bytes, extension).
    Returns None for anything that is not a decodable data URL.
    """
    if not is_data_url(value):
        return None
    match = _DATA_URL_RE.match(value)
    if not match:
        return None
    mime = match.group("mime") or DEFAULT_MIME
    raw = match.group("data")
    try:
        if match.group("b64"):
            blob = base64.b64decode(raw, validate=False)
        else:
            blob = unquote_to_bytes(raw)
    except (binascii.Error, ValueError):
        log.warning("Undecodable data URL (%d chars)", len(value))
        return None
    ext = _EXTENSION_OVERRIDES.get(mime) or mimetypes.guess_extension(mime) or ".bin"
    return blob, ext
