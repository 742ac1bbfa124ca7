import base64
import io
from types import SimpleNamespace

import pytest
from PIL import Image

import image_convert


def _png_bytes() -> bytes:
    buffer = io.BytesIO()
    Image.new("RGB", (4, 4), color="red").save(buffer, format="PNG")
    return buffer.getvalue()


def test_convert_metafile_to_png_skips_non_metafile() -> None:
    assert image_convert.convert_metafile_to_png(_png_bytes(), "images/photo.png") is None


def test_convert_metafile_to_png_uses_pillow(monkeypatch: pytest.MonkeyPatch) -> None:
    class DummyImage:
        def __enter__(self):
            return self

        def __exit__(self, exc_type, exc, tb):
            return False

        def load(self):
            return None

        def save(self, out, format=None):
            assert format == "PNG"
            out.write(b"png")

    monkeypatch.setattr(image_convert, "Image", SimpleNamespace(open=lambda _: DummyImage()))

    assert image_convert.convert_metafile_to_png(b"wmf", "images/diagram.WMF") == b"png"


def test_unreadable_metafile_keeps_original_bytes() -> None:
    url = image_convert.blob_to_data_url("images/diagram.emf", b"not really an emf")

    assert url.startswith("data:image/emf;base64,")
    assert base64.b64decode(url.split(",", 1)[1]) == b"not really an emf"


def test_data_url_round_trip() -> None:
    png = _png_bytes()
    url = image_convert.blob_to_data_url("images/q1.png", png)

    assert url.startswith("data:image/png;base64,")
    assert image_convert.data_url_to_blob(url) == (png, ".png")


def test_data_url_to_blob_variants() -> None:
    assert image_convert.data_url_to_blob("data:image/jpeg;base64,AAAA") == (b"\x00\x00\x00", ".jpg")
    assert image_convert.data_url_to_blob("data:text/plain,hello%20world") == (b"hello world", ".txt")
    assert image_convert.data_url_to_blob("https://example.com/a.png") is None
    assert image_convert.data_url_to_blob("data:nonsense") is None


def test_guess_mime_defaults() -> None:
    assert image_convert.guess_mime("images/a.gif") == "image/gif"
    assert image_convert.guess_mime("images/a.wmf") == "image/wmf"
    assert image_convert.guess_mime("images/blob") == image_convert.DEFAULT_MIME
