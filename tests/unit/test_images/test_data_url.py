"""Unit tests for image payload decoding and hashing."""

import base64
import hashlib
import struct
import zlib
from pathlib import Path

import pytest

from perfscore.errors import ValidationError
from perfscore.features.images import (
    compute_image_hash,
    data_url_from_path,
    decode_image_payload,
    encode_data_url,
    image_hash_from_data_url,
    parse_data_url,
    verify_image_bytes,
)
from tests.helpers.images import make_png_bytes, make_png_data_url


def _png_chunk(kind: bytes, data: bytes) -> bytes:
    crc = zlib.crc32(kind + data) & 0xFFFFFFFF
    return struct.pack(">I", len(data)) + kind + data + struct.pack(">I", crc)


def _png_with_declared_size(width: int, height: int) -> bytes:
    """Build a tiny PNG whose IHDR claims the given dimensions."""
    header = struct.pack(">IIBBBBB", width, height, 8, 2, 0, 0, 0)
    return (
        b"\x89PNG\r\n\x1a\n"
        + _png_chunk(b"IHDR", header)
        + _png_chunk(b"IDAT", zlib.compress(b"\x00"))
        + _png_chunk(b"IEND", b"")
    )


class TestParseDataUrl:
    """Tests for parse_data_url."""

    def test_splits_mime_and_payload(self) -> None:
        """Should return media type and payload."""
        parsed = parse_data_url("data:image/jpeg;base64,AAAA")

        assert parsed.mime_type == "image/jpeg"
        assert parsed.payload_b64 == "AAAA"

    @pytest.mark.parametrize(
        "value",
        [
            "",
            "not a data url",
            "data:image/png,AAAA",
            "data:image/png;base64,",
            "https://example.test/cat.png",
        ],
    )
    def test_rejects_malformed(self, value: str) -> None:
        """Should raise ValidationError for non data URLs."""
        with pytest.raises(ValidationError, match="base64 data URL") as exc_info:
            parse_data_url(value)

        assert exc_info.value.field == "imageDataUrl"


class TestDecodeImagePayload:
    """Tests for decode_image_payload."""

    def test_decodes_real_png(self) -> None:
        """Should decode and verify a real image."""
        image = decode_image_payload(make_png_data_url())

        assert image.mime_type == "image/png"
        assert image.data == make_png_bytes()
        assert image.image_format == "PNG"

    def test_tolerates_line_wrapped_base64(self) -> None:
        """Should ignore whitespace inside the payload."""
        encoded = base64.b64encode(make_png_bytes()).decode("ascii")
        wrapped = "\n".join(encoded[i : i + 16] for i in range(0, len(encoded), 16))

        image = decode_image_payload(f"data:image/png;base64,{wrapped}")

        assert image.data == make_png_bytes()

    def test_rejects_invalid_base64(self) -> None:
        """Should reject characters outside the base64 alphabet."""
        with pytest.raises(ValidationError, match="not valid base64"):
            decode_image_payload("data:image/png;base64,@@@@")

    def test_rejects_non_image_bytes(self) -> None:
        """Should reject valid base64 that is not an image."""
        payload = base64.b64encode(b"just some text, not pixels").decode("ascii")

        with pytest.raises(ValidationError, match="not a valid encoded image"):
            decode_image_payload(f"data:image/png;base64,{payload}")

    def test_verify_image_bytes_rejects_truncated_png(self) -> None:
        """Should reject a PNG cut short."""
        with pytest.raises(ValidationError):
            verify_image_bytes(make_png_bytes()[:20])

    def test_rejects_decompression_bomb_dimensions(self) -> None:
        """Should reject a PNG whose header declares 30000x30000 pixels."""
        payload = base64.b64encode(_png_with_declared_size(30000, 30000)).decode()

        with pytest.raises(ValidationError, match="oversized dimensions"):
            decode_image_payload(f"data:image/png;base64,{payload}")


class TestImageHash:
    """Tests for content-addressed hashing."""

    def test_sha256_of_decoded_bytes(self) -> None:
        """Should hash decoded bytes with SHA-256."""
        data = make_png_bytes()

        assert compute_image_hash(data) == hashlib.sha256(data).hexdigest()

    def test_hash_independent_of_header(self) -> None:
        """Should give the same hash whatever the declared media type."""
        data = make_png_bytes()

        as_png = image_hash_from_data_url(encode_data_url(data, "image/png"))
        as_octets = image_hash_from_data_url(
            encode_data_url(data, "application/octet-stream")
        )

        assert as_png == as_octets == compute_image_hash(data)

    def test_hash_independent_of_line_layout(self) -> None:
        """Should give the same hash for wrapped base64."""
        data = make_png_bytes()
        encoded = base64.b64encode(data).decode("ascii")
        wrapped = "\r\n".join(encoded[i : i + 10] for i in range(0, len(encoded), 10))

        assert image_hash_from_data_url(
            f"data:image/png;base64,{wrapped}"
        ) == compute_image_hash(data)

    def test_different_images_differ(self) -> None:
        """Should give different hashes for different pixels."""
        red = decode_image_payload(make_png_data_url((255, 0, 0)))
        blue = decode_image_payload(make_png_data_url((0, 0, 255)))

        assert red.content_hash != blue.content_hash


class TestDataUrlFromPath:
    """Tests for data_url_from_path."""

    def test_reads_file_with_guessed_type(self, tmp_path: Path) -> None:
        """Should encode file bytes with a media type from the suffix."""
        path = tmp_path / "photo.png"
        path.write_bytes(make_png_bytes())

        data_url = data_url_from_path(path)

        assert data_url.startswith("data:image/png;base64,")
        assert decode_image_payload(data_url).data == make_png_bytes()

    def test_unknown_suffix_uses_octet_stream(self, tmp_path: Path) -> None:
        """Should fall back to a generic media type."""
        path = tmp_path / "photo.unknownext"
        path.write_bytes(make_png_bytes())

        assert data_url_from_path(path).startswith(
            "data:application/octet-stream;base64,"
        )
