"""Image payload handling: data-URL parsing, decoding, and content hashing.

The content hash is computed over the decoded bytes, so two submissions of
the same picture hash identically regardless of the data-URL header or the
base64 line layout used to transport them.
"""

import base64
import binascii
import hashlib
import mimetypes
import re
from dataclasses import dataclass
from io import BytesIO
from pathlib import Path

from PIL import Image, UnidentifiedImageError

from perfscore.errors import ValidationError


_DATA_URL_PATTERN = re.compile(
    r"^data:(?P<mime>[^;,]+);base64,(?P<payload>.+)$", re.DOTALL
)
_WHITESPACE = re.compile(r"\s+")


@dataclass(frozen=True)
class DataUrl:
    """A parsed ``data:<mime>;base64,<payload>`` string.

    Attributes:
        mime_type: Declared media type.
        payload_b64: Base64 payload as transmitted.
    """

    mime_type: str
    payload_b64: str


@dataclass(frozen=True)
class DecodedImage:
    """Decoded image bytes with their media type.

    Attributes:
        mime_type: Declared media type.
        data: Raw image bytes.
        image_format: Format detected from the bytes (e.g. "PNG").
    """

    mime_type: str
    data: bytes
    image_format: str | None = None

    @property
    def content_hash(self) -> str:
        """Canonical content hash of the bytes."""
        return compute_image_hash(self.data)


def parse_data_url(value: str) -> DataUrl:
    """Split a base64 data URL into media type and payload.

    Args:
        value: Candidate data URL.

    Returns:
        DataUrl parts.

    Raises:
        ValidationError: If the value is not a base64 data URL.
    """
    match = _DATA_URL_PATTERN.match(value.strip()) if isinstance(value, str) else None
    if match is None:
        msg = "'imageDataUrl' must be a base64 data URL (data:<mime>;base64,...)"
        raise ValidationError(msg)
    return DataUrl(mime_type=match.group("mime"), payload_b64=match.group("payload"))


def decode_image_payload(value: str) -> DecodedImage:
    """Decode and verify an image submitted as a data URL.

    Args:
        value: Image as a base64 data URL.

    Returns:
        DecodedImage with verified bytes.

    Raises:
        ValidationError: If the URL, the base64 payload, or the image is invalid.
    """
    parsed = parse_data_url(value)
    payload = _WHITESPACE.sub("", parsed.payload_b64)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = f"Image payload is not valid base64: {exc}"
        raise ValidationError(msg) from exc

    if not data:
        msg = "Image payload is empty"
        raise ValidationError(msg)

    image_format = verify_image_bytes(data)
    return DecodedImage(
        mime_type=parsed.mime_type, data=data, image_format=image_format
    )


def verify_image_bytes(data: bytes) -> str | None:
    """Check that bytes decode as an image.

    Args:
        data: Candidate image bytes.

    Returns:
        Detected image format name.

    Raises:
        ValidationError: If Pillow cannot identify or verify the image, or
            its declared size exceeds Pillow's decompression-bomb limit.
    """
    try:
        with Image.open(BytesIO(data)) as img:
            image_format = img.format
            img.verify()
    except Image.DecompressionBombError as exc:
        msg = f"Image payload declares oversized dimensions: {exc}"
        raise ValidationError(msg) from exc
    except (UnidentifiedImageError, OSError, SyntaxError, ValueError) as exc:
        msg = f"Image payload is not a valid encoded image: {exc}"
        raise ValidationError(msg) from exc
    return image_format


def compute_image_hash(data: bytes) -> str:
    """Compute the canonical content hash of decoded image bytes.

    Args:
        data: Raw image bytes.

    Returns:
        Lowercase hex SHA-256 digest.
    """
    return hashlib.sha256(data).hexdigest()


def image_hash_from_data_url(value: str) -> str:
    """Compute the content hash for an image given as a data URL.

    Only the base64 payload is decoded; the header does not affect the hash.

    Args:
        value: Image as a base64 data URL.

    Returns:
        Lowercase hex SHA-256 digest of the decoded bytes.

    Raises:
        ValidationError: If the value is not a decodable data URL.
    """
    parsed = parse_data_url(value)
    payload = _WHITESPACE.sub("", parsed.payload_b64)
    try:
        data = base64.b64decode(payload, validate=True)
    except (binascii.Error, ValueError) as exc:
        msg = f"Image payload is not valid base64: {exc}"
        raise ValidationError(msg) from exc
    return compute_image_hash(data)


def encode_data_url(data: bytes, mime_type: str) -> str:
    """Encode bytes as a base64 data URL."""
    return f"data:{mime_type};base64,{base64.b64encode(data).decode('ascii')}"


def data_url_from_path(path: Path) -> str:
    """Read an image file and encode it as a data URL.

    Args:
        path: Image file path.

    Returns:
        Base64 data URL with a media type guessed from the file name.
    """
    mime_type, _ = mimetypes.guess_type(path.name)
    return encode_data_url(path.read_bytes(), mime_type or "application/octet-stream")
