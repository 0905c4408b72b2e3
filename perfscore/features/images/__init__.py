"""Image payload decoding, verification, and content-addressed hashing."""

from perfscore.features.images.data_url import (
    DataUrl,
    DecodedImage,
    compute_image_hash,
    data_url_from_path,
    decode_image_payload,
    encode_data_url,
    image_hash_from_data_url,
    parse_data_url,
    verify_image_bytes,
)


__all__ = [
    "DataUrl",
    "DecodedImage",
    "compute_image_hash",
    "data_url_from_path",
    "decode_image_payload",
    "encode_data_url",
    "image_hash_from_data_url",
    "parse_data_url",
    "verify_image_bytes",
]
