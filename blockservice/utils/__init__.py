"""Utility functions for blockservice."""

from blockservice.utils.varint import (
    decode_varint_with_size,
    encode_uvarint,
)

__all__ = [
    "decode_varint_with_size",
    "encode_uvarint",
]
