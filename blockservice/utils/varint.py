import logging

logger = logging.getLogger("blockservice.utils.varint")

# Unsigned LEB128 (varint codec), as used by multiformats.

LOW_MASK = 2**7 - 1
HIGH_MASK = 2**7

# Multiformats caps varints at 9 bytes (63 bits of payload).
MAX_VARINT_LEN = 9


def encode_uvarint(value: int) -> bytes:
    """Encode an unsigned integer as a varint."""
    if value < 0:
        raise ValueError("Cannot encode negative value as uvarint")

    result = bytearray()
    while value >= HIGH_MASK:
        result.append((value & LOW_MASK) | HIGH_MASK)
        value >>= 7
    result.append(value & LOW_MASK)
    return bytes(result)


def decode_varint_with_size(data: bytes, offset: int = 0) -> tuple[int, int]:
    """
    Decode a varint from ``data`` starting at ``offset``.

    Returns:
        Tuple[int, int]: (value, bytes_consumed)

    Raises:
        ValueError: If the data ends before the varint does or the varint is
            longer than ``MAX_VARINT_LEN`` bytes

    """
    result = 0
    shift = 0
    bytes_consumed = 0

    for byte in data[offset:]:
        result |= (byte & LOW_MASK) << shift
        bytes_consumed += 1
        if (byte & HIGH_MASK) == 0:
            return result, bytes_consumed
        shift += 7
        if bytes_consumed >= MAX_VARINT_LEN:
            raise ValueError("Varint too long")

    raise ValueError("Unexpected end of data while decoding varint")
