"""
CID (Content Identifier) type and helpers.

A CID is the only key the block service understands. Two versions exist:

- CIDv0 is a bare sha2-256 multihash and implies the dag-pb codec.
- CIDv1 is ``<uvarint version><uvarint codec><multihash>``.

Multihashes are built and decoded with ``pymultihash``; string forms use
base58btc for CIDv0 and multibase base32 (``b`` prefix) for CIDv1.
"""

import base64
import logging

import base58
import multihash

from blockservice.exceptions import (
    InvalidCIDError,
)
from blockservice.utils.varint import (
    decode_varint_with_size,
    encode_uvarint,
)

logger = logging.getLogger(__name__)

CID_V0 = 0
CID_V1 = 1

# Multicodec table entries used by blocks
CODEC_DAG_PB = 0x70
CODEC_RAW = 0x55

HASH_SHA256 = multihash.Func.sha2_256.value
SHA256_LENGTH = 32

DEFAULT_HASH_FUNC = "sha2-256"

# Multibase prefixes accepted by CID.from_string
MULTIBASE_BASE32 = "b"
MULTIBASE_BASE58BTC = "z"


def _func_code(func: "multihash.Func | int") -> int:
    if isinstance(func, multihash.Func):
        return func.value
    return int(func)


def _decode_multihash(raw: bytes) -> "multihash.Multihash":
    try:
        return multihash.decode(raw)
    except (ValueError, KeyError, TypeError) as e:
        raise InvalidCIDError(f"Invalid multihash: {e}") from e


class CID:
    """
    A parsed, immutable content identifier.

    Equality and hashing are structural: two CIDs are equal when their binary
    forms are equal.
    """

    _bytes: bytes
    _version: int
    _codec: int
    _multihash: bytes
    _str: str | None = None

    def __init__(self, cid_bytes: bytes) -> None:
        if not isinstance(cid_bytes, (bytes, bytearray, memoryview)):
            raise InvalidCIDError(
                f"CID must be built from bytes, got {type(cid_bytes).__name__}"
            )
        self._bytes = bytes(cid_bytes)
        self._version, self._codec, self._multihash = self._parse(self._bytes)

    @staticmethod
    def _parse(raw: bytes) -> tuple[int, int, bytes]:
        if not raw:
            raise InvalidCIDError("CID is empty")

        # CIDv0: sha2-256 multihash with no version prefix
        if raw[0] == HASH_SHA256:
            if len(raw) != 2 + SHA256_LENGTH or raw[1] != SHA256_LENGTH:
                raise InvalidCIDError(
                    f"CIDv0 must be a {2 + SHA256_LENGTH}-byte sha2-256 multihash"
                )
            _decode_multihash(raw)
            return CID_V0, CODEC_DAG_PB, raw

        try:
            version, offset = decode_varint_with_size(raw)
            if version != CID_V1:
                raise InvalidCIDError(f"Unsupported CID version {version}")
            codec, consumed = decode_varint_with_size(raw, offset)
        except ValueError as e:
            raise InvalidCIDError(f"Malformed CID prefix: {e}") from e
        offset += consumed

        mh = raw[offset:]
        if not mh:
            raise InvalidCIDError("CID has no multihash")
        _decode_multihash(mh)
        return version, codec, mh

    @property
    def version(self) -> int:
        return self._version

    @property
    def codec(self) -> int:
        return self._codec

    @property
    def multihash(self) -> bytes:
        return self._multihash

    @property
    def hash_func(self) -> int:
        return _func_code(multihash.decode(self._multihash).func)

    @property
    def digest(self) -> bytes:
        return multihash.decode(self._multihash).digest

    def to_bytes(self) -> bytes:
        return self._bytes

    def to_v1(self) -> "CID":
        if self._version == CID_V1:
            return self
        return CID(
            encode_uvarint(CID_V1) + encode_uvarint(self._codec) + self._multihash
        )

    def to_string(self) -> str:
        if self._str is None:
            if self._version == CID_V0:
                self._str = base58.b58encode(self._bytes).decode()
            else:
                encoded = base64.b32encode(self._bytes).decode("ascii")
                self._str = MULTIBASE_BASE32 + encoded.rstrip("=").lower()
        return self._str

    __str__ = to_string

    def __repr__(self) -> str:
        return f"<blockservice.cid.CID ({self!s})>"

    def __eq__(self, other: object) -> bool:
        if isinstance(other, CID):
            return self._bytes == other._bytes
        elif isinstance(other, bytes):
            return self._bytes == other
        else:
            return NotImplemented

    def __hash__(self) -> int:
        return hash(self._bytes)

    def __bytes__(self) -> bytes:
        return self._bytes

    @classmethod
    def from_string(cls, text: str) -> "CID":
        """
        Parse a CID from its string form.

        Accepts base58btc CIDv0 (``Qm...``) and multibase CIDv1 in base32
        (``b...``) or base58btc (``z...``).
        """
        if not text:
            raise InvalidCIDError("CID string is empty")
        try:
            if len(text) == 46 and text.startswith("Qm"):
                raw = base58.b58decode(text)
            elif text[0] == MULTIBASE_BASE32:
                body = text[1:].upper()
                raw = base64.b32decode(body + "=" * (-len(body) % 8))
            elif text[0] == MULTIBASE_BASE58BTC:
                raw = base58.b58decode(text[1:])
            else:
                raise InvalidCIDError(f"Unsupported multibase prefix {text[0]!r}")
        except ValueError as e:
            raise InvalidCIDError(f"Cannot decode CID string {text!r}: {e}") from e
        return cls(raw)


def ensure_cid(value: "CID | bytes | str") -> CID:
    """
    Coerce ``value`` into a :class:`CID`.

    :param value: a CID, its binary form, or its string form.
    :return: the parsed CID.
    :raises InvalidCIDError: if the value is empty, of the wrong type or
        structurally invalid.
    """
    if isinstance(value, CID):
        return value
    if isinstance(value, str):
        return CID.from_string(value)
    if isinstance(value, (bytes, bytearray, memoryview)):
        return CID(value)
    raise InvalidCIDError(f"Expected a CID, got {type(value).__name__}")


def compute_cid_v0(data: bytes) -> CID:
    """
    Compute a CIDv0 for data.

    Args:
        data: The data to hash

    Returns:
        The sha2-256 CIDv0

    """
    mh = multihash.digest(data, multihash.Func.sha2_256).encode()
    return CID(mh)


def compute_cid_v1(
    data: bytes, codec: int = CODEC_RAW, hash_func: str = DEFAULT_HASH_FUNC
) -> CID:
    """
    Compute a CIDv1 for data.

    Args:
        data: The data to hash
        codec: Multicodec code (default: raw)
        hash_func: Multihash function name (default: sha2-256)

    Returns:
        The CIDv1

    """
    mh = multihash.digest(data, hash_func).encode()
    return CID(encode_uvarint(CID_V1) + encode_uvarint(codec) + mh)


def compute_cid(
    data: bytes,
    version: int = CID_V0,
    codec: int = CODEC_RAW,
    hash_func: str = DEFAULT_HASH_FUNC,
) -> CID:
    """
    Compute a CID for data with specified version.

    CIDv0 only exists for sha2-256; the codec is ignored for it.

    Args:
        data: The data to hash
        version: CID version (0 or 1)
        codec: Multicodec code (for v1 only)
        hash_func: Multihash function name

    Returns:
        The CID

    """
    if version == CID_V0:
        if hash_func != DEFAULT_HASH_FUNC:
            raise ValueError(f"CIDv0 requires {DEFAULT_HASH_FUNC}, got {hash_func}")
        return compute_cid_v0(data)
    if version == CID_V1:
        return compute_cid_v1(data, codec, hash_func)
    raise ValueError(f"Unsupported CID version {version}")


def verify_cid(cid: CID, data: bytes) -> bool:
    """
    Verify that data hashes to the multihash inside ``cid``.

    Args:
        cid: The CID to verify
        data: The data to check

    Returns:
        True if data matches CID, False otherwise (including when the CID uses
        a hash function this process cannot compute)

    """
    expected = multihash.decode(cid.multihash)
    try:
        computed = multihash.digest(data, expected.func).digest
    except (ValueError, KeyError, TypeError) as e:
        logger.debug("cannot verify %s: %s", cid, e)
        return False

    match = computed[: len(expected.digest)] == expected.digest
    if not match:
        logger.debug(
            "digest mismatch for %s: expected %s, computed %s",
            cid,
            expected.digest.hex(),
            computed.hex(),
        )
    return match
