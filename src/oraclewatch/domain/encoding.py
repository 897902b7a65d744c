from __future__ import annotations

from typing import Iterable, Sequence

from eth_utils import (
    add_0x_prefix,
    encode_hex,
    is_hex_address,
    keccak,
    remove_0x_prefix,
    to_checksum_address,
)

from oraclewatch.domain.errors import EncodingError
from oraclewatch.domain.value_types import Address, Topic


# Chainlink RunRequest filter topic as of 2019-01-28 (requestId no longer cast to uint256)
ORACLE_REQUEST_SIGNATURE = (
    "OracleRequest(bytes32,address,bytes32,uint256,address,bytes4,uint256,uint256,bytes)"
)

EVM_WORD_BYTES = 32
STANDARD_PREFIX = "0x"
LEGACY_PREFIX = "xdc"   # XDC network alias for 0x


# ---------- addresses ---------------------------------------------------------

def _swap_prefix(s: str, legacy_prefix: str) -> str:
    if legacy_prefix and s[:len(legacy_prefix)].lower() == legacy_prefix.lower():
        return STANDARD_PREFIX + s[len(legacy_prefix):]
    return s

def normalize_address(raw: str, *, legacy_prefix: str = LEGACY_PREFIX) -> Address:
    """'xdcA847…' / '0xA847…' / 'A847…' -> '0xa847…'. Raises EncodingError."""
    if not isinstance(raw, str):
        raise EncodingError(f"address must be a string, got {type(raw).__name__}")
    s = _swap_prefix(raw.strip(), legacy_prefix)
    if not is_hex_address(s):
        raise EncodingError(f"invalid address {raw!r}: expected 20 bytes of hex")
    return Address(add_0x_prefix(remove_0x_prefix(s)).lower())

def normalize_addresses(raws: Iterable[str], *, legacy_prefix: str = LEGACY_PREFIX) -> tuple[Address, ...]:
    # order and duplicates preserved
    return tuple(normalize_address(a, legacy_prefix=legacy_prefix) for a in raws)

def to_checksum(address: Address) -> str:
    return to_checksum_address(address)


# ---------- topics ------------------------------------------------------------

def _right_pad(b: bytes, width: int) -> bytes:
    return b if len(b) >= width else b + b"\x00" * (width - len(b))

def encode_topic(job_id: str | bytes, *, word_bytes: int = EVM_WORD_BYTES) -> Topic:
    """
    Fixed-width topic for an opaque identifier.

    The identifier's bytes are right-padded with zeros up to `word_bytes`.
    Identifiers longer than the word are cut to their first `word_bytes`
    bytes; two ids that only differ past that point encode identically.
    """
    if word_bytes <= 0:
        raise EncodingError(f"word width must be positive, got {word_bytes}")
    if isinstance(job_id, str):
        raw = job_id.encode("utf-8")
    elif isinstance(job_id, (bytes, bytearray)):
        raw = bytes(job_id)
    else:
        raise EncodingError(f"job id must be str or bytes, got {type(job_id).__name__}")

    hx = remove_0x_prefix(encode_hex(_right_pad(raw, word_bytes)))
    hex_len = 2 * word_bytes
    if len(hx) > hex_len:
        hx = hx[:hex_len]
    return Topic(add_0x_prefix(hx))

def topic_bytes(topic: Topic) -> bytes:
    return bytes.fromhex(remove_0x_prefix(topic))


# ---------- event signature ---------------------------------------------------

def event_signature_hash(signature: str = ORACLE_REQUEST_SIGNATURE) -> Topic:
    if not signature or "(" not in signature or not signature.endswith(")"):
        raise EncodingError(f"invalid event signature {signature!r}")
    return Topic(encode_hex(keccak(text=signature)))

def is_topic(x: str, *, word_bytes: int = EVM_WORD_BYTES) -> bool:
    if not isinstance(x, str) or not x.startswith(STANDARD_PREFIX) or len(x) != 2 + 2 * word_bytes:
        return False
    try:
        bytes.fromhex(x[2:])
    except ValueError:
        return False
    return True

def normalize_topics(values: Sequence[str], *, word_bytes: int = EVM_WORD_BYTES) -> tuple[Topic, ...]:
    out: list[Topic] = []
    for t in values:
        s = str(t).strip().lower()
        if not is_topic(s, word_bytes=word_bytes):
            raise EncodingError(f"invalid topic {t!r}")
        out.append(Topic(s))
    return tuple(out)
