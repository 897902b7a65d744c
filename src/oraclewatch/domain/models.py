from __future__ import annotations

import json
import string
from dataclasses import dataclass, field, replace
from typing import Any, Mapping

from .encoding import normalize_address, normalize_topics
from .errors import EncodingError
from .value_types import Address, Topic, BLOCK_TAGS

JSONRPC_VERSION = "2.0"
GET_LOGS_METHOD = "eth_getLogs"


def to_block_param(x: int | str | None) -> str | None:
    """int / decimal -> '0x2a922c1'; tags pass through; hex quantities are canonicalised."""
    if x is None:
        return None
    if isinstance(x, bool):
        raise EncodingError(f"invalid block boundary {x!r}")
    if isinstance(x, int):
        if x < 0:
            raise EncodingError(f"block number must be >= 0, got {x}")
        return hex(x)
    s = str(x).strip().lower()
    if s in BLOCK_TAGS:
        return s
    if s.startswith("0x"):
        body = s[2:]
        if body and all(c in string.hexdigits for c in body):
            return hex(int(body, 16))   # no leading zeros on the wire
    elif s.isascii() and s.isdigit():
        return hex(int(s))
    raise EncodingError(f"invalid block boundary {x!r}")


@dataclass(slots=True, frozen=True)
class FilterQuery:
    """
    eth_getLogs filter.

    `topics` matches a prefix of each log's topic list. An empty position
    matches any topic; values inside one position are alternatives:

        ()                  any topic list
        ((A,),)             A in first position
        ((), (B,))          anything first AND B second
        ((A, B), (C, D))    (A OR B) first AND (C OR D) second
    """
    block_hash: Topic | None = None     # return logs only from this block
    from_block: str | None = None       # None means genesis
    to_block: str | None = None         # None means latest
    addresses: tuple[Address, ...] = ()
    topics: tuple[tuple[Topic, ...], ...] = field(default_factory=tuple)

    def with_block_range(self, from_block: int | str | None, to_block: int | str | None) -> "FilterQuery":
        return replace(self, from_block=to_block_param(from_block), to_block=to_block_param(to_block))

    def to_params(self) -> dict[str, Any]:
        """Wire form. Unset fields are omitted, never sent as null."""
        out: dict[str, Any] = {}
        if self.block_hash is not None:
            out["blockHash"] = self.block_hash
        if self.from_block is not None:
            out["fromBlock"] = self.from_block
        if self.to_block is not None:
            out["toBlock"] = self.to_block
        out["address"] = list(self.addresses)
        out["topics"] = [list(pos) for pos in self.topics]
        return out

    @classmethod
    def from_params(cls, params: Mapping[str, Any]) -> "FilterQuery":
        addr = params.get("address") or []
        if isinstance(addr, str):
            addr = [addr]
        topics: list[tuple[Topic, ...]] = []
        for pos in params.get("topics") or []:
            if pos is None:
                topics.append(())
            elif isinstance(pos, str):
                topics.append(normalize_topics([pos]))
            else:
                topics.append(normalize_topics(pos))
        bh = params.get("blockHash")
        return cls(
            block_hash=normalize_topics([bh])[0] if bh is not None else None,
            from_block=to_block_param(params.get("fromBlock")),
            to_block=to_block_param(params.get("toBlock")),
            addresses=tuple(normalize_address(a) for a in addr),
            topics=tuple(topics),
        )


@dataclass(slots=True, frozen=True)
class RpcRequest:
    method: str
    params: tuple[Any, ...]
    id: int | str | None = 1
    jsonrpc: str = JSONRPC_VERSION

    def to_dict(self) -> dict[str, Any]:
        return {"jsonrpc": self.jsonrpc, "id": self.id, "method": self.method, "params": list(self.params)}

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")


_MISSING: Any = object()

@dataclass(slots=True, frozen=True)
class RpcResponse:
    jsonrpc: str
    id: Any = None
    result: Any = _MISSING

    @property
    def has_result(self) -> bool: return self.result is not _MISSING

    def result_or_none(self) -> Any:
        return self.result if self.has_result else None
