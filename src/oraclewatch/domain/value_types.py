from __future__ import annotations
from typing import NewType

Address  = NewType("Address", str)  # 0x-prefixed, lowercase, 40 hex digits
Topic    = NewType("Topic", str)    # 66-char 0x-hash

BLOCK_TAGS: frozenset[str] = frozenset(("latest", "earliest", "pending", "safe", "finalized"))
