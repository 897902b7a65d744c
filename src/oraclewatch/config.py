from __future__ import annotations

from dataclasses import dataclass, field

from oraclewatch.domain.encoding import EVM_WORD_BYTES, LEGACY_PREFIX, ORACLE_REQUEST_SIGNATURE

DEFAULT_JOB_ID = "c3d9861a75b945888e14b37e406cd85f"
DEFAULT_ADDRESSES: tuple[str, ...] = ("0xA847a7b737e2414Fc6BEef7A1eF05aE446206B52",)
DEFAULT_FROM_BLOCK = "0x2a922c1"
DEFAULT_TO_BLOCK = "latest"
DEFAULT_INTERVAL_S = 2.0
DEFAULT_TIMEOUT_S = 20.0


@dataclass(slots=True, frozen=True)
class EncodingConfig:
    event_signature: str = ORACLE_REQUEST_SIGNATURE
    word_bytes: int = EVM_WORD_BYTES
    legacy_prefix: str = LEGACY_PREFIX


@dataclass(slots=True, frozen=True)
class WatchConfig:
    rpc_url: str
    job_id: str = DEFAULT_JOB_ID
    addresses: tuple[str, ...] = DEFAULT_ADDRESSES
    from_block: int | str | None = DEFAULT_FROM_BLOCK
    to_block: int | str | None = DEFAULT_TO_BLOCK
    interval_s: float = DEFAULT_INTERVAL_S
    request_id: int | str = 1
    timeout_s: float = DEFAULT_TIMEOUT_S
    encoding: EncodingConfig = field(default_factory=EncodingConfig)

    def __post_init__(self) -> None:
        if self.interval_s < 0:
            raise ValueError(f"interval_s must be >= 0, got {self.interval_s}")
        if self.timeout_s <= 0:
            raise ValueError(f"timeout_s must be > 0, got {self.timeout_s}")
