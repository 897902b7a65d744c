from __future__ import annotations
from typing import Sequence

from ..config import EncodingConfig
from ..domain.encoding import encode_topic, event_signature_hash, normalize_addresses
from ..domain.models import FilterQuery


class FilterQueryBuilder:
    """Builds the OracleRequest filter for one job id over a set of oracle contracts."""

    def __init__(self, config: EncodingConfig | None = None) -> None:
        self.config = config or EncodingConfig()
        self.signature_topic = event_signature_hash(self.config.event_signature)

    def build(self, job_id: str, addresses: Sequence[str]) -> FilterQuery:
        addrs = normalize_addresses(addresses, legacy_prefix=self.config.legacy_prefix)
        job_topic = encode_topic(job_id, word_bytes=self.config.word_bytes)
        return FilterQuery(
            addresses=addrs,
            topics=((self.signature_topic,), (job_topic,)),
        )


def build_filter_query(job_id: str, addresses: Sequence[str], *, config: EncodingConfig | None = None) -> FilterQuery:
    return FilterQueryBuilder(config).build(job_id, addresses)
