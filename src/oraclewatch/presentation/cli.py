import asyncio, json, logging, signal
from typing import Any, Optional

import click
import typer
from rich.console import Console

from ..adapters.transport_httpx import HttpxTransport
from ..application.envelope import build_envelope
from ..application.poller import Poller, PollStats
from ..application.query import FilterQueryBuilder
from ..config import (
    DEFAULT_ADDRESSES, DEFAULT_FROM_BLOCK, DEFAULT_INTERVAL_S, DEFAULT_JOB_ID,
    DEFAULT_TIMEOUT_S, DEFAULT_TO_BLOCK, EncodingConfig, WatchConfig,
)
from ..domain.encoding import EVM_WORD_BYTES, LEGACY_PREFIX, ORACLE_REQUEST_SIGNATURE, encode_topic, to_checksum
from ..domain.errors import EncodingError
from ..domain.models import RpcRequest
from ..log import init_logging

app = typer.Typer(help="Poll a node for OracleRequest logs of one job.")
console = Console()
log = logging.getLogger("oraclewatch")

_ENV = "ORACLEWATCH_"


def _build_request(cfg: WatchConfig) -> RpcRequest:
    try:
        q = FilterQueryBuilder(cfg.encoding).build(cfg.job_id, cfg.addresses)
        q = q.with_block_range(cfg.from_block, cfg.to_block)
    except EncodingError as e:
        raise click.ClickException(str(e))
    log.info("fromBlock: %s", q.from_block)
    log.info("toBlock:   %s", q.to_block)
    log.info("addresses: %s", ", ".join(to_checksum(a) for a in q.addresses))
    log.info("topics:    %s", [list(pos) for pos in q.topics])
    return build_envelope(q, cfg.request_id)


def _config(rpc_url: str, job_id: str, address: Optional[list[str]], from_block: str, to_block: str,
            interval: float, timeout: float, request_id: int, signature: str, word_bytes: int,
            legacy_prefix: str) -> WatchConfig:
    try:
        return WatchConfig(
            rpc_url=rpc_url,
            job_id=job_id,
            addresses=tuple(address) if address else DEFAULT_ADDRESSES,
            from_block=from_block or None,
            to_block=to_block or None,
            interval_s=interval,
            timeout_s=timeout,
            request_id=request_id,
            encoding=EncodingConfig(event_signature=signature, word_bytes=word_bytes, legacy_prefix=legacy_prefix),
        )
    except ValueError as e:
        raise click.ClickException(str(e))


def _print_result(result: Any) -> None:
    if result is None:
        console.print("[yellow]no result[/]")
    else:
        console.print_json(data=result)


async def _watch(cfg: WatchConfig, req: RpcRequest) -> PollStats:
    async with HttpxTransport(cfg.rpc_url, timeout_s=cfg.timeout_s) as transport:
        poller = Poller(transport, req, interval_s=cfg.interval_s, on_result=_print_result)
        loop = asyncio.get_running_loop()
        for sig in (signal.SIGINT, signal.SIGTERM):
            try:
                loop.add_signal_handler(sig, poller.stop)
            except (NotImplementedError, RuntimeError):
                log.debug("no signal handler for %s on this platform", sig)
        log.info("polling %s every %.1fs", cfg.rpc_url, cfg.interval_s)
        return await poller.run()


RPC_OPT = typer.Option("http://localhost:8545", "--rpc", envvar=_ENV + "RPC_URL", help="JSON-RPC endpoint URL")
JOB_OPT = typer.Option(DEFAULT_JOB_ID, "--job-id", envvar=_ENV + "JOB_ID", help="Job identifier")
ADDR_OPT = typer.Option(None, "--address", "-a", envvar=_ENV + "ADDRESSES",
                        help="Oracle contract address (0x or xdc prefix); repeat to OR")
FROM_OPT = typer.Option(DEFAULT_FROM_BLOCK, "--from-block", envvar=_ENV + "FROM_BLOCK")
TO_OPT = typer.Option(DEFAULT_TO_BLOCK, "--to-block", envvar=_ENV + "TO_BLOCK")
SIG_OPT = typer.Option(ORACLE_REQUEST_SIGNATURE, "--event-signature", envvar=_ENV + "EVENT_SIGNATURE")
WORD_OPT = typer.Option(EVM_WORD_BYTES, "--word-bytes", help="Topic width in bytes")
PREFIX_OPT = typer.Option(LEGACY_PREFIX, "--legacy-prefix", help="Chain alias replaced by 0x")


@app.command()
def watch(
    rpc_url: str = RPC_OPT,
    job_id: str = JOB_OPT,
    address: Optional[list[str]] = ADDR_OPT,
    from_block: str = FROM_OPT,
    to_block: str = TO_OPT,
    interval: float = typer.Option(DEFAULT_INTERVAL_S, "--interval", envvar=_ENV + "INTERVAL", help="Seconds between polls"),
    timeout: float = typer.Option(DEFAULT_TIMEOUT_S, "--timeout", envvar=_ENV + "TIMEOUT"),
    request_id: int = typer.Option(1, "--request-id"),
    signature: str = SIG_OPT,
    word_bytes: int = WORD_OPT,
    legacy_prefix: str = PREFIX_OPT,
    log_level: str = typer.Option("INFO", "--log-level", envvar=_ENV + "LOG_LEVEL"),
):
    """Poll eth_getLogs for the job's OracleRequest events until interrupted."""
    init_logging(log_level.upper())
    cfg = _config(rpc_url, job_id, address, from_block, to_block, interval, timeout,
                  request_id, signature, word_bytes, legacy_prefix)
    req = _build_request(cfg)
    try:
        stats = asyncio.run(_watch(cfg, req))
    except KeyboardInterrupt:
        console.print("[bold]interrupted[/]")
        return
    console.print(f"[bold]stopped[/]: cycles={stats.cycles} "
                  f"[green]results[/]={stats.results} [red]failures[/]={stats.failures}")


@app.command()
def query(
    job_id: str = JOB_OPT,
    address: Optional[list[str]] = ADDR_OPT,
    from_block: str = FROM_OPT,
    to_block: str = TO_OPT,
    request_id: int = typer.Option(1, "--request-id"),
    signature: str = SIG_OPT,
    word_bytes: int = WORD_OPT,
    legacy_prefix: str = PREFIX_OPT,
):
    """Print the eth_getLogs request without sending it."""
    cfg = _config("", job_id, address, from_block, to_block, DEFAULT_INTERVAL_S, DEFAULT_TIMEOUT_S,
                  request_id, signature, word_bytes, legacy_prefix)
    req = _build_request(cfg)
    typer.echo(json.dumps(req.to_dict(), indent=2))


@app.command()
def topic(job_id: str, word_bytes: int = WORD_OPT):
    """Print the fixed-width topic for JOB_ID."""
    try:
        typer.echo(encode_topic(job_id, word_bytes=word_bytes))
    except EncodingError as e:
        raise click.ClickException(str(e))


def main() -> None:
    app()


if __name__ == "__main__":
    main()
