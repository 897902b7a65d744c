from __future__ import annotations

import json
from typing import Any

from ..domain.errors import ProtocolError
from ..domain.models import FilterQuery, RpcRequest, RpcResponse, GET_LOGS_METHOD, JSONRPC_VERSION


def build_envelope(query: FilterQuery, request_id: int | str | None = 1, *, method: str = GET_LOGS_METHOD) -> RpcRequest:
    return RpcRequest(method=method, params=(query.to_params(),), id=request_id)


def parse_response(body: bytes | str) -> RpcResponse:
    """Decode a JSON-RPC response body; any `error` member becomes a ProtocolError."""
    try:
        data: Any = json.loads(body)
    except (ValueError, UnicodeDecodeError) as e:
        raise ProtocolError(f"response is not valid JSON: {e}") from e
    if not isinstance(data, dict):
        raise ProtocolError(f"response is not a JSON object: {type(data).__name__}")

    version = data.get("jsonrpc")
    if version is not None and version != JSONRPC_VERSION:
        raise ProtocolError(f"unexpected jsonrpc version {version!r}")

    if "error" in data and data["error"] is not None:
        if "result" in data and data["result"] is not None:
            raise ProtocolError("response carries both result and error")
        err = data["error"]
        if isinstance(err, dict):
            code, msg = err.get("code"), err.get("message")
            raise ProtocolError(f"RPC error code={code} message={msg}", code=code, data=err.get("data"))
        raise ProtocolError(f"RPC error: {err}", data=err)

    kw: dict[str, Any] = {"jsonrpc": version or JSONRPC_VERSION, "id": data.get("id")}
    if "result" in data:
        kw["result"] = data["result"]
    return RpcResponse(**kw)
