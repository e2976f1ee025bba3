"""Minimal async JSON-RPC transport shared by the chain probes."""

from typing import Any, Awaitable, Callable, Optional

import httpx

from .models import RPCError

DEFAULT_RPC_TIMEOUT = 10.0

# Signature of the callable probes use to reach a node
RpcCall = Callable[..., Awaitable[Any]]


async def rpc_call(
    rpc_url: str,
    method: str,
    params: list,
    timeout: float = DEFAULT_RPC_TIMEOUT,
) -> Any:
    """Make a JSON-RPC call and return its ``result`` member.

    Raises:
        httpx.HTTPError: transport failure, timeout or non-2xx status
        RPCError: the node answered with an error object
    """
    async with httpx.AsyncClient(timeout=timeout) as client:
        response = await client.post(
            rpc_url,
            json={
                "jsonrpc": "2.0",
                "method": method,
                "params": params,
                "id": 1,
            },
            headers={"Content-Type": "application/json"},
        )
        response.raise_for_status()
        result = response.json()

        if "error" in result and result["error"] is not None:
            error = result["error"]
            code: Optional[int] = error.get("code") if isinstance(error, dict) else None
            raise RPCError(f"RPC error: {error}", code=code)

        return result.get("result")
