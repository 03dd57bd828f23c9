from __future__ import annotations

import json
import re
from dataclasses import dataclass
from typing import Any, Mapping, Optional, Union

import httpx

from shared.log import get_logger
from shared.protocol import CROSSDOMAIN_URL, DEFAULT_SERVER_SUFFIX
from shared.utils import is_hostport, split_hostport
from showdown.errors import ServerResolutionError

logger = get_logger(__name__)

_CONFIG_RE = re.compile(r'var config = (.*);$', re.MULTILINE)


@dataclass(frozen=True)
class ServerInfo:
    """Concrete address of a Showdown server."""
    host: str
    port: int
    server_id: str = "showdown"

    @classmethod
    def from_dict(cls, data: Mapping[str, Any]) -> "ServerInfo":
        host = data.get("host")
        port = data.get("port")
        if not isinstance(host, str) or not host:
            raise ServerResolutionError(f"Server config has no host: {dict(data)!r}")
        try:
            port = int(port)
        except (TypeError, ValueError):
            raise ServerResolutionError(f"Server config has no valid port: {dict(data)!r}")
        server_id = data.get("server_id") or data.get("serverid") or data.get("id") or "showdown"
        return cls(host=host, port=port, server_id=str(server_id))

    def websocket_url(self, path: str) -> str:
        return f"ws://{self.host}:{self.port}{path}"


ServerRef = Union[str, Mapping[str, Any], ServerInfo]


def parse_crossdomain(body: str, name: str) -> ServerInfo:
    """Extract the embedded `var config = {...};` blob from a crossdomain page."""
    if not body:
        raise ServerResolutionError(f"Server '{name}' not recognized.")
    match = _CONFIG_RE.search(body)
    if match is None:
        raise ServerResolutionError(f"Server '{name}' not recognized.")
    try:
        data = json.loads(match.group(1))
    except json.JSONDecodeError as e:
        raise ServerResolutionError(f"Invalid config for server '{name}': {e}") from e
    if not isinstance(data, dict):
        raise ServerResolutionError(f"Invalid config for server '{name}'")
    return ServerInfo.from_dict(data)


async def resolve_server(
    server: ServerRef,
    http: Optional[httpx.AsyncClient] = None,
    *,
    crossdomain_url: str = CROSSDOMAIN_URL,
    timeout: float = 10.0,
) -> ServerInfo:
    """
    Resolve a server reference to a ServerInfo.

    Args:
        server: ServerInfo, a mapping with host/port, "host:port", or a
            symbolic Showdown server name ("smogtours", "sim.psim.us")
        http: Client used for the crossdomain lookup
        crossdomain_url: Lookup endpoint
        timeout: Request timeout when no client is passed in

    Raises:
        ServerResolutionError: Empty or unrecognized lookup response
    """
    if isinstance(server, ServerInfo):
        return server
    if isinstance(server, Mapping):
        return ServerInfo.from_dict(server)
    if not isinstance(server, str) or not server:
        raise ServerResolutionError(f"Unsupported server reference: {server!r}")

    if is_hostport(server):
        host, port = split_hostport(server)
        return ServerInfo(host=host, port=port)

    name = server if '.' in server else server + DEFAULT_SERVER_SUFFIX
    logger.debug("Resolving server %s via %s", name, crossdomain_url)

    owns_client = http is None
    client = http or httpx.AsyncClient(timeout=timeout)
    try:
        response = await client.get(crossdomain_url, params={"host": name})
        response.raise_for_status()
    except httpx.HTTPError as e:
        raise ServerResolutionError(f"Failed to resolve server '{name}': {e}") from e
    finally:
        if owns_client:
            await client.aclose()

    info = parse_crossdomain(response.text, name)
    logger.info("Resolved %s to %s:%d (%s)", name, info.host, info.port, info.server_id)
    return info
