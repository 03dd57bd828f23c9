import httpx
import pytest

from showdown.errors import ServerResolutionError
from showdown.server_info import ServerInfo, parse_crossdomain, resolve_server


def test_parse_crossdomain_extracts_config():
    body = '<!DOCTYPE html>\n<script>\nvar config = {"host":"sim3.psim.us","port":443,"id":"showdown"};\n</script>'
    assert parse_crossdomain(body, "showdown.psim.us") == ServerInfo("sim3.psim.us", 443, "showdown")


@pytest.mark.parametrize("body", ["", "<html>nothing here</html>", "var config = {broken;"])
def test_parse_crossdomain_rejects_unrecognized_servers(body):
    with pytest.raises(ServerResolutionError):
        parse_crossdomain(body, "nope.psim.us")


def test_server_info_from_dict_accepts_serverid_key():
    info = ServerInfo.from_dict({"host": "example.com", "port": "8000", "serverid": "example"})
    assert info == ServerInfo("example.com", 8000, "example")
    assert info.websocket_url("/showdown/websocket") == "ws://example.com:8000/showdown/websocket"


def test_server_info_from_dict_requires_host_and_port():
    with pytest.raises(ServerResolutionError):
        ServerInfo.from_dict({"port": 8000})
    with pytest.raises(ServerResolutionError):
        ServerInfo.from_dict({"host": "example.com", "port": "x"})


@pytest.mark.asyncio
async def test_resolve_server_passes_records_through():
    info = ServerInfo("localhost", 8000)
    assert await resolve_server(info) is info
    assert await resolve_server({"host": "localhost", "port": 8000}) == info
    assert await resolve_server("localhost:8000") == info


@pytest.mark.asyncio
async def test_resolve_symbolic_name_appends_suffix(http, login_server):
    info = await resolve_server("showdown", http)

    assert info == ServerInfo("sim3.psim.us", 443, "showdown")
    request = login_server.requests[0]
    assert request.url.path == "/crossdomain.php"
    assert request.url.params["host"] == "showdown.psim.us"


@pytest.mark.asyncio
async def test_resolve_dotted_name_is_used_as_is(http, login_server):
    await resolve_server("sim.smogon.com", http)
    assert login_server.requests[0].url.params["host"] == "sim.smogon.com"


@pytest.mark.asyncio
async def test_resolve_empty_response_fails():
    transport = httpx.MockTransport(lambda request: httpx.Response(200, text=""))
    async with httpx.AsyncClient(transport=transport) as http:
        with pytest.raises(ServerResolutionError, match="not recognized"):
            await resolve_server("unknown", http)


@pytest.mark.asyncio
async def test_resolve_http_error_fails():
    transport = httpx.MockTransport(lambda request: httpx.Response(503))
    async with httpx.AsyncClient(transport=transport) as http:
        with pytest.raises(ServerResolutionError):
            await resolve_server("showdown", http)
