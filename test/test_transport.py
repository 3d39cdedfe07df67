import asyncio
from typing import AsyncGenerator

import pytest
import pytest_asyncio
from aiohttp import web

from clouddns_client.clouddns_client import CloudDnsClient
from clouddns_client.exceptions import TransportError, UnexpectedStatusError
from clouddns_client.models import StatusPollingConfig, parse_status
from clouddns_client.transport import AiohttpTransport, Endpoint, TransportConfig

BASE_URL_TEMPLATE = "http://localhost:{}"


class MisbehavingServer:
    """Answers with HTML error pages, broken JSON or not at all"""

    def __init__(self):
        self.status_requests = 0
        self.app = web.Application()
        self.app.router.add_post("/domains", self.handle_unavailable)
        self.app.router.add_get("/status/{job_id}", self.handle_missing_job)
        self.app.router.add_get("/domains", self.handle_broken_json)
        self.app.router.add_get("/domains/{domain_id}", self.handle_slow)

    async def handle_unavailable(self, request):
        return web.Response(status=503, text="<html>Service Unavailable</html>", content_type="text/html")

    async def handle_missing_job(self, request):
        self.status_requests += 1
        return web.Response(status=404, text="<html>Not Found</html>", content_type="text/html")

    async def handle_broken_json(self, request):
        return web.Response(status=200, text="{not json", content_type="application/json")

    async def handle_slow(self, request):
        await asyncio.sleep(2.0)
        return web.json_response({"id": 1, "name": "example.com"})


@pytest_asyncio.fixture
async def server(unused_tcp_port_factory) -> AsyncGenerator[MisbehavingServer, None]:
    port = unused_tcp_port_factory()
    server_instance = MisbehavingServer()
    runner = web.AppRunner(server_instance.app)
    await runner.setup()
    await web.TCPSite(runner, "localhost", port).start()
    try:
        yield server_instance, port
    finally:
        await runner.cleanup()


def transport_for(port: int, request_timeout: float = 5.0) -> AiohttpTransport:
    return AiohttpTransport(
        TransportConfig(
            endpoints={Endpoint.cloud_dns: BASE_URL_TEMPLATE.format(port)},
            request_timeout=request_timeout,
        )
    )


@pytest.fixture
def polling_config() -> StatusPollingConfig:
    return StatusPollingConfig(initial_delay=0.05, max_delay=0.1, timeout=5.0, max_attempts=5)


@pytest.mark.asyncio
async def test_rejected_submission_keeps_html_body(server, polling_config):
    server_instance, port = server

    async with transport_for(port) as transport:
        client = CloudDnsClient(transport, polling_config)
        with pytest.raises(UnexpectedStatusError) as exc_info:
            await client.create_domains([{"name": "example.com", "emailAddress": "a@example.com"}])

    assert exc_info.value.status_code == 503
    assert exc_info.value.body == "<html>Service Unavailable</html>"


@pytest.mark.asyncio
async def test_missing_job_with_html_body_fails_at_once(server, polling_config):
    server_instance, port = server

    async with transport_for(port) as transport:
        client = CloudDnsClient(transport, polling_config)
        with pytest.raises(UnexpectedStatusError) as exc_info:
            await client.wait_for_result(parse_status({"jobId": "abc", "status": "RUNNING"}))

    assert exc_info.value.status_code == 404
    assert exc_info.value.body == "<html>Not Found</html>"
    assert server_instance.status_requests == 1


@pytest.mark.asyncio
async def test_invalid_json_on_success_is_a_transport_error(server):
    server_instance, port = server

    async with transport_for(port) as transport:
        with pytest.raises(TransportError, match="Invalid JSON"):
            await transport.request("GET", "/domains")


@pytest.mark.asyncio
async def test_request_timeout_is_a_transport_error(server):
    server_instance, port = server

    async with transport_for(port, request_timeout=0.2) as transport:
        with pytest.raises(TransportError):
            await transport.request("GET", "/domains/1")


@pytest.mark.asyncio
async def test_missing_endpoint_is_a_transport_error():
    async with AiohttpTransport(TransportConfig()) as transport:
        with pytest.raises(TransportError, match="No base URL"):
            await transport.request("GET", "/domains")
