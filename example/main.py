import asyncio

from clouddns_client.clouddns_client import CloudDnsClient
from clouddns_client.exceptions import CloudDnsError, OperationTimeoutError
from clouddns_client.models import StatusPollingConfig
from clouddns_client.transport import AiohttpTransport, Endpoint, TransportConfig
from mock_dns_server import MockDnsServer


async def status_changed(status):
    print(f"Job {status.job_id} changed to: {status.status.value}")


async def main():
    PORT = 8000
    server = MockDnsServer(completion_time=6.0, error_rate=0.1, auth_token="secret")
    await server.start(port=PORT)
    print(f"Server started on http://localhost:{PORT}")

    config = StatusPollingConfig(initial_delay=1.0, max_delay=4.0, backoff_factor=2.0, timeout=60.0)
    transport_config = TransportConfig(
        endpoints={Endpoint.cloud_dns: f"http://localhost:{PORT}"},
        auth_token="secret",
    )

    async with AiohttpTransport(transport_config) as transport:
        client = CloudDnsClient(transport, config, on_status_change=status_changed)
        try:
            domains = await client.create_domains_with_wait(
                [
                    {"name": "example.com", "emailAddress": "admin@example.com"},
                    {"name": "example.org", "emailAddress": "admin@example.org", "ttl": 600},
                ]
            )
            for domain in domains:
                print(f"Created {domain.name} (id {domain.id}, ttl {domain.ttl})")

            await client.delete_domains_with_wait(domains)
            print(f"Remaining domains: {[d.name for d in await client.get_domains()]}")
        except OperationTimeoutError as e:
            print(f"Polling timed out: {e}")
        except CloudDnsError as e:
            print(f"Error occurred: {e}")

    await server.stop()


if __name__ == "__main__":
    asyncio.run(main())
