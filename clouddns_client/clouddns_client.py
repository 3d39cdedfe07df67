from typing import Any, Awaitable, Callable, Dict, Iterable, List, Optional, Union

import pydantic
from loguru import logger

from clouddns_client.exceptions import UnexpectedResultError, UnexpectedStatusError
from clouddns_client.models import (
    CompletedStatus,
    Domain,
    DomainDetails,
    DomainUpdate,
    ImportDetails,
    OperationStatus,
    StatusPollingConfig,
    parse_status,
)
from clouddns_client.payloads import (
    create_domains_payload,
    delete_domains_params,
    import_domain_payload,
    update_domains_payload,
)
from clouddns_client.status import StatusPoller
from clouddns_client.transport import AuthorizedTransport, Endpoint

DomainDetailsLike = Union[DomainDetails, Dict[str, Any]]
DomainUpdateLike = Union[DomainUpdate, Dict[str, Any]]
DomainRef = Union[Domain, int, str]


class CloudDnsClient:
    def __init__(
        self,
        transport: AuthorizedTransport,
        config: Optional[StatusPollingConfig] = None,
        on_status_change: Optional[Callable[[OperationStatus], Awaitable[Any]]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.transport = transport
        self.logger = logger
        self.poller = StatusPoller(
            transport,
            config=config,
            on_status_change=on_status_change,
            sleep=sleep,
            clock=clock,
        )

    async def _get(self, path: str, params: Optional[Dict[str, Any]] = None) -> Any:
        response = await self.transport.request(
            "GET", path, params=params, endpoint=Endpoint.cloud_dns
        )
        if response.status_code != 200:
            self.logger.error(f"HTTP error {response.status_code} at GET {path}")
            raise UnexpectedStatusError(response.status_code, response.body)
        return response.body

    async def _submit(
        self, method: str, path: str, params: Any = None, json: Any = None
    ) -> OperationStatus:
        """Sends a mutating request and returns the job handle the service accepted"""
        response = await self.transport.request(
            method, path, params=params, json=json, endpoint=Endpoint.cloud_dns
        )
        if response.status_code != 202:
            self.logger.error(
                f"{method} {path} was not accepted ({response.status_code}): {response.body}"
            )
            raise UnexpectedStatusError(response.status_code, response.body)

        status = parse_status(response.body)
        self.logger.info(f"{method} {path} accepted as job {status.job_id}")
        return status

    def _domain_from(self, payload: Any) -> Domain:
        try:
            return Domain.model_validate(payload)
        except pydantic.ValidationError as e:
            self.logger.error(f"Unexpected domain payload: {payload}")
            raise UnexpectedResultError(payload) from e

    def _domains_in(self, payload: Any) -> List[Domain]:
        """Maps the ``domains`` list of a list or job response body"""
        if payload is None:
            return []
        if not isinstance(payload, dict) or not isinstance(payload.get("domains") or [], list):
            self.logger.error(f"Unexpected domain list payload: {payload}")
            raise UnexpectedResultError(payload)
        return [self._domain_from(domain) for domain in payload.get("domains") or []]

    def _domains_from(self, status: CompletedStatus) -> List[Domain]:
        return self._domains_in(status.response)

    async def wait_for_result(self, status: OperationStatus) -> CompletedStatus:
        return await self.poller.wait_for_result(status)

    async def get_domains(self, name: Optional[str] = None) -> List[Domain]:
        """Lists the account's domains, optionally filtered by name"""
        params = {"name": name} if name else None
        body = await self._get("/domains", params)
        return self._domains_in(body)

    async def get_domain(self, domain_id: Union[int, str]) -> Domain:
        body = await self._get(f"/domains/{domain_id}")
        return self._domain_from(body)

    async def create_domains(self, domains: Iterable[DomainDetailsLike]) -> OperationStatus:
        payload = create_domains_payload(domains)
        return await self._submit("POST", "/domains", json=payload)

    async def create_domains_with_wait(self, domains: Iterable[DomainDetailsLike]) -> List[Domain]:
        status = await self.create_domains(domains)
        result = await self.wait_for_result(status)
        return self._domains_from(result)

    async def create_domain(self, details: DomainDetailsLike) -> Domain:
        """Creates one domain and waits for the service to finish"""
        domains = await self.create_domains_with_wait([details])
        if len(domains) != 1:
            raise UnexpectedResultError(domains)
        return domains[0]

    async def import_domain(
        self, details: Union[ImportDetails, Dict[str, Any]]
    ) -> OperationStatus:
        """Provisions a domain from a BIND 9 zone file"""
        payload = import_domain_payload(details)
        return await self._submit("POST", "/domains/import", json=payload)

    async def import_domain_with_wait(
        self, details: Union[ImportDetails, Dict[str, Any]]
    ) -> List[Domain]:
        status = await self.import_domain(details)
        result = await self.wait_for_result(status)
        return self._domains_from(result)

    async def update_domains(self, updates: Iterable[DomainUpdateLike]) -> OperationStatus:
        payload = update_domains_payload(updates)
        return await self._submit("PUT", "/domains", json=payload)

    async def update_domain(self, update: DomainUpdateLike) -> OperationStatus:
        return await self.update_domains([update])

    async def update_domains_with_wait(
        self, updates: Iterable[DomainUpdateLike]
    ) -> CompletedStatus:
        status = await self.update_domains(updates)
        return await self.wait_for_result(status)

    async def delete_domains(
        self, domains: Iterable[DomainRef], delete_subdomains: bool = True
    ) -> OperationStatus:
        params = delete_domains_params(domains, delete_subdomains)
        return await self._submit("DELETE", "/domains", params=params)

    async def delete_domain(
        self, domain: DomainRef, delete_subdomains: bool = True
    ) -> OperationStatus:
        return await self.delete_domains([domain], delete_subdomains)

    async def delete_domains_with_wait(
        self, domains: Iterable[DomainRef], delete_subdomains: bool = True
    ) -> CompletedStatus:
        status = await self.delete_domains(domains, delete_subdomains)
        return await self.wait_for_result(status)
