import asyncio
from typing import Any, Awaitable, Callable, Optional

from loguru import logger

from clouddns_client.exceptions import (
    OperationError,
    OperationTimeoutError,
    TransportError,
    UnexpectedResultError,
    UnexpectedStatusError,
)
from clouddns_client.models import (
    CompletedStatus,
    ErrorStatus,
    JobState,
    OperationStatus,
    StatusPollingConfig,
    UnknownStatus,
    parse_status,
)
from clouddns_client.transport import AuthorizedTransport, Endpoint


def _loop_time() -> float:
    return asyncio.get_running_loop().time()


class StatusPoller:
    def __init__(
        self,
        transport: AuthorizedTransport,
        config: Optional[StatusPollingConfig] = None,
        on_status_change: Optional[Callable[[OperationStatus], Awaitable[Any]]] = None,
        sleep: Optional[Callable[[float], Awaitable[Any]]] = None,
        clock: Optional[Callable[[], float]] = None,
    ):
        self.transport = transport
        self.config = config or StatusPollingConfig()
        self.on_status_change = on_status_change
        self.logger = logger
        self._sleep = sleep or asyncio.sleep
        self._clock = clock or _loop_time

    async def fetch_status(self, job_id: str) -> OperationStatus:
        """Fetches the current snapshot of a job from the service"""
        response = await self.transport.request(
            "GET",
            f"/status/{job_id}",
            params={"showDetails": "true"},
            endpoint=Endpoint.cloud_dns,
        )
        if response.status_code != 200:
            self.logger.error(f"HTTP error {response.status_code} polling job {job_id}")
            raise UnexpectedStatusError(response.status_code, response.body)
        return parse_status(response.body, job_id)

    def _calculate_delay(self, attempt: int) -> float:
        """Calculates the delay for the next polling attempt using capped exponential backoff with an optional jitter"""
        delay = min(
            self.config.initial_delay * (self.config.backoff_factor**attempt),
            self.config.max_delay,
        )

        # Add jitter between 0-20% of the delay
        if self.config.jitter:
            delay *= 1 + 0.2 * (self._clock() % 1)
        return delay

    async def _handle_status_change(
        self, status: OperationStatus, last_state: Optional[JobState]
    ) -> None:
        """Invoke the status change callback if the state has changed"""
        if last_state != status.status and self.on_status_change is not None:
            self.logger.debug(f"Job {status.job_id} changed to {status.status.value}")
            await self.on_status_change(status)

    async def _wait_before_retry(self, job_id: Optional[str], attempt: int) -> None:
        delay = self._calculate_delay(attempt)
        self.logger.debug(f"Job {job_id} not finished, waiting {delay:.2f}s before next poll")
        await self._sleep(delay)

    def _timeout_error(self, job_id: Optional[str], attempt: int) -> OperationTimeoutError:
        self.logger.error(f"Job {job_id} still running after {attempt} polls")
        return OperationTimeoutError(
            f"Job {job_id} did not finish within {self.config.timeout} seconds"
            f" or {self.config.max_attempts} polls"
        )

    def _resolve(self, status: OperationStatus) -> CompletedStatus:
        if isinstance(status, ErrorStatus):
            self.logger.error(f"Job {status.job_id} failed: {status.error}")
            raise OperationError(status.error, status)
        self.logger.info(f"Job {status.job_id} completed")
        return status

    async def wait_for_result(self, status: OperationStatus) -> CompletedStatus:
        """Poll the job behind ``status`` until it completes or fails.

        Returns the completed snapshot. Raises ``OperationError`` when the job
        ends in ERROR and ``OperationTimeoutError`` when the attempt or time
        budget runs out. Transient failures while polling are retried within
        that budget; any other failure is raised immediately.
        """
        if status.is_terminal:
            return self._resolve(status)

        job_id = status.job_id
        if job_id is None:
            self.logger.error(f"Accepted response carries no job id: {status.raw_response}")
            raise UnexpectedResultError(status.raw_response)

        deadline = self._clock() + self.config.timeout
        attempt = 0
        last_state = status.status
        last_error: Optional[Exception] = None

        while not status.is_terminal:
            if attempt >= self.config.max_attempts or self._clock() >= deadline:
                raise self._timeout_error(job_id, attempt) from last_error

            await self._wait_before_retry(job_id, attempt)
            if self._clock() >= deadline:
                raise self._timeout_error(job_id, attempt) from last_error

            attempt += 1
            try:
                status = await self.fetch_status(job_id)
            except TransportError as polling_error:
                self.logger.warning(f"Error polling job {job_id}, retrying: {polling_error}")
                last_error = polling_error
                continue
            except UnexpectedStatusError as polling_error:
                if not polling_error.is_transient:
                    raise
                self.logger.warning(f"Error polling job {job_id}, retrying: {polling_error}")
                last_error = polling_error
                continue

            last_error = None
            if isinstance(status, UnknownStatus):
                self.logger.warning(
                    f"Job {job_id} reported unknown state {status.raw_response.get('status')!r}"
                )
            await self._handle_status_change(status, last_state)
            last_state = status.status

        return self._resolve(status)
