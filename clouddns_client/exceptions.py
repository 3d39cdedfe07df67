from typing import Any, Optional

TRANSIENT_STATUS_CODES = frozenset({408, 429})


class CloudDnsError(Exception):
    pass


class TransportError(CloudDnsError):
    """The request never produced an HTTP response"""


class UnexpectedStatusError(CloudDnsError):
    def __init__(self, status_code: int, body: Any):
        super().__init__(f"Unexpected HTTP status {status_code}: {body}")
        self.status_code = status_code
        self.body = body

    @property
    def is_transient(self) -> bool:
        return self.status_code >= 500 or self.status_code in TRANSIENT_STATUS_CODES


class OperationError(CloudDnsError):
    def __init__(self, error: Any, status: Optional[Any] = None):
        super().__init__(f"Operation failed: {error}")
        self.error = error
        self.status = status


class OperationTimeoutError(CloudDnsError, TimeoutError):
    pass


class ValidationError(CloudDnsError, ValueError):
    pass


class UnexpectedResultError(CloudDnsError):
    def __init__(self, payload: Any):
        super().__init__(f"Unexpected operation result: {payload}")
        self.payload = payload
