"""
CloudStack SDK Errors

Typed exceptions for error handling.

Every failure surfaced by the client is one of a small set of distinct kinds
so callers can decide per kind whether to show it, retry it or give up:

- ConfigurationError: missing/invalid credentials, raised at construction
- ValidationError: a request could not be built, raised before any I/O
- TransportError: no response was received
- ProtocolError: a response arrived but did not have the expected shape
- RemoteError: the service answered with a well-formed error payload
"""

from typing import Any, Dict, Optional, Union


class CloudStackError(Exception):
    """Base exception for all CloudStack SDK errors."""

    kind = "unknown"

    def __init__(
        self,
        message: str,
        code: Optional[str] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(message)
        self.message = message
        self.code = code or "UNKNOWN_ERROR"
        self.details = details or {}


class ConfigurationError(CloudStackError):
    """Client configuration is missing or invalid."""

    kind = "configuration"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="CONFIGURATION_ERROR", details=details)


class ValidationError(CloudStackError):
    """Request could not be built from the supplied parameters."""

    kind = "validation"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="VALIDATION_ERROR", details=details)


class TransportError(CloudStackError):
    """No response received (connection refused, DNS, timeout, ...)."""

    kind = "transport"

    def __init__(self, message: str, details: Optional[Dict[str, Any]] = None) -> None:
        super().__init__(message, code="TRANSPORT_ERROR", details=details)


class ProtocolError(CloudStackError):
    """Response received but its body could not be interpreted."""

    kind = "protocol"

    def __init__(
        self,
        message: str,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code="PROTOCOL_ERROR",
            details={**(details or {}), "statusCode": status_code},
        )
        self.status_code = status_code


class RemoteError(CloudStackError):
    """
    The service reported a failure in a well-formed error payload.

    ``message`` is the service's own human-readable text and can be shown to
    end users as is.
    """

    kind = "remote"

    def __init__(
        self,
        message: str,
        command: str,
        upstream_code: Optional[Union[int, str]] = None,
        cs_error_code: Optional[Union[int, str]] = None,
        status_code: Optional[int] = None,
        details: Optional[Dict[str, Any]] = None,
    ) -> None:
        super().__init__(
            message,
            code="REMOTE_ERROR",
            details={
                **(details or {}),
                "command": command,
                "upstreamCode": upstream_code,
                "csErrorCode": cs_error_code,
                "statusCode": status_code,
            },
        )
        self.command = command
        self.upstream_code = upstream_code
        self.cs_error_code = cs_error_code
        self.status_code = status_code


class AsyncJobFailedError(RemoteError):
    """An asynchronous job finished with a failure status."""

    def __init__(
        self,
        job_id: str,
        message: str,
        upstream_code: Optional[Union[int, str]] = None,
    ) -> None:
        super().__init__(
            f"CloudStack job failed: {message}",
            command="queryAsyncJobResult",
            upstream_code=upstream_code,
            details={"jobId": job_id},
        )
        self.job_id = job_id


class AsyncJobTimeoutError(CloudStackError):
    """An asynchronous job was still pending when the polling budget ran out."""

    kind = "timeout"

    def __init__(self, job_id: str, attempts: int) -> None:
        super().__init__(
            f"CloudStack job {job_id} timed out after {attempts} attempts",
            code="JOB_TIMEOUT",
            details={"jobId": job_id, "attempts": attempts},
        )
        self.job_id = job_id
        self.attempts = attempts
