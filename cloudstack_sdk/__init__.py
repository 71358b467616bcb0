"""
CloudStack Python SDK

Signed command gateway client for the CloudStack orchestration API.

Features:
- Byte-exact HMAC-SHA1 request signing
- Envelope unwrapping (``<command>response``) on success and failure
- Typed error taxonomy: TransportError, ProtocolError, RemoteError
- No implicit retries; opt-in async job polling

Example:
    ```python
    from cloudstack_sdk import CloudStackClient, CloudStackConfig

    async with CloudStackClient(
        CloudStackConfig(
            api_url="https://cloud.example.com/client/api",
            api_key="your-api-key",
            secret_key="your-secret-key",
        )
    ) as client:
        zones = await client.list_zones()

        job = await client.start_virtual_machine("vm-123")
        vm = await client.wait_for_job(job["jobid"])
    ```
"""

from .canonicalize import canonicalize, encode_value, percent_encode
from .client import CloudStackClient, close_client, configure_client, get_client, reset_client
from .config import build_config, load_config_from_env
from .contracts import (
    AsyncJobResult,
    AsyncJobStatus,
    CloudStackConfig,
    ErrorPayload,
    SignedRequest,
)
from .envelope import envelope_key, normalize_error, unwrap_envelope
from .errors import (
    AsyncJobFailedError,
    AsyncJobTimeoutError,
    CloudStackError,
    ConfigurationError,
    ProtocolError,
    RemoteError,
    TransportError,
    ValidationError,
)
from .gateway import BaseCommandGateway, CommandGateway
from .http_gateway import HttpCommandGateway
from .jobs import JobPollPolicy, wait_for_job
from .retry import RetryPolicy
from .signing import build_signed_request, sign

__version__ = "1.0.0"

__all__ = [
    # Client
    "CloudStackClient",
    "close_client",
    "configure_client",
    "get_client",
    "reset_client",
    # Configuration
    "CloudStackConfig",
    "build_config",
    "load_config_from_env",
    # Contracts
    "SignedRequest",
    "ErrorPayload",
    "AsyncJobResult",
    "AsyncJobStatus",
    # Errors
    "CloudStackError",
    "ConfigurationError",
    "ValidationError",
    "TransportError",
    "ProtocolError",
    "RemoteError",
    "AsyncJobFailedError",
    "AsyncJobTimeoutError",
    # Gateway
    "CommandGateway",
    "BaseCommandGateway",
    "HttpCommandGateway",
    # Signing
    "canonicalize",
    "encode_value",
    "percent_encode",
    "sign",
    "build_signed_request",
    # Envelope
    "envelope_key",
    "unwrap_envelope",
    "normalize_error",
    # Jobs & retry
    "JobPollPolicy",
    "wait_for_job",
    "RetryPolicy",
]
