"""
Response envelope handling.

CloudStack nests every response, success or failure, under a single key
derived from the command name::

    {"listzonesresponse": {"count": 1, "zone": [...]}}
    {"deployvirtualmachineresponse": {"errorcode": 431, "errortext": "..."}}
"""

import logging
from typing import Any, Mapping, Optional

from pydantic import ValidationError as PydanticValidationError

from .contracts import ErrorPayload
from .errors import ProtocolError, RemoteError

logger = logging.getLogger(__name__)

ENVELOPE_SUFFIX = "response"


def envelope_key(command: str) -> str:
    """Top-level response key for ``command``: ``listZones`` -> ``listzonesresponse``."""
    return command.lower() + ENVELOPE_SUFFIX


def unwrap_envelope(body: Any, command: str) -> Any:
    """
    Return the node stored under the command's envelope key.

    When the key is absent the parsed body is returned unchanged. This
    fallback is intentional and kept for services that do not follow the
    envelope convention; it is logged so a malformed response stays visible.
    """
    key = envelope_key(command)
    if isinstance(body, Mapping) and key in body:
        return body[key]

    logger.debug(f"Envelope key {key!r} missing for command={command}, returning raw body")
    return body


def is_error_payload(node: Any) -> bool:
    """True if an unwrapped node carries an error code or error text."""
    return isinstance(node, Mapping) and ("errorcode" in node or "errortext" in node)


def normalize_error(
    command: str,
    body: Any,
    status_code: Optional[int] = None,
    reason: Optional[str] = None,
) -> RemoteError:
    """
    Build a RemoteError from a parsed error response.

    Message precedence: the payload's ``errortext``, then its ``message``,
    then the raw HTTP failure.

    Raises:
        ProtocolError: the unwrapped node is not an object
    """
    node = unwrap_envelope(body, command)
    if not isinstance(node, Mapping):
        raise ProtocolError(
            f"Unexpected error body for {command}: {type(node).__name__}",
            status_code=status_code,
        )

    try:
        payload = ErrorPayload.model_validate(node)
    except PydanticValidationError as e:
        raise ProtocolError(
            f"Malformed error payload for {command}: {e}",
            status_code=status_code,
            details={"errors": e.errors()},
        ) from e

    message = payload.text or _http_failure_message(status_code, reason)

    return RemoteError(
        message,
        command=command,
        upstream_code=payload.errorcode,
        cs_error_code=payload.cserrorcode,
        status_code=status_code,
    )


def _http_failure_message(status_code: Optional[int], reason: Optional[str]) -> str:
    if status_code is None:
        return "CloudStack API error: unknown failure"
    return f"CloudStack API error: HTTP {status_code} {reason or ''}".rstrip()
