"""
Request signing for the CloudStack API.

signature = base64(HMAC-SHA1(secret_key, canonicalize(params)))
"""

import base64
import hashlib
import hmac
from typing import Any, Dict, Mapping, Optional

from .canonicalize import SIGNATURE_KEY, canonicalize, encode_value, fold_key, percent_encode
from .contracts import SignedRequest
from .errors import ValidationError

COMMAND_KEY = "command"
API_KEY_KEY = "apiKey"
RESPONSE_KEY = "response"
RESPONSE_FORMAT = "json"

INJECTED_KEYS = (COMMAND_KEY, API_KEY_KEY, RESPONSE_KEY)


def sign(secret_key: str, canonical: str) -> str:
    """
    Sign a canonical string.

    Args:
        secret_key: Shared secret
        canonical: Output of canonicalize()

    Returns:
        Base64-encoded HMAC-SHA1 digest
    """
    digest = hmac.new(
        secret_key.encode("utf-8"),
        canonical.encode("utf-8"),
        hashlib.sha1,
    ).digest()
    return base64.b64encode(digest).decode("ascii")


def build_signed_request(
    command: str,
    params: Optional[Mapping[str, Any]] = None,
    *,
    api_key: str,
    secret_key: str,
) -> SignedRequest:
    """
    Assemble and sign a request.

    ``None`` values are treated as "not supplied" and dropped. Injected keys
    (command, apiKey, response) are part of the signed content; the signature
    itself is not.

    Raises:
        ValidationError: empty command, a key or value that cannot be
            encoded (unsupported type, lone surrogate), or a caller key that
            collides with an injected key or another caller key once
            case-folded
    """
    if not command or not command.strip():
        raise ValidationError("Command name must be a non-empty string")

    reserved = {fold_key(key): key for key in (*INJECTED_KEYS, SIGNATURE_KEY)}
    seen: Dict[str, str] = {}
    caller_params: Dict[str, str] = {}

    for key, value in (params or {}).items():
        if value is None:
            continue

        try:
            folded = fold_key(key)
            wire_value = encode_value(value)
            percent_encode(wire_value)
        except (TypeError, UnicodeEncodeError) as e:
            raise ValidationError(
                f"Parameter '{key}': {e}",
                details={"command": command, "parameter": key},
            ) from e

        if folded in reserved:
            raise ValidationError(
                f"Parameter '{key}' collides with reserved parameter '{reserved[folded]}'",
                details={"command": command, "parameter": key},
            )
        if folded in seen:
            raise ValidationError(
                f"Duplicate parameter '{key}' (already supplied as '{seen[folded]}')",
                details={"command": command, "parameter": key},
            )
        seen[folded] = key
        caller_params[key] = wire_value

    wire_params = {
        COMMAND_KEY: command,
        API_KEY_KEY: api_key,
        RESPONSE_KEY: RESPONSE_FORMAT,
        **caller_params,
    }

    return SignedRequest(
        command=command,
        params=wire_params,
        signature=sign(secret_key, canonicalize(wire_params)),
    )
