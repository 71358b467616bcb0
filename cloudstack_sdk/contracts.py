"""
CloudStack API Contracts

Pydantic v2 models for the client configuration, signed requests and the
service's error and async-job payloads. Success payloads of individual
commands are returned as plain dictionaries; their schema belongs to the
caller.
"""

from enum import IntEnum
from typing import Any, Dict, Iterator, Literal, Optional, Tuple, Union

from pydantic import BaseModel, Field, field_validator
from pydantic import ValidationError as PydanticValidationError

from .canonicalize import SIGNATURE_KEY, to_query_string
from .errors import ConfigurationError


class CloudStackConfig(BaseModel):
    """
    Endpoint and credential pair, immutable once built.

    Raises:
        ConfigurationError: Any value missing or invalid
    """

    api_url: str = Field(..., description="Full API endpoint, e.g. https://cloud.example.com/client/api")
    api_key: str
    secret_key: str = Field(..., repr=False)
    timeout: float = Field(30.0, gt=0, description="Per-call timeout in seconds")
    http_method: Literal["GET", "POST"] = "GET"

    def __init__(self, **data: Any) -> None:
        try:
            super().__init__(**data)
        except PydanticValidationError as e:
            fields = sorted({str(err["loc"][0]) for err in e.errors() if err.get("loc")})
            raise ConfigurationError(
                f"Invalid CloudStack configuration: {', '.join(fields) or 'unknown field'}",
                details={"fields": fields},
            ) from e

    @field_validator("api_url", "api_key", "secret_key")
    @classmethod
    def validate_not_blank(cls, v: str) -> str:
        v = v.strip()
        if not v:
            raise ValueError("must be a non-empty string")
        return v

    @field_validator("http_method", mode="before")
    @classmethod
    def normalize_http_method(cls, v: Any) -> Any:
        return v.upper() if isinstance(v, str) else v

    model_config = {
        "frozen": True,
    }


class SignedRequest(BaseModel):
    """Fully assembled, authenticated request ready for transport."""

    command: str = Field(..., min_length=1)
    params: Dict[str, str] = Field(
        ..., description="Wire parameters in send order, signature excluded"
    )
    signature: str = Field(..., repr=False)

    model_config = {
        "frozen": True,
    }

    def items(self) -> Iterator[Tuple[str, str]]:
        """Wire pairs with the signature appended last."""
        yield from self.params.items()
        yield SIGNATURE_KEY, self.signature

    def to_query_string(self) -> str:
        return to_query_string(self.items())


class ErrorPayload(BaseModel):
    """Error node found under the command envelope key."""

    errortext: Optional[str] = None
    errorcode: Optional[Union[int, str]] = None
    cserrorcode: Optional[Union[int, str]] = None
    message: Optional[str] = None

    model_config = {
        "extra": "allow",
    }

    @property
    def text(self) -> Optional[str]:
        """Human-readable text: errortext, then the generic message field."""
        return self.errortext or self.message or None


class AsyncJobStatus(IntEnum):
    """queryAsyncJobResult job status."""

    PENDING = 0
    SUCCEEDED = 1
    FAILED = 2


class AsyncJobResult(BaseModel):
    """Payload of queryAsyncJobResult."""

    jobid: Optional[str] = None
    jobstatus: AsyncJobStatus
    jobresultcode: Optional[int] = None
    jobresulttype: Optional[str] = None
    jobresult: Optional[Dict[str, Any]] = None
    cmd: Optional[str] = None

    model_config = {
        "extra": "allow",
    }

    @property
    def is_pending(self) -> bool:
        return self.jobstatus == AsyncJobStatus.PENDING
