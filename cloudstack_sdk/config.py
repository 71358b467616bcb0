"""
Client configuration loading.

Credentials come from the process environment:

    CLOUDSTACK_API_URL      API endpoint (required)
    CLOUDSTACK_API_KEY      access key (required)
    CLOUDSTACK_SECRET_KEY   secret key (required)
    CLOUDSTACK_TIMEOUT      per-call timeout in seconds (optional)
    CLOUDSTACK_HTTP_METHOD  GET or POST (optional)
"""

import os
from typing import Any, Mapping, Optional

from .contracts import CloudStackConfig
from .errors import ConfigurationError

ENV_API_URL = "CLOUDSTACK_API_URL"
ENV_API_KEY = "CLOUDSTACK_API_KEY"
ENV_SECRET_KEY = "CLOUDSTACK_SECRET_KEY"
ENV_TIMEOUT = "CLOUDSTACK_TIMEOUT"
ENV_HTTP_METHOD = "CLOUDSTACK_HTTP_METHOD"

REQUIRED_ENV = (ENV_API_URL, ENV_API_KEY, ENV_SECRET_KEY)


def build_config(**values: Any) -> CloudStackConfig:
    """
    Validate configuration values.

    Raises:
        ConfigurationError: Any value missing or invalid
    """
    return CloudStackConfig(**values)


def load_config_from_env(environ: Optional[Mapping[str, str]] = None) -> CloudStackConfig:
    """
    Build configuration from environment variables.

    Raises:
        ConfigurationError: A required variable is unset or blank
    """
    env = os.environ if environ is None else environ

    missing = [name for name in REQUIRED_ENV if not env.get(name, "").strip()]
    if missing:
        raise ConfigurationError(
            "CloudStack credentials not configured. Please set "
            f"{', '.join(missing)} environment variable{'s' if len(missing) > 1 else ''}.",
            details={"missing": missing},
        )

    values: dict = {
        "api_url": env[ENV_API_URL],
        "api_key": env[ENV_API_KEY],
        "secret_key": env[ENV_SECRET_KEY],
    }
    if env.get(ENV_TIMEOUT, "").strip():
        values["timeout"] = env[ENV_TIMEOUT]
    if env.get(ENV_HTTP_METHOD, "").strip():
        values["http_method"] = env[ENV_HTTP_METHOD]

    return build_config(**values)
