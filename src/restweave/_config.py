import os
from typing import Optional

from pydantic import BaseModel, ConfigDict, Field, field_validator

from ._interceptors import Interceptor
from ._utils._url_builder import ensure_valid_base_url
from ._utils._user_agent import user_agent_value
from ._utils.constants import (
    DEFAULT_ENCODING,
    DEFAULT_TIMEOUT,
    ENV_BASE_URL,
    ENV_TIMEOUT,
)


class RestClientOptions(BaseModel):
    """Settings of a `RestClient`. Immutable once the client is created.

    Attributes:
        base_url: Absolute http(s) URL that relative resources are joined to.
            May contain `{name}` placeholders.
        timeout: Request timeout in seconds, overridden by `RestRequest.timeout`.
        user_agent: Value of the `User-Agent` header.
        throw_on_any_error: Raise errors instead of returning failed responses.
        throw_on_deserialization_error: Raise `DeserializationError` when the
            content cannot be converted to the requested type.
        fail_on_deserialization_error: Mark the response as failed when
            deserialization fails.
        error_when_unsuccessful_status_code: Treat non-2xx status codes as
            errors.
        allow_multiple_default_parameters_with_same_name: Allow repeating
            header, cookie and URL segment defaults.
        encoding: Fallback encoding of response content.
        max_retries: Extra attempts after a connection failure.
        follow_redirects: Follow HTTP redirects.
        interceptors: Interceptors applied to every request.
        debug: Enable debug logging.
    """

    model_config = ConfigDict(frozen=True, arbitrary_types_allowed=True)

    base_url: Optional[str] = None
    timeout: float = DEFAULT_TIMEOUT
    user_agent: str = Field(default_factory=user_agent_value)
    throw_on_any_error: bool = False
    throw_on_deserialization_error: bool = False
    fail_on_deserialization_error: bool = True
    error_when_unsuccessful_status_code: bool = True
    allow_multiple_default_parameters_with_same_name: bool = False
    encoding: str = DEFAULT_ENCODING
    max_retries: int = Field(default=0, ge=0)
    follow_redirects: bool = True
    interceptors: list[Interceptor] = Field(default_factory=list)
    debug: bool = False

    @field_validator("base_url")
    @classmethod
    def _validate_base_url(cls, value: Optional[str]) -> Optional[str]:
        if value is None:
            return None
        return ensure_valid_base_url(value)

    @field_validator("timeout")
    @classmethod
    def _validate_timeout(cls, value: float) -> float:
        if value <= 0:
            raise ValueError("timeout must be positive")
        return value

    @classmethod
    def from_env(cls, **overrides) -> "RestClientOptions":
        """Options with the base URL and timeout read from the environment.

        Explicit keyword arguments win over environment variables.
        """
        values: dict = {}
        base_url = os.getenv(ENV_BASE_URL)
        if base_url:
            values["base_url"] = base_url
        timeout = os.getenv(ENV_TIMEOUT)
        if timeout:
            values["timeout"] = float(timeout)
        values.update(overrides)
        return cls(**values)
