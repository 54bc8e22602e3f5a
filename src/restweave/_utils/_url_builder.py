"""Assembly of the final request URI from a base URL, a resource template and
request parameters."""

import re
from datetime import date, datetime, time
from enum import Enum
from typing import Any, Callable, Iterable, Optional, Sequence
from urllib.parse import urlsplit

from ..models.errors import InvalidUrlError
from ..models.parameters import Parameter
from ._strings import url_encode

_PLACEHOLDER = re.compile(r"\{([^{}]+)\}")
_HTTP_SCHEMES = ("http", "https")


def is_absolute_url(url: str) -> bool:
    return "://" in url.split("?", 1)[0]


def ensure_valid_base_url(url: str) -> str:
    """Validate an absolute http(s) URL, possibly containing placeholders.

    Raises:
        InvalidUrlError: If the URL is not absolute or uses another scheme.
    """
    if not url or any(c.isspace() for c in url):
        raise InvalidUrlError(url)
    parts = urlsplit(url)
    if parts.scheme.lower() not in _HTTP_SCHEMES or not parts.netloc:
        raise InvalidUrlError(url)
    return url


def ensure_valid_resource(resource: str) -> str:
    if is_absolute_url(resource):
        return ensure_valid_base_url(resource)
    if any(c in resource for c in "\r\n"):
        raise InvalidUrlError(resource, "resource cannot contain line breaks")
    return resource


def format_parameter_value(value: Any) -> str:
    """Render a parameter value as text.

    Booleans render as `True`/`False`, enums as their value and dates in
    ISO 8601. Everything else uses `str()`.
    """
    if isinstance(value, str):
        return value
    if isinstance(value, Enum):
        return format_parameter_value(value.value)
    if isinstance(value, (datetime, date, time)):
        return value.isoformat()
    if isinstance(value, (bytes, bytearray)):
        return bytes(value).decode("utf-8")
    return str(value)


def merge_base_url_and_resource(base_url: Optional[str], resource: str) -> str:
    """Join base URL and resource with exactly one slash between them."""
    if not resource:
        if not base_url:
            raise InvalidUrlError(resource, "no base URL and no resource")
        return base_url

    if is_absolute_url(resource):
        return resource

    if not base_url:
        raise InvalidUrlError(resource, "a relative resource requires a base URL")

    base_path, has_query, base_query = base_url.partition("?")
    merged = f"{base_path.rstrip('/')}/{resource.lstrip('/')}"
    if has_query and base_query:
        merged = _append_query(merged, base_query)
    return merged


def has_placeholder(template: str, name: str) -> bool:
    """Whether `template` contains `{name}`, compared case-insensitively."""
    folded = name.casefold()
    return any(
        match.group(1).casefold() == folded for match in _PLACEHOLDER.finditer(template)
    )


def replace_url_segments(
    template: str, find_segment: Callable[[str], Optional[Parameter]]
) -> str:
    """Resolve `{name}` placeholders.

    Values are percent-encoded unless the parameter disables encoding. A
    `None` value resolves to an empty string and `/{name}/` collapses to `/`.
    Placeholders without a matching segment are left as they are.
    """

    def collapse_empty(match: re.Match[str]) -> str:
        parameter = find_segment(match.group(1))
        if parameter is not None and parameter.value is None:
            return ""
        return match.group(0)

    template = re.sub(r"/\{([^{}]+)\}(?=/)", collapse_empty, template)

    def substitute(match: re.Match[str]) -> str:
        parameter = find_segment(match.group(1))
        if parameter is None:
            return match.group(0)
        if parameter.value is None:
            return ""
        value = format_parameter_value(parameter.value)
        return url_encode(value) if parameter.encode else value

    return _PLACEHOLDER.sub(substitute, template)


def encode_query_parameter(parameter: Parameter) -> str:
    name = parameter.name or ""
    if parameter.value is None:
        return url_encode(name) if parameter.encode else name

    value = format_parameter_value(parameter.value)
    if not parameter.encode:
        return f"{name}={value}"
    return f"{url_encode(name)}={url_encode(value)}"


def add_query_string(url: str, parameters: Iterable[Parameter]) -> str:
    query = "&".join(encode_query_parameter(p) for p in parameters)
    if not query:
        return url

    url, has_fragment, fragment = url.partition("#")
    url = _append_query(url, query)
    return f"{url}#{fragment}" if has_fragment else url


def build_uri(
    base_url: Optional[str],
    resource: str,
    url_segments: Sequence[Parameter],
    query_parameters: Sequence[Parameter],
) -> str:
    """Build the final request URI.

    Args:
        base_url: Client base URL, may be None when the resource is absolute.
        resource: Resource template.
        url_segments: URL segment parameters, highest priority first.
        query_parameters: Query parameters in the order they are appended.

    Returns:
        str: The absolute request URI.
    """

    def find_segment(name: str) -> Optional[Parameter]:
        return next((p for p in url_segments if p.matches_name(name)), None)

    base = replace_url_segments(base_url, find_segment) if base_url else base_url
    merged = merge_base_url_and_resource(base, replace_url_segments(resource, find_segment))
    return add_query_string(merged, query_parameters)


def _append_query(url: str, query: str) -> str:
    if "?" not in url:
        return f"{url}?{query}"
    if url.endswith(("?", "&")):
        return f"{url}{query}"
    return f"{url}&{query}"
