import os
import ssl
from typing import Any, Optional

import certifi
import truststore

_CA_FILE_VARIABLES = ("SSL_CERT_FILE", "REQUESTS_CA_BUNDLE")


def _env_path(name: str) -> Optional[str]:
    value = os.environ.get(name)
    if not value:
        return None
    return os.path.expanduser(os.path.expandvars(value))


def create_ssl_context() -> ssl.SSLContext:
    """SSL context verifying against the system trust store.

    A CA bundle or directory configured through `SSL_CERT_FILE`,
    `REQUESTS_CA_BUNDLE` or `SSL_CERT_DIR` replaces the system store.
    """
    cafile = next(filter(None, map(_env_path, _CA_FILE_VARIABLES)), None)
    capath = _env_path("SSL_CERT_DIR")
    if cafile or capath:
        return ssl.create_default_context(
            cafile=cafile or certifi.where(), capath=capath
        )
    return truststore.SSLContext(ssl.PROTOCOL_TLS_CLIENT)


def get_httpx_client_kwargs(
    timeout: Optional[float] = None, follow_redirects: bool = True
) -> dict[str, Any]:
    """Keyword arguments for `httpx.AsyncClient`."""
    return {
        "verify": create_ssl_context(),
        "trust_env": True,
        "timeout": timeout,
        "follow_redirects": follow_redirects,
    }
