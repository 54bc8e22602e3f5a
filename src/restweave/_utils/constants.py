# Environment variables
ENV_BASE_URL = "RESTWEAVE_BASE_URL"
ENV_TIMEOUT = "RESTWEAVE_TIMEOUT"

# Headers
HEADER_ACCEPT = "Accept"
HEADER_CONTENT_TYPE = "Content-Type"
HEADER_COOKIE = "Cookie"
HEADER_USER_AGENT = "User-Agent"

# Defaults
DEFAULT_TIMEOUT = 100.0
DEFAULT_ENCODING = "utf-8"
