from ._logs import setup_logging
from ._strings import get_name_variants, to_camel_case, to_pascal_case, url_encode
from ._sync import iterate_sync, run_sync
from ._url_builder import build_uri, format_parameter_value
from ._user_agent import user_agent_value

__all__ = [
    "setup_logging",
    "get_name_variants",
    "to_camel_case",
    "to_pascal_case",
    "url_encode",
    "iterate_sync",
    "run_sync",
    "build_uri",
    "format_parameter_value",
    "user_agent_value",
]
