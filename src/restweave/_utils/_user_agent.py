from importlib.metadata import PackageNotFoundError, version

USER_AGENT_PRODUCT = "RestWeave.Python"


def package_version() -> str:
    try:
        return version("restweave")
    except PackageNotFoundError:
        return "0.0.0"


def user_agent_value() -> str:
    return f"{USER_AGENT_PRODUCT}/{package_version()}"
