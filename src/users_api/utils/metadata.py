from importlib import metadata as importlib_metadata

DISTRIBUTION_NAME = "users-api"


def get_project_version(name: str = DISTRIBUTION_NAME, default: str = "unknown") -> str:
    """
    Version of the installed distribution, or `default` when running from a
    source checkout that was never installed.
    """
    try:
        return importlib_metadata.version(name)
    except importlib_metadata.PackageNotFoundError:
        return default


__all__ = ["DISTRIBUTION_NAME", "get_project_version"]
