LEVEL_ALIASES = {
    "warning": "warn",
    "critical": "error",
    "fatal": "error",
    "trace": "debug",
}


def to_lowercase(value: str | None) -> str | None:
    """
    Converts a string to lowercase if it's not None.
    """
    if value is None:
        return None
    return value.strip().lower()


def normalize_level_name(value: str | None) -> str | None:
    """
    Lowercase a log level name and fold stdlib spellings onto ours
    ("WARNING" -> "warn", "CRITICAL" -> "error").
    """
    value = to_lowercase(value)
    if value is None:
        return None
    return LEVEL_ALIASES.get(value, value)
