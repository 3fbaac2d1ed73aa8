from .config_validators import normalize_level_name, to_lowercase

__all__ = ["normalize_level_name", "to_lowercase"]
