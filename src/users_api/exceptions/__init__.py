
# users_api/
# │
# ├── exceptions/
# │   ├── __init__.py
# │   └── base.py                    # LoggingError, LoggingInitError

from .base import LoggingError, LoggingInitError

__all__ = ["LoggingError", "LoggingInitError"]
