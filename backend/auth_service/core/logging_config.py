"""
Logging setup.

WHY: Every module logs through `logging.getLogger(__name__)`. This installs
one stream handler on the root logger at the configured level so those
records (including the `extra` context) reach stdout of the host runtime.
"""

import logging

from auth_service.core.config import Settings


LOG_FORMAT = "%(asctime)s %(levelname)s [%(name)s] %(message)s"


def configure_logging(settings: Settings) -> None:
    """
    Configure root logging once per process.

    Calling it again (e.g. one app per test) only updates the level.

    Args:
        settings: Application settings (LOG_LEVEL, DEBUG)
    """
    level = logging.DEBUG if settings.DEBUG else getattr(logging, settings.LOG_LEVEL.upper(), logging.INFO)
    root = logging.getLogger()
    root.setLevel(level)

    if not any(getattr(h, "_auth_service_handler", False) for h in root.handlers):
        handler = logging.StreamHandler()
        handler.setFormatter(logging.Formatter(LOG_FORMAT))
        handler._auth_service_handler = True
        root.addHandler(handler)

    # WHY: passlib logs a noisy warning when probing newer bcrypt builds
    logging.getLogger("passlib").setLevel(logging.ERROR)
