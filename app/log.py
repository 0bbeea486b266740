"""
Root logging setup.

Every module logs through ``logging.getLogger(__name__)``; this module only
attaches one stdout handler to the root logger when the app starts.

Format: time [level] module.function:line - message
"""
import logging
import sys

_FMT = "%(asctime)s [%(levelname)-5s] %(name)s.%(funcName)s:%(lineno)d - %(message)s"
_DATE_FMT = "%Y-%m-%d %H:%M:%S"

# Marks our handler so uvicorn --reload does not stack duplicates
_APP_HANDLER_MARKER = "_is_app_log_handler"


def setup_logging(level: str = "INFO") -> None:
    """Attach the app handler to the root logger (idempotent)."""
    root = logging.getLogger()
    resolved = logging.getLevelName(level.upper())
    if not isinstance(resolved, int):
        resolved = logging.INFO

    root.setLevel(resolved)
    if any(getattr(h, _APP_HANDLER_MARKER, False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(logging.Formatter(_FMT, datefmt=_DATE_FMT))
    handler.setLevel(resolved)
    setattr(handler, _APP_HANDLER_MARKER, True)
    root.addHandler(handler)
