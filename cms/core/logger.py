"""Process-wide logging setup.

Modules log through ``logging.getLogger(__name__)`` and pass structured
context with ``extra={"event": ..., ...}``; the formatter appends any
such context to the line.
"""

from __future__ import annotations

import logging
import sys

from cms.core.config import settings

# LogRecord attributes that are not user supplied context
_STANDARD_ATTRS = frozenset(
    {
        "name", "msg", "args", "created", "filename", "funcName",
        "levelname", "levelno", "lineno", "module", "msecs",
        "pathname", "process", "processName", "relativeCreated",
        "stack_info", "exc_info", "exc_text", "thread", "threadName",
        "message", "asctime", "taskName",
    }
)


class ContextFormatter(logging.Formatter):
    def format(self, record: logging.LogRecord) -> str:
        line = super().format(record)
        context = {
            key: value
            for key, value in record.__dict__.items()
            if key not in _STANDARD_ATTRS and not key.startswith("_")
        }
        if not context:
            return line
        rendered = " ".join(f"{key}={value}" for key, value in sorted(context.items()))
        return f"{line} | {rendered}"


def setup_logging(level: str | None = None) -> None:
    """Configure the ``cms`` logger tree once; repeated calls only update the level."""
    resolved = (level or settings.log_level or "info").upper()
    root = logging.getLogger("cms")
    root.setLevel(resolved)

    if any(getattr(h, "_cms_handler", False) for h in root.handlers):
        return

    handler = logging.StreamHandler(sys.stdout)
    handler.setFormatter(
        ContextFormatter("%(asctime)s %(levelname)s [%(name)s] %(message)s")
    )
    handler._cms_handler = True  # type: ignore[attr-defined]
    root.addHandler(handler)
