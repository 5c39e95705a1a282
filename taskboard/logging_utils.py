import logging
import sys
from typing import Any


def setup_logging(level: str = "INFO") -> None:
    """Configure one stdout handler on the root logger.

    Format: time level logger message k=v ...
    An already configured root (uvicorn, pytest's caplog) only gets its level aligned.
    """
    root = logging.getLogger()
    if root.handlers:
        root.setLevel(level.upper())
        return

    handler = logging.StreamHandler(stream=sys.stdout)
    handler.setFormatter(
        logging.Formatter(
            fmt="%(asctime)s %(levelname)s %(name)s %(message)s",
            datefmt="%Y-%m-%dT%H:%M:%S",
        )
    )
    root.addHandler(handler)
    root.setLevel(level.upper())


def kv(**fields: Any) -> str:
    """Render keyword fields as ``k=v`` pairs for log lines (None values skipped)."""
    return " ".join(f"{key}={value}" for key, value in fields.items() if value is not None)
