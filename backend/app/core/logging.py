from __future__ import annotations

import logging
import logging.handlers
from pathlib import Path

from app.core.config import BACKEND_DIR

LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s %(message)s"
LOG_FILE_NAME = "timetable-engine.log"


def resolve_level(environment: str | None, level: str | None = None) -> int:
    """An explicit level name wins; otherwise production logs INFO and everything else DEBUG."""
    env = (environment or "development").lower().strip()
    default_level = logging.INFO if env == "production" else logging.DEBUG
    if not level:
        return default_level
    resolved = logging.getLevelName(level.upper().strip())
    return resolved if isinstance(resolved, int) else default_level


def setup_logging(*, environment: str, level: str | None = None, log_dir: str | Path | None = None) -> None:
    """Install console logging, plus a rotating file in production.

    Runs once per process; an already configured root logger is left alone.
    """
    root = logging.getLogger()
    if root.handlers:
        return

    resolved_level = resolve_level(environment, level)
    formatter = logging.Formatter(fmt=LOG_FORMAT, datefmt="%Y-%m-%dT%H:%M:%S%z")

    console = logging.StreamHandler()
    console.setFormatter(formatter)
    handlers: list[logging.Handler] = [console]

    if environment.lower().strip() == "production":
        target_dir = Path(log_dir) if log_dir else BACKEND_DIR / "logs"
        target_dir.mkdir(parents=True, exist_ok=True)
        file_handler = logging.handlers.RotatingFileHandler(
            target_dir / LOG_FILE_NAME,
            maxBytes=10 * 1024 * 1024,
            backupCount=5,
            encoding="utf-8",
        )
        file_handler.setFormatter(formatter)
        handlers.append(file_handler)

    for handler in handlers:
        handler.setLevel(resolved_level)
    logging.basicConfig(level=resolved_level, handlers=handlers)

    # SQL echo is noisy at DEBUG.
    logging.getLogger("sqlalchemy.engine").setLevel(logging.WARNING)
    logging.getLogger("uvicorn.access").setLevel(resolved_level)
