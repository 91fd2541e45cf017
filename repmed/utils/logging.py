from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional


def setup_logger(
    name: str = "repmed",
    logs_dir: Optional[str] = None,
    level: int = logging.INFO,
    filename: str = "repmed.log",
) -> logging.Logger:
    logger = logging.getLogger(name)
    logger.setLevel(level)
    fmt = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")
    if not any(type(h) is logging.StreamHandler for h in logger.handlers):
        ch = logging.StreamHandler()
        ch.setLevel(level)
        ch.setFormatter(fmt)
        logger.addHandler(ch)
    if logs_dir:
        Path(logs_dir).mkdir(parents=True, exist_ok=True)
        path = str((Path(logs_dir) / filename).resolve())
        # one file handler per log file
        if not any(getattr(h, "baseFilename", None) == path for h in logger.handlers):
            fh = logging.FileHandler(path)
            fh.setLevel(level)
            fh.setFormatter(fmt)
            logger.addHandler(fh)
    for h in logger.handlers:
        h.setLevel(level)
    return logger
