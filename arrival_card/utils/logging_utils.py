from __future__ import annotations

import logging
from pathlib import Path


def build_logger(log_file: Path | None = None, level: int = logging.INFO) -> logging.Logger:
    logger = logging.getLogger("arrival_card")
    logger.setLevel(level)
    logger.handlers.clear()

    formatter = logging.Formatter("%(asctime)s | %(levelname)s | %(message)s")

    console_handler = logging.StreamHandler()
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file is not None:
        log_file.parent.mkdir(parents=True, exist_ok=True)
        file_handler = logging.FileHandler(log_file, encoding="utf-8")
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def mask_passport(passport_number: str) -> str:
    clean = "".join(ch for ch in passport_number if ch.isalnum())
    if len(clean) <= 3:
        return "*" * len(clean)
    return "*" * (len(clean) - 3) + clean[-3:]
