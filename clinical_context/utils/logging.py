"""
Logging configuration for patient context assembly.
"""

import logging
import os
import sys
import uuid
from enum import Enum
from pathlib import Path
from typing import Any, Optional


ROOT_LOGGER_NAME = "clinical_context"


class AssemblyStage(str, Enum):
    """Stage boundaries at which assembly emits log events."""

    ASSEMBLY_START = "assembly_start"
    FETCH_START = "fetch_start"
    FETCH_END = "fetch_end"
    ESTIMATE = "estimate"
    OPTIMIZER_STAGE = "optimizer_stage"
    OVER_BUDGET = "over_budget"
    COMPLETE = "complete"
    NOT_FOUND = "not_found"
    FAILED = "failed"


def setup_logging(
    level: str = None,
    log_file: str = None,
) -> logging.Logger:
    """
    Set up logging for the application.

    Args:
        level: Log level (DEBUG, INFO, WARNING, ERROR). Defaults to env var or INFO.
        log_file: Optional file path to write logs to.

    Returns:
        Configured logger instance
    """
    level = level or os.getenv("LOG_LEVEL", "INFO")
    level_num = getattr(logging, level.upper(), logging.INFO)

    logger = logging.getLogger(ROOT_LOGGER_NAME)
    logger.setLevel(level_num)
    logger.handlers = []

    formatter = logging.Formatter(
        "%(asctime)s | %(levelname)-8s | %(name)s:%(funcName)s:%(lineno)d | %(message)s",
        datefmt="%Y-%m-%d %H:%M:%S",
    )

    console_handler = logging.StreamHandler(sys.stdout)
    console_handler.setLevel(level_num)
    console_handler.setFormatter(formatter)
    logger.addHandler(console_handler)

    if log_file:
        log_path = Path(log_file)
        log_path.parent.mkdir(parents=True, exist_ok=True)

        file_handler = logging.FileHandler(log_path)
        file_handler.setLevel(level_num)
        file_handler.setFormatter(formatter)
        logger.addHandler(file_handler)

    return logger


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger instance.

    Args:
        name: Optional name suffix for the logger

    Returns:
        Logger instance
    """
    if name:
        return logging.getLogger(f"{ROOT_LOGGER_NAME}.{name}")
    return logging.getLogger(ROOT_LOGGER_NAME)


class AssemblyLogger(logging.LoggerAdapter):
    """
    Logger adapter keyed by a single assembly.

    Every record carries assembly_id, patient_id and purpose as attributes
    and the message is prefixed with the assembly id, so all events of one
    request can be grepped together.
    """

    def __init__(
        self,
        logger: logging.Logger,
        patient_id: str,
        purpose: Optional[str] = None,
        assembly_id: Optional[str] = None,
    ):
        super().__init__(
            logger,
            {
                "assembly_id": assembly_id or uuid.uuid4().hex[:12],
                "patient_id": patient_id,
                "purpose": purpose or "full",
            },
        )

    @property
    def assembly_id(self) -> str:
        return self.extra["assembly_id"]

    def process(self, msg: Any, kwargs: dict) -> tuple[Any, dict]:
        extra = dict(self.extra)
        extra.update(kwargs.get("extra") or {})
        kwargs["extra"] = extra
        return f"[assembly={self.extra['assembly_id']}] {msg}", kwargs

    def stage(self, stage: AssemblyStage, level: int = logging.INFO, **detail: Any) -> None:
        """Emit one structured stage-boundary event."""
        if not self.isEnabledFor(level):
            return
        fields = " ".join(f"{key}={value}" for key, value in detail.items())
        self.log(
            level,
            f"stage={stage.value} {fields}".rstrip(),
            extra={"stage": stage.value, "detail": detail},
        )
