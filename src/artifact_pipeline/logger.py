import logging
import sys
import traceback
from typing import TYPE_CHECKING

from colorlog import ColoredFormatter

if TYPE_CHECKING:
    from artifact_pipeline.config import PipelineSettings

LOGGER_NAME = "artifact_pipeline"


def setup_logger(debug_mode=False):
    logger = logging.getLogger(LOGGER_NAME)
    logger.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Create console handler
    handler = logging.StreamHandler(sys.stdout)
    handler.setLevel(logging.DEBUG if debug_mode else logging.INFO)

    # Create colored formatter
    formatter = ColoredFormatter(
        "%(log_color)s[%(levelname)s] %(message)s",
        log_colors={
            "DEBUG":    "cyan",
            "INFO":     "green",
            "WARNING":  "yellow",
            "ERROR":    "red",
            "CRITICAL": "red,bg_white",
        }
    )
    handler.setFormatter(formatter)

    if not logger.handlers:
        logger.addHandler(handler)
    else:
        for existing in logger.handlers:
            existing.setLevel(handler.level)

    return logger


def print_stack_trace():
    """
    Log the current exception's stack trace when DEBUG mode is active.
    """
    if DEBUG_MODE:
        logger.error(traceback.format_exc())


# Logger defaults to INFO unless reconfigured later.
DEBUG_MODE = False
logger = setup_logger(debug_mode=DEBUG_MODE)


def configure_logger_from_settings(settings: "PipelineSettings"):
    global logger, DEBUG_MODE
    DEBUG_MODE = bool(settings.DEBUG)
    logger = setup_logger(debug_mode=DEBUG_MODE)
    if DEBUG_MODE:
        logger.debug("Debug mode is active.")
    return logger
