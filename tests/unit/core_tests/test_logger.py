"""
Unit tests for logger setup.
"""

import logging

from artifact_pipeline import logger as pipeline_logger
from artifact_pipeline.config import PipelineSettings


class TestLogger:
    """Tests for setup_logger() and configure_logger_from_settings()."""

    def test_setup_is_idempotent(self):
        """Repeated setup should not stack handlers."""
        first = pipeline_logger.setup_logger()
        count = len(first.handlers)

        second = pipeline_logger.setup_logger()

        assert second is first
        assert len(second.handlers) == count

    def test_configure_debug(self):
        """DEBUG=True switches the pipeline logger to DEBUG."""
        log = pipeline_logger.configure_logger_from_settings(PipelineSettings(_env_file=None, DEBUG=True))
        try:
            assert log.level == logging.DEBUG
            assert pipeline_logger.DEBUG_MODE is True
        finally:
            pipeline_logger.configure_logger_from_settings(PipelineSettings(_env_file=None))

        assert log.level == logging.INFO
