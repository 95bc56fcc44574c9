"""Tests for logging utilities."""

import logging

import pytest

from clinical_context.utils.logging import (
    ROOT_LOGGER_NAME,
    AssemblyLogger,
    AssemblyStage,
    get_logger,
    setup_logging,
)


@pytest.fixture
def restore_root_logger():
    """Undo setup_logging changes after a test."""
    logger = logging.getLogger(ROOT_LOGGER_NAME)
    level, handlers = logger.level, list(logger.handlers)
    yield logger
    for handler in logger.handlers:
        handler.close()
    logger.setLevel(level)
    logger.handlers = handlers


class TestSetupLogging:
    """Tests for setup_logging and get_logger."""

    def test_level_and_file(self, tmp_path, restore_root_logger):
        """Test configuring a level and a log file."""
        log_file = tmp_path / "logs" / "context.log"

        logger = setup_logging(level="debug", log_file=str(log_file))
        logger.debug("hello")

        assert logger.level == logging.DEBUG
        assert len(logger.handlers) == 2
        assert log_file.exists()

    def test_env_level(self, monkeypatch, restore_root_logger):
        """Test the LOG_LEVEL environment variable."""
        monkeypatch.setenv("LOG_LEVEL", "WARNING")
        assert setup_logging().level == logging.WARNING

    def test_get_logger_names(self):
        """Test logger naming under the package root."""
        assert get_logger().name == "clinical_context"
        assert get_logger("assembler").name == "clinical_context.assembler"


class TestAssemblyLogger:
    """Tests for AssemblyLogger."""

    def test_prefix_and_extra(self, caplog):
        """Test that messages carry the assembly id and context attributes."""
        log = AssemblyLogger(get_logger("test"), patient_id="p1", purpose="billing", assembly_id="abc123")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log.info("assembling")

        record = caplog.records[-1]
        assert record.getMessage() == "[assembly=abc123] assembling"
        assert record.patient_id == "p1"
        assert record.purpose == "billing"

    def test_generated_id(self):
        """Test that each logger gets its own id and the full-context label."""
        first = AssemblyLogger(get_logger("test"), patient_id="p1")
        second = AssemblyLogger(get_logger("test"), patient_id="p1")

        assert first.assembly_id != second.assembly_id
        assert first.extra["purpose"] == "full"

    def test_stage_event(self, caplog):
        """Test the stage event format."""
        log = AssemblyLogger(get_logger("test"), patient_id="p1", assembly_id="abc123")

        with caplog.at_level(logging.DEBUG, logger=ROOT_LOGGER_NAME):
            log.stage(AssemblyStage.FETCH_END, level=logging.DEBUG, section="diagnoses", count=2)

        record = caplog.records[-1]
        assert record.getMessage() == "[assembly=abc123] stage=fetch_end section=diagnoses count=2"
        assert record.stage == "fetch_end"
        assert record.detail == {"section": "diagnoses", "count": 2}

    def test_stage_respects_level(self, caplog):
        """Test that disabled levels emit nothing."""
        log = AssemblyLogger(get_logger("test"), patient_id="p1")

        with caplog.at_level(logging.INFO, logger=ROOT_LOGGER_NAME):
            log.stage(AssemblyStage.FETCH_START, level=logging.DEBUG, section="alerts")

        assert not [r for r in caplog.records if getattr(r, "stage", None) == "fetch_start"]
