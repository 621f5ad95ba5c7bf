"""
Tests for settings loading and logging helpers.
"""

import json
import logging
import logging.handlers
import threading

import pytest
from unittest.mock import patch

from pgrag.config import (
    SearchConfig,
    DatabaseConfig,
    get_env_bool,
    get_env_int,
    get_settings,
    settings,
)
from pgrag.logging_config import JSONFormatter, is_silenced, setup_logging, silence_logger


class TestSettings:
    """Tests for environment-driven settings."""

    @patch.dict('os.environ', {}, clear=True)
    def test_defaults(self):
        s = get_settings()
        assert s.database.url is None
        assert s.database.table_name == "rag_records"
        assert s.embedding.dimensions == 1536
        assert s.search.default_k == 4
        assert s.search.distance_metric == "cosine"
        assert s.search.threshold_mode == "max_distance"

    @patch.dict('os.environ', {'RAG_DEFAULT_K': '8', 'RAG_DISTANCE_METRIC': 'euclidean'})
    def test_overrides(self):
        assert settings.search.default_k == 8
        assert settings.search.distance_metric == "euclidean"

    @patch.dict('os.environ', {'RAG_DEFAULT_K': 'four'})
    def test_invalid_int(self):
        with pytest.raises(ValueError):
            get_env_int("RAG_DEFAULT_K", 4)

    @patch.dict('os.environ', {'LOG_JSON': 'yes'})
    def test_env_bool(self):
        assert get_env_bool("LOG_JSON", False) is True
        assert get_env_bool("MISSING_FLAG", False) is False

    def test_invalid_search_config(self):
        with pytest.raises(ValueError):
            SearchConfig(default_k=0, distance_metric="cosine", threshold_mode="max_distance")
        with pytest.raises(ValueError):
            SearchConfig(default_k=4, distance_metric="hamming", threshold_mode="max_distance")
        with pytest.raises(ValueError):
            SearchConfig(default_k=4, distance_metric="cosine", threshold_mode="nearest")

    def test_min_similarity_requires_cosine(self):
        with pytest.raises(ValueError):
            SearchConfig(default_k=4, distance_metric="inner_product", threshold_mode="min_similarity")
        config = SearchConfig(default_k=4, distance_metric="euclidean", threshold_mode="max_distance")
        assert config.distance_metric == "euclidean"

    def test_invalid_table_name(self):
        with pytest.raises(ValueError):
            DatabaseConfig(url=None, connect_timeout=10, table_name="bad-name")


class RecordingHandler(logging.Handler):
    """Keeps emitted records in memory."""

    def __init__(self):
        super().__init__(level=logging.DEBUG)
        self.records = []

    def emit(self, record):
        self.records.append(record)


class TestSilenceLogger:
    """Tests for scoped logger silencing."""

    def setup_method(self):
        """Set up test fixtures."""
        self.handler = RecordingHandler()

    def attach(self, name):
        logger = logging.getLogger(name)
        logger.setLevel(logging.DEBUG)
        logger.addHandler(self.handler)
        return logger

    def teardown_method(self):
        for name in ("pgrag.test.silence", "pgrag.test.silence_threads"):
            logging.getLogger(name).removeHandler(self.handler)

    def messages(self):
        return [r.getMessage() for r in self.handler.records]

    def test_drops_records_below_level(self):
        logger = self.attach("pgrag.test.silence")

        with silence_logger("pgrag.test.silence") as silenced:
            assert silenced is logger
            logger.info("hidden")
            logger.error("shown")
            assert is_silenced("pgrag.test.silence", logging.INFO)
        logger.info("after")

        assert self.messages() == ["shown", "after"]
        assert logger.level == logging.DEBUG

    def test_restores_on_exception(self):
        logger = self.attach("pgrag.test.silence")

        with pytest.raises(RuntimeError):
            with silence_logger(logger, level=logging.CRITICAL):
                raise RuntimeError("boom")

        assert not is_silenced("pgrag.test.silence", logging.DEBUG)
        assert logger.level == logging.DEBUG

    def test_nested_blocks_restore_outer_setting(self):
        with silence_logger("pgrag.test.silence", level=logging.WARNING):
            with silence_logger("pgrag.test.silence", level=logging.CRITICAL):
                assert is_silenced("pgrag.test.silence", logging.ERROR)
            assert not is_silenced("pgrag.test.silence", logging.ERROR)
            assert is_silenced("pgrag.test.silence", logging.INFO)

    def test_other_threads_keep_logging(self):
        logger = self.attach("pgrag.test.silence_threads")
        entered = threading.Event()
        release = threading.Event()

        def worker():
            with silence_logger(logger):
                logger.debug("from silenced thread")
                entered.set()
                release.wait(5)

        thread = threading.Thread(target=worker)
        thread.start()
        assert entered.wait(5)
        logger.debug("from main thread")
        release.set()
        thread.join(5)

        assert self.messages() == ["from main thread"]
        assert logger.level == logging.DEBUG


class TestJSONFormatter:
    """Tests for JSON log lines."""

    def test_includes_extra_fields(self):
        record = logging.LogRecord("pgrag.rag.search", logging.INFO, __file__, 1, "found %d", (3,), None)
        record.k = 4
        record.score_threshold = 0.5

        entry = json.loads(JSONFormatter().format(record))

        assert entry["msg"] == "found 3"
        assert entry["level"] == "INFO"
        assert entry["k"] == 4
        assert entry["score_threshold"] == 0.5
        assert "result_count" not in entry


class TestSetupLogging:
    """Tests for setup_logging()."""

    def test_file_handler(self, tmp_path):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            log_file = tmp_path / "logs" / "pgrag.log"
            setup_logging(level="DEBUG", json_output=True, log_file=str(log_file))

            assert root.level == logging.DEBUG
            assert any(isinstance(h, logging.handlers.RotatingFileHandler) for h in root.handlers)
            assert log_file.exists()
        finally:
            for handler in root.handlers:
                handler.close()
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)

    @patch.dict('os.environ', {'LOG_LEVEL': 'WARNING', 'LOG_JSON': 'true'})
    def test_defaults_from_settings(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            setup_logging()

            assert root.level == logging.WARNING
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JSONFormatter)
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
