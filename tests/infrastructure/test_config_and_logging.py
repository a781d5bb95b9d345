import json
import logging

from wms.domain.model.store import MarketplaceProvider
from wms.infrastructure.config import Settings
from wms.infrastructure.logging_setup import JsonFormatter, setup_logging


class TestSettings:

    def test_defaults(self, monkeypatch):
        monkeypatch.delenv("WMS_DATABASE_URL", raising=False)
        settings = Settings(_env_file=None)
        assert settings.DATABASE_URL == "sqlite:///data/wms.db"
        assert settings.PROVIDER_BATCH_SIZES[MarketplaceProvider.IKAS] == 100
        assert settings.MAX_SYNC_ATTEMPTS == 5

    def test_environment_overrides(self, monkeypatch):
        monkeypatch.setenv("WMS_QUEUE_FETCH_LIMIT", "25")
        monkeypatch.setenv("WMS_SHELF_SELECTION_STRATEGY", "fifo")
        settings = Settings(_env_file=None)
        assert (settings.QUEUE_FETCH_LIMIT, settings.SHELF_SELECTION_STRATEGY) == (25, "fifo")


class TestLogging:

    def test_json_formatter(self):
        record = logging.LogRecord("wms.test", logging.WARNING, __file__, 1, "queued %d rows", (3,), None)
        payload = json.loads(JsonFormatter().format(record))
        assert payload["level"] == "WARNING"
        assert payload["logger"] == "wms.test"
        assert payload["message"] == "queued 3 rows"

    def test_setup_logging_installs_one_handler(self):
        root = logging.getLogger()
        saved_handlers, saved_level = root.handlers[:], root.level
        try:
            settings = Settings(_env_file=None, LOG_JSON=True, LOG_LEVEL="debug")
            setup_logging(settings)
            setup_logging(settings)
            assert len(root.handlers) == 1
            assert isinstance(root.handlers[0].formatter, JsonFormatter)
            assert root.level == logging.DEBUG
        finally:
            root.handlers[:] = saved_handlers
            root.setLevel(saved_level)
