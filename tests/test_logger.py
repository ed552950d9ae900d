import logging
from logging.handlers import RotatingFileHandler

import pytest

from app.utils.logger import ROOT_LOGGER, configure_logging, get_logger, resolve_level


@pytest.fixture
def log_env(monkeypatch, tmp_path):
    monkeypatch.setenv("LOG_DIR", str(tmp_path))
    for var in ("ENV", "LOG_LEVEL", "LOG_TO_FILE"):
        monkeypatch.delenv(var, raising=False)
    yield monkeypatch
    monkeypatch.undo()
    configure_logging(force=True)


def _file_handlers(root):
    return [h for h in root.handlers if isinstance(h, RotatingFileHandler)]


def test_child_logger_hangs_from_root():
    logger = get_logger("SaleService")

    assert logger.name == f"{ROOT_LOGGER}.SaleService"
    assert logger.parent is logging.getLogger(ROOT_LOGGER)


def test_get_logger_does_not_duplicate_handlers():
    get_logger("A")
    count = len(logging.getLogger(ROOT_LOGGER).handlers)
    get_logger("B")

    assert len(logging.getLogger(ROOT_LOGGER).handlers) == count


def test_dev_writes_rotating_file_in_log_dir(log_env, tmp_path):
    root = configure_logging(force=True)

    assert root.level == logging.INFO
    files = _file_handlers(root)
    assert len(files) == 1
    assert files[0].baseFilename == str(tmp_path / "ledger.log")
    assert files[0].maxBytes == 5 * 1024 * 1024


def test_prod_is_quieter_and_can_skip_file(log_env):
    log_env.setenv("ENV", "production")
    log_env.setenv("LOG_TO_FILE", "false")

    root = configure_logging(force=True)

    assert root.level == logging.WARNING
    assert _file_handlers(root) == []
    assert "%(name)s" not in root.handlers[0].formatter._fmt


@pytest.mark.parametrize(
    "value, env, expected",
    [
        ("debug", "prod", logging.DEBUG),
        (" ERROR ", "dev", logging.ERROR),
        ("verbose", "dev", logging.INFO),
        ("", "prod", logging.WARNING),
    ],
)
def test_resolve_level(monkeypatch, value, env, expected):
    monkeypatch.setenv("LOG_LEVEL", value)
    assert resolve_level(env) == expected
