"""Tests for the loguru setup."""

import logging
import sys

import pytest
from loguru import logger

from src.catalog.api.utils.app_startup import STORE_MODULES, configure_logging, level_filter
from src.catalog.runtime.config.config_data import ConfigData, LoggingConfig, StoreConfig
from src.catalog.runtime.context import with_context


@pytest.fixture
def log_file(tmp_path):
    path = tmp_path / "logs" / "catalog.log"
    config = ConfigData(
        logging=LoggingConfig(level="INFO", store_level="WARNING", format="plain", file=str(path)),
        store=StoreConfig(path=str(tmp_path / "products.yml")),
    )
    with with_context(config):
        configure_logging()
        yield path
    logger.remove()
    logger.add(sys.stderr)


def read(path):
    logger.complete()
    return path.read_text(encoding="utf-8")


def test_level_filter():
    levels = level_filter(LoggingConfig(level="info", store_level="debug"))

    assert levels[""] == "INFO"
    assert all(levels[module] == "DEBUG" for module in STORE_MODULES)


def test_store_logs_follow_store_level(log_file, repository, make_product):
    repository.save(make_product())
    logger.info("catalog started")

    content = read(log_file)

    assert "catalog started" in content
    assert "Saved product" not in content


def test_stdlib_logging_is_intercepted(log_file):
    logging.getLogger("catalog.test").warning("from stdlib")

    assert "from stdlib" in read(log_file)


def test_uvicorn_access_lines_are_dropped(log_file):
    logging.getLogger("uvicorn.access").critical("GET /products 200")

    assert "GET /products 200" not in read(log_file)
