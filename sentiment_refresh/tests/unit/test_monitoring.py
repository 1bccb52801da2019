import logging

from sentiment_refresh.monitoring.metrics import (
    ITEMS_PROCESSED,
    RUNS_FINISHED,
    PrometheusExporter,
)
from sentiment_refresh.utils.logging_utils import setup_logging


def test_exporter_counts_items_and_runs():
    exporter = PrometheusExporter(port=0)
    items = ITEMS_PROCESSED.labels(subreddit="metrics-test", kind="post")
    runs = RUNS_FINISHED.labels(status="completed")
    items_before, runs_before = items._value.get(), runs._value.get()

    exporter.record_items_processed("metrics-test", "post", 3)
    exporter.record_run("completed")
    with exporter.time_request():
        pass

    assert items._value.get() == items_before + 3
    assert runs._value.get() == runs_before + 1


def test_setup_logging_falls_back_when_file_missing(tmp_path, mocker):
    basic_config = mocker.patch("logging.basicConfig")
    setup_logging(tmp_path / "missing.yaml")
    basic_config.assert_called_once_with(level=logging.INFO)


def test_setup_logging_applies_yaml(tmp_path, mocker):
    dict_config = mocker.patch("logging.config.dictConfig")
    config = tmp_path / "logging.yaml"
    config.write_text("version: 1\ndisable_existing_loggers: false\n")

    setup_logging(config)

    dict_config.assert_called_once_with({"version": 1, "disable_existing_loggers": False})


def test_setup_logging_falls_back_on_bad_yaml(tmp_path, mocker):
    mocker.patch("logging.config.dictConfig", side_effect=ValueError("bad handler"))
    basic_config = mocker.patch("logging.basicConfig")
    config = tmp_path / "logging.yaml"
    config.write_text("version: 1\n")

    setup_logging(config)

    basic_config.assert_called_once_with(level=logging.INFO)
