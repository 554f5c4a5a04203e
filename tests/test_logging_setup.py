import json

import pytest
import structlog

from greeter.logging_setup import configure_logging


@pytest.fixture(autouse=True)
def reset_structlog():
    yield
    structlog.reset_defaults()


def test_json_logs_are_rendered_as_json(capsys):
    configure_logging("info", json_logs=True)
    structlog.get_logger("test").info("connection_opened", peer="127.0.0.1")

    line = capsys.readouterr().out.strip().splitlines()[-1]
    record = json.loads(line)
    assert record["event"] == "connection_opened"
    assert record["level"] == "info"
    assert record["peer"] == "127.0.0.1"


def test_level_filters_lower_records(capsys):
    configure_logging("WARNING", json_logs=True)
    structlog.get_logger("test").info("hidden")
    assert capsys.readouterr().out == ""


def test_unknown_level_falls_back_to_info(capsys):
    configure_logging("chatty")
    structlog.get_logger("test").info("shown")
    assert "shown" in capsys.readouterr().out
