"""Tests for the reqseal command line tool."""

import json
import logging

import pytest
from typer.testing import CliRunner

from conftest import ASCII_MATRIX
from reqseal.cli import app

runner = CliRunner()

T = "1700000000000"


@pytest.fixture(autouse=True)
def clean_env(monkeypatch):
    for name in ("REQSEAL_MATRIX", "REQSEAL_MATRIX_FILE", "REQSEAL_SEPARATOR", "REQSEAL_REDIS_URL", "REQSEAL_LOG_LEVEL"):
        monkeypatch.delenv(name, raising=False)


@pytest.fixture
def matrix_file(tmp_path):
    path = tmp_path / "matrix.json"
    path.write_text(json.dumps(ASCII_MATRIX), encoding="utf-8")
    return str(path)


def _generate(matrix_file, *extra):
    result = runner.invoke(app, ["--matrix", matrix_file, *extra, "generate", "--timestamp", T])
    assert result.exit_code == 0, result.output
    return result.output.strip()


def test_generate_then_decode(matrix_file):
    key = _generate(matrix_file)
    result = runner.invoke(app, ["--matrix", matrix_file, "decode", key])
    assert result.exit_code == 0, result.output
    assert result.output.strip() == T


def test_generate_count(matrix_file):
    result = runner.invoke(app, ["--matrix", matrix_file, "generate", "-n", "3"])
    assert result.exit_code == 0, result.output
    assert len(result.output.strip().splitlines()) == 3


def test_custom_separator(matrix_file):
    key = _generate(matrix_file, "--separator", "~")
    assert "~" in key
    result = runner.invoke(app, ["--matrix", matrix_file, "--separator", "~", "decode", key])
    assert result.output.strip() == T


def test_decode_invalid(matrix_file):
    result = runner.invoke(app, ["--matrix", matrix_file, "decode", "garbage"])
    assert result.exit_code == 1


def test_verify_window(matrix_file):
    key = _generate(matrix_file)
    ok = runner.invoke(app, ["--matrix", matrix_file, "verify", key, "--now", str(int(T) + 1000)])
    assert ok.exit_code == 0, ok.output
    assert "Valid" in ok.output

    late = runner.invoke(
        app, ["--matrix", matrix_file, "verify", key, "--now", str(int(T) + 1000), "--skew-ms", "999"]
    )
    assert late.exit_code == 1
    assert "expired" in late.output


def test_check_table_ok(matrix_file):
    result = runner.invoke(app, ["--matrix", matrix_file, "check-table"])
    assert result.exit_code == 0, result.output
    assert "Table OK" in result.output


def test_check_table_warns_on_duplicates(tmp_path):
    matrix = {k: list(v) for k, v in ASCII_MATRIX.items()}
    matrix["5"][0] = "/"
    path = tmp_path / "dup.json"
    path.write_text(json.dumps(matrix), encoding="utf-8")

    result = runner.invoke(app, ["--matrix", str(path), "check-table"])
    assert result.exit_code == 1
    assert "more than once" in result.output


def test_check_table_warns_on_separator_clash(matrix_file):
    result = runner.invoke(app, ["--matrix", matrix_file, "--separator", "+", "check-table"])
    assert result.exit_code == 1
    assert "separator" in result.output


def test_benchmark(matrix_file):
    result = runner.invoke(app, ["--matrix", matrix_file, "benchmark", "-i", "50"])
    assert result.exit_code == 0, result.output
    assert "ops/sec" in result.output


def test_config_file(tmp_path):
    path = tmp_path / "reqseal.json"
    path.write_text(json.dumps({"matrix": ASCII_MATRIX, "separator": "|"}), encoding="utf-8")
    result = runner.invoke(app, ["--config", str(path), "generate"])
    assert result.exit_code == 0, result.output
    assert "|" in result.output


def test_missing_table():
    result = runner.invoke(app, ["generate"])
    assert result.exit_code == 2


@pytest.fixture
def reqseal_logger():
    logger = logging.getLogger("reqseal")
    level = logger.level
    yield logger
    logger.setLevel(level)


def test_log_level_from_config_file(tmp_path, reqseal_logger):
    path = tmp_path / "reqseal.json"
    path.write_text(json.dumps({"matrix": ASCII_MATRIX, "log_level": "DEBUG"}), encoding="utf-8")
    result = runner.invoke(app, ["--config", str(path), "generate"])
    assert result.exit_code == 0, result.output
    assert reqseal_logger.level == logging.DEBUG


def test_log_level_option_overrides_config(tmp_path, reqseal_logger):
    path = tmp_path / "reqseal.json"
    path.write_text(json.dumps({"matrix": ASCII_MATRIX, "log_level": "DEBUG"}), encoding="utf-8")
    result = runner.invoke(app, ["--config", str(path), "--log-level", "error", "generate"])
    assert result.exit_code == 0, result.output
    assert reqseal_logger.level == logging.ERROR


def test_log_level_from_environment(matrix_file, monkeypatch, reqseal_logger):
    monkeypatch.setenv("REQSEAL_LOG_LEVEL", "WARNING")
    result = runner.invoke(app, ["--matrix", matrix_file, "generate"])
    assert result.exit_code == 0, result.output
    assert reqseal_logger.level == logging.WARNING


def test_unknown_log_level(matrix_file, reqseal_logger):
    result = runner.invoke(app, ["--matrix", matrix_file, "--log-level", "chatty", "generate"])
    assert result.exit_code == 2
