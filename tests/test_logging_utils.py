# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0

"""Unit tests for the logging helpers."""

import logging

import pytest

from diffevolve.utils.logging_utils import TRUNCATION_SUFFIX, SizeLimitedFormatter, get_logger


def _mk_record(msg, *args) -> logging.LogRecord:
    return logging.LogRecord("test", logging.INFO, __file__, 1, msg, args, None)


def test_short_messages_are_untouched():
    formatter = SizeLimitedFormatter("%(message)s", max_msg_sz=32)
    assert formatter.format(_mk_record("best cost %.2f", 1.5)) == "best cost 1.50"


def test_long_messages_are_truncated_and_record_restored():
    formatter = SizeLimitedFormatter("%(levelname)s | %(message)s", max_msg_sz=40)
    record = _mk_record("population %s", "x" * 200)

    formatted = formatter.format(record)

    assert formatted.startswith("INFO | population xxx")
    assert formatted.endswith(TRUNCATION_SUFFIX)
    assert len(formatted) == len("INFO | ") + 40
    # other handlers still see the full message
    assert record.getMessage() == "population " + "x" * 200


def test_max_msg_sz_must_fit_suffix():
    with pytest.raises(ValueError, match="truncation suffix"):
        SizeLimitedFormatter(max_msg_sz=len(TRUNCATION_SUFFIX) - 1)


def test_get_logger_writes_results_log(tmp_path):
    logger = get_logger(run_name="sphere", results_dir=tmp_path)
    logger.info("Generation %d: best cost %.3g.", 3, 0.25)
    for handler in logger.handlers:
        handler.flush()

    content = (tmp_path / "results.log").read_text()
    assert "[sphere]" in content
    assert "INFO" in content
    assert "MainThread" in content
    assert "Generation 3: best cost 0.25." in content

    # the same run reuses the configured logger
    assert get_logger(run_name="sphere", results_dir=tmp_path) is logger
    assert len(logger.handlers) == 2
    assert logger.propagate is False

    for handler in list(logger.handlers):
        handler.close()
        logger.removeHandler(handler)


def test_get_logger_without_results_dir_only_streams():
    logger = get_logger(run_name="stdout_only")
    assert len(logger.handlers) == 1
    assert isinstance(logger.handlers[0], logging.StreamHandler)
