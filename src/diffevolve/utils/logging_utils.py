# ===--------------------------------------------------------------------------------------===#
#
# Part of the DiffEvolve Project, under the Apache License v2.0.
# See the LICENSE file at the root of this repository for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements logging helpers for DiffEvolve runs.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

import logging
import pathlib

TRUNCATION_SUFFIX: str = "... [TRUNCATED]"


class SizeLimitedFormatter(logging.Formatter):
    """Logging formatter that truncates overly long messages.

    Populations and candidates can be large, so their string representations are
    cut at ``max_msg_sz`` characters and marked with a truncation suffix. The limit
    applies to the message itself, before the timestamp, level and thread name are
    added.

    Attributes:
        max_msg_sz: Maximum allowed length for log message content in characters.
    """

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, max_msg_sz: int = 256
    ) -> None:
        """Initializes the size-limited formatter.

        Args:
            fmt: Format string for log messages. If None, uses the default format.
            datefmt: Format string for the date/time portion of log messages.
            max_msg_sz: Maximum length of the message content in characters.

        Raises:
            ValueError: If max_msg_sz cannot accommodate the truncation suffix.
        """
        if max_msg_sz < len(TRUNCATION_SUFFIX):
            raise ValueError(
                f"max_msg_sz must be at least {len(TRUNCATION_SUFFIX)} characters to"
                " accommodate the truncation suffix."
            )

        super().__init__(fmt, datefmt)
        self.max_msg_sz: int = max_msg_sz

    def format(self, record: logging.LogRecord) -> str:
        """Formats the record, truncating its message if it exceeds the size limit.

        The record is restored afterwards, so other handlers still see the full message.
        """
        message: str = record.getMessage()
        if len(message) <= self.max_msg_sz:
            return super().format(record)

        original_msg, original_args = record.msg, record.args
        record.msg = message[: self.max_msg_sz - len(TRUNCATION_SUFFIX)] + TRUNCATION_SUFFIX
        record.args = None
        try:
            return super().format(record)
        finally:
            record.msg, record.args = original_msg, original_args


def get_logger(
    run_name: str = "diffevolve",
    results_dir: Optional[pathlib.Path] = None,
    append_mode: bool = False,
    max_msg_sz: int = 256,
    level: int = logging.INFO,
) -> logging.Logger:
    """Creates a logger for an optimization run.

    The logger writes to stdout and, if ``results_dir`` is given, to
    ``results_dir/results.log``. Every line is prefixed with the run name and the
    name of the emitting thread, so messages from evaluation workers can be told
    apart from those of the generation loop.

    Args:
        run_name: Name identifying the run in every log line.
        results_dir: Directory where the log file will be created. If None, logs
            only to stdout.
        append_mode: If True, append to an existing log file; if False, overwrite.
        max_msg_sz: Maximum size for log messages in characters.
        level: Logging level of the logger.

    Returns:
        Configured Logger instance for the run.
    """
    if results_dir:
        sanitized_dir: str = str(results_dir).replace("/", "_").replace("\\", "_")
        logger_name: str = f"diffevolve_{run_name}_{sanitized_dir}"
    else:
        logger_name: str = f"diffevolve_{run_name}_stdout"

    logger: logging.Logger = logging.getLogger(logger_name)
    if not logger.handlers:
        logger.setLevel(level)
        log_formatter = SizeLimitedFormatter(
            f"[{run_name}] %(asctime)s | %(levelname)s | %(threadName)s | %(message)s",
            max_msg_sz=max_msg_sz,
        )
        logger.propagate = False

        stream_handler: logging.StreamHandler = logging.StreamHandler()
        stream_handler.setFormatter(log_formatter)
        logger.addHandler(stream_handler)

        if results_dir:
            fh: logging.FileHandler = logging.FileHandler(
                pathlib.Path(results_dir).joinpath("results.log"),
                mode="a" if append_mode else "w",
            )
            fh.setLevel(level)
            fh.setFormatter(log_formatter)
            logger.addHandler(fh)

    return logger
