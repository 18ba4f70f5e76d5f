# ===--------------------------------------------------------------------------------------===#
#
# Part of the Microlens Project, under the Apache License v2.0.
# See https://www.apache.org/licenses/LICENSE-2.0 for license information.
# SPDX-License-Identifier: Apache-2.0
#
# ===--------------------------------------------------------------------------------------===#
#
# This file implements logging setup for microlens runs.
#
# ===--------------------------------------------------------------------------------------===#

from typing import Optional

import logging
import pathlib

LOG_FILE_NAME: str = "results.log"


class SizeLimitedFormatter(logging.Formatter):
    """Logging formatter that truncates long messages.

    Messages longer than ``max_msg_sz`` characters are cut and marked with a
    truncation indicator. The limit applies to the message content only, not
    to the timestamp and level added by the format string.

    Attributes:
        max_msg_sz: Maximum allowed length for log message content in characters.
    """

    def __init__(
        self, fmt: Optional[str] = None, datefmt: Optional[str] = None, max_msg_sz: int = 256
    ) -> None:
        """Initializes the size-limited formatter.

        Args:
            fmt: Format string for log messages. If None, uses the default format.
            datefmt: Format string for dates. If None, uses the default date format.
            max_msg_sz: Maximum length of the message content; longer messages
                are truncated with a "... [TRUNCATED]" suffix.

        Raises:
            ValueError: If max_msg_sz is less than 15 characters.
        """
        if max_msg_sz < 15:
            raise ValueError(
                "max_msg_sz must be at least 15 characters to accommodate truncation indicator"
            )

        super().__init__(fmt, datefmt)
        self.max_msg_sz: int = max_msg_sz

    def format(self, record: logging.LogRecord) -> str:
        """Formats the record, truncating its message if it exceeds the size limit.

        The record's message is restored after formatting so other handlers
        see the original.
        """
        message_content: str = record.getMessage()

        if len(message_content) > self.max_msg_sz:
            original_msg = record.msg
            original_args = record.args

            truncate_length: int = self.max_msg_sz - 15
            record.msg = message_content[:truncate_length] + "... [TRUNCATED]"
            record.args = None

            formatted: str = super().format(record)

            record.msg = original_msg
            record.args = original_args
            return formatted

        return super().format(record)


def get_logger(
    name: str = "microlens",
    out_dir: Optional[pathlib.Path] = None,
    append_mode: bool = False,
    max_msg_sz: int = 256,
    level: int = logging.INFO,
) -> logging.Logger:
    """Creates a logger writing to stdout and optionally to ``out_dir/results.log``.

    Handlers are attached only once per logger name, so repeated calls return
    the same configured logger.

    Args:
        name: Logger name.
        out_dir: Directory where the log file is created. If None, logs only to stdout.
        append_mode: If True, append to an existing log file; otherwise overwrite it.
        max_msg_sz: Maximum size for log messages in characters.
        level: Logging level.

    Returns:
        The configured logger.
    """
    logger: logging.Logger = logging.getLogger(name)
    if not logger.handlers:
        logger.setLevel(level)
        log_formatter = SizeLimitedFormatter(
            "%(asctime)s | %(levelname)s | %(process)d | %(message)s",
            max_msg_sz=max_msg_sz,
        )
        logger.propagate = False

        stream_handler: logging.StreamHandler = logging.StreamHandler()
        stream_handler.setFormatter(log_formatter)
        logger.addHandler(stream_handler)

        if out_dir:
            fh: logging.FileHandler = logging.FileHandler(
                pathlib.Path(out_dir).joinpath(LOG_FILE_NAME), mode="a" if append_mode else "w"
            )
            fh.setLevel(level)
            fh.setFormatter(log_formatter)
            logger.addHandler(fh)

    return logger
