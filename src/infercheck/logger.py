# Copyright Amazon.com, Inc. or its affiliates. All Rights Reserved.
# SPDX-License-Identifier: Apache-2.0
import logging
import os

LOG_LEVEL_ENV = "INFERCHECK_LOG_LEVEL"


def _level_from_env(default):
    value = os.environ.get(LOG_LEVEL_ENV)
    if not value:
        return default
    if value.isdigit():
        return int(value)
    return logging.getLevelName(value.upper())


def get_logger(name="infercheck", level=logging.WARNING):
    logger = logging.getLogger(name)

    # Only configure if no handlers exist
    if not logger.handlers:
        level = _level_from_env(level)
        logger.setLevel(level)
        console_handler = logging.StreamHandler()
        console_handler.setLevel(level)
        formatter = logging.Formatter(
            fmt="%(asctime)s - %(name)s - %(message)s",
            datefmt="%H:%M:%S",
        )
        console_handler.setFormatter(formatter)
        logger.addHandler(console_handler)

    return logger


def set_level(level, name="infercheck") -> None:
    """Change the level of an already configured logger and its handlers."""
    if isinstance(level, str):
        level = logging.getLevelName(level.upper())
    logger = get_logger(name)
    logger.setLevel(level)
    for handler in logger.handlers:
        handler.setLevel(level)
