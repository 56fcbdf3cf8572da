"""
Logging configuration for swerveio
Sets up colored console logging and optional rotating file logging
"""

import logging
import logging.handlers
import sys
import os

import colorlog


def setup_logging(config=None) -> logging.Logger:
    """
    Set up logging with console and file handlers

    Args:
        config: Configuration object with logging settings (optional)

    Returns:
        Root logger
    """
    if config is not None:
        console_level = config.logging.console_level
        file_enabled = config.logging.file_enabled
        file_level = config.logging.file_level
        file_path = config.logging.file_path
        file_max_bytes = config.logging.file_max_bytes
        file_backup_count = config.logging.file_backup_count
    else:
        console_level = "INFO"
        file_enabled = False
        file_level = "DEBUG"
        file_path = "logs/swerveio.log"
        file_max_bytes = 10485760  # 10MB
        file_backup_count = 5

    console_level_int = getattr(logging, console_level.upper(), logging.INFO)
    file_level_int = getattr(logging, file_level.upper(), logging.DEBUG)

    root_logger = logging.getLogger()
    root_logger.setLevel(logging.DEBUG)  # Capture all, filter in handlers
    root_logger.handlers = []

    console_handler = colorlog.StreamHandler(sys.stdout)
    console_handler.setLevel(console_level_int)
    console_handler.setFormatter(colorlog.ColoredFormatter(
        '%(log_color)s%(asctime)s - %(name)-32s - %(levelname)-8s%(reset)s - %(message)s',
        datefmt='%Y-%m-%d %H:%M:%S',
        log_colors={
            'DEBUG': 'cyan',
            'INFO': 'green',
            'WARNING': 'yellow',
            'ERROR': 'red',
            'CRITICAL': 'red,bg_white',
        }
    ))
    root_logger.addHandler(console_handler)

    if file_enabled:
        log_dir = os.path.dirname(file_path)
        if log_dir:
            os.makedirs(log_dir, exist_ok=True)

        file_handler = logging.handlers.RotatingFileHandler(
            file_path,
            maxBytes=file_max_bytes,
            backupCount=file_backup_count
        )
        file_handler.setLevel(file_level_int)
        file_handler.setFormatter(logging.Formatter(
            '%(asctime)s - %(threadName)-12s - %(name)-32s - %(levelname)-8s - %(message)s',
            datefmt='%Y-%m-%d %H:%M:%S'
        ))
        root_logger.addHandler(file_handler)

    return root_logger

