# file: src/utils/logger.py

import logging
import os
import sys
from logging.handlers import RotatingFileHandler
from typing import Dict, Optional

LOG_FORMAT = "%(asctime)s | %(levelname)-8s | %(name)s | %(message)s"
DATE_FORMAT = "%Y-%m-%d %H:%M:%S"


class Logger:
    """
    Named logger factory shared by every manager.
    Each manager asks for its own logger (name + level from its config dict);
    handlers are attached once per name so repeated create_logger calls are safe.
    File output goes to <project_root>/logs/<name>.log when log_to_file is on.
    """

    def __init__(self, project_root: Optional[str] = None, log_to_file: bool = False,
                 max_bytes: int = 5 * 1024 * 1024, backup_count: int = 3):
        self.project_root = project_root or os.getcwd()
        self.log_dir = os.path.join(self.project_root, "logs")
        self.log_to_file = log_to_file
        self.max_bytes = max_bytes
        self.backup_count = backup_count
        self._loggers: Dict[str, logging.Logger] = {}
        self._formatter = logging.Formatter(LOG_FORMAT, datefmt=DATE_FORMAT)

    def create_logger(self, logger_name: str, logging_level: str = "INFO") -> logging.Logger:
        level = logging.getLevelName(str(logging_level).upper())
        if not isinstance(level, int):
            level = logging.INFO

        if logger_name in self._loggers:
            logger = self._loggers[logger_name]
            logger.setLevel(level)
            return logger

        logger = logging.getLogger(logger_name)
        logger.setLevel(level)
        logger.propagate = False
        # the stdlib logger is process-global; drop handlers left by another Logger instance
        for handler in list(logger.handlers):
            logger.removeHandler(handler)

        console = logging.StreamHandler(sys.stdout)
        console.setFormatter(self._formatter)
        logger.addHandler(console)

        if self.log_to_file:
            os.makedirs(self.log_dir, exist_ok=True)
            file_handler = RotatingFileHandler(
                os.path.join(self.log_dir, f"{logger_name}.log"),
                maxBytes=self.max_bytes,
                backupCount=self.backup_count,
                encoding="utf-8",
            )
            file_handler.setFormatter(self._formatter)
            logger.addHandler(file_handler)

        self._loggers[logger_name] = logger
        return logger

    def close_all_loggers(self) -> None:
        for logger in self._loggers.values():
            for handler in list(logger.handlers):
                handler.flush()
                handler.close()
                logger.removeHandler(handler)
        self._loggers.clear()
