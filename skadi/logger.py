#!/usr/bin/env python3
"""
SKADI - Logging

One line per transaction milestone, tagged with the request's tracking id.
Key material never reaches a log line.
"""

import logging
from logging.handlers import RotatingFileHandler

from .config import EngineConfig


class SkadiLogger:
    """
    Thin wrapper over the "SKADI" logger with transfer-specific helpers.
    Every transfer message carries a tracking id so a user report can be
    matched to the log without exposing anything secret.
    """

    def __init__(self, config: EngineConfig):
        self.logger = logging.getLogger("SKADI")
        self.logger.setLevel(getattr(logging, config.log_level, logging.INFO))

        # Guard against duplicate handlers when SkadiLogger is instantiated
        # multiple times (e.g. in tests). logging.getLogger returns the same
        # logger instance, but handlers stack if not checked.
        if not self.logger.handlers:
            console = logging.StreamHandler()
            console.setFormatter(logging.Formatter(
                '%(asctime)s | %(levelname)8s | %(message)s',
                datefmt='%H:%M:%S'
            ))
            self.logger.addHandler(console)

            if config.log_file:
                file_handler = RotatingFileHandler(
                    config.log_file,
                    maxBytes=10_000_000,  # 10MB
                    backupCount=5
                )
                file_handler.setFormatter(logging.Formatter(
                    '%(asctime)s | %(levelname)8s | %(name)s | %(message)s'
                ))
                self.logger.addHandler(file_handler)

    def transfer_started(self, tracking_id: str, kind: str, destination: str, amount: int):
        self.logger.info(f"[{tracking_id}] {kind} transfer: {amount} -> {destination}")

    def transaction_submitted(self, tracking_id: str, signature: str):
        self.logger.info(f"[{tracking_id}] Submitted: {signature}")

    def transaction_confirmed(self, tracking_id: str, signature: str, status: str):
        self.logger.info(f"[{tracking_id}] Confirmed ({status}): {signature}")

    def retry_scheduled(self, attempt: int, max_attempts: int, delay: float, error: Exception):
        self.logger.warning(
            f"Attempt {attempt}/{max_attempts} failed ({error}); retrying in {delay:.1f}s"
        )

    def error(self, context: str, error: Exception):
        self.logger.error(f"{context}: {str(error)}")

    def info(self, message: str):
        self.logger.info(message)

    def warning(self, message: str):
        self.logger.warning(message)

    def debug(self, message: str):
        self.logger.debug(message)
