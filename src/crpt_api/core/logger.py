"""
Logging and Error Tracking

Handler setup for applications embedding the document client, plus an
ErrorTracker that keeps the most recent failed submissions. Library modules
only call ``logging.getLogger(__name__)``; handlers are installed here, on
demand.
"""

import logging
import logging.handlers
import os
import sys
import threading
from collections import deque
from datetime import datetime
from typing import Optional, Dict, Any
import traceback
from pathlib import Path

APP_LOGGER = "crpt_api"

DETAILED_FORMAT = '%(asctime)s | %(name)s | %(levelname)s | %(threadName)s | %(funcName)s:%(lineno)d | %(message)s'
CONSOLE_FORMAT = '%(asctime)s | %(levelname)s | %(message)s'


def _rotating_file(path: Path, max_bytes: int, backups: int, level: int) -> logging.Handler:
    handler = logging.handlers.RotatingFileHandler(path, maxBytes=max_bytes, backupCount=backups, encoding='utf-8')
    handler.setLevel(level)
    handler.setFormatter(logging.Formatter(DETAILED_FORMAT, datefmt='%Y-%m-%d %H:%M:%S'))
    return handler


class CrptLogger:
    """
    Installs a rotating debug log, an error-only log and stdout output on
    the ``crpt_api`` logger. Installing twice does not duplicate handlers.
    """

    def __init__(self, log_dir: str = "logs", level: int = logging.INFO):
        self.log_dir = Path(log_dir)
        self.log_dir.mkdir(parents=True, exist_ok=True)
        self.root = logging.getLogger(APP_LOGGER)
        self.root.setLevel(level)
        if not self.root.handlers:
            console = logging.StreamHandler(sys.stdout)
            console.setLevel(logging.INFO)
            console.setFormatter(logging.Formatter(CONSOLE_FORMAT, datefmt='%H:%M:%S'))
            for handler in (
                _rotating_file(self.log_dir / f"{APP_LOGGER}.log", 10*1024*1024, 5, logging.DEBUG),  # 10MB
                _rotating_file(self.log_dir / f"{APP_LOGGER}_errors.log", 5*1024*1024, 3, logging.ERROR),  # 5MB
                console,
            ):
                self.root.addHandler(handler)

    def get_logger(self, name: str) -> logging.Logger:
        return self.root.getChild(name)

    def log_system_info(self):
        logger = self.get_logger('system')
        logger.info(f"Logging to {self.log_dir.absolute()} (Python {sys.version.split()[0]}, {sys.platform})")
        logger.debug(f"Working directory: {os.getcwd()}")


class ErrorTracker:
    """
    Tracks failed and abandoned submissions.

    Only the last ``max_records`` errors and warnings are retained; the
    totals in ``get_error_summary`` count everything ever logged. Safe to
    share between the threads of a batch submission.
    """

    def __init__(self, logger: logging.Logger, max_records: int = 100):
        self.logger = logger
        self.max_records = max_records
        self.errors: deque = deque(maxlen=max_records)
        self.warnings: deque = deque(maxlen=max_records)
        self.total_errors = 0
        self.total_warnings = 0
        self.error_types: Dict[str, int] = {}
        self._lock = threading.Lock()

    def log_error(self,
                  error: Exception,
                  context: str = None,
                  endpoint: str = None,
                  additional_info: Dict[str, Any] = None) -> str:
        """
        Record and log an error.

        Args:
            error: The exception that occurred
            context: Stage where the error occurred (e.g. "serialize", "send")
            endpoint: Endpoint being called when the error occurred
            additional_info: Extra key/value details for the report

        Returns:
            Error ID for tracking
        """
        error_type = type(error).__name__
        with self._lock:
            error_id = f"ERR_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{self.total_errors:03d}"
            self.total_errors += 1
            self.error_types[error_type] = self.error_types.get(error_type, 0) + 1
            self.errors.append({
                'id': error_id,
                'timestamp': datetime.now(),
                'type': error_type,
                'message': str(error),
                'context': context,
                'endpoint': endpoint,
                'traceback': ''.join(traceback.format_exception(type(error), error, error.__traceback__)),
                'additional_info': additional_info or {}
            })

        self.logger.error(f"[{error_id}] {error_type}: {error}{self._where(context, endpoint)}")
        return error_id

    def log_warning(self, message: str, context: str = None, endpoint: str = None) -> str:
        with self._lock:
            warning_id = f"WARN_{datetime.now().strftime('%Y%m%d_%H%M%S')}_{self.total_warnings:03d}"
            self.total_warnings += 1
            self.warnings.append({
                'id': warning_id,
                'timestamp': datetime.now(),
                'message': message,
                'context': context,
                'endpoint': endpoint
            })

        self.logger.warning(f"[{warning_id}] {message}{self._where(context, endpoint)}")
        return warning_id

    @staticmethod
    def _where(context: Optional[str], endpoint: Optional[str]) -> str:
        suffix = ""
        if context:
            suffix += f" (Context: {context})"
        if endpoint:
            suffix += f" (Endpoint: {endpoint})"
        return suffix

    def get_error_summary(self) -> Dict[str, Any]:
        with self._lock:
            return {
                'total_errors': self.total_errors,
                'total_warnings': self.total_warnings,
                'error_types': dict(self.error_types),
                'recent_errors': list(self.errors)[-5:],
                'recent_warnings': list(self.warnings)[-5:]
            }

    def clear(self):
        """Drop retained records and reset the totals."""
        with self._lock:
            self.errors.clear()
            self.warnings.clear()
            self.total_errors = 0
            self.total_warnings = 0
            self.error_types.clear()

    def save_error_report(self, output_path: str):
        """Write the retained errors and warnings to a plain-text report."""
        with self._lock:
            errors = list(self.errors)
            warnings = list(self.warnings)
            totals = (self.total_errors, self.total_warnings)

        lines = [
            "CRPT API ERROR REPORT",
            "=" * 50,
            "",
            f"Generated: {datetime.now().strftime('%Y-%m-%d %H:%M:%S')}",
            f"Total Errors: {totals[0]} (showing {len(errors)})",
            f"Total Warnings: {totals[1]} (showing {len(warnings)})",
            "",
        ]
        if errors:
            lines += ["ERRORS:", "-" * 30]
            for error in errors:
                lines += ["", f"[{error['id']}] {error['timestamp']}",
                          f"Type: {error['type']}", f"Message: {error['message']}"]
                if error['context']:
                    lines.append(f"Context: {error['context']}")
                if error['endpoint']:
                    lines.append(f"Endpoint: {error['endpoint']}")
                lines += [f"{key}: {value}" for key, value in error['additional_info'].items()]
                lines += [f"Traceback:\n{error['traceback']}", "-" * 50]
        if warnings:
            lines += ["", "WARNINGS:", "-" * 30]
            for warning in warnings:
                lines += ["", f"[{warning['id']}] {warning['timestamp']}", f"Message: {warning['message']}"]
                if warning['context']:
                    lines.append(f"Context: {warning['context']}")
                if warning['endpoint']:
                    lines.append(f"Endpoint: {warning['endpoint']}")
                lines.append("-" * 30)

        with open(output_path, 'w', encoding='utf-8') as f:
            f.write("\n".join(lines) + "\n")
        self.logger.info(f"Error report saved to: {output_path}")


def get_logger(name: str = None) -> logging.Logger:
    """
    Get a logger below ``crpt_api``.

    Works before ``initialize_logging`` too: the logger then simply has no
    handlers of its own, so embedding applications keep control.
    """
    root = logging.getLogger(APP_LOGGER)
    return root.getChild(name) if name else root


def initialize_logging(log_dir: str = "logs", level: int = logging.INFO) -> CrptLogger:
    """
    Install file and console handlers on the ``crpt_api`` logger.

    Args:
        log_dir: Directory for log files
        level: Logging level
    """
    configured = CrptLogger(log_dir, level)
    configured.log_system_info()
    return configured


def create_error_tracker(logger_name: str = None, max_records: int = 100) -> ErrorTracker:
    """Create an error tracker that reports through ``get_logger(logger_name)``."""
    return ErrorTracker(get_logger(logger_name), max_records=max_records)
