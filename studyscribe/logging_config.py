"""
Unified Logging Configuration for StudyScribe

This module provides a centralized logging system that combines:
- Console output with timestamps (DEBUG_MODE only)
- File output to logs/debug_flow.txt (for debugging sessions)
- File output to logs/processing.log (for production)
- Performance timing via Timer context manager

All modules should import logging functions from this module:
    from studyscribe.logging_config import debug_log, info, warning, error, Timer

Log Levels:
- debug_log(): Always writes to the debug file; console only in DEBUG_MODE
- info(): Standard information messages
- warning(): Warning messages (always shown)
- error(): Error messages with optional exception info
- critical(): Critical errors (always shown with traceback)
"""

import logging
import sys
import time
from datetime import datetime

from studyscribe.config import DEBUG_LOG_FILE, DEBUG_MODE, LOG_DATE_FORMAT, LOG_FILE, LOG_FORMAT

# =============================================================================
# File Logger Setup (debug_flow.txt for debugging sessions)
# =============================================================================

class _DebugFileLogger:
    """
    Manages the debug_flow.txt file for detailed debugging output.

    The file is opened on first write so that importing the package never
    touches the filesystem. If the log directory is not writable the logger
    silently disables itself.
    """

    def __init__(self):
        self._log_file = None
        self._disabled = False

    def _open(self):
        try:
            self._log_file = open(DEBUG_LOG_FILE, 'w', encoding='utf-8')
        except OSError:
            self._disabled = True
            return
        self._log_file.write("=== StudyScribe Debug Log ===\n")
        self._log_file.write(f"Started: {datetime.now().isoformat()}\n")
        self._log_file.write(f"DEBUG_MODE: {DEBUG_MODE}\n")
        self._log_file.write("=" * 60 + "\n\n")
        self._log_file.flush()

    def write(self, message: str):
        """Write message to the debug log file."""
        if self._disabled:
            return
        if self._log_file is None:
            self._open()
            if self._log_file is None:
                return
        timestamp = datetime.now().strftime("%H:%M:%S.%f")[:-3]
        self._log_file.write(f"[{timestamp}] {message}\n")
        self._log_file.flush()

    def close(self):
        """Close the debug log file gracefully."""
        if self._log_file:
            self._log_file.write(f"\n{'=' * 60}\n")
            self._log_file.write(f"Ended: {datetime.now().isoformat()}\n")
            self._log_file.close()
            self._log_file = None


_debug_file_logger = _DebugFileLogger()


# =============================================================================
# Standard Python Logging Setup
# =============================================================================

def _setup_standard_logging() -> logging.Logger:
    """
    Configure the standard Python logging framework.

    Returns:
        Configured logger instance for StudyScribe
    """
    logger = logging.getLogger('StudyScribe')
    logger.setLevel(logging.DEBUG if DEBUG_MODE else logging.INFO)

    # Prevent duplicate handlers if called multiple times
    if logger.handlers:
        return logger

    try:
        file_handler = logging.FileHandler(LOG_FILE, encoding='utf-8')
        file_handler.setLevel(logging.DEBUG)
        file_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(file_handler)
    except OSError:
        pass  # Log directory missing or read-only

    if DEBUG_MODE:
        console_handler = logging.StreamHandler(sys.stdout)
        console_handler.setLevel(logging.DEBUG)
        console_handler.setFormatter(logging.Formatter(LOG_FORMAT, datefmt=LOG_DATE_FORMAT))
        logger.addHandler(console_handler)

    return logger


_logger = _setup_standard_logging()


# =============================================================================
# Timer Context Manager
# =============================================================================

class Timer:
    """
    Context manager for timing code blocks with automatic logging.

    Usage:
        with Timer("Chunking"):
            chunks = engine.chunk_text(text)

    Output (DEBUG_MODE=True):
        [14:32:01.120] Starting Chunking...
        [14:32:01.131] Chunking took 11 ms

    Attributes:
        operation_name: Name of the operation being timed
        duration_ms: Duration in milliseconds (available after exit)
    """

    def __init__(self, operation_name: str, auto_log: bool = True):
        self.operation_name = operation_name
        self.auto_log = auto_log
        self.start_time: float | None = None
        self.end_time: float | None = None
        self.duration_ms: float | None = None

    def __enter__(self):
        if self.auto_log:
            debug_log(f"Starting {self.operation_name}...")
        self.start_time = time.time()
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.end_time = time.time()
        self.duration_ms = (self.end_time - self.start_time) * 1000

        if self.auto_log:
            if self.duration_ms < 1000:
                duration_str = f"{self.duration_ms:.0f} ms"
            else:
                duration_str = f"{self.duration_ms / 1000:.1f} seconds"
            debug_log(f"{self.operation_name} took {duration_str}")

        return False

    def get_duration_ms(self) -> float:
        """
        Get the measured duration in milliseconds.

        Raises:
            ValueError: If timer has not completed yet
        """
        if self.duration_ms is None:
            raise ValueError("Timer has not been completed yet")
        return self.duration_ms


# =============================================================================
# Public Logging Functions
# =============================================================================

def debug_log(message: str):
    """
    Log a debug message to the debug file and, in DEBUG_MODE, the console.

    Args:
        message: The message to log (prefix with [MODULE] for clarity)

    Example:
        debug_log("[CHUNKER] Split text into 4 sections")
    """
    _debug_file_logger.write(message)
    _logger.debug(message)


def debug(message: str):
    """Alias for debug_log()."""
    debug_log(message)


def info(message: str):
    """Log an informational message."""
    _debug_file_logger.write(f"[INFO] {message}")
    _logger.info(message)


def warning(message: str):
    """Log a warning message. Always written to file and console handlers."""
    _debug_file_logger.write(f"[WARNING] {message}")
    _logger.warning(message)


def error(message: str, exc_info: bool = False):
    """
    Log an error message with optional exception traceback.

    Args:
        message: The error message to log
        exc_info: If True, include exception traceback (only in DEBUG_MODE)
    """
    _debug_file_logger.write(f"[ERROR] {message}")
    _logger.error(message, exc_info=exc_info and DEBUG_MODE)


def critical(message: str, exc_info: bool = True):
    """Log a critical error, with traceback in DEBUG_MODE."""
    _debug_file_logger.write(f"[CRITICAL] {message}")
    _logger.critical(message, exc_info=exc_info and DEBUG_MODE)


def debug_timing(operation: str, elapsed_seconds: float):
    """
    Log operation timing information in human-readable format.

    Example:
        start = time.time()
        ...
        debug_timing("Flashcard generation", time.time() - start)
    """
    if elapsed_seconds < 1:
        time_str = f"{elapsed_seconds*1000:.0f} ms"
    elif elapsed_seconds < 60:
        time_str = f"{elapsed_seconds:.2f}s"
    else:
        time_str = f"{elapsed_seconds/60:.1f}m"
    debug_log(f"{operation} took {time_str}")


def close_debug_log():
    """Close the debug log file. Call at shutdown to flush everything."""
    _debug_file_logger.close()


__all__ = [
    'debug_log',
    'debug',
    'debug_timing',
    'info',
    'warning',
    'error',
    'critical',
    'close_debug_log',
    'Timer',
    'DEBUG_MODE',
]
