import os
import tempfile
import threading
from datetime import datetime
from enum import Enum
from .local_file_strategy import LocalFileStrategy


class Logger:
    """
    Class-level logger shared by every lab component.
    Messages are forwarded to a pluggable storage strategy; with no strategy set, logging is a no-op.
    """

    class LogPriority(Enum):
        DEBUG = 1
        INFO = 2
        WARNING = 3
        ERROR = 4
        CRITICAL = 5
        DEFAULT = 6

    is_logging_enabled = True
    log_storage_strategy = None
    _log_lock = threading.RLock()
    _strategy_lock = threading.Lock()
    _initialize_lock = threading.Lock()

    # INITIALIZE LOGGER
    @classmethod
    def initialize(cls, file_location=None):
        """
        Install the default file storage strategy if none is set yet.

        Parameters:
        file_location (str): Optional log file path. Falls back to $STEM_LAB_LOG_PATH,
            then to stem_lab_logs.txt in the system temp directory.
        """
        with cls._initialize_lock:
            if cls.log_storage_strategy is None:
                default_path = os.path.join(tempfile.gettempdir(), "stem_lab_logs.txt")
                file_location = file_location or os.getenv("STEM_LAB_LOG_PATH", default_path)
                cls.set_log_storage_strategy(LocalFileStrategy(file_location))

                cls.log(f"Logger initialized with file storage at {file_location}.", cls.LogPriority.INFO)

    # LOG WITH MESSAGE AND PRIORITY
    @classmethod
    def log(cls, message, priority=LogPriority.DEBUG):
        """
        Store a message with the given priority (DEBUG by default).
        """
        with cls._log_lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.store_log(
                    str(message), priority.name, datetime.now().strftime("%Y-%m-%d %H:%M:%S")
                )

    @classmethod
    def warning(cls, message):
        """Shortcut for WARNING priority; used for absorbed precondition failures."""
        cls.log(message, cls.LogPriority.WARNING)

    # SET LOG STORAGE STRATEGY
    @classmethod
    def set_log_storage_strategy(cls, log_storage_strategy):
        """Replace the storage strategy (None disables storage)."""
        with cls._strategy_lock:
            cls.log_storage_strategy = log_storage_strategy

    # FLUSH LOGS
    @classmethod
    def flush_logs(cls):
        """Flush every stored entry through the active strategy."""
        with cls._log_lock:
            if cls.is_logging_enabled and cls.log_storage_strategy:
                cls.log_storage_strategy.flush_logs()

    # DISABLE LOGGING
    @classmethod
    def disable_logging(cls):
        with cls._log_lock:
            cls.log("Logging disabled", cls.LogPriority.INFO)
            cls.is_logging_enabled = False

    # ENABLE LOGGING
    @classmethod
    def enable_logging(cls):
        with cls._log_lock:
            cls.is_logging_enabled = True
            cls.log("Logging enabled", cls.LogPriority.INFO)
