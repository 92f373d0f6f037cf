class LogStorageStrategy:
    """
    Interface for log storage backends used by Logger.
    """
    # STORE LOG WITH MESSAGE PRIORITY AND TIMESTAMP
    def store_log(self, message, priority, timestamp):
        """
        Store one log entry.

        Parameters:
        message (str): The log message.
        priority (str): Name of the priority level (e.g. "WARNING").
        timestamp (str): Formatted time of the entry.
        """
        raise NotImplementedError()

    # FLUSHES ALL STORED LOGS
    def flush_logs(self):
        """Discard every stored entry."""
        raise NotImplementedError()
