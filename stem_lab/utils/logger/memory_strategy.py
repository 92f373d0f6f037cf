from .log_storage_strategy import LogStorageStrategy


class MemoryLogStrategy(LogStorageStrategy):
    """
    Keeps log entries in memory as (timestamp, priority, message) tuples.
    """

    def __init__(self):
        self.entries = []

    def store_log(self, message, priority, timestamp):
        self.entries.append((timestamp, priority, message))

    def flush_logs(self):
        self.entries.clear()

    def messages(self, priority=None):
        """Return stored messages, optionally only those with the given priority name."""
        return [message for _, level, message in self.entries if priority is None or level == priority]
