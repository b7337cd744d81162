"""
StoreMetrics: Tracks simple statistics for snapshot store activity.
"""


class StoreMetrics:
    """
    Tracks saves, loads and failures of a snapshot store.

    Attributes:
        saved (int): Number of snapshots written.
        loaded (int): Number of snapshots successfully read.
        missing (int): Number of loads that found no snapshot.
        failures (int): Number of reads or writes that raised.
    """

    def __init__(self):
        """Initialize all counters to zero."""
        self.saved = 0
        self.loaded = 0
        self.missing = 0
        self.failures = 0

    def report(self) -> dict:
        """
        Return a snapshot of current metrics.

        Returns:
            dict: Dictionary containing 'saved', 'loaded', 'missing' and 'failures' counters.
        """
        return {
            "saved": self.saved,
            "loaded": self.loaded,
            "missing": self.missing,
            "failures": self.failures,
        }
