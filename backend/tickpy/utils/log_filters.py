"""Custom log filters for reducing per-cycle noise in logs."""
import logging
import re

ROUTINE_PATTERN = re.compile(r'\[Kernel\] Tick (\d+) completed: \d+ processes executed successfully')


class RoutineCycleFilter(logging.Filter):
    """Drop routine "cycle completed" summaries except every N-th tick.

    A healthy agent logs one summary per cycle, which buries everything else.
    Warnings and anything that is not a routine summary always pass.
    """

    def __init__(self, interval: int = 100):
        super().__init__()
        self.interval = max(1, int(interval))

    def filter(self, record: logging.LogRecord) -> bool:
        """Return False to exclude the record from logging.

        Args:
            record: The log record to filter

        Returns:
            False if the record is a routine summary off the interval
        """
        if record.levelno >= logging.WARNING:
            return True

        match = ROUTINE_PATTERN.search(record.getMessage())
        if not match:
            return True

        return int(match.group(1)) % self.interval == 0
