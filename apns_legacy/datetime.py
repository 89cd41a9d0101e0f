"""
Clock utilities to facilitate testing.
"""


def now():
    """ Public API: import this. Returns the current Unix time in seconds. """
    return _now()


def _now():
    """ Private API: patch this. """
    import time

    return int(time.time())


def Now(timestamp):
    """ A context processor that sets the current Unix time. """
    from datetime import datetime, timezone
    from unittest import mock

    if isinstance(timestamp, datetime):
        if timestamp.tzinfo is None:
            timestamp = timestamp.replace(tzinfo=timezone.utc)
        timestamp = int(timestamp.timestamp())

    return mock.patch('{}._now'.format(__name__), lambda: timestamp)
