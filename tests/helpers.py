from datetime import datetime, timedelta


class FrozenClock:
    """Controllable replacement for utcnow."""

    def __init__(self, now):
        self.now = now

    def __call__(self):
        return self.now

    def advance(self, **kwargs):
        self.now += timedelta(**kwargs)
        return self.now

    def set(self, value):
        self.now = value
        return self.now


def at(hour, minute=0, day=1):
    """A naive UTC timestamp on 2030-01-<day>."""
    return datetime(2030, 1, day, hour, minute)


BASE_TIME = at(8)
