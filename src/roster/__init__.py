"""Student roster client with an optimistic, poll-refreshed record cache."""

__version__ = "0.1.0"
