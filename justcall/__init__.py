"""JustCall: one-keystroke calls with the people you talk to most."""

__version__ = "0.1.0"
