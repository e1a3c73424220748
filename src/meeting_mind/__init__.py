"""MeetingMind: live meeting audio to structured answers."""

__version__ = "0.1.0"
