"""Lets Pray - daily prayer time reminders with adhan playback."""

__version__ = "0.1.0"
