"""Bundled vaccine calendars of the built-in countries."""
