"""dayscribe: turn a narrated day into tasks, events, notes and health mentions."""

__version__ = "0.1.0"
