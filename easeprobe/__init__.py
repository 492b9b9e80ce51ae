"""Document value extraction, health expressions, PID files, log settings, YAML merging and notification channels."""

__version__ = "0.1.0"