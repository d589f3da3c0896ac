"""Data acquisition jobs for external market feeds."""
