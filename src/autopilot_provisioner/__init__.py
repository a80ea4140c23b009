"""Create Windows Autopilot deployment profiles from a CSV and assign them to groups."""

__version__ = "0.1.0"
