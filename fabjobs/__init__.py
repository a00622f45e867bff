"""
Fabrication job execution engine.

Coordinates jobs (one file running on one device) through a per-job state
machine and keeps a live registry of connected devices.
"""

__version__ = "0.3.0"
