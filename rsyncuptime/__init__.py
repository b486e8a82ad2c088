"""Uptime monitoring for rsync server modules: a JSON status API and a terminal dashboard."""

__version__ = "0.1.0"