"""HikePal companion: live tracking, annotation and SOS engine."""

__version__ = "1.0.0"
