"""Harvest investment blogs, tag posts with listed companies and notify trackers."""

__version__ = "0.1.0"
