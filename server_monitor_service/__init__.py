"""
Server availability monitor package.

This package contains modules for fetching a provider's availability API,
extracting the tracked server/zone pairs, comparing them with the last
run's snapshot and notifying by email and SMS when they change.  See
README.md for details.
"""

__all__ = [
    "changes",
    "config",
    "emailer",
    "main",
    "notifier",
    "scraper",
    "sms",
    "store",
    "utils",
]
