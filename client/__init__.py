"""
Capture client for Crate Locator.

This package obtains a position, attaches the subject's identifier and
submits it to the location server with bounded retries.
"""

from client.submission import submit

__all__ = ["submit"]
