"""
Crate Locator application.

Captures a device's coordinates for a crate identifier and delivers them to
a FastAPI submission server with bounded retries.

Date: 2026-10-19
"""
