"""
Server modules for Crate Locator.

This package contains the FastAPI router that receives and validates
location submissions.

Date: 2026-10-19
"""
