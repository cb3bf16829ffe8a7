"""
Shared logic for Crate Locator: configuration, report models, validation
and the error taxonomy used by both the server and the client.
"""
