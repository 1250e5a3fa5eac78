"""
Keyplan Utils - Logging and redaction helpers.
"""
