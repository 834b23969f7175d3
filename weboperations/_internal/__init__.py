"""Internal modules for WebOperations.

WARNING: This package contains system-level helpers used by the WebOperations
context. These are not intended for direct use in application code.

Modules:
    callbacks - Serialized callback delivery
    http - Shared HTTP client configuration
    redaction - Redaction of credentials in debug output
"""
