"""
Shared helpers: logging setup and TLS contexts.
"""
