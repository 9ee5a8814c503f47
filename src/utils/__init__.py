"""
Shared utilities: configuration and error recording.
"""
