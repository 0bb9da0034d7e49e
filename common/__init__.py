"""
Shared helpers used across the application.
"""
