"""
GTFS feed access.

This package provides entity models, a streaming feed reader, the
filtered-feed writer and feed download.
"""
