"""
Feed processing packages: GTFS input/output and subset extraction.
"""
