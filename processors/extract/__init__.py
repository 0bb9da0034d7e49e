"""
GTFS subset extraction.

This package builds the entity dependency graph of a feed and marks the
referentially complete subset selected by the caller. Import `Marker` from
`processors.extract.marker`.
"""
