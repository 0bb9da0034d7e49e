# -*- coding: utf-8 -*-
"""
Exceptions raised while building the entity graph and marking a feed subset.

Data problems are always raised as one of these exceptions. A broken edge
rule table is a programming error and raises AssertionError instead.
"""

from typing import Optional


class ExtractError(Exception):
    """Base exception for feed extraction errors."""

    def __init__(
        self,
        message: str,
        original_error: Optional[Exception] = None,
    ):
        self.original_error = original_error
        super().__init__(message)


class SelectionError(ExtractError):
    """An include or exclude entity could not be resolved, or the selection is malformed."""

    def __init__(
        self,
        message: str,
        table: Optional[str] = None,
        entity_id: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.table = table
        self.entity_id = entity_id
        super().__init__(message, original_error=original_error)


class StreamError(ExtractError):
    """A feed table could not be read."""

    def __init__(
        self,
        message: str,
        filename: Optional[str] = None,
        original_error: Optional[Exception] = None,
    ):
        self.filename = filename
        super().__init__(message, original_error=original_error)
