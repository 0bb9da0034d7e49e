#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Row-level cleaning for GTFS (General Transit Feed Specification) records
before they are parsed into entity models.
"""

import logging
from typing import Any, Dict, Mapping, Optional

import pandas as pd

module_logger = logging.getLogger(__name__)


def clean_string_field(value: Any) -> Optional[str]:
    """
    Clean a string field by stripping whitespace.

    Converts None, NaN, pd.NA or empty strings (after stripping) to None.
    If the input is not a string, it's converted to a string before processing.

    Args:
        value: The value to clean.

    Returns:
        The cleaned string if it's not empty, otherwise None.
    """
    if value is None:
        return None
    if not isinstance(value, str) and pd.isna(value):
        return None
    if isinstance(value, str):
        stripped_value = value.strip()
        return stripped_value if stripped_value else None
    try:
        stripped_value = str(value).strip()
        return stripped_value if stripped_value else None
    except Exception:
        module_logger.warning(
            f"Could not convert value to string for cleaning: {type(value)}"
        )
        return None


def clean_record(record: Mapping[str, Any]) -> Dict[str, Optional[str]]:
    """
    Clean every field of a raw CSV record.

    Column names are stripped as well, since some producers pad the header
    row. Blank fields become None so optional model fields fall back to
    their defaults.

    Args:
        record: Mapping of column name to raw value.

    Returns:
        A new dictionary with cleaned keys and values.
    """
    return {
        str(key).strip(): clean_string_field(value)
        for key, value in record.items()
    }


def parse_location_type(value: Any) -> int:
    """
    Interpret a `location_type` value, treating blank or invalid as 0.

    Args:
        value: An int, a numeric string, or None.

    Returns:
        The location type as an int.
    """
    if value is None:
        return 0
    try:
        return int(value)
    except (TypeError, ValueError):
        module_logger.debug(f"Invalid location_type '{value}', using 0.")
        return 0
