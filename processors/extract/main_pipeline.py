#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Main orchestrator for extracting a subset of a GTFS feed.

Steps: fetch the feed if it is a URL, build the entity graph and mark the
selected subset, then write the marked rows.
"""

import logging
from datetime import datetime
from pathlib import Path
from typing import Dict, Optional, Union

from config.config_models import AppSettings
from processors.extract.errors import StreamError
from processors.extract.marker import Marker
from processors.extract.selection import SelectionSpec
from processors.gtfs import download
from processors.gtfs.reader import FeedReader
from processors.gtfs.writer import write_filtered_feed

module_logger = logging.getLogger(__name__)

TEMP_ZIP_FILENAME = "gtfs_feed.zip"


def fetch_feed(feed_location: Union[str, Path], settings: AppSettings) -> Path:
    """
    Return a local path for the feed, downloading it first if it is a URL.

    Raises:
        StreamError: If the download fails.
    """
    if not download.is_feed_url(feed_location):
        return Path(feed_location)
    target = Path(settings.temp_dir) / TEMP_ZIP_FILENAME
    if not download.download_gtfs_feed(
        str(feed_location), target, timeout=settings.download_timeout
    ):
        raise StreamError(f"Failed to download GTFS feed from {feed_location}")
    return target


def run_extract(
    settings: AppSettings,
    selection: SelectionSpec,
    feed_location: Union[str, Path],
    output_path: Union[str, Path],
    marker: Optional[Marker] = None,
) -> Dict[str, int]:
    """
    Extract the selected subset of a feed and write it.

    Args:
        settings: Application settings.
        selection: What to extract.
        feed_location: Path of a zip archive or directory, or an http(s) URL.
        output_path: Output directory, or a path ending in `.zip`.
        marker: Marker to use; a new one is created if omitted.

    Returns:
        Rows written per filename.

    Raises:
        SelectionError: If the selection names unknown entities.
        StreamError: If the feed cannot be fetched or read.
    """
    start_time = datetime.now()
    module_logger.info(
        f"===== GTFS Extract Started at {start_time.isoformat()} ====="
    )
    marker = marker or Marker()
    feed_path = fetch_feed(feed_location, settings)
    downloaded = feed_path != Path(feed_location)

    try:
        with FeedReader(
            feed_path,
            chunk_size=settings.reader.chunk_size,
            validate_rows=settings.reader.validate_rows,
            encoding=settings.reader.encoding,
        ) as reader:
            module_logger.info("--- Step 1: Building entity graph and marking subset ---")
            marker.filter(reader, selection)
            module_logger.info("--- Step 2: Writing extracted feed ---")
            counts = write_filtered_feed(
                reader,
                marker,
                output_path,
                settings.writer,
                temp_dir=settings.temp_dir,
            )
    finally:
        if downloaded:
            download.cleanup_temp_file(feed_path)

    duration = datetime.now() - start_time
    module_logger.info(
        f"===== GTFS Extract Finished in {duration.total_seconds():.1f}s ====="
    )
    return counts
