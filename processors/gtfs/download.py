#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Handles downloading GTFS (General Transit Feed Specification) zip files.

The extract command accepts an http(s) URL as its input feed; the archive is
downloaded to a local path before it is read.
"""

import logging
from pathlib import Path
from typing import Optional, Union
from urllib.parse import urlparse

import requests

module_logger = logging.getLogger(__name__)

DOWNLOAD_CHUNK_SIZE = 8192


def is_feed_url(location: Union[str, Path]) -> bool:
    """Return True if the feed location is an http(s) URL rather than a path."""
    return urlparse(str(location)).scheme in ("http", "https")


def download_gtfs_feed(
    feed_url: str, download_to_path: Union[str, Path], timeout: int = 120
) -> bool:
    """
    Download a GTFS feed from a given URL to a specified path.

    Args:
        feed_url: The URL of the GTFS zip file.
        download_to_path: The file path (string or Path object) where the
                          downloaded zip file will be saved.
        timeout: Seconds to wait for the server.

    Returns:
        True if the download was successful, False otherwise.
    """
    download_path = Path(download_to_path)
    module_logger.info(f"Attempting to download GTFS feed from: {feed_url}")
    response: Optional[requests.Response] = None

    try:
        download_path.parent.mkdir(parents=True, exist_ok=True)
        response = requests.get(feed_url, stream=True, timeout=timeout)
        response.raise_for_status()

        with open(download_path, "wb") as f:
            for chunk in response.iter_content(chunk_size=DOWNLOAD_CHUNK_SIZE):
                if chunk:
                    f.write(chunk)
        module_logger.info(f"GTFS feed successfully downloaded to: {download_path}")
        return True
    except requests.exceptions.HTTPError as http_err:
        status_code = response.status_code if response is not None else "Unknown"
        module_logger.error(f"HTTP error occurred: {http_err} - Status code: {status_code}")
    except requests.exceptions.ConnectionError as conn_err:
        module_logger.error(f"Connection error occurred: {conn_err}")
    except requests.exceptions.Timeout as timeout_err:
        module_logger.error(f"Timeout error occurred: {timeout_err}")
    except requests.exceptions.RequestException as req_err:
        module_logger.error(f"An unexpected error occurred during download: {req_err}")
    except IOError as io_err:
        module_logger.error(f"File I/O error when saving download: {io_err}")
    return False


def cleanup_temp_file(file_path: Union[str, Path]) -> None:
    """
    Remove a temporary file if it exists.

    Args:
        file_path: Path to the file to remove.
    """
    path_to_remove = Path(file_path)
    try:
        if path_to_remove.is_file():
            path_to_remove.unlink()
            module_logger.info(f"Cleaned up temporary file: {path_to_remove}")
        elif path_to_remove.exists():
            module_logger.warning(f"Path '{path_to_remove}' exists but is not a file. Not removed.")
    except OSError as e:
        module_logger.error(f"Error cleaning up file '{path_to_remove}': {e}", exc_info=True)
