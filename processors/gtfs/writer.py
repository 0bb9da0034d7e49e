#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Writes the marked subset of a GTFS feed.

Each table is read in pandas chunks of raw string values. A row is kept
when every key column listed for its table in `COPY_FILTER_KEYS` refers to
a marked entity; blank key values always pass. The output is a directory of
`.txt` files or, when the output path ends in `.zip`, a zip archive.
"""

import logging
import shutil
import tempfile
import zipfile
from pathlib import Path
from typing import Dict, List, Optional, Set, Union

import pandas as pd

from config.config_models import WriterSettings
from processors.extract.marker import Marker
from processors.gtfs.pipeline_definitions import COPY_FILTER_KEYS, GTFS_WRITE_ORDER
from processors.gtfs.reader import FeedReader

module_logger = logging.getLogger(__name__)


def _write_order(filenames: List[str]) -> List[str]:
    ordered = [f for f in GTFS_WRITE_ORDER if f in filenames]
    return ordered + sorted(f for f in filenames if f not in ordered)


def filter_chunk(
    chunk: pd.DataFrame,
    filename: str,
    marker: Marker,
    id_cache: Optional[Dict[str, Set[str]]] = None,
) -> pd.DataFrame:
    """
    Keep the rows of one chunk whose key columns are all marked.

    Args:
        chunk: Raw string values of a table.
        filename: The GTFS filename the chunk belongs to.
        marker: A marker whose `filter` has run.
        id_cache: Optional cache of marked ids per node table.

    Returns:
        The filtered chunk.
    """
    if id_cache is None:
        id_cache = {}
    keep = pd.Series(True, index=chunk.index)
    for column, table in COPY_FILTER_KEYS.get(filename, []):
        if column not in chunk.columns:
            continue
        if table not in id_cache:
            id_cache[table] = marker.included_ids(table)
        values = chunk[column].str.strip()
        keep &= (values == "") | values.isin(id_cache[table])
    return chunk[keep]


def _copy_table(
    reader: FeedReader,
    filename: str,
    marker: Marker,
    target: Path,
    chunk_size: int,
    id_cache: Dict[str, Set[str]],
) -> Optional[int]:
    written = None
    for chunk in reader.read_chunks(filename, chunk_size=chunk_size):
        kept = filter_chunk(chunk, filename, marker, id_cache)
        kept.to_csv(
            target,
            mode="w" if written is None else "a",
            header=written is None,
            index=False,
        )
        written = (written or 0) + len(kept)
    return written


def _copy_raw(reader: FeedReader, filename: str, target: Path) -> None:
    with reader.open_member(filename) as src, open(target, "wb") as dst:
        shutil.copyfileobj(src, dst)


def _write_tables(
    reader: FeedReader,
    marker: Marker,
    out_dir: Path,
    settings: WriterSettings,
) -> Dict[str, int]:
    counts: Dict[str, int] = {}
    id_cache: Dict[str, Set[str]] = {}
    for filename in _write_order(reader.filenames()):
        target = out_dir / filename
        if filename not in COPY_FILTER_KEYS:
            if settings.copy_extra_files:
                _copy_raw(reader, filename, target)
                module_logger.info(f"Copied {filename} unchanged.")
            else:
                module_logger.info(f"Skipping {filename}: no filter keys defined.")
            continue
        written = _copy_table(
            reader, filename, marker, target, settings.chunk_size, id_cache
        )
        if written is None:
            continue
        counts[filename] = written
        module_logger.debug(f"Wrote {written} rows to {filename}")
    return counts


def write_filtered_feed(
    reader: FeedReader,
    marker: Marker,
    output_path: Union[str, Path],
    settings: Optional[WriterSettings] = None,
    temp_dir: Optional[Union[str, Path]] = None,
) -> Dict[str, int]:
    """
    Write the rows of a feed that belong to the marked subset.

    Args:
        reader: The feed that was marked.
        marker: A marker whose `filter` has run on `reader`.
        output_path: A directory, or a path ending in `.zip`.
        settings: Writer settings; defaults apply when omitted.
        temp_dir: Where zip output is staged; the system default if omitted.

    Returns:
        Rows written per filename.

    Raises:
        StreamError: If a table cannot be read.
        OSError: If the output cannot be written.
    """
    settings = settings or WriterSettings()
    output = Path(output_path)

    if output.suffix.lower() != ".zip":
        output.mkdir(parents=True, exist_ok=True)
        counts = _write_tables(reader, marker, output, settings)
    else:
        output.parent.mkdir(parents=True, exist_ok=True)
        if temp_dir is not None:
            Path(temp_dir).mkdir(parents=True, exist_ok=True)
        with tempfile.TemporaryDirectory(dir=temp_dir) as staging:
            staging_dir = Path(staging)
            counts = _write_tables(reader, marker, staging_dir, settings)
            with zipfile.ZipFile(output, "w", zipfile.ZIP_DEFLATED) as archive:
                for filename in _write_order([p.name for p in staging_dir.iterdir()]):
                    archive.write(staging_dir / filename, arcname=filename)

    module_logger.info(
        f"Wrote {sum(counts.values())} rows in {len(counts)} files to {output}"
    )
    return counts
