#!/usr/bin/env python3
# -*- coding: utf-8 -*-
"""
Streaming access to the tables of a GTFS feed.

`ReaderInterface` is the contract the graph builder relies on: one lazy,
finite sequence of parsed entities per table. `FeedReader` implements it over
a zip archive or a directory of `.txt` files, reading each table in pandas
chunks so that large tables such as `stop_times.txt` are never held in memory
as a whole.
"""

import logging
import zipfile
from abc import ABC, abstractmethod
from pathlib import Path
from typing import IO, Iterator, List, Optional, Tuple, Type, Union

import pandas as pd
from pydantic import ValidationError

from processors.extract.errors import StreamError
from processors.gtfs.schema_definitions import GTFS_FILE_SCHEMAS, GTFSBaseModel
from processors.gtfs.transform import clean_record

module_logger = logging.getLogger(__name__)

DEFAULT_CHUNK_SIZE = 100_000


class ReaderInterface(ABC):
    """
    Abstract source of GTFS entities.

    Every call to `stream` starts a new pass over one table. Consumers must
    treat each returned iterator as single-use.
    """

    @abstractmethod
    def stream(self, filename: str) -> Iterator[GTFSBaseModel]:
        """
        Stream the entities of one table.

        Args:
            filename: GTFS filename, e.g. "stops.txt".

        Returns:
            An iterator of parsed entities; empty if the table is absent.

        Raises:
            StreamError: If the table cannot be read.
        """
        pass

    def agencies(self) -> Iterator[GTFSBaseModel]:
        return self.stream("agency.txt")

    def routes(self) -> Iterator[GTFSBaseModel]:
        return self.stream("routes.txt")

    def trips(self) -> Iterator[GTFSBaseModel]:
        return self.stream("trips.txt")

    def stops(self) -> Iterator[GTFSBaseModel]:
        return self.stream("stops.txt")

    def stop_times(self) -> Iterator[GTFSBaseModel]:
        return self.stream("stop_times.txt")

    def calendars(self) -> Iterator[GTFSBaseModel]:
        return self.stream("calendar.txt")

    def calendar_dates(self) -> Iterator[GTFSBaseModel]:
        return self.stream("calendar_dates.txt")

    def shapes(self) -> Iterator[GTFSBaseModel]:
        return self.stream("shapes.txt")

    def levels(self) -> Iterator[GTFSBaseModel]:
        return self.stream("levels.txt")

    def fare_attributes(self) -> Iterator[GTFSBaseModel]:
        return self.stream("fare_attributes.txt")

    def fare_rules(self) -> Iterator[GTFSBaseModel]:
        return self.stream("fare_rules.txt")

    def close(self) -> None:
        """Release any underlying resources."""
        pass

    def __enter__(self):
        return self

    def __exit__(self, exc_type, exc_val, exc_tb):
        self.close()
        return False


class FeedReader(ReaderInterface):
    """
    Reads a GTFS feed from a zip archive or a directory.

    Zip archives whose tables sit in a single subdirectory are supported.
    All values are read as strings and cleaned before model parsing.
    """

    def __init__(
        self,
        path: Union[str, Path],
        chunk_size: int = DEFAULT_CHUNK_SIZE,
        validate_rows: bool = True,
        encoding: str = "utf-8-sig",
    ):
        self.path = Path(path)
        self.chunk_size = chunk_size
        self.validate_rows = validate_rows
        self.encoding = encoding
        self._zip: Optional[zipfile.ZipFile] = None
        self._prefix = ""
        self._opened = False

    def __repr__(self) -> str:
        return f"FeedReader({str(self.path)!r})"

    def open(self) -> "FeedReader":
        """
        Open the feed for reading.

        Returns:
            The reader itself.

        Raises:
            StreamError: If the path does not exist or is not a readable zip
                         archive or directory.
        """
        if self._opened:
            return self
        if self.path.is_dir():
            module_logger.debug(f"Reading GTFS directory {self.path}")
        elif self.path.is_file():
            try:
                self._zip = zipfile.ZipFile(self.path)
            except (zipfile.BadZipFile, OSError) as e:
                raise StreamError(
                    f"Could not open GTFS archive {self.path}: {e}",
                    original_error=e,
                ) from e
            self._prefix = self._find_zip_prefix(self._zip.namelist())
            module_logger.debug(
                f"Reading GTFS archive {self.path} (prefix '{self._prefix}')"
            )
        else:
            raise StreamError(f"GTFS feed not found: {self.path}")
        self._opened = True
        return self

    def close(self) -> None:
        if self._zip is not None:
            self._zip.close()
            self._zip = None
        self._opened = False

    def __enter__(self) -> "FeedReader":
        return self.open()

    @staticmethod
    def _find_zip_prefix(names: List[str]) -> str:
        """Return the directory inside the archive that holds the tables."""
        txt_names = [n for n in names if n.endswith(".txt")]
        if any("/" not in n for n in txt_names):
            return ""
        for name in txt_names:
            parent, _, base = name.rpartition("/")
            if base in GTFS_FILE_SCHEMAS:
                return parent + "/"
        return ""

    def filenames(self) -> List[str]:
        """List the `.txt` tables present in the feed."""
        self.open()
        if self._zip is not None:
            return sorted(
                n[len(self._prefix):]
                for n in self._zip.namelist()
                if n.startswith(self._prefix)
                and n.endswith(".txt")
                and "/" not in n[len(self._prefix):]
            )
        return sorted(p.name for p in self.path.glob("*.txt") if p.is_file())

    def has_file(self, filename: str) -> bool:
        return filename in self.filenames()

    def open_member(self, filename: str) -> IO[bytes]:
        """Open one file of the feed as a binary stream."""
        self.open()
        if self._zip is not None:
            return self._zip.open(self._prefix + filename)
        return open(self.path / filename, "rb")

    def read_chunks(
        self, filename: str, chunk_size: Optional[int] = None
    ) -> Iterator[pd.DataFrame]:
        """
        Stream a table as DataFrames of raw string values.

        Args:
            filename: GTFS filename.
            chunk_size: Rows per chunk; defaults to the reader's chunk size.

        Returns:
            An iterator of DataFrames with stripped column names. Blank
            fields are empty strings.

        Raises:
            StreamError: On I/O, decoding or CSV parse failures.
        """
        if not self.has_file(filename):
            module_logger.debug(f"{filename} not present in {self.path}")
            return
        rows_per_chunk = chunk_size or self.chunk_size
        try:
            with self.open_member(filename) as fh:
                with pd.read_csv(
                    fh,
                    dtype=str,
                    keep_default_na=False,
                    na_values=[],
                    encoding=self.encoding,
                    chunksize=rows_per_chunk,
                ) as chunks:
                    for chunk in chunks:
                        chunk.columns = [str(c).strip() for c in chunk.columns]
                        yield chunk
        except pd.errors.EmptyDataError:
            module_logger.warning(f"{filename} is empty in {self.path}")
        except (
            OSError,
            zipfile.BadZipFile,
            UnicodeDecodeError,
            pd.errors.ParserError,
        ) as e:
            raise StreamError(
                f"Failed to read {filename} from {self.path}: {e}",
                filename=filename,
                original_error=e,
            ) from e

    def stream(self, filename: str) -> Iterator[GTFSBaseModel]:
        schema = GTFS_FILE_SCHEMAS.get(filename)
        if schema is None:
            raise StreamError(
                f"No entity model defined for {filename}", filename=filename
            )
        return self._stream_entities(filename, schema["model"])

    def _stream_entities(
        self, filename: str, model: Type[GTFSBaseModel]
    ) -> Iterator[GTFSBaseModel]:
        # Line 1 is the header.
        line_number = 1
        invalid = 0
        for chunk in self.read_chunks(filename):
            for record in chunk.to_dict(orient="records"):
                line_number += 1
                entity, valid = self._parse(model, clean_record(record), filename, line_number)
                if not valid:
                    invalid += 1
                yield entity
        if invalid:
            module_logger.warning(
                f"{invalid} rows of {filename} failed validation and were read unvalidated."
            )

    @staticmethod
    def _construct(model: Type[GTFSBaseModel], record: dict) -> GTFSBaseModel:
        # Absent required fields read as None so rules can test them.
        values = {
            name: None
            for name, field_info in model.model_fields.items()
            if field_info.is_required()
        }
        values.update(
            (k, v) for k, v in record.items() if k in model.model_fields and v is not None
        )
        return model.model_construct(**values)

    def _parse(
        self,
        model: Type[GTFSBaseModel],
        record: dict,
        filename: str,
        line_number: int,
    ) -> Tuple[GTFSBaseModel, bool]:
        """
        Parse one cleaned record.

        A row that fails validation is still returned, built without
        validation, so a bad value in one column never aborts the pass.

        Returns:
            The entity and whether it passed validation.
        """
        if not self.validate_rows:
            return self._construct(model, record), True
        try:
            return model.model_validate(record), True
        except ValidationError as e:
            module_logger.debug(
                f"Invalid record on line {line_number} of {filename}: "
                f"{e.errors(include_url=False)}"
            )
            return self._construct(model, record), False
