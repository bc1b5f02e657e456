"""Loading files for upload-style inputs.

Tests that exercise file inputs usually hand the server parsed rows rather
than raw bytes:

    session.set_inputs(upload=load_file(tmp_path / "data.csv"))

The supported formats form a closed set. Anything else is rejected with
UnsupportedFileTypeError rather than guessed at.
"""

from __future__ import annotations

import csv
import enum
import json
from pathlib import Path

from rxharness.errors import UnsupportedFileTypeError


class FileKind(enum.Enum):
    CSV = "csv"
    TSV = "tsv"
    JSON = "json"

    @classmethod
    def from_path(cls, path: str | Path) -> FileKind:
        extension = Path(path).suffix.lower().lstrip(".")
        try:
            return cls(extension)
        except ValueError:
            raise UnsupportedFileTypeError(path, extension) from None


def load_file(path: str | Path, kind: FileKind | None = None) -> list[dict] | object:
    """Parse path according to its kind (inferred from the extension).

    Delimited files load as a list of row dicts keyed by the header line;
    JSON loads as whatever the document contains.
    """
    kind = kind or FileKind.from_path(path)
    path = Path(path)
    if kind is FileKind.JSON:
        with path.open(encoding="utf-8") as fh:
            return json.load(fh)
    delimiter = "\t" if kind is FileKind.TSV else ","
    with path.open(newline="", encoding="utf-8") as fh:
        return list(csv.DictReader(fh, delimiter=delimiter))
