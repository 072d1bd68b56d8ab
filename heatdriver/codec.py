"""CSV grid state: the backend's textual parse contract and the grid grammar.

The backend reports the outcome of ``parse_buffer`` as a single string: a
value starting with ``SUCCESS_PREFIX`` means the buffer was accepted and is
staged for commit, anything else is an error message meant for the user.
``interpret_status`` turns that string into ``Staged`` / ``Rejected`` so the
rest of the driver never inspects the raw text.

The grammar itself (``parse_csv_grid`` / ``format_csv_grid``) is only used by
backends that keep their state in this process: comma-separated float32
values, one grid row per line, no header, all rows the same length.
"""

from __future__ import annotations

import csv
import io
import logging
from typing import Callable

import numpy as np

from .models import ParseOutcome, Rejected, Staged

logger = logging.getLogger(__name__)

SUCCESS_PREFIX = "success"
SUCCESS_STATUS = "success!"

FileSaver = Callable[[str, str], object]


class CsvGridError(ValueError):
    pass


def interpret_status(status: str) -> ParseOutcome:
    if status.startswith(SUCCESS_PREFIX):
        return Staged(status=status)
    return Rejected(message=status)


def stage(backend, text: str) -> ParseOutcome:
    outcome = interpret_status(backend.parse_buffer(text))
    if isinstance(outcome, Rejected):
        logger.warning("CSV import rejected: %s", outcome.message)
    else:
        logger.info("CSV buffer staged (%s)", outcome.status)
    return outcome


def export_state(backend, saver: FileSaver, filename: str) -> str:
    """Pull the full state as text and hand it to ``saver``; returns the text."""
    text = backend.serialize_to_text().result()
    saver(filename, text)
    logger.info("Exported %d characters of state to %s", len(text), filename)
    return text


def _parse_entry(raw: str) -> float:
    return float(np.float32(float(raw)))


def parse_csv_grid(text: str) -> tuple[np.ndarray, int, int]:
    """Parse CSV text into a ``(height, width)`` float32 array.

    Raises ``CsvGridError`` with a user-facing message on malformed input.
    """
    rows = [row for row in csv.reader(io.StringIO(text)) if row]
    if not rows:
        raise CsvGridError("couldn't find first row")

    values: list[float] = []
    width = 0
    for raw in rows[0]:
        try:
            values.append(_parse_entry(raw))
        except ValueError:
            raise CsvGridError(f"could not read csv entry (0,{width}) as float32") from None
        width += 1

    height = 1
    for row in rows[1:]:
        x_coord = 0
        for raw in row:
            try:
                values.append(_parse_entry(raw))
            except ValueError:
                raise CsvGridError(
                    f"failed to read element ({x_coord},{height}) of csv as float32?"
                ) from None
            x_coord += 1
        if x_coord != width:
            raise CsvGridError(f"{height}'th line of csv was {x_coord} long instead of {width}")
        height += 1

    if len(values) != width * height:
        raise CsvGridError(
            f"csv failed data-length is width times height test (width {width} and height {height})"
        )
    grid = np.asarray(values, dtype=np.float32).reshape(height, width)
    return grid, width, height


def format_csv_grid(grid: np.ndarray) -> str:
    data = np.asarray(grid, dtype=np.float32)
    if data.ndim != 2:
        raise ValueError("Grid data must be 2D [y, x].")
    buffer = io.StringIO()
    writer = csv.writer(buffer, lineterminator="\n")
    for row in data:
        writer.writerow([str(value) for value in row])
    return buffer.getvalue()
