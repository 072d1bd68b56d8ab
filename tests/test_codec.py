from __future__ import annotations

import numpy as np
import pytest

from fakes import FakeBackend
from heatdriver.codec import (
    CsvGridError,
    export_state,
    format_csv_grid,
    interpret_status,
    parse_csv_grid,
    stage,
)
from heatdriver.models import Rejected, Staged


def test_interpret_status_checks_success_prefix() -> None:
    assert interpret_status("success!") == Staged("success!")
    assert interpret_status("success: 10x20") == Staged("success: 10x20")
    assert interpret_status("couldn't find first row") == Rejected("couldn't find first row")
    assert isinstance(interpret_status("Success"), Rejected)


def test_stage_passes_text_to_backend() -> None:
    backend = FakeBackend(parse_status="error: malformed row 3")
    outcome = stage(backend, "payload")
    assert outcome == Rejected("error: malformed row 3")
    assert backend.calls == [("parse_buffer", "payload")]


def test_parse_csv_grid_shape_and_values() -> None:
    grid, width, height = parse_csv_grid("1,2,3\n4,5,6\n")
    assert (width, height) == (3, 2)
    assert grid.dtype == np.float32
    assert grid.shape == (2, 3)
    assert grid[1, 0] == 4.0


def test_parse_csv_grid_skips_blank_lines() -> None:
    grid, width, height = parse_csv_grid("1.5,2\r\n\r\n3,4\r\n")
    assert (width, height) == (2, 2)
    assert grid[0, 0] == 1.5


@pytest.mark.parametrize(
    "text, message",
    [
        ("", "couldn't find first row"),
        ("1,a\n", "could not read csv entry (0,1) as float32"),
        ("1,2\n3,x\n", "failed to read element (1,1) of csv as float32?"),
        ("1,2\n3\n", "1'th line of csv was 1 long instead of 2"),
        ("1,2\n3,4\n5,6,7\n", "2'th line of csv was 3 long instead of 2"),
    ],
)
def test_parse_csv_grid_errors(text, message) -> None:
    with pytest.raises(CsvGridError) as excinfo:
        parse_csv_grid(text)
    assert str(excinfo.value) == message


def test_format_csv_grid_writes_rows() -> None:
    text = format_csv_grid(np.array([[1.5, 2.0], [3.0, 4.0]]))
    assert text == "1.5,2.0\n3.0,4.0\n"

    grid, _, _ = parse_csv_grid(text)
    assert np.array_equal(grid, np.array([[1.5, 2.0], [3.0, 4.0]], dtype=np.float32))


def test_format_csv_grid_rejects_non_2d() -> None:
    with pytest.raises(ValueError):
        format_csv_grid(np.zeros(4))


def test_export_state_hands_text_to_saver() -> None:
    backend = FakeBackend()
    saved: dict[str, str] = {}
    text = export_state(backend, saved.__setitem__, "state.csv")

    assert text == backend.serialized
    assert saved == {"state.csv": backend.serialized}
    assert backend.names() == ["serialize_to_text"]
