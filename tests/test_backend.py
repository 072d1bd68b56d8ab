from __future__ import annotations

import time
import unittest

import numpy as np

from heatdriver.backend import BackendStateError, NumpyHeatBackend
from heatdriver.heatmap import heatmap_rgba
from heatdriver.initial_conditions import build_initial_field
from heatdriver.parameters import stable_step_size
from heatdriver.solver import advance, build_laplacian, total_energy


def _wait_ready(backend: NumpyHeatBackend, timeout: float = 5.0) -> bool:
    deadline = time.monotonic() + timeout
    while time.monotonic() < deadline:
        if backend.is_diagnostic_ready():
            return True
        time.sleep(0.001)
    return False


class NumpyBackendTests(unittest.TestCase):
    def setUp(self) -> None:
        self.frames: list[np.ndarray] = []
        self.backend = NumpyHeatBackend(presenter=self.frames.append)

    def tearDown(self) -> None:
        self.backend.close()

    def test_uninitialized_backend_refuses_work(self) -> None:
        with self.assertRaises(BackendStateError):
            self.backend.step(1)
        with self.assertRaises(BackendStateError):
            self.backend.current_width()

    def test_reinit_allocates_requested_grid(self) -> None:
        self.backend.reinit_with_dimensions(16, 8).result()
        self.assertEqual(self.backend.current_width(), 16)
        self.assertEqual(self.backend.current_height(), 8)
        self.assertGreater(total_energy(self.backend.field_snapshot()), 0.0)

    def test_stepping_conserves_total_energy(self) -> None:
        self.backend.reinit_with_dimensions(16, 8).result()
        initial = total_energy(self.backend.field_snapshot())
        self.backend.push_parameters(10, 1.0, stable_step_size(1.0, 16, 8), 0.0, 400.0)

        self.backend.step(50)

        field = self.backend.field_snapshot()
        self.assertAlmostEqual(total_energy(field) / initial, 1.0, places=4)
        self.assertLess(float(field.max()), 400.0)

    def test_readback_is_consumed_once(self) -> None:
        self.backend.reinit_with_dimensions(8, 8).result()
        expected = total_energy(self.backend.field_snapshot())
        self.backend.request_diagnostic()

        self.assertTrue(_wait_ready(self.backend))
        self.assertAlmostEqual(self.backend.fetch_diagnostic(), expected)
        self.assertFalse(self.backend.is_diagnostic_ready())
        with self.assertRaises(BackendStateError):
            self.backend.fetch_diagnostic()

    def test_discard_drops_pending_readback(self) -> None:
        self.backend.reinit_with_dimensions(8, 8).result()
        self.backend.request_diagnostic()
        self.backend.discard_state()
        self.backend.reinit_with_dimensions(4, 4).result()

        self.assertFalse(self.backend.is_diagnostic_ready())
        with self.assertRaises(BackendStateError):
            self.backend.fetch_diagnostic()

    def test_csv_import_and_export(self) -> None:
        self.assertEqual(self.backend.parse_buffer("1,2,3\n4,5,6\n"), "success!")
        self.backend.commit_parsed_buffer().result()

        self.assertEqual(self.backend.current_width(), 3)
        self.assertEqual(self.backend.current_height(), 2)
        self.assertEqual(self.backend.fetch_initial_diagnostic().result(), 21.0)
        self.assertEqual(self.backend.serialize_to_text().result(), "1.0,2.0,3.0\n4.0,5.0,6.0\n")

    def test_bad_csv_keeps_current_state(self) -> None:
        self.backend.reinit_with_dimensions(4, 4).result()
        status = self.backend.parse_buffer("1,2\n3\n")

        self.assertEqual(status, "1'th line of csv was 1 long instead of 2")
        self.assertEqual(self.backend.current_width(), 4)
        with self.assertRaises(BackendStateError):
            self.backend.commit_parsed_buffer().result()

    def test_render_presents_rgba_frame(self) -> None:
        self.backend.reinit_with_dimensions(16, 8).result()
        self.backend.render()

        self.assertEqual(len(self.frames), 1)
        self.assertEqual(self.frames[0].shape, (8, 16, 4))
        self.assertEqual(self.frames[0].dtype, np.uint8)
        self.assertIs(self.backend.last_frame, self.frames[0])


class SolverTests(unittest.TestCase):
    def test_laplacian_columns_sum_to_zero(self) -> None:
        lap = build_laplacian(5, 3)
        self.assertEqual(lap.shape, (15, 15))
        self.assertTrue(np.allclose(np.asarray(lap.sum(axis=0)).ravel(), 0.0))

    def test_uniform_field_is_steady(self) -> None:
        field = np.full((4, 6), 7.0, dtype=np.float32)
        out = advance(field, build_laplacian(6, 4), 1.0, stable_step_size(1.0, 6, 4), 20)
        self.assertTrue(np.allclose(out, 7.0))
        self.assertEqual(out.dtype, np.float32)

    def test_single_cell_grid(self) -> None:
        field = np.array([[3.0]], dtype=np.float32)
        out = advance(field, build_laplacian(1, 1), 1.0, 0.1, 5)
        self.assertEqual(float(out[0, 0]), 3.0)

    def test_initial_condition_names(self) -> None:
        disk = build_initial_field("disk", 32, 32)
        self.assertEqual(disk.shape, (32, 32))
        self.assertEqual(float(disk.max()), 400.0)
        self.assertEqual(float(disk[0, 0]), 0.0)
        with self.assertRaises(ValueError):
            build_initial_field("square", 4, 4)


class HeatmapTests(unittest.TestCase):
    def test_bounds_map_to_blue_and_red(self) -> None:
        rgba = heatmap_rgba(np.array([[0.0, 400.0, 900.0, -5.0]]), 0.0, 400.0)
        self.assertEqual(tuple(rgba[0, 0]), (0, 0, 255, 255))
        self.assertEqual(tuple(rgba[0, 1]), (255, 0, 0, 255))
        self.assertEqual(tuple(rgba[0, 2]), (255, 0, 0, 255))
        self.assertEqual(tuple(rgba[0, 3]), (0, 0, 255, 255))


if __name__ == "__main__":
    unittest.main()
