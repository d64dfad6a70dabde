import os
import tempfile
import unittest

import matplotlib.pyplot as plt
import numpy as np
import torch

from coherentlib.plotting import ReconstructionProgressPlotter, plot_convergence_history, plot_reflectance
from coherentlib.reconstructors import ADMMHistory


class TestPlottingBase(unittest.TestCase):
    @classmethod
    def setUpClass(cls):
        # Ensure matplotlib backend is non-interactive for tests
        plt.switch_backend('Agg')

    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()

    def tearDown(self):
        plt.close('all')  # Close all figures after each test
        self.tmpdir.cleanup()


class TestPlotReflectance(TestPlottingBase):
    def test_runs(self):
        ax = plot_reflectance(torch.rand(8, 8))
        self.assertIsInstance(ax, plt.Axes)
        self.assertEqual(ax.get_title(), 'Reflectance')

    def test_with_ax(self):
        _, expected_ax = plt.subplots()
        returned_ax = plot_reflectance(np.random.rand(8, 8), title='r', ax=expected_ax, colorbar=False)
        self.assertIs(returned_ax, expected_ax)

    def test_complex_input_shows_magnitude(self):
        field = torch.full((4, 4), 3 + 4j, dtype=torch.complex128)
        ax = plot_reflectance(field)
        np.testing.assert_allclose(ax.images[0].get_array(), np.full((4, 4), 5.0))

    def test_saves_file(self):
        filename = os.path.join(self.tmpdir.name, 'reflectance.png')
        plot_reflectance(torch.rand(8, 8), filename=filename)
        self.assertTrue(os.path.exists(filename))

    def test_invalid_ndim(self):
        with self.assertRaises(ValueError):
            plot_reflectance(torch.rand(2, 8, 8))


class TestPlotConvergenceHistory(TestPlottingBase):
    def setUp(self):
        super().setUp()
        self.history = ADMMHistory(cost=[3.0, 2.0, 1.5], psnr=[10.0, 12.0, 13.0],
                                   residual_norm=[1.0, 0.5, 0.2], step_norm=[2.0, 0.4, 0.1],
                                   max_root_imag=[0.0, 0.0, 0.0])

    def test_runs(self):
        fig = plot_convergence_history(self.history)
        self.assertIsInstance(fig, plt.Figure)
        self.assertEqual(len(fig.axes), 4)

    def test_without_psnr_and_cost(self):
        history = ADMMHistory(residual_norm=[1.0], step_norm=[1.0], max_root_imag=[0.0])
        fig = plot_convergence_history(history)
        self.assertEqual(len(fig.axes), 2)

    def test_saves_file(self):
        filename = os.path.join(self.tmpdir.name, 'history.png')
        plot_convergence_history(self.history, filename=filename)
        self.assertTrue(os.path.exists(filename))

    def test_empty_history(self):
        with self.assertRaises(ValueError):
            plot_convergence_history(ADMMHistory())


class TestReconstructionProgressPlotter(TestPlottingBase):
    def test_updates_and_saves(self):
        filename = os.path.join(self.tmpdir.name, 'progress.png')
        plotter = ReconstructionProgressPlotter(max_iters=2, filename=filename)
        r = torch.rand(8, 8, dtype=torch.float64)
        for iteration in range(2):
            plotter(iteration, r * (iteration + 1), r, torch.zeros_like(r), {'cost': 1.0 / (iteration + 1),
                                                                              'psnr': 10.0 + iteration})
        self.assertTrue(os.path.exists(filename))
        self.assertEqual(plotter.ax_image.get_title(), 'r (iter 2)')
        self.assertEqual(len(plotter.ax_cost.lines), 2)
        plotter.close()
        self.assertFalse(plt.fignum_exists(plotter.fig.number))


if __name__ == '__main__':
    unittest.main()
