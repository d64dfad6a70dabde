import math
import unittest

import torch

from coherentlib.metrics import compute_cost_function, compute_covariance_and_mean, evaluate_cost, mse, psnr


class TestImageMetrics(unittest.TestCase):
    def setUp(self):
        self.image_true = torch.zeros(4, 4, dtype=torch.float64)
        self.image_true[0, 0] = 1.0

    def test_mse(self):
        image_test = self.image_true + 0.1
        torch.testing.assert_close(mse(self.image_true, image_test), torch.tensor(0.01, dtype=torch.float64))

    def test_mse_shape_mismatch(self):
        with self.assertRaises(ValueError):
            mse(self.image_true, torch.zeros(3, 3, dtype=torch.float64))

    def test_psnr_known_value(self):
        image_test = self.image_true + 0.1
        self.assertAlmostEqual(psnr(self.image_true, image_test).item(), 20.0, places=6)

    def test_psnr_explicit_data_range(self):
        image_test = self.image_true + 0.1
        self.assertAlmostEqual(psnr(self.image_true, image_test, data_range=10.0).item(), 40.0, places=6)

    def test_psnr_identical_images(self):
        self.assertEqual(psnr(self.image_true, self.image_true.clone()).item(), float('inf'))

    def test_psnr_flat_reference(self):
        flat = torch.ones(3, 3, dtype=torch.float64)
        self.assertEqual(psnr(flat, flat + 0.5).item(), 0.0)


class TestObjective(unittest.TestCase):
    def test_covariance_and_mean(self):
        y = torch.tensor([[1 + 1j, 2 + 0j]], dtype=torch.complex128)
        r = torch.tensor([[0.5, 1.0]], dtype=torch.float64)
        c, mu = compute_covariance_and_mean(y, 0.1, r)
        torch.testing.assert_close(c, torch.tensor([[0.51, 1.01]], dtype=torch.float64))
        torch.testing.assert_close(mu, torch.tensor([[2.0, 4.0]], dtype=torch.float64))

    def test_covariance_size_mismatch(self):
        with self.assertRaises(ValueError):
            compute_covariance_and_mean(torch.zeros(3), 0.1, torch.zeros(4))

    def test_cost_single_pixel(self):
        c = torch.tensor([2.0], dtype=torch.float64)
        mu = torch.tensor([4.0], dtype=torch.float64)
        r = torch.tensor([1.5], dtype=torch.float64)
        r_ref = torch.tensor([0.5], dtype=torch.float64)
        expected = math.log(2.0) + 2.0 + 1.0 / (2 * 0.5 ** 2)
        self.assertAlmostEqual(compute_cost_function(c, mu, r, 0.5, r_ref), expected)

    def test_cost_negative_covariance_is_finite(self):
        c = torch.tensor([-0.5], dtype=torch.float64)
        mu = torch.tensor([1.0], dtype=torch.float64)
        r = torch.tensor([-0.51], dtype=torch.float64)
        cost = compute_cost_function(c, mu, r, 0.1, r)
        self.assertAlmostEqual(cost, math.log(0.5) - 2.0)

    def test_cost_leaves_out_singular_pixels(self):
        c = torch.tensor([0.0, 2.0], dtype=torch.float64)
        mu = torch.tensor([1.0, 4.0], dtype=torch.float64)
        r = torch.tensor([-0.01, 1.5], dtype=torch.float64)
        r_ref = torch.tensor([0.5, 0.5], dtype=torch.float64)
        with self.assertLogs('coherentlib.metrics.objective', level='DEBUG') as logs:
            cost = compute_cost_function(c, mu, r, 0.5, r_ref)
        self.assertTrue(math.isfinite(cost))
        self.assertAlmostEqual(cost, math.log(2.0) + 2.0 + 1.0 / (2 * 0.5 ** 2))
        self.assertIn('1 of 2 pixels', logs.output[0])

    def test_evaluate_cost_at_noise_floor_root(self):
        sigma_w = 0.1
        r = torch.tensor([[-sigma_w ** 2, 0.3]], dtype=torch.float64)
        y = torch.tensor([[0.5 + 0j, 1 + 0j]], dtype=torch.complex128)
        cost = evaluate_cost(y, sigma_w, r, 0.2, r)
        self.assertAlmostEqual(cost, math.log(0.3 + sigma_w ** 2) + 1.0 / (0.3 + sigma_w ** 2))

    def test_evaluate_cost_matches_two_step(self):
        torch.manual_seed(0)
        y = torch.randn(4, 4, dtype=torch.complex128)
        r = torch.rand(4, 4, dtype=torch.float64)
        r_ref = torch.rand(4, 4, dtype=torch.float64)
        c, mu = compute_covariance_and_mean(y, 0.1, r)
        self.assertAlmostEqual(evaluate_cost(y, 0.1, r, 0.3, r_ref), compute_cost_function(c, mu, r, 0.3, r_ref))


if __name__ == '__main__':
    unittest.main()
