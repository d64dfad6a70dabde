import dataclasses
import unittest

import numpy as np
import torch

from coherentlib.config import RetrieverConfig, SUPPORTED_INVERSION_MODEL_TYPES, SUPPORTED_NOISE_TYPES
from coherentlib.denoisers import register_denoiser, unregister_denoiser
from coherentlib.exceptions import ConfigurationError


class TestRetrieverConfigDefaults(unittest.TestCase):
    def test_defaults(self):
        cfg = RetrieverConfig(object_size_pixels=(256, 256), sigma_w=0.1)
        self.assertEqual(cfg.object_size_pixels, (256, 256))
        self.assertEqual(cfg.inversion_model_type, 'ML')
        self.assertEqual(cfg.noise_type, 'Gaussian')
        self.assertEqual(cfg.max_iters, 25)
        self.assertEqual(cfg.sigma_lambda, 0.1)
        self.assertEqual(cfg.sigman, 0.1)
        self.assertEqual(cfg.denoiser_type, 'TV')
        self.assertIsNone(cfg.ground_truth)
        self.assertTrue(cfg.real_only)
        self.assertFalse(cfg.nonnegative)
        self.assertEqual(cfg.num_pixels, 256 * 256)

    def test_supported_values(self):
        self.assertEqual(SUPPORTED_INVERSION_MODEL_TYPES, ('ML', 'PnP'))
        self.assertEqual(SUPPORTED_NOISE_TYPES, ('Poisson', 'Gaussian'))

    def test_empty_or_none_choices_fall_back_to_defaults(self):
        cfg = RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1,
                              inversion_model_type=None, noise_type='', denoiser_type=None)
        self.assertEqual(cfg.inversion_model_type, 'ML')
        self.assertEqual(cfg.noise_type, 'Gaussian')
        self.assertEqual(cfg.denoiser_type, 'TV')

    def test_config_is_frozen(self):
        cfg = RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1)
        with self.assertRaises(dataclasses.FrozenInstanceError):
            cfg.sigma_w = 0.2


class TestRetrieverConfigNormalization(unittest.TestCase):
    def test_object_size_from_list_of_floats(self):
        cfg = RetrieverConfig(object_size_pixels=[256.0, 128], sigma_w=0.1)
        self.assertEqual(cfg.object_size_pixels, (256, 128))
        self.assertIsInstance(cfg.object_size_pixels[0], int)

    def test_object_size_from_column_array(self):
        cfg = RetrieverConfig(object_size_pixels=np.array([[4], [5]]), sigma_w=0.1)
        self.assertEqual(cfg.object_size_pixels, (4, 5))

    def test_object_size_from_tensor(self):
        cfg = RetrieverConfig(object_size_pixels=torch.tensor([6, 7]), sigma_w=0.1)
        self.assertEqual(cfg.object_size_pixels, (6, 7))

    def test_single_precision_scalars_are_widened(self):
        cfg = RetrieverConfig(object_size_pixels=(8, 8), sigma_w=np.float32(0.25),
                              sigma_lambda=torch.tensor(0.5, dtype=torch.float32))
        self.assertIsInstance(cfg.sigma_w, float)
        self.assertIsInstance(cfg.sigma_lambda, float)
        self.assertAlmostEqual(cfg.sigma_w, 0.25)
        self.assertAlmostEqual(cfg.sigma_lambda, 0.5)

    def test_ground_truth_is_reshaped(self):
        gt = np.arange(12, dtype=np.float32)
        cfg = RetrieverConfig(object_size_pixels=(3, 4), sigma_w=0.1, ground_truth=gt)
        self.assertEqual(tuple(cfg.ground_truth.shape), (3, 4))
        self.assertEqual(cfg.ground_truth.dtype, torch.float64)

    def test_replace_revalidates(self):
        cfg = RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1)
        pnp = cfg.replace(inversion_model_type='PnP', max_iters=3)
        self.assertEqual(pnp.inversion_model_type, 'PnP')
        self.assertEqual(pnp.max_iters, 3)
        self.assertEqual(cfg.inversion_model_type, 'ML')
        with self.assertRaises(ConfigurationError):
            cfg.replace(sigma_w=-1.0)


class TestRetrieverConfigValidation(unittest.TestCase):
    def test_unsupported_inversion_model_type(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RetrieverConfig(object_size_pixels=[256, 256], sigma_w=0.1, inversion_model_type='EM')
        message = str(ctx.exception)
        self.assertIn("'EM'", message)
        self.assertIn("'ML', 'PnP'", message)

    def test_configuration_error_is_value_error(self):
        with self.assertRaises(ValueError):
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, noise_type='Speckle')

    def test_unsupported_noise_type_lists_supported(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, noise_type='Speckle')
        self.assertIn("'Poisson', 'Gaussian'", str(ctx.exception))

    def test_non_positive_scalars(self):
        for field in ('sigma_w', 'sigma_lambda', 'sigman', 'root_imag_tol'):
            for bad in (0.0, -0.1, float('nan'), float('inf')):
                kwargs = {'object_size_pixels': (8, 8), 'sigma_w': 0.1, field: bad}
                with self.subTest(field=field, value=bad):
                    with self.assertRaises(ConfigurationError):
                        RetrieverConfig(**kwargs)

    def test_bool_is_not_a_number(self):
        with self.assertRaises(ConfigurationError):
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=True)

    def test_max_iters_must_be_positive_integer(self):
        for bad in (0, -3, 2.5, 'ten'):
            with self.subTest(max_iters=bad):
                with self.assertRaises(ConfigurationError):
                    RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, max_iters=bad)

    def test_invalid_object_sizes(self):
        for bad in ((8,), (8, 8, 8), (0, 8), (-4, 8), (8.5, 8), '88', 64):
            with self.subTest(object_size_pixels=bad):
                with self.assertRaises(ConfigurationError):
                    RetrieverConfig(object_size_pixels=bad, sigma_w=0.1)

    def test_ground_truth_wrong_size(self):
        with self.assertRaises(ConfigurationError):
            RetrieverConfig(object_size_pixels=(4, 4), sigma_w=0.1, ground_truth=torch.zeros(5, 5))

    def test_ground_truth_complex_rejected(self):
        with self.assertRaises(ConfigurationError):
            RetrieverConfig(object_size_pixels=(2, 2), sigma_w=0.1,
                            ground_truth=torch.zeros(2, 2, dtype=torch.complex128))

    def test_flags_must_be_bool(self):
        with self.assertRaises(ConfigurationError):
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, real_only=1)
        with self.assertRaises(ConfigurationError):
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, nonnegative='yes')


class TestRetrieverConfigDenoiserType(unittest.TestCase):
    def tearDown(self):
        unregister_denoiser('Identity')

    def test_unknown_denoiser_rejected(self):
        with self.assertRaises(ConfigurationError) as ctx:
            RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, denoiser_type='Identity')
        self.assertIn("'TV'", str(ctx.exception))

    def test_registered_denoiser_accepted(self):
        register_denoiser('Identity', lambda x, strength, real_only: x.clone())
        cfg = RetrieverConfig(object_size_pixels=(8, 8), sigma_w=0.1, denoiser_type='Identity')
        self.assertEqual(cfg.denoiser_type, 'Identity')


if __name__ == '__main__':
    unittest.main()
