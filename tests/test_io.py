import os
import tempfile
import unittest

import matplotlib.image as mpimg
import numpy as np
import torch

from coherentlib.io import ReflectanceImageIO, load_reflectance_image


class TestReflectanceImageIO(unittest.TestCase):
    def setUp(self):
        self.tmpdir = tempfile.TemporaryDirectory()
        self.gradient = np.tile(np.linspace(0.0, 1.0, 32), (24, 1))
        self.path = os.path.join(self.tmpdir.name, 'target.png')
        mpimg.imsave(self.path, self.gradient, cmap='gray', vmin=0.0, vmax=1.0)

    def tearDown(self):
        self.tmpdir.cleanup()

    def test_read_png(self):
        reflectance = load_reflectance_image(self.path)
        self.assertIsInstance(reflectance, torch.Tensor)
        self.assertEqual(tuple(reflectance.shape), (24, 32))
        self.assertEqual(reflectance.dtype, torch.float64)
        # 8-bit quantization plus luma weights that sum to 0.9999
        np.testing.assert_allclose(reflectance.numpy(), self.gradient, atol=0.01)

    def test_read_with_resize(self):
        reflectance = load_reflectance_image(self.path, shape=(12, 16))
        self.assertEqual(tuple(reflectance.shape), (12, 16))
        self.assertGreaterEqual(reflectance.min().item(), 0.0)
        self.assertLessEqual(reflectance.max().item(), 1.0)

    def test_to_grayscale(self):
        rgb = np.zeros((2, 2, 3))
        rgb[..., 1] = 1.0
        gray = ReflectanceImageIO.to_grayscale(rgb)
        np.testing.assert_allclose(gray, np.full((2, 2), 0.5870))
        gray_2d = np.ones((2, 2))
        self.assertIs(ReflectanceImageIO.to_grayscale(gray_2d), gray_2d)
        with self.assertRaises(ValueError):
            ReflectanceImageIO.to_grayscale(np.zeros((2, 2, 2)))

    def test_to_unit_range(self):
        image = np.array([[0, 255]], dtype=np.uint8)
        np.testing.assert_allclose(ReflectanceImageIO.to_unit_range(image), [[0.0, 1.0]])
        image16 = np.array([[65535]], dtype=np.uint16)
        np.testing.assert_allclose(ReflectanceImageIO.to_unit_range(image16), [[1.0]])

    def test_invalid_shape(self):
        with self.assertRaises(ValueError):
            ReflectanceImageIO(shape=(0, 4))
        with self.assertRaises(ValueError):
            ReflectanceImageIO(shape=(4, 4, 4))


if __name__ == '__main__':
    unittest.main()
