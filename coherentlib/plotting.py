# coherentlib/plotting.py
"""Module for visualization of coherent reflectance reconstructions."""

from typing import Dict, Optional

import matplotlib.pyplot as plt
import numpy as np
import torch

from .reconstructors.pnp_admm_reconstructor import ADMMHistory


def _to_numpy_image(image) -> np.ndarray:
    if isinstance(image, torch.Tensor):
        image = image.detach().cpu()
        image = image.abs() if image.is_complex() else image
        image = image.numpy()
    image = np.asarray(image)
    if np.iscomplexobj(image):
        image = np.abs(image)
    if image.ndim != 2:
        raise ValueError(f"Expected a 2D image, got shape {image.shape}.")
    return image


def plot_reflectance(image, title: str = "Reflectance", ax: plt.Axes = None, cmap: str = "gray",
                     colorbar: bool = True, filename: str = None) -> plt.Axes:
    """
    Displays a 2D reflectance (or magnitude of a complex field) with automatic scaling.

    Args:
        image (np.ndarray or torch.Tensor): 2D data; complex data is shown as magnitude.
        title (str, optional): Title of the plot. Defaults to "Reflectance".
        ax (plt.Axes, optional): Axes to draw into. A new figure is created if None.
        cmap (str, optional): Colormap. Defaults to "gray".
        colorbar (bool, optional): Add a colorbar. Defaults to True.
        filename (str, optional): If provided, the figure is saved to this path and closed.

    Returns:
        plt.Axes: The axes containing the plot.
    """
    data = _to_numpy_image(image)
    if ax is None:
        _, ax = plt.subplots()
    im = ax.imshow(data, cmap=cmap)
    if colorbar:
        ax.figure.colorbar(im, ax=ax)
    ax.set_title(title)
    ax.axis('off')
    if filename:
        ax.figure.savefig(filename, bbox_inches='tight')
        plt.close(ax.figure)
    return ax


def plot_convergence_history(history: ADMMHistory, filename: str = None) -> plt.Figure:
    """
    Plots the diagnostics recorded by a PnP-ADMM run.

    Panels: ||r - v||_2, ||v_prev - v||_2, the cost function and, when a
    ground truth was configured, the PSNR of r.

    Returns:
        plt.Figure: The created figure (closed if `filename` is given).
    """
    if history.num_iterations == 0:
        raise ValueError("history is empty; nothing to plot.")
    panels = [
        (history.residual_norm, r'$\|r-v\|_2$'),
        (history.step_norm, r'$\|v_{old}-v\|_2$'),
    ]
    if history.cost:
        panels.append((history.cost, 'Cost-Function'))
    if history.psnr:
        panels.append((history.psnr, 'PSNR (dB)'))

    fig, axes = plt.subplots(1, len(panels), figsize=(4 * len(panels), 3.5))
    for ax, (values, title) in zip(np.atleast_1d(axes), panels):
        ax.plot(np.arange(1, len(values) + 1), values, 'o-')
        ax.set_xlabel('Iteration')
        ax.set_title(title)
    fig.tight_layout()
    if filename:
        fig.savefig(filename, bbox_inches='tight')
        plt.close(fig)
    return fig


class ReconstructionProgressPlotter:
    """
    Observer showing the current estimate, its PSNR and the cost while a
    PnP-ADMM run progresses.

    Pass an instance as `observer` to PnPADMMReconstructor. Drawing is
    requested with `draw_idle`, so the reconstruction loop never waits on the
    GUI.

    Args:
        max_iters (int): x-axis extent of the diagnostic panels.
        filename (str, optional): If given, the figure is saved here after
            every update (the last save holds the final state).
    """
    def __init__(self, max_iters: int, filename: Optional[str] = None):
        self.max_iters = max_iters
        self.filename = filename
        self.fig, (self.ax_image, self.ax_psnr, self.ax_cost) = plt.subplots(1, 3, figsize=(13, 4))
        self.ax_psnr.set_title('PSNR')
        self.ax_cost.set_title('Cost-Function')
        for ax in (self.ax_psnr, self.ax_cost):
            ax.set_xlim(0, max_iters + 1)
        self._image = None
        self._colorbar = None

    def __call__(self, iteration: int, r: torch.Tensor, v: torch.Tensor, u: torch.Tensor,
                 diagnostics: Dict[str, float]) -> None:
        data = _to_numpy_image(r)
        if self._image is None:
            self._image = self.ax_image.imshow(data, cmap='gray')
            self._colorbar = self.fig.colorbar(self._image, ax=self.ax_image)
            self.ax_image.axis('off')
        else:
            self._image.set_data(data)
            self._image.set_clim(float(data.min()), float(data.max()))
        self.ax_image.set_title(f'r (iter {iteration + 1})')
        if 'psnr' in diagnostics:
            self.ax_psnr.plot(iteration + 1, diagnostics['psnr'], 'bo')
        if 'cost' in diagnostics:
            self.ax_cost.plot(iteration + 1, diagnostics['cost'], 'ro')
        self.fig.canvas.draw_idle()
        if self.filename:
            self.fig.savefig(self.filename, bbox_inches='tight')

    def close(self) -> None:
        plt.close(self.fig)
