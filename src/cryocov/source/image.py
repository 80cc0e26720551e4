import logging
from abc import ABC, abstractmethod

import numpy as np

from cryocov.exceptions import ConfigurationError, ShapeError
from cryocov.nufft import anufft, nufft
from cryocov.numeric import fft
from cryocov.utils import rotated_grids

logger = logging.getLogger(__name__)


class ImageSource(ABC):
    """
    A collection of `n` square `L`-by-`L` images with known viewing rotations.

    Subclasses supply the image data through `_images`; projection of
    volumes and back-projection of images follow the Fourier slice model.

    The projection of a volume `v` along rotation `R` is

        P v = Re(centered_ifft2(D * nufft(v, pts)))

    where `pts` is the central slice rotated by `R` and `D` zeroes the
    Nyquist row and column of even sized images. `im_backward` is the exact
    adjoint of this map.
    """

    def __init__(self, L, n, dtype=np.float64, backend=None):
        """
        :param L: Resolution of the (square) images.
        :param n: The total number of images available.
        :param dtype: Precision of images and volumes.
        :param backend: Optional NUFFT backend name used for projections.
        """
        self.L = int(L)
        self.n = int(n)
        self.dtype = np.dtype(dtype)
        self.backend = backend

        # Subclasses populate this with an n-by-3-by-3 array.
        self._rotations = None

    def __repr__(self):
        return f"{self.__class__.__name__}(n={self.n}, L={self.L}, dtype={self.dtype})"

    @property
    def rotations(self):
        """
        :return: Rotation matrices as an n-by-3-by-3 array.
        """
        if self._rotations is None:
            raise AttributeError(f"{self.__class__.__name__} has no rotations.")
        return self._rotations

    @rotations.setter
    def rotations(self, values):
        values = np.asarray(values)
        if values.shape != (self.n, 3, 3):
            raise ShapeError(
                f"Rotations should be shape {(self.n, 3, 3)}, received {values.shape}."
            )
        self._rotations = values.astype(self.dtype, copy=False)

    def _check_range(self, start, num):
        if not 0 <= start < self.n:
            raise ConfigurationError(f"Start index {start} out of range for {self.n} images.")
        return np.arange(start, min(start + num, self.n))

    def images(self, start, num):
        """
        Return images from this source.

        :param start: Index of the first image.
        :param num: Number of images, truncated at the end of the source.
        :return: A num-by-L-by-L array.
        """
        indices = self._check_range(start, num)
        return self._images(indices)

    @abstractmethod
    def _images(self, indices):
        """
        Subclass specific image loading.

        :param indices: A 1-D NumPy array of indices.
        :return: An array of shape (len(indices), L, L).
        """

    def _zero_nyquist(self, im_f):
        # Even resolution slices have an unpaired highest frequency.
        if self.L % 2 == 0:
            im_f[:, 0, :] = 0
            im_f[:, :, 0] = 0
        return im_f

    def vol_forward(self, vol, start, num):
        """
        Apply forward image model to volume

        :param vol: An L-by-L-by-L volume.
        :param start: Start index of image to consider
        :param num: Number of images to consider
        :return: The images obtained from volume by projecting along the
            rotations of images `start` through `start + num - 1`.
        """
        vol = np.asarray(vol)
        if vol.shape != (self.L,) * 3:
            raise ShapeError(
                f"vol_forward expects a single volume of shape {(self.L,) * 3}, received {vol.shape}."
            )
        if vol.dtype != self.dtype:
            logger.warning(f"Volume dtype {vol.dtype} inconsistent with {self.dtype}")

        all_idx = self._check_range(start, num)
        L = self.L

        pts_rot = rotated_grids(L, self.rotations[all_idx]).reshape((3, -1))
        im_f = nufft(vol.astype(self.dtype, copy=False), pts_rot, backend=self.backend)
        im_f = self._zero_nyquist(im_f.reshape(len(all_idx), L, L))

        im = np.real(fft.centered_ifft2(im_f))

        return im.astype(self.dtype, copy=False)

    def im_backward(self, im, start):
        """
        Apply adjoint mapping to set of images

        :param im: An L-by-L image, or a stack of them, to which we wish to
            apply the adjoint of the forward model.
        :param start: Index of the (first) image, selecting its rotation.
        :return: An L-by-L-by-L volume containing the sum of the adjoint
            mappings applied to the images.
        """
        im = np.asarray(im)
        if im.ndim == 2:
            im = im[np.newaxis]
        if im.ndim != 3 or im.shape[1:] != (self.L, self.L):
            raise ShapeError(
                f"Images must be of shape (num, {self.L}, {self.L}), received {im.shape}."
            )

        num = im.shape[0]
        all_idx = self._check_range(start, num)
        if len(all_idx) != num:
            raise ShapeError(f"{num} images starting at {start} exceed the {self.n} in source.")
        L = self.L

        im_f = self._zero_nyquist(fft.centered_fft2(im.astype(self.dtype, copy=False)))

        pts_rot = rotated_grids(L, self.rotations[all_idx]).reshape((3, -1))
        vol = anufft(im_f.flatten(), pts_rot, (L, L, L), real=True, backend=self.backend)
        vol /= L**2

        return vol.astype(self.dtype, copy=False)


class ArrayImageSource(ImageSource):
    """
    An `ImageSource` object that holds a reference to an underlying array
    of images in memory, together with their rotations.
    """

    def __init__(self, images, rotations, dtype=None, backend=None):
        """
        :param images: An n-by-L-by-L array of images.
        :param rotations: An n-by-3-by-3 array of rotation matrices.
        :param dtype: Optionally cast images to this dtype, defaults to the
            dtype of `images`.
        :param backend: Optional NUFFT backend name used for projections.
        """
        images = np.asarray(images)
        if images.ndim != 3 or images.shape[1] != images.shape[2]:
            raise ShapeError(f"Images must be an n-by-L-by-L array, received {images.shape}.")
        if dtype is None:
            dtype = images.dtype

        super().__init__(
            L=images.shape[1], n=images.shape[0], dtype=dtype, backend=backend
        )

        self._cached_im = images.astype(self.dtype, copy=False)
        self.rotations = rotations

    def _images(self, indices):
        return self._cached_im[indices].copy()
