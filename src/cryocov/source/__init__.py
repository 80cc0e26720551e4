from .image import ArrayImageSource, ImageSource
