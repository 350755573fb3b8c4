"""Image loading, pixel access and resizing for vision analysis."""

import base64
import io
import logging
from dataclasses import dataclass
from pathlib import Path
from typing import List, Optional, Set, Tuple, Union

from PIL import Image, UnidentifiedImageError

from .errors import InvalidImageError

logger = logging.getLogger(__name__)

# Image processing settings
MAX_SIZE = 1024  # Longer edge bound for images sent to the vision backend
BYTES_PER_PIXEL = 4

# Supported image extensions
SUPPORTED_EXTENSIONS = {'.jpg', '.jpeg', '.png', '.webp', '.bmp', '.tiff', '.tif'}


@dataclass(frozen=True)
class PixelBuffer:
    """Raw RGBA8 pixel bytes addressed as row * bytes_per_row + col * 4."""

    width: int
    height: int
    bytes_per_row: int
    data: bytes

    def rgb(self, x: int, y: int) -> Optional[Tuple[int, int, int]]:
        """Return the RGB triple at (x, y), or None if it lies outside the buffer."""
        index = y * self.bytes_per_row + x * BYTES_PER_PIXEL
        if index < 0 or index + 2 >= len(self.data):
            return None
        return self.data[index], self.data[index + 1], self.data[index + 2]

    def samples(self, stride: int, start: int = 0) -> List[Tuple[int, int, int]]:
        """Collect RGB triples on a fixed grid, row by row."""
        pixels = []
        for y in range(start, self.height, stride):
            for x in range(start, self.width, stride):
                pixel = self.rgb(x, y)
                if pixel is not None:
                    pixels.append(pixel)
        return pixels


class ImageSource:
    """A decoded image with pixel-buffer access."""

    def __init__(self, image: Image.Image):
        """
        Wrap a Pillow image.

        Args:
            image: Decoded Pillow image

        Raises:
            InvalidImageError: If the image has no decodable pixel data
        """
        try:
            image.load()
        except Exception as e:
            raise InvalidImageError(str(e)) from e

        if image.width <= 0 or image.height <= 0:
            raise InvalidImageError(f"image has no pixels ({image.width}x{image.height})")

        self.image = image
        self._pixels: Optional[PixelBuffer] = None
        self._pixels_loaded = False

    @classmethod
    def open(cls, image_path: Path) -> "ImageSource":
        """
        Load an image file.

        Args:
            image_path: Path to the image file

        Returns:
            ImageSource for the decoded file

        Raises:
            InvalidImageError: If the file cannot be decoded
        """
        try:
            with Image.open(image_path) as img:
                img.load()
                return cls(img.copy())
        except (OSError, UnidentifiedImageError) as e:
            raise InvalidImageError(f"Failed to load image {image_path}: {e}") from e

    @classmethod
    def coerce(cls, image: Union["ImageSource", Image.Image, Path, str]) -> "ImageSource":
        if isinstance(image, ImageSource):
            return image
        if isinstance(image, Image.Image):
            return cls(image)
        if isinstance(image, (str, Path)):
            return cls.open(Path(image))
        raise InvalidImageError(f"unsupported image type {type(image).__name__}")

    @property
    def width(self) -> int:
        return self.image.width

    @property
    def height(self) -> int:
        return self.image.height

    @property
    def aspect_ratio(self) -> float:
        return self.width / self.height

    @property
    def mode(self) -> str:
        return self.image.mode

    @property
    def resolution(self) -> str:
        return f"{self.width}x{self.height}"

    def pixels(self) -> Optional[PixelBuffer]:
        """
        RGBA8 pixel buffer for the image, decoded once.

        Returns None when the image cannot be converted; pixel analysis then
        falls back to neutral defaults.
        """
        if not self._pixels_loaded:
            self._pixels_loaded = True
            try:
                rgba = self.image if self.image.mode == 'RGBA' else self.image.convert('RGBA')
                self._pixels = PixelBuffer(
                    width=rgba.width,
                    height=rgba.height,
                    bytes_per_row=rgba.width * BYTES_PER_PIXEL,
                    data=rgba.tobytes()
                )
            except (OSError, ValueError) as e:
                logger.warning("Pixel buffer unavailable for %s image: %s", self.mode, e)
        return self._pixels

    def downsample(self, width: int, height: int) -> Optional[PixelBuffer]:
        """Box-filtered RGBA8 thumbnail of exactly width x height pixels."""
        try:
            rgba = self.image.convert('RGBA').resize((width, height), Image.Resampling.BOX)
        except (OSError, ValueError) as e:
            logger.warning("Could not downsample image: %s", e)
            return None
        return PixelBuffer(
            width=width,
            height=height,
            bytes_per_row=width * BYTES_PER_PIXEL,
            data=rgba.tobytes()
        )

    def encode_base64(self, max_size: int = MAX_SIZE) -> str:
        """
        Resize to max dimensions and convert to base64 JPEG.

        Args:
            max_size: Maximum dimension (width or height)

        Returns:
            Base64 encoded image string
        """
        img = optimize_for_vision(self.image, max_size)
        if img.mode != 'RGB':
            img = img.convert('RGB')

        buffer = io.BytesIO()
        img.save(buffer, format='JPEG', quality=85)
        return base64.b64encode(buffer.getvalue()).decode('utf-8')


def optimize_for_vision(image: Image.Image, max_size: int = MAX_SIZE) -> Image.Image:
    """
    Downscale an image so its longer edge is at most max_size.

    Images already within the bound are returned unchanged. The original
    mode is kept so the pixel layout survives re-encoding.

    Args:
        image: Source image
        max_size: Maximum dimension (width or height)

    Returns:
        The resized image, or the input if no resize was needed
    """
    width, height = image.size
    if max(width, height) <= max_size:
        return image

    scale = max_size / max(width, height)
    new_width = max(1, round(width * scale))
    new_height = max(1, round(height * scale))

    logger.debug("Downscaling %dx%d to %dx%d for vision", width, height, new_width, new_height)
    return image.resize((new_width, new_height), Image.Resampling.LANCZOS)


def find_images(directory: Path, supported_extensions: Set[str] = SUPPORTED_EXTENSIONS) -> List[Path]:
    """
    Find all image files in a directory.

    Args:
        directory: Directory to search
        supported_extensions: Set of supported file extensions

    Returns:
        Sorted list of image file paths

    Raises:
        DirectoryNotFoundError: If the directory does not exist
    """
    if not directory.exists() or not directory.is_dir():
        raise DirectoryNotFoundError(f"{directory} is not a valid directory")

    return sorted(
        f for f in directory.iterdir()
        if f.is_file() and f.suffix.lower() in supported_extensions
    )


class DirectoryNotFoundError(Exception):
    """Raised when directory doesn't exist."""
    pass
