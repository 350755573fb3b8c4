"""Pixel-level image statistics.

Every function here is deterministic and backend-free. Pixels are sampled on
a fixed stride rather than read exhaustively. When no pixel buffer is
available each analysis returns a neutral default instead of failing.
"""

import math
from collections import Counter
from typing import List, Optional, Tuple

from .image_processor import ImageSource, PixelBuffer
from .models import BrightnessAnalysis, ColorAnalysis, ImageFeatures, PixelSummary

RGB = Tuple[float, float, float]

# Sampling strides
BRIGHTNESS_STRIDE = 10
DISTRIBUTION_STRIDE = 15
HISTOGRAM_STRIDE = 20
EDGE_STRIDE = 10

EDGE_THRESHOLD = 30
DOMINANT_SAMPLE_SIZE = 10

NEUTRAL_BRIGHTNESS = 0.5
NEUTRAL_GRAY: RGB = (0.5, 0.5, 0.5)


def luminance(red: float, green: float, blue: float) -> float:
    """Luma of an 8-bit RGB triple, normalized to [0, 1]."""
    return (0.299 * red + 0.587 * green + 0.114 * blue) / 255.0


def average_brightness(buffer: Optional[PixelBuffer]) -> float:
    """Mean luma over every 10th pixel."""
    if buffer is None:
        return NEUTRAL_BRIGHTNESS

    samples = [luminance(*pixel) for pixel in buffer.samples(BRIGHTNESS_STRIDE)]
    return sum(samples) / len(samples) if samples else NEUTRAL_BRIGHTNESS


def brightness_distribution(buffer: Optional[PixelBuffer]) -> BrightnessAnalysis:
    """Mean luma and a contrast tier from its standard deviation."""
    if buffer is None:
        return BrightnessAnalysis(average=NEUTRAL_BRIGHTNESS, contrast="moderate contrast")

    values = [luminance(*pixel) for pixel in buffer.samples(DISTRIBUTION_STRIDE)]
    if not values:
        return BrightnessAnalysis(average=NEUTRAL_BRIGHTNESS, contrast="moderate contrast")

    average = sum(values) / len(values)
    variance = sum((value - average) ** 2 for value in values) / len(values)
    return BrightnessAnalysis(average=average, contrast=describe_contrast(math.sqrt(variance)))


def describe_contrast(standard_deviation: float) -> str:
    if standard_deviation > 0.3:
        return "high contrast"
    elif standard_deviation > 0.15:
        return "moderate contrast"
    return "low contrast"


def edge_density(buffer: PixelBuffer) -> float:
    """
    Fraction of sampled pixels that sit on an edge.

    A sampled pixel counts as an edge when its summed RGB differs by more
    than EDGE_THRESHOLD from its right or lower neighbour.
    """
    edges = 0
    for y in range(1, buffer.height - 1, EDGE_STRIDE):
        for x in range(1, buffer.width - 1, EDGE_STRIDE):
            center = buffer.rgb(x, y)
            right = buffer.rgb(x + 1, y)
            below = buffer.rgb(x, y + 1)
            if center is None or right is None or below is None:
                continue

            center_sum = sum(center)
            if abs(center_sum - sum(right)) > EDGE_THRESHOLD or abs(center_sum - sum(below)) > EDGE_THRESHOLD:
                edges += 1

    grid = (buffer.width // EDGE_STRIDE) * (buffer.height // EDGE_STRIDE)
    return edges / grid if grid > 0 else 0.0


def edge_complexity(buffer: Optional[PixelBuffer]) -> str:
    if buffer is None:
        return "moderate detail"

    density = edge_density(buffer)
    if density > 0.3:
        return "intricate details"
    elif density > 0.15:
        return "moderate detail"
    return "smooth composition"


def categorize_color(red: int, green: int, blue: int) -> str:
    """Name the color bucket an 8-bit RGB pixel falls into."""
    r, g, b = red / 255.0, green / 255.0, blue / 255.0
    high = max(r, g, b)
    low = min(r, g, b)
    saturation = (high - low) / high if high > 0 else 0.0

    if saturation < 0.2:
        if high > 0.8:
            return "bright whites"
        elif high > 0.6:
            return "light grays"
        elif high > 0.3:
            return "medium grays"
        return "dark tones"

    if r > g and r > b:
        return "vibrant reds" if saturation > 0.7 else "warm oranges"
    elif g > r and g > b:
        return "vivid greens" if saturation > 0.7 else "natural greens"
    elif b > r and b > g:
        return "bright blues" if saturation > 0.7 else "cool blues"
    elif r > 0.6 and g > 0.6:
        return "golden yellows"
    elif r > 0.5 and b > 0.5:
        return "purple tones"
    return "mixed colors"


def color_histogram(buffer: Optional[PixelBuffer]) -> ColorAnalysis:
    """Color complexity and the three most frequent color buckets."""
    if buffer is None:
        return ColorAnalysis(complexity="moderate", dominant_colors=["neutral tones"])

    counts: Counter = Counter()
    for pixel in buffer.samples(HISTOGRAM_STRIDE):
        counts[categorize_color(*pixel)] += 1

    unique = len(counts)
    if unique > 8:
        complexity = "high"
    elif unique > 4:
        complexity = "moderate"
    else:
        complexity = "simple"

    return ColorAnalysis(
        complexity=complexity,
        dominant_colors=[name for name, _ in counts.most_common(3)]
    )


def dominant_color(source: ImageSource) -> RGB:
    """Average color of a 10x10 downsample, as floats in [0, 1]."""
    thumbnail = source.downsample(DOMINANT_SAMPLE_SIZE, DOMINANT_SAMPLE_SIZE)
    if thumbnail is None:
        return NEUTRAL_GRAY

    pixels = thumbnail.samples(1)
    if not pixels:
        return NEUTRAL_GRAY

    count = len(pixels)
    return (
        sum(p[0] for p in pixels) / count / 255.0,
        sum(p[1] for p in pixels) / count / 255.0,
        sum(p[2] for p in pixels) / count / 255.0,
    )


def describe_color(color: RGB) -> str:
    red, green, blue = color
    high = max(red, green, blue)
    low = min(red, green, blue)
    saturation = (high - low) / high if high > 0 else 0.0

    if saturation < 0.15:
        if high > 0.8:
            return "bright monochromatic"
        elif high > 0.4:
            return "neutral grayscale"
        return "dark monochromatic"

    if red > green and red > blue:
        return "vibrant warm" if red > 0.7 else "warm reddish"
    elif green > red and green > blue:
        return "vibrant green" if green > 0.7 else "natural green"
    elif blue > red and blue > green:
        return "vibrant cool" if blue > 0.7 else "cool bluish"
    return "multicolored"


def describe_brightness(brightness: float) -> str:
    if brightness > 0.8:
        return "brightly lit"
    elif brightness > 0.6:
        return "well-lit"
    elif brightness > 0.4:
        return "moderately lit"
    elif brightness > 0.2:
        return "dimly lit"
    return "darkly exposed"


def describe_orientation(aspect_ratio: float) -> str:
    if aspect_ratio < 0.75:
        return "portrait"
    elif aspect_ratio > 1.33:
        return "landscape"
    return "square"


def describe_size(width: int, height: int) -> str:
    total = width * height
    if total > 8_000_000:
        return "high-resolution"
    elif total > 2_000_000:
        return "standard-resolution"
    elif total > 500_000:
        return "medium-resolution"
    return "compact"


def geometric_pattern(aspect_ratio: float) -> str:
    if abs(aspect_ratio - 1.0) < 0.1:
        return "square composition"
    elif aspect_ratio > 1.5:
        return "wide panoramic view"
    elif aspect_ratio < 0.7:
        return "vertical portrait orientation"
    return "balanced rectangular frame"


def describe_composition(aspect_ratio: float) -> str:
    if aspect_ratio > 1.5:
        return "wide cinematic composition"
    elif aspect_ratio < 0.7:
        return "tall vertical composition"
    elif abs(aspect_ratio - 1.0) < 0.1:
        return "square balanced composition"
    return "standard rectangular composition"


def describe_lighting(brightness: float) -> str:
    if brightness > 0.8:
        return "bright, well-lit conditions"
    elif brightness > 0.6:
        return "good lighting conditions"
    elif brightness > 0.3:
        return "moderate lighting"
    return "low-light conditions"


def describe_style(features: ImageFeatures) -> str:
    if features.contrast == "high contrast" and features.edge_complexity == "intricate details":
        return "sharp, detailed photography"
    elif features.color_complexity == "high":
        return "vibrant, colorful imagery"
    elif features.contrast == "low contrast":
        return "soft, gentle aesthetic"
    return "balanced photographic style"


def analyze_features(source: ImageSource) -> ImageFeatures:
    """Collect the pixel features the comprehensive strategy captions from."""
    buffer = source.pixels()
    colors = color_histogram(buffer)
    distribution = brightness_distribution(buffer)

    return ImageFeatures(
        aspect_ratio=source.aspect_ratio,
        color_complexity=colors.complexity,
        dominant_colors=colors.dominant_colors,
        edge_complexity=edge_complexity(buffer),
        brightness=distribution.average,
        contrast=distribution.contrast,
        resolution=source.resolution
    )


def summarize_pixels(source: ImageSource) -> PixelSummary:
    """Bucket the cheapest statistics for the terminal fallback caption."""
    return PixelSummary(
        width=source.width,
        height=source.height,
        orientation=describe_orientation(source.aspect_ratio),
        size=describe_size(source.width, source.height),
        color=describe_color(dominant_color(source)),
        brightness=describe_brightness(average_brightness(source.pixels()))
    )


def scene_hints(features: ImageFeatures) -> List[str]:
    """Environment tags inferred from pixels when horizon detection has nothing."""
    hints = []
    if features.brightness > 0.7:
        hints.append("bright environment")
    elif features.brightness < 0.3:
        hints.append("low-light setting")
    if features.color_complexity == "high":
        hints.append("visually rich scene")
    return hints
