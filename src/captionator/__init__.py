"""Photo captioning with adaptive vision analysis and pixel-statistics fallbacks."""

from .captions import CaptionSynthesizer
from .errors import CaptionServiceError, InvalidImageError, ModelError
from .gallery import CaptionedImage, CaptionGallery
from .image_processor import ImageSource
from .models import AnalysisSignals, CaptionStyle, HealthState, SystemConditions
from .service import CaptionService
from .vision import VisionBackend, VisionRequest, VisionRequestKind

__version__ = "0.1.0"

__all__ = [
    "AnalysisSignals",
    "CaptionedImage",
    "CaptionGallery",
    "CaptionService",
    "CaptionServiceError",
    "CaptionStyle",
    "CaptionSynthesizer",
    "HealthState",
    "ImageSource",
    "InvalidImageError",
    "ModelError",
    "SystemConditions",
    "VisionBackend",
    "VisionRequest",
    "VisionRequestKind",
]
