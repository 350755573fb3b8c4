"""Pydantic models shared by the captioning pipeline."""

from enum import Enum
from typing import List, Optional

from pydantic import BaseModel, Field


class CaptionStyle(str, Enum):
    """Caption styles. Only creative and factual are ever rendered."""

    PENDING = "pending"
    CREATIVE = "creative"
    FACTUAL = "factual"
    ERROR = "error"

    @property
    def renderable(self) -> bool:
        return self in (CaptionStyle.CREATIVE, CaptionStyle.FACTUAL)


class FailureClassification(str, Enum):
    """How a vision failure affects health bookkeeping."""

    CRITICAL = "critical"
    TRANSIENT = "transient"


class ThermalState(str, Enum):
    """Device thermal tiers, coolest first."""

    NOMINAL = "nominal"
    FAIR = "fair"
    SERIOUS = "serious"
    CRITICAL = "critical"


class TextDensity(str, Enum):
    NONE = "none"
    SPARSE = "sparse"
    MODERATE = "moderate"
    SUBSTANTIAL = "substantial"


class SignalFamily(str, Enum):
    """Which ladder strategy produced a set of signals."""

    COMPREHENSIVE = "comprehensive"
    INTELLIGENT = "intelligent"
    SMART = "smart"
    TEXT = "text"
    PIXEL_STATISTICS = "pixel_statistics"


class HealthState(BaseModel):
    """Vision subsystem health, mutated only on success or failure events."""

    score: float = Field(
        default=1.0,
        description="1.0 is fully healthy, 0.0 is completely unhealthy",
        ge=0.0,
        le=1.0
    )
    consecutive_failures: int = Field(default=0, ge=0)
    last_failure_at: Optional[float] = Field(
        default=None,
        description="Monotonic timestamp of the last critical failure"
    )


class SystemConditions(BaseModel):
    """Snapshot of device resource pressure."""

    thermal_state: ThermalState = ThermalState.NOMINAL
    physical_memory: int = Field(description="Total physical memory in bytes")
    available_memory: Optional[int] = Field(
        default=None,
        description="Memory currently available in bytes, if known"
    )
    low_power_mode: bool = False


# Backend observations

class Classification(BaseModel):
    identifier: str
    confidence: float = Field(ge=0.0, le=1.0)


class FaceObservation(BaseModel):
    bounding_box: Optional[List[float]] = None


class RectangleObservation(BaseModel):
    bounding_box: Optional[List[float]] = None


class TextObservation(BaseModel):
    """Recognized text; candidates are ordered best first."""

    candidates: List[str] = Field(default_factory=list)

    def top_candidate(self) -> Optional[str]:
        return self.candidates[0] if self.candidates else None


class HorizonObservation(BaseModel):
    angle: float = 0.0


# Analysis results

class FaceAnalysis(BaseModel):
    count: int = 0
    description: str = ""


class TextAnalysis(BaseModel):
    has_text: bool = False
    density: TextDensity = TextDensity.NONE
    context: str = ""


class ColorAnalysis(BaseModel):
    complexity: str
    dominant_colors: List[str]


class BrightnessAnalysis(BaseModel):
    average: float
    contrast: str


class ImageFeatures(BaseModel):
    """Pixel-derived features used by the comprehensive strategy."""

    aspect_ratio: float
    color_complexity: str
    dominant_colors: List[str]
    edge_complexity: str
    brightness: float
    contrast: str
    resolution: str


class PixelSummary(BaseModel):
    """Bucketed pixel statistics for the terminal fallback caption."""

    width: int
    height: int
    orientation: str
    size: str
    color: str
    brightness: str


class AnalysisSignals(BaseModel):
    """Evidence gathered by one strategy for the caption synthesizer."""

    family: SignalFamily
    classifications: List[str] = Field(default_factory=list)
    top_confidence: float = 0.0
    faces: FaceAnalysis = Field(default_factory=FaceAnalysis)
    people: List[str] = Field(default_factory=list)
    objects: List[str] = Field(default_factory=list)
    text_lines: List[str] = Field(default_factory=list)
    text: TextAnalysis = Field(default_factory=TextAnalysis)
    scenes: List[str] = Field(default_factory=list)
    features: Optional[ImageFeatures] = None
    pattern: Optional[str] = None
    composition: Optional[str] = None
    dominant_colors: List[str] = Field(default_factory=list)
    lighting: Optional[str] = None
    style: Optional[str] = None
    pixels: Optional[PixelSummary] = None


class CaptionOutcome(BaseModel):
    """A caption plus the strategy that produced it."""

    caption: str
    strategy: str
    failed: bool = False
