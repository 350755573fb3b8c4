"""Ranked captioning strategies, tried from richest to cheapest."""

import asyncio
import dataclasses
import logging
from dataclasses import dataclass
from typing import List, Optional, Sequence

from .captions import FALLBACK_CAPTION, CaptionSynthesizer
from .conditions import ConditionsProvider, should_bypass_vision
from .errors import ModelError
from .health import HealthGatekeeper, classify_failure
from .image_processor import MAX_SIZE, ImageSource, optimize_for_vision
from . import pixel_analyzer
from .models import AnalysisSignals, CaptionOutcome, CaptionStyle, FailureClassification, SignalFamily
from .throttle import ConcurrencyThrottle
from .vision import VisionAdapter

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class AnalysisRequest:
    """One captioning call: the source image, the style, and the copy sent to the backend."""

    image: ImageSource
    style: CaptionStyle
    vision_image: Optional[ImageSource] = None

    @property
    def analysis_image(self) -> ImageSource:
        return self.vision_image or self.image


class Strategy:
    """A captioning strategy. Subclasses gather signals; the ladder renders them."""

    name = "strategy"
    uses_backend = False

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        raise NotImplementedError


class ComprehensiveStrategy(Strategy):
    """Pixel features plus high-confidence classification, faces and text."""

    name = SignalFamily.COMPREHENSIVE.value
    uses_backend = True

    def __init__(self, adapter: VisionAdapter):
        self.adapter = adapter

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        logger.info("Performing comprehensive feature analysis...")
        image = request.analysis_image

        features = pixel_analyzer.analyze_features(image)
        classifications = await self.adapter.classify_selective(image)
        faces = await self.adapter.detect_faces(image)
        text = await self.adapter.analyze_text(image)

        return AnalysisSignals(
            family=SignalFamily.COMPREHENSIVE,
            classifications=classifications,
            faces=faces,
            text=text,
            features=features,
            pattern=pixel_analyzer.geometric_pattern(image.aspect_ratio)
        )


class IntelligentStrategy(Strategy):
    """Fans out face, object, text, scene and classification requests together."""

    name = SignalFamily.INTELLIGENT.value
    uses_backend = True

    def __init__(self, adapter: VisionAdapter):
        self.adapter = adapter

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        logger.info("Performing intelligent vision analysis...")
        image = request.analysis_image

        # Every request settles before the throttle slot is released
        results = await asyncio.gather(
            self.adapter.detect_faces(image),
            self.adapter.detect_object_proxies(image),
            self.adapter.analyze_text(image),
            self._scene_context(image),
            self.adapter.classify_permissive(image),
            return_exceptions=True
        )
        for result in results:
            if isinstance(result, BaseException):
                raise result
        faces, objects, text, scenes, classifications = results

        return AnalysisSignals(
            family=SignalFamily.INTELLIGENT,
            classifications=[c.identifier for c in classifications],
            top_confidence=classifications[0].confidence if classifications else 0.0,
            faces=faces,
            people=[faces.description] if faces.description else [],
            objects=objects,
            text=text,
            scenes=scenes
        )

    async def _scene_context(self, image: ImageSource) -> List[str]:
        try:
            return await self.adapter.detect_scene(image)
        except ModelError as e:
            if classify_failure(e) == FailureClassification.CRITICAL:
                raise
            logger.info("Horizon detection failed, inferring scene from pixels: %s", e)
            return pixel_analyzer.scene_hints(pixel_analyzer.analyze_features(image))


class SmartStrategy(Strategy):
    """Composition, colors, lighting and style from pixels alone."""

    name = SignalFamily.SMART.value

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        logger.info("Performing smart image analysis...")
        image = request.analysis_image
        features = pixel_analyzer.analyze_features(image)

        return AnalysisSignals(
            family=SignalFamily.SMART,
            features=features,
            composition=pixel_analyzer.describe_composition(features.aspect_ratio),
            dominant_colors=features.dominant_colors,
            lighting=pixel_analyzer.describe_lighting(features.brightness),
            style=pixel_analyzer.describe_style(features)
        )


class TextStrategy(Strategy):
    """A single fast text-recognition request."""

    name = SignalFamily.TEXT.value
    uses_backend = True

    def __init__(self, adapter: VisionAdapter):
        self.adapter = adapter

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        logger.info("Performing minimal text analysis...")
        lines = await self.adapter.recognize_text(request.analysis_image, fast=True)
        return AnalysisSignals(family=SignalFamily.TEXT, text_lines=lines)


class PixelStatisticsStrategy(Strategy):
    """Dominant color, brightness, orientation and size. Cannot fail."""

    name = SignalFamily.PIXEL_STATISTICS.value

    async def analyze(self, request: AnalysisRequest) -> AnalysisSignals:
        return AnalysisSignals(
            family=SignalFamily.PIXEL_STATISTICS,
            pixels=pixel_analyzer.summarize_pixels(request.image)
        )


def default_strategies(adapter: Optional[VisionAdapter]) -> List[Strategy]:
    """The ladder, richest first. Without an adapter only pixel strategies remain."""
    strategies: List[Strategy] = []
    if adapter is not None:
        strategies += [ComprehensiveStrategy(adapter), IntelligentStrategy(adapter)]
    strategies.append(SmartStrategy())
    if adapter is not None:
        strategies.append(TextStrategy(adapter))
    strategies.append(PixelStatisticsStrategy())
    return strategies


class FallbackLadder:
    """
    Tries each strategy in order until one produces a caption.

    Vision is allowed or refused once, when the call starts. If system
    conditions force a bypass or the gatekeeper reports the backend
    unavailable, the ladder goes straight to its last strategy. Otherwise
    every rung is tried in order, even after a critical failure below it.
    Each backend strategy runs as one throttled operation and its outcome
    feeds health bookkeeping.
    """

    def __init__(
        self,
        strategies: Sequence[Strategy],
        gatekeeper: HealthGatekeeper,
        throttle: ConcurrencyThrottle,
        conditions: ConditionsProvider,
        synthesizer: Optional[CaptionSynthesizer] = None,
        max_vision_size: int = MAX_SIZE
    ):
        if not strategies:
            raise ValueError("FallbackLadder needs at least one strategy")

        self.strategies = list(strategies)
        self.gatekeeper = gatekeeper
        self.throttle = throttle
        self.conditions = conditions
        self.synthesizer = synthesizer or CaptionSynthesizer()
        self.max_vision_size = max_vision_size

    def _vision_allowed(self) -> bool:
        if should_bypass_vision(self.conditions.current()):
            logger.info("System conditions require fallback processing")
            return False
        if not self.gatekeeper.is_available():
            logger.info("Vision unavailable, using lightweight fallback")
            return False
        return True

    async def run(self, request: AnalysisRequest) -> CaptionOutcome:
        strategies = self.strategies
        if any(s.uses_backend for s in strategies) and not self._vision_allowed():
            strategies = strategies[-1:]

        for strategy in strategies:
            try:
                if strategy.uses_backend and request.vision_image is None:
                    request = await self._prepare(request)
                signals = await self._analyze(strategy, request)
            except Exception as e:
                logger.warning("%s analysis failed: %s", strategy.name.capitalize(), e)
                if strategy.uses_backend:
                    self.gatekeeper.record_failure(classify_failure(e))
                continue

            if strategy.uses_backend:
                self.gatekeeper.record_success()
            return CaptionOutcome(
                caption=self.synthesizer.synthesize(signals, request.style),
                strategy=strategy.name
            )

        logger.error("Every captioning strategy failed")
        return CaptionOutcome(caption=FALLBACK_CAPTION, strategy="fallback", failed=True)

    async def _analyze(self, strategy: Strategy, request: AnalysisRequest) -> AnalysisSignals:
        if strategy.uses_backend:
            return await self.throttle.run_exclusive(lambda: strategy.analyze(request))
        return await strategy.analyze(request)

    async def _prepare(self, request: AnalysisRequest) -> AnalysisRequest:
        """Downscale the image off the event loop before it reaches the backend."""
        resized = await asyncio.to_thread(optimize_for_vision, request.image.image, self.max_vision_size)
        vision_image = request.image if resized is request.image.image else ImageSource(resized)
        return dataclasses.replace(request, vision_image=vision_image)
