"""Caption service: the single entry point callers use."""

import logging
from pathlib import Path
from typing import Optional, Sequence, Union

from PIL import Image

from .captions import CaptionSynthesizer
from .conditions import ConditionsProvider, SystemConditionsProvider
from .errors import InvalidImageError
from .health import HealthGatekeeper
from .image_processor import MAX_SIZE, ImageSource
from .ladder import AnalysisRequest, FallbackLadder, Strategy, default_strategies
from .models import CaptionOutcome, CaptionStyle, HealthState
from .throttle import ConcurrencyThrottle
from .vision import VisionAdapter, VisionBackend

logger = logging.getLogger(__name__)

ImageInput = Union[ImageSource, Image.Image, Path]


class CaptionService:
    """Owns one health state, one throttle and one fallback ladder."""

    def __init__(
        self,
        backend: Optional[VisionBackend] = None,
        conditions: Optional[ConditionsProvider] = None,
        health: Optional[HealthState] = None,
        synthesizer: Optional[CaptionSynthesizer] = None,
        strategies: Optional[Sequence[Strategy]] = None,
        request_timeout: Optional[float] = None,
        max_vision_size: int = MAX_SIZE
    ):
        """
        Initialize the caption service.

        Args:
            backend: Vision backend; without one only pixel strategies run
            conditions: System conditions provider; psutil probes if omitted
            health: Health state to start from
            synthesizer: Caption synthesizer, e.g. with a fixed phrase chooser
            strategies: Replaces the default strategy ladder
            request_timeout: Seconds before a backend request counts as cancelled
            max_vision_size: Longer-edge bound for images sent to the backend
        """
        self.conditions = conditions or SystemConditionsProvider()
        self.gatekeeper = HealthGatekeeper(health, self.conditions)
        self.throttle = ConcurrencyThrottle()
        self.adapter = VisionAdapter(backend, request_timeout) if backend is not None else None
        self.ladder = FallbackLadder(
            strategies if strategies is not None else default_strategies(self.adapter),
            self.gatekeeper,
            self.throttle,
            self.conditions,
            synthesizer,
            max_vision_size
        )

    @property
    def health(self) -> HealthState:
        return self.gatekeeper.state

    async def generate_caption(self, image: ImageInput, style: CaptionStyle) -> str:
        """
        Caption an image. Never raises.

        Args:
            image: Decoded image
            style: Creative or factual

        Returns:
            The caption, or an explanatory error string if the image is undecodable
        """
        outcome = await self.caption(image, style)
        return outcome.caption

    async def caption(self, image: ImageInput, style: CaptionStyle) -> CaptionOutcome:
        """Caption an image and report which strategy produced the result."""
        try:
            source = ImageSource.coerce(image)
        except InvalidImageError as e:
            logger.error("Cannot caption image: %s %s", e, e.detail)
            return CaptionOutcome(caption=f"Failed to generate caption: {e}", strategy="error", failed=True)

        if not style.renderable:
            return CaptionOutcome(caption=self.ladder.synthesizer.synthesize(None, style), strategy="placeholder")

        return await self.ladder.run(AnalysisRequest(image=source, style=style))
