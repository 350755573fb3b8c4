"""Vision backend protocol and the adapter that issues requests against it."""

import asyncio
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Protocol, Sequence

from .errors import ModelError
from .image_processor import ImageSource
from .models import (
    Classification,
    FaceAnalysis,
    TextAnalysis,
    TextDensity,
    TextObservation,
)

logger = logging.getLogger(__name__)

# Confidence floors for classification results
SELECTIVE_CONFIDENCE = 0.6
PERMISSIVE_CONFIDENCE = 0.1
SELECTIVE_LIMIT = 3
PERMISSIVE_LIMIT = 5

GENERIC_TERMS = (
    "outdoor", "indoor", "night", "day", "scene", "image", "photo", "picture",
    "object", "thing", "item", "element", "content", "visual", "view",
)


class VisionRequestKind(str, Enum):
    CLASSIFY = "classify"
    DETECT_FACES = "detect_faces"
    DETECT_RECTANGLES = "detect_rectangles"
    RECOGNIZE_TEXT = "recognize_text"
    DETECT_HORIZON = "detect_horizon"


@dataclass(frozen=True)
class VisionRequest:
    """One request against the backend, with per-kind options."""

    kind: VisionRequestKind
    image: ImageSource
    options: Dict[str, Any] = field(default_factory=dict)


CompletionHandler = Callable[[Optional[Sequence[Any]], Optional[BaseException]], None]


class VisionBackend(Protocol):
    """
    A classifier/detector facility.

    perform() runs the request and calls completion(results, error). It may
    call completion before returning or later from another thread, and it
    may also raise if the request cannot be constructed.
    """

    def perform(self, request: VisionRequest, completion: CompletionHandler) -> None:
        ...


def is_generic_term(identifier: str) -> bool:
    lowered = identifier.lower()
    return any(term in lowered for term in GENERIC_TERMS)


def clean_identifier(identifier: str) -> str:
    """Turn a backend label like 'sea_lion' into 'Sea Lion'."""
    return identifier.replace("_", " ").replace("-", " ").lower().title()


def describe_faces(count: int) -> str:
    if count == 1:
        return "a person"
    elif count == 2:
        return "two people"
    elif count > 2:
        return f"{count} people"
    return ""


def describe_rectangles(count: int) -> List[str]:
    if count > 10:
        return ["multiple geometric objects"]
    elif count > 3:
        return ["several geometric elements"]
    elif count > 0:
        return ["geometric shapes"]
    return []


def analyze_text_lines(lines: List[str]) -> TextAnalysis:
    """Bucket recognized text by how much of it there is."""
    if not lines:
        return TextAnalysis()

    length = len("".join(lines))
    if length > 50:
        density, context = TextDensity.SUBSTANTIAL, "with substantial text content"
    elif length > 10:
        density, context = TextDensity.MODERATE, "with readable text"
    else:
        density, context = TextDensity.SPARSE, "with text elements"
    return TextAnalysis(has_text=True, density=density, context=context)


class VisionAdapter:
    """Issues vision requests and translates their results and failures."""

    def __init__(self, backend: VisionBackend, request_timeout: Optional[float] = None):
        """
        Initialize the adapter.

        Args:
            backend: Backend that performs the requests
            request_timeout: Seconds to wait for a completion; None waits forever
        """
        self.backend = backend
        self.request_timeout = request_timeout

    async def perform(self, request: VisionRequest) -> List[Any]:
        """
        Submit one request and wait for its single result.

        Only the first completion or synchronous failure settles the request;
        anything the backend reports afterwards is ignored. With a timeout,
        the deadline starts at submission, so a backend stuck inside
        perform() is abandoned just like one that never completes.

        Raises:
            ModelError: If the backend reports or raises an error, or the
                request outlives the timeout
        """
        loop = asyncio.get_running_loop()
        result: asyncio.Future = loop.create_future()

        def settle(results: Optional[Sequence[Any]], error: Optional[BaseException]) -> None:
            if result.done():
                logger.debug("Ignoring repeated completion for %s request", request.kind.value)
                return
            if error is not None:
                logger.info("%s request failed: %s", request.kind.value, error)
                result.set_exception(ModelError(str(error)))
            else:
                result.set_result(list(results or []))

        def completion(results: Optional[Sequence[Any]], error: Optional[BaseException] = None) -> None:
            try:
                loop.call_soon_threadsafe(settle, results, error)
            except RuntimeError:
                logger.debug("Event loop closed before %s request completed", request.kind.value)

        async def submit() -> List[Any]:
            try:
                await asyncio.to_thread(self.backend.perform, request, completion)
            except Exception as e:
                loop.call_soon(settle, None, e)
            return await result

        if self.request_timeout is None:
            return await submit()

        # The deadline covers a backend that blocks inside perform() as well
        # as one that never calls completion
        try:
            return await asyncio.wait_for(submit(), self.request_timeout)
        except asyncio.TimeoutError as e:
            result.cancel()
            raise ModelError(
                f"{request.kind.value} request cancelled after {self.request_timeout:.0f}s timeout"
            ) from e

    async def classify(self, image: ImageSource, **options: Any) -> List[Classification]:
        return await self.perform(VisionRequest(VisionRequestKind.CLASSIFY, image, options))

    async def classify_selective(self, image: ImageSource) -> List[str]:
        """High-confidence, specific labels only."""
        observations = await self.classify(image, prefer_background_processing=True)
        ranked = sorted(observations, key=lambda o: o.confidence, reverse=True)
        labels = [
            clean_identifier(o.identifier)
            for o in ranked
            if o.confidence > SELECTIVE_CONFIDENCE and not is_generic_term(o.identifier)
        ][:SELECTIVE_LIMIT]
        logger.info("Found %d high-confidence classifications", len(labels))
        return labels

    async def classify_permissive(self, image: ImageSource) -> List[Classification]:
        """Top labels above a low confidence floor, cleaned but with confidences kept."""
        observations = await self.classify(image)
        ranked = sorted(observations, key=lambda o: o.confidence, reverse=True)[:PERMISSIVE_LIMIT]
        return [
            Classification(identifier=clean_identifier(o.identifier), confidence=o.confidence)
            for o in ranked
            if o.confidence > PERMISSIVE_CONFIDENCE and not is_generic_term(o.identifier)
        ]

    async def detect_faces(self, image: ImageSource) -> FaceAnalysis:
        faces = await self.perform(VisionRequest(VisionRequestKind.DETECT_FACES, image))
        return FaceAnalysis(count=len(faces), description=describe_faces(len(faces)))

    async def detect_object_proxies(self, image: ImageSource) -> List[str]:
        rectangles = await self.perform(VisionRequest(VisionRequestKind.DETECT_RECTANGLES, image))
        return describe_rectangles(len(rectangles))

    async def recognize_text(self, image: ImageSource, fast: bool = False) -> List[str]:
        options = {
            "recognition_level": "fast" if fast else "accurate",
            "uses_language_correction": not fast,
        }
        observations = await self.perform(VisionRequest(VisionRequestKind.RECOGNIZE_TEXT, image, options))
        lines = []
        for observation in observations:
            candidate = observation.top_candidate() if isinstance(observation, TextObservation) else None
            if candidate:
                lines.append(candidate)
        return lines

    async def analyze_text(self, image: ImageSource) -> TextAnalysis:
        return analyze_text_lines(await self.recognize_text(image))

    async def detect_scene(self, image: ImageSource) -> List[str]:
        horizons = await self.perform(VisionRequest(VisionRequestKind.DETECT_HORIZON, image))
        return ["outdoor environment"] if horizons else ["indoor setting"]
