"""Shared test fixtures and fake collaborators."""

import threading
import time
from typing import Any, Dict, List, Optional, Sequence

import pytest
from PIL import Image

from captionator.conditions import StaticConditionsProvider
from captionator.models import SystemConditions, ThermalState
from captionator.vision import CompletionHandler, VisionRequest, VisionRequestKind

EIGHT_GB = 8_000_000_000


class FakeVisionBackend:
    """Scripted vision backend implementing the completion-callback protocol."""

    def __init__(
        self,
        responses: Optional[Dict[VisionRequestKind, Sequence[Any]]] = None,
        errors: Optional[Dict[VisionRequestKind, BaseException]] = None,
        failures: Optional[List[BaseException]] = None,
        raises: Optional[BaseException] = None,
        double_fire: bool = False,
        raise_after_completion: bool = False,
        silent: bool = False,
        delay: float = 0.0
    ):
        self.responses = responses or {}
        self.errors = errors or {}
        self.failures = list(failures or [])
        self.raises = raises
        self.double_fire = double_fire
        self.raise_after_completion = raise_after_completion
        self.silent = silent
        self.delay = delay
        self.requests: List[VisionRequest] = []
        self.active = 0
        self.max_active = 0
        self._lock = threading.Lock()

    @property
    def kinds(self) -> List[VisionRequestKind]:
        return [request.kind for request in self.requests]

    def perform(self, request: VisionRequest, completion: CompletionHandler) -> None:
        with self._lock:
            self.requests.append(request)
            self.active += 1
            self.max_active = max(self.max_active, self.active)
            failure = self.failures.pop(0) if self.failures else None

        try:
            if self.delay:
                time.sleep(self.delay)

            if self.raises is not None:
                raise self.raises
            if self.silent:
                return

            error = failure or self.errors.get(request.kind)
            if error is not None:
                completion(None, error)
            else:
                completion(list(self.responses.get(request.kind, [])), None)

            if self.double_fire:
                completion(None, RuntimeError("late duplicate completion"))
            if self.raise_after_completion:
                raise RuntimeError("handler failed after completion")
        finally:
            with self._lock:
                self.active -= 1


def solid_image(color, size=(64, 64), mode="RGB") -> Image.Image:
    return Image.new(mode, size, color)


def checkerboard_image(size=(200, 200)) -> Image.Image:
    img = Image.new("RGB", size)
    img.putdata([
        (255, 255, 255) if (x + y) % 2 == 0 else (0, 0, 0)
        for y in range(size[1])
        for x in range(size[0])
    ])
    return img


@pytest.fixture
def gray_image() -> Image.Image:
    return solid_image((128, 128, 128), size=(200, 200))


@pytest.fixture
def red_image() -> Image.Image:
    return solid_image((255, 0, 0))


@pytest.fixture
def nominal_conditions() -> StaticConditionsProvider:
    return StaticConditionsProvider(SystemConditions(physical_memory=EIGHT_GB))


@pytest.fixture
def critical_conditions() -> StaticConditionsProvider:
    return StaticConditionsProvider(
        SystemConditions(thermal_state=ThermalState.CRITICAL, physical_memory=EIGHT_GB)
    )


def first_choice(options: Sequence[str]) -> str:
    return options[0]
