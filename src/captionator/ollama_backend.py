"""Vision backend that answers detection requests with a local Ollama model."""

import json
import logging
from typing import Any, Dict, List, Type

import requests
from pydantic import BaseModel, Field, ValidationError

from .models import (
    Classification,
    FaceObservation,
    HorizonObservation,
    RectangleObservation,
    TextObservation,
)
from .vision import CompletionHandler, VisionRequest, VisionRequestKind

logger = logging.getLogger(__name__)

# Ollama configuration defaults
DEFAULT_OLLAMA_HOST = "http://localhost:11434"
DEFAULT_MODEL = "llava:latest"
REQUEST_TIMEOUT = 60


class LabelResponse(BaseModel):
    identifier: str = Field(description="Single lowercase label using underscores, e.g. 'sea_lion'")
    confidence: float = Field(description="Confidence from 0.0 to 1.0", ge=0.0, le=1.0)


class ClassificationResponse(BaseModel):
    """Structured response for image classification."""

    labels: List[LabelResponse] = Field(
        description="Up to 10 labels for what the image shows, most confident first",
        max_length=10
    )


class CountResponse(BaseModel):
    """Structured response for counting detections."""

    count: int = Field(description="Number of detected instances", ge=0)


class TextResponse(BaseModel):
    """Structured response for text recognition."""

    lines: List[str] = Field(description="Each line of readable text, top to bottom")


class HorizonResponse(BaseModel):
    """Structured response for horizon detection."""

    horizon_visible: bool = Field(description="Whether a horizon line is visible")
    angle_degrees: float = Field(default=0.0, description="Horizon tilt in degrees")


PROMPTS: Dict[VisionRequestKind, str] = {
    VisionRequestKind.CLASSIFY: (
        "Classify this photograph. List the specific things it shows, such as animals, "
        "landmarks, foods or activities, each with a confidence score from 0.0 to 1.0. "
        "Respond with valid JSON matching the required schema."
    ),
    VisionRequestKind.DETECT_FACES: (
        "Count the human faces visible in this photograph. "
        "Respond with valid JSON matching the required schema."
    ),
    VisionRequestKind.DETECT_RECTANGLES: (
        "Count the distinct rectangular shapes in this photograph, such as windows, screens, "
        "signs, doors, books or frames. Respond with valid JSON matching the required schema."
    ),
    VisionRequestKind.RECOGNIZE_TEXT: (
        "Transcribe every piece of readable text in this photograph, one entry per line. "
        "Return an empty list if there is none. Respond with valid JSON matching the required schema."
    ),
    VisionRequestKind.DETECT_HORIZON: (
        "Is a horizon line visible in this photograph? If so, estimate its tilt in degrees. "
        "Respond with valid JSON matching the required schema."
    ),
}

SCHEMAS: Dict[VisionRequestKind, Type[BaseModel]] = {
    VisionRequestKind.CLASSIFY: ClassificationResponse,
    VisionRequestKind.DETECT_FACES: CountResponse,
    VisionRequestKind.DETECT_RECTANGLES: CountResponse,
    VisionRequestKind.RECOGNIZE_TEXT: TextResponse,
    VisionRequestKind.DETECT_HORIZON: HorizonResponse,
}


class OllamaVisionBackend:
    """Performs vision requests against the Ollama generate API."""

    def __init__(self, model_name: str = DEFAULT_MODEL, ollama_host: str = DEFAULT_OLLAMA_HOST):
        """
        Initialize the Ollama backend.

        Args:
            model_name: Name of the Ollama vision model to use
            ollama_host: Base URL for Ollama API
        """
        self.model_name = model_name
        self.ollama_host = ollama_host.rstrip('/')  # Remove trailing slash if present

    def perform(self, request: VisionRequest, completion: CompletionHandler) -> None:
        """
        Run one request synchronously and report through completion.

        API and parsing failures are reported as completion errors; only a
        request that cannot be built raises.
        """
        payload = self._build_payload(request)
        try:
            response = self._generate(payload, SCHEMAS[request.kind])
        except OllamaClientError as e:
            completion(None, e)
            return

        completion(to_observations(request.kind, response), None)

    def _build_payload(self, request: VisionRequest) -> Dict[str, Any]:
        try:
            prompt = PROMPTS[request.kind]
            schema = SCHEMAS[request.kind].model_json_schema()
        except KeyError as e:
            raise OllamaClientError(f"Unsupported request kind: {request.kind}") from e

        # Fast text recognition trades accuracy for latency
        temperature = 0.0 if request.options.get("recognition_level") == "fast" else 0.1

        return {
            "model": self.model_name,
            "prompt": prompt,
            "images": [request.image.encode_base64()],
            "format": schema,
            "stream": False,
            "options": {
                "temperature": temperature,
                "top_p": 0.9
            }
        }

    def _generate(self, payload: Dict[str, Any], schema: Type[BaseModel]) -> BaseModel:
        try:
            response = requests.post(
                f"{self.ollama_host}/api/generate",
                json=payload,
                timeout=REQUEST_TIMEOUT
            )

            if response.status_code != 200:
                raise OllamaAPIError(f"Ollama API error: {response.status_code}")

            result = response.json()
            response_text = result.get('response', '').strip()
            data = json.loads(response_text)

            if schema is ClassificationResponse:
                data = normalize_confidences(data)
            return schema(**data)

        except json.JSONDecodeError as e:
            raise OllamaParseError(f"Failed to parse JSON response: {e}") from e
        except ValidationError as e:
            raise OllamaParseError(f"Response did not match schema: {e}") from e
        except requests.RequestException as e:
            raise OllamaAPIError(f"API request failed: {e}") from e

    def test_connection(self) -> bool:
        """
        Test connection to Ollama API.

        Returns:
            True if connection successful, False otherwise
        """
        try:
            response = requests.get(f"{self.ollama_host}/api/tags", timeout=5)
            return response.status_code == 200
        except requests.RequestException:
            return False


def normalize_confidences(data: Dict[str, Any]) -> Dict[str, Any]:
    """Models sometimes answer on a 0-10 or 0-100 scale; bring scores into [0, 1]."""
    for label in data.get('labels', []):
        conf = label.get('confidence')
        if not isinstance(conf, (int, float)):
            continue
        if conf > 10.0:
            label['confidence'] = min(conf / 100.0, 1.0)
        elif conf > 1.0:
            label['confidence'] = min(conf / 10.0, 1.0)
        elif conf < 0.0:
            label['confidence'] = 0.0
    return data


def to_observations(kind: VisionRequestKind, response: BaseModel) -> List[Any]:
    """Convert a structured model answer into backend observations."""
    if kind == VisionRequestKind.CLASSIFY:
        return [Classification(identifier=label.identifier, confidence=label.confidence) for label in response.labels]
    if kind == VisionRequestKind.DETECT_FACES:
        return [FaceObservation() for _ in range(response.count)]
    if kind == VisionRequestKind.DETECT_RECTANGLES:
        return [RectangleObservation() for _ in range(response.count)]
    if kind == VisionRequestKind.RECOGNIZE_TEXT:
        return [TextObservation(candidates=[line]) for line in response.lines if line.strip()]
    if kind == VisionRequestKind.DETECT_HORIZON:
        return [HorizonObservation(angle=response.angle_degrees)] if response.horizon_visible else []
    return []


class OllamaClientError(Exception):
    """Base exception for Ollama client errors."""
    pass


class OllamaAPIError(OllamaClientError):
    """Raised when Ollama API request fails."""
    pass


class OllamaParseError(OllamaClientError):
    """Raised when response parsing fails."""
    pass
