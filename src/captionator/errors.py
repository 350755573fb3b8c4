"""Exceptions raised by the captioning core."""


class CaptionServiceError(Exception):
    """Base exception for captioning errors."""
    pass


class InvalidImageError(CaptionServiceError):
    """Raised when an image has no decodable pixel data."""

    def __init__(self, detail: str = ""):
        self.detail = detail
        super().__init__("Invalid image provided")


class ModelError(CaptionServiceError):
    """Raised when a vision backend request fails."""

    def __init__(self, message: str):
        self.message = message
        super().__init__(f"AI Model error: {message}")
