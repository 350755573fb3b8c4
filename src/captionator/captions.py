"""Natural-language captions from analysis signals.

Factual captions are deterministic labelled clauses. Creative captions pick
openers and descriptors at random from fixed phrase tables, but always work
every non-empty signal into the sentence.
"""

import random
from typing import Callable, List, Optional, Sequence

from .models import AnalysisSignals, CaptionStyle, SignalFamily

Chooser = Callable[[Sequence[str]], str]

PENDING_CAPTION = "Analyzing image..."
ERROR_CAPTION = "Unable to caption this image."
FALLBACK_CAPTION = "A captivating visual composition."

# Phrase tables

COMPREHENSIVE_OPENERS = [
    "This visually striking image presents",
    "A beautifully composed photograph featuring",
    "This captivating visual narrative showcases",
    "An artistically rendered scene displaying",
    "This thoughtfully framed composition reveals",
]

INTELLIGENT_OPENERS = [
    "This compelling image captures",
    "A thoughtfully composed scene featuring",
    "This engaging visual composition presents",
    "An expertly framed photograph showcasing",
    "This dynamic image reveals",
]

INTELLIGENT_DESCRIPTORS = [
    "elegantly positioned",
    "gracefully arranged",
    "beautifully displayed",
    "artistically composed",
    "thoughtfully placed",
    "naturally occurring",
]

SMART_OPENERS = [
    "This beautifully crafted image features",
    "A visually compelling scene with",
    "This artistic composition showcases",
    "An aesthetically pleasing image displaying",
    "This thoughtfully captured moment presents",
]

TEXT_OPENERS = [
    "A thoughtfully composed image featuring",
    "An artistically captured scene with",
]

PIXEL_TEMPLATES = [
    "A {brightness} {orientation} composition with {color} tones, captured in {size} detail.",
    "An artistic {size} {orientation} image showcasing {color} elements, {brightness} throughout.",
    "A visually striking {orientation} scene with {color} tones, {brightness} and {size}.",
    "A thoughtfully captured {color} composition in {size} {orientation} format, {brightness}.",
    "A beautifully balanced {brightness} {orientation} image with {color} tones in {size} format.",
]

TEXT_PREVIEW_CREATIVE = 50
TEXT_PREVIEW_FACTUAL = 100


def join_words(items: Sequence[str], conjunction: str = "and") -> str:
    """'a', 'a and b', 'a, b and c'."""
    items = [item for item in items if item]
    if len(items) <= 1:
        return "".join(items)
    return f"{', '.join(items[:-1])} {conjunction} {items[-1]}"


def factual_sentence(clauses: List[str], empty: str) -> str:
    if not clauses:
        return empty
    return ". ".join(clauses) + "."


def preview(text: str, limit: int) -> str:
    return text if len(text) <= limit else text[:limit] + "..."


class CaptionSynthesizer:
    """Renders AnalysisSignals as a caption in the requested style."""

    def __init__(self, chooser: Optional[Chooser] = None):
        """
        Initialize the synthesizer.

        Args:
            chooser: Picks one phrase from a table; random.choice if omitted
        """
        self.choose: Chooser = chooser or random.choice

    def synthesize(self, signals: Optional[AnalysisSignals], style: CaptionStyle) -> str:
        if style == CaptionStyle.PENDING:
            return PENDING_CAPTION
        if style == CaptionStyle.ERROR or signals is None:
            return ERROR_CAPTION

        creative = style == CaptionStyle.CREATIVE
        family = signals.family

        if family == SignalFamily.COMPREHENSIVE:
            return self._comprehensive_creative(signals) if creative else self._comprehensive_factual(signals)
        if family == SignalFamily.INTELLIGENT:
            return self._intelligent_creative(signals) if creative else self._intelligent_factual(signals)
        if family == SignalFamily.SMART:
            return self._smart_creative(signals) if creative else self._smart_factual(signals)
        if family == SignalFamily.TEXT:
            return self._text_creative(signals) if creative else self._text_factual(signals)
        return self._pixel_creative(signals) if creative else self._pixel_factual(signals)

    # Comprehensive analysis

    def _comprehensive_creative(self, signals: AnalysisSignals) -> str:
        components = []
        features = signals.features

        if signals.classifications:
            components.append(join_words(signals.classifications))

        if signals.faces.description:
            components.append(signals.faces.description)

        if features is not None:
            if features.dominant_colors:
                colors = join_words(features.dominant_colors)
                if features.color_complexity == "high":
                    components.append(f"with rich, varied colors like {colors}")
                else:
                    components.append(f"featuring {colors}")
            components.append(f"showcasing {features.edge_complexity}")

        if signals.text.has_text:
            components.append(signals.text.context)

        if signals.pattern:
            components.append(f"in a {signals.pattern}")

        if not components:
            return (
                "This artistically composed image presents a rich visual narrative "
                "with intricate details and thoughtful composition."
            )

        if features is not None and features.contrast == "high contrast":
            quality = "with dramatic lighting and exceptional visual impact"
        else:
            quality = "with balanced lighting and appealing visual harmony"

        return f"{self.choose(COMPREHENSIVE_OPENERS)} {' '.join(components)}, {quality}."

    def _comprehensive_factual(self, signals: AnalysisSignals) -> str:
        clauses = []
        features = signals.features

        if signals.classifications:
            clauses.append(f"Content: {', '.join(signals.classifications)}")
        if signals.faces.description:
            clauses.append(f"Subjects: {signals.faces.description}")
        if signals.pattern:
            clauses.append(f"Composition: {signals.pattern}")
        if features is not None:
            if features.dominant_colors:
                clauses.append(f"Colors: {', '.join(features.dominant_colors[:3])}")
            clauses.append(f"Detail level: {features.edge_complexity}")
            clauses.append(f"Lighting: {features.contrast}")
        if signals.text.has_text:
            clauses.append("Text: Present")
        if features is not None:
            clauses.append(f"Resolution: {features.resolution}")

        return factual_sentence(clauses, "Image contains various visual elements and details.")

    # Intelligent multi-signal analysis

    def _intelligent_creative(self, signals: AnalysisSignals) -> str:
        components = []

        if signals.people:
            components.append(join_words(signals.people))
        if signals.classifications:
            components.append(f"{self.choose(INTELLIGENT_DESCRIPTORS)} {join_words(signals.classifications)}")
        if signals.objects:
            components.append(f"with {join_words(signals.objects)}")
        if signals.scenes:
            components.append(f"in {join_words(signals.scenes)}")
        if signals.text.has_text:
            components.append(signals.text.context)

        if not components:
            return (
                "This artistically composed image presents a visually engaging scene "
                "with thoughtful composition and interesting visual elements."
            )

        confidence = signals.top_confidence
        if confidence > 0.7:
            quality = "remarkably detailed"
        elif confidence > 0.4:
            quality = "beautifully composed"
        else:
            quality = "intriguingly arranged"

        return f"{self.choose(INTELLIGENT_OPENERS)} {' '.join(components)}, {quality} and visually engaging."

    def _intelligent_factual(self, signals: AnalysisSignals) -> str:
        clauses = []
        if signals.people:
            clauses.append(f"People: {', '.join(signals.people)}")
        if signals.classifications:
            clauses.append(f"Features: {', '.join(signals.classifications)}")
        if signals.objects:
            clauses.append(f"Objects: {', '.join(signals.objects)}")
        if signals.scenes:
            clauses.append(f"Environment: {', '.join(signals.scenes)}")
        if signals.text.has_text:
            clauses.append(f"Text elements: {signals.text.context}")

        return factual_sentence(clauses, "Image contains visual content with identifiable elements and composition.")

    # Smart pixel-only analysis

    def _smart_creative(self, signals: AnalysisSignals) -> str:
        elements = []
        if signals.dominant_colors:
            elements.append(f"rich {join_words(signals.dominant_colors)}")
        if signals.composition:
            elements.append(f"a {signals.composition}")
        if signals.lighting:
            elements.append(f"captured in {signals.lighting}")
        if signals.style:
            elements.append(f"with {signals.style}")

        if not elements:
            return "This artistically composed image presents an engaging and visually harmonious result."

        return f"{self.choose(SMART_OPENERS)} {' '.join(elements)}, creating an engaging and visually harmonious result."

    def _smart_factual(self, signals: AnalysisSignals) -> str:
        clauses = []
        if signals.composition:
            clauses.append(f"Composition: {signals.composition}")
        if signals.dominant_colors:
            clauses.append(f"Dominant colors: {', '.join(signals.dominant_colors[:3])}")
        if signals.lighting:
            clauses.append(f"Lighting: {signals.lighting}")
        if signals.style:
            clauses.append(f"Style: {signals.style}")

        return factual_sentence(clauses, "Image contains visual content with discernible elements and composition.")

    # Minimal text-only analysis

    def _text_creative(self, signals: AnalysisSignals) -> str:
        if not signals.text_lines:
            return "An artistically captured visual composition with rich details and textures."

        content = preview(" ".join(signals.text_lines), TEXT_PREVIEW_CREATIVE)
        return f"{self.choose(TEXT_OPENERS)} text elements including '{content}'."

    def _text_factual(self, signals: AnalysisSignals) -> str:
        if not signals.text_lines:
            return "Image contains visual content without readable text elements."

        content = preview(" ".join(signals.text_lines), TEXT_PREVIEW_FACTUAL)
        return f"Image contains text: '{content}'."

    # Pixel statistics

    def _pixel_creative(self, signals: AnalysisSignals) -> str:
        summary = signals.pixels
        if summary is None:
            return FALLBACK_CAPTION

        template = self.choose(PIXEL_TEMPLATES)
        return template.format(
            brightness=summary.brightness,
            orientation=summary.orientation,
            color=summary.color,
            size=summary.size
        )

    def _pixel_factual(self, signals: AnalysisSignals) -> str:
        summary = signals.pixels
        if summary is None:
            return "Image contains visual content."

        return (
            f"Image: {summary.size} {summary.orientation} format "
            f"({summary.width}×{summary.height} pixels) with {summary.color} color palette "
            f"and {summary.brightness} exposure."
        )
