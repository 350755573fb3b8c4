"""Tests for caption synthesis."""

import pytest

from captionator.captions import (
    COMPREHENSIVE_OPENERS,
    ERROR_CAPTION,
    FALLBACK_CAPTION,
    PENDING_CAPTION,
    PIXEL_TEMPLATES,
    CaptionSynthesizer,
    join_words,
    preview,
)
from captionator.models import (
    AnalysisSignals,
    CaptionStyle,
    FaceAnalysis,
    ImageFeatures,
    PixelSummary,
    SignalFamily,
    TextAnalysis,
    TextDensity,
)

from tests.conftest import first_choice

FEATURES = ImageFeatures(
    aspect_ratio=1.0,
    color_complexity="simple",
    dominant_colors=["medium grays"],
    edge_complexity="smooth composition",
    brightness=0.5,
    contrast="low contrast",
    resolution="200x200"
)

SUMMARY = PixelSummary(
    width=64,
    height=64,
    orientation="square",
    size="compact",
    color="vibrant warm",
    brightness="dimly lit"
)


def comprehensive_signals(**overrides) -> AnalysisSignals:
    values = dict(
        family=SignalFamily.COMPREHENSIVE,
        classifications=["Mountain"],
        faces=FaceAnalysis(count=1, description="a person"),
        features=FEATURES,
        pattern="square composition"
    )
    values.update(overrides)
    return AnalysisSignals(**values)


def intelligent_signals() -> AnalysisSignals:
    return AnalysisSignals(
        family=SignalFamily.INTELLIGENT,
        classifications=["Mountain", "Lake"],
        top_confidence=0.8,
        people=["two people"],
        objects=["geometric shapes"],
        scenes=["outdoor environment"],
        text=TextAnalysis(has_text=True, density=TextDensity.SPARSE, context="with text elements")
    )


class TestHelpers:
    def test_join_words(self):
        assert join_words([]) == ""
        assert join_words(["a"]) == "a"
        assert join_words(["a", "b"]) == "a and b"
        assert join_words(["a", "b", "c"]) == "a, b and c"
        assert join_words(["a", "", "c"]) == "a and c"

    def test_preview(self):
        assert preview("short", 10) == "short"
        assert preview("x" * 12, 10) == "x" * 10 + "..."


class TestPlaceholders:
    """Tests for styles that never reach a strategy."""

    def test_pending_and_error_styles(self):
        synthesizer = CaptionSynthesizer()
        signals = comprehensive_signals()

        assert synthesizer.synthesize(signals, CaptionStyle.PENDING) == PENDING_CAPTION
        assert synthesizer.synthesize(signals, CaptionStyle.ERROR) == ERROR_CAPTION

    def test_missing_signals(self):
        assert CaptionSynthesizer().synthesize(None, CaptionStyle.CREATIVE) == ERROR_CAPTION

    def test_error_placeholder_reads_as_failure(self):
        caption = CaptionSynthesizer().synthesize(None, CaptionStyle.ERROR)

        assert caption == "Unable to caption this image."
        assert caption != PENDING_CAPTION
        assert "..." not in caption


class TestFactualCaptions:
    """Tests for deterministic labelled clauses."""

    def test_comprehensive_clause_order(self):
        caption = CaptionSynthesizer().synthesize(comprehensive_signals(), CaptionStyle.FACTUAL)

        assert caption == (
            "Content: Mountain. Subjects: a person. Composition: square composition. "
            "Colors: medium grays. Detail level: smooth composition. Lighting: low contrast. "
            "Resolution: 200x200."
        )

    def test_comprehensive_text_clause(self):
        signals = comprehensive_signals(text=TextAnalysis(has_text=True, context="with readable text"))

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert "Lighting: low contrast. Text: Present. Resolution: 200x200." in caption

    def test_factual_is_deterministic(self):
        synthesizer = CaptionSynthesizer()
        signals = intelligent_signals()

        captions = {synthesizer.synthesize(signals, CaptionStyle.FACTUAL) for _ in range(20)}

        assert captions == {
            "People: two people. Features: Mountain, Lake. Objects: geometric shapes. "
            "Environment: outdoor environment. Text elements: with text elements."
        }

    def test_empty_clauses_are_omitted(self):
        signals = AnalysisSignals(family=SignalFamily.INTELLIGENT, scenes=["indoor setting"])

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == "Environment: indoor setting."

    def test_no_clauses_gives_neutral_sentence(self):
        signals = AnalysisSignals(family=SignalFamily.INTELLIGENT)

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == "Image contains visual content with identifiable elements and composition."

    def test_smart_factual(self):
        signals = AnalysisSignals(
            family=SignalFamily.SMART,
            composition="square balanced composition",
            dominant_colors=["medium grays", "dark tones", "light grays", "bright whites"],
            lighting="moderate lighting",
            style="soft, gentle aesthetic"
        )

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == (
            "Composition: square balanced composition. "
            "Dominant colors: medium grays, dark tones, light grays. "
            "Lighting: moderate lighting. Style: soft, gentle aesthetic."
        )

    def test_text_factual_truncates_at_one_hundred(self):
        signals = AnalysisSignals(family=SignalFamily.TEXT, text_lines=["a" * 120])

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == f"Image contains text: '{'a' * 100}...'."

    def test_text_factual_without_lines(self):
        signals = AnalysisSignals(family=SignalFamily.TEXT)

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == "Image contains visual content without readable text elements."

    def test_pixel_factual(self):
        signals = AnalysisSignals(family=SignalFamily.PIXEL_STATISTICS, pixels=SUMMARY)

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.FACTUAL)

        assert caption == (
            "Image: compact square format (64×64 pixels) with vibrant warm color palette "
            "and dimly lit exposure."
        )


class TestCreativeCaptions:
    """Tests for randomized phrasing that keeps every signal."""

    def test_intelligent_creative_includes_every_signal(self):
        synthesizer = CaptionSynthesizer()

        for _ in range(30):
            caption = synthesizer.synthesize(intelligent_signals(), CaptionStyle.CREATIVE)
            assert "two people" in caption
            assert "Mountain and Lake" in caption
            assert "with geometric shapes" in caption
            assert "in outdoor environment" in caption
            assert "with text elements" in caption
            assert "remarkably detailed" in caption

    @pytest.mark.parametrize("confidence,quality", [
        (0.9, "remarkably detailed"),
        (0.5, "beautifully composed"),
        (0.2, "intriguingly arranged"),
    ])
    def test_intelligent_quality_follows_confidence(self, confidence, quality):
        signals = intelligent_signals().model_copy(update={"top_confidence": confidence})

        caption = CaptionSynthesizer(first_choice).synthesize(signals, CaptionStyle.CREATIVE)

        assert quality in caption

    def test_comprehensive_creative_with_fixed_chooser(self):
        caption = CaptionSynthesizer(first_choice).synthesize(comprehensive_signals(), CaptionStyle.CREATIVE)

        assert caption == (
            f"{COMPREHENSIVE_OPENERS[0]} Mountain a person featuring medium grays "
            "showcasing smooth composition in a square composition, "
            "with balanced lighting and appealing visual harmony."
        )

    def test_comprehensive_high_contrast_quality(self):
        features = FEATURES.model_copy(update={"contrast": "high contrast", "color_complexity": "high"})
        signals = comprehensive_signals(features=features)

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.CREATIVE)

        assert "with rich, varied colors like medium grays" in caption
        assert caption.endswith("with dramatic lighting and exceptional visual impact.")

    def test_empty_creative_uses_neutral_sentence(self):
        signals = AnalysisSignals(family=SignalFamily.SMART)

        caption = CaptionSynthesizer().synthesize(signals, CaptionStyle.CREATIVE)

        assert caption == "This artistically composed image presents an engaging and visually harmonious result."

    @pytest.mark.parametrize("template", PIXEL_TEMPLATES)
    def test_every_pixel_template_includes_all_buckets(self, template):
        signals = AnalysisSignals(family=SignalFamily.PIXEL_STATISTICS, pixels=SUMMARY)
        synthesizer = CaptionSynthesizer(lambda options: template if template in options else options[0])

        caption = synthesizer.synthesize(signals, CaptionStyle.CREATIVE)

        for bucket in ("vibrant warm", "dimly lit", "square", "compact"):
            assert bucket in caption

    def test_pixel_creative_without_summary(self):
        signals = AnalysisSignals(family=SignalFamily.PIXEL_STATISTICS)

        assert CaptionSynthesizer().synthesize(signals, CaptionStyle.CREATIVE) == FALLBACK_CAPTION

    def test_text_creative_truncates_at_fifty(self):
        signals = AnalysisSignals(family=SignalFamily.TEXT, text_lines=["Grand", "Opening " * 10])

        caption = CaptionSynthesizer(first_choice).synthesize(signals, CaptionStyle.CREATIVE)

        content = ("Grand " + "Opening " * 10)[:50]
        assert caption == f"A thoughtfully composed image featuring text elements including '{content}...'."
