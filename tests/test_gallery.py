"""Tests for the in-memory caption gallery."""

import pytest

from captionator.gallery import CaptionedImage, CaptionGallery
from captionator.ladder import SmartStrategy
from captionator.models import CaptionStyle
from captionator.service import CaptionService


class ObservingStrategy(SmartStrategy):
    """Smart analysis that records gallery state mid-caption and can delete the entry."""

    def __init__(self, delete: bool = False):
        self.gallery = None
        self.delete = delete
        self.seen = []

    async def analyze(self, request):
        entries = self.gallery.images
        self.seen = [(entry.caption, entry.caption_type) for entry in entries]
        if self.delete:
            self.gallery.delete(entries[0])
        return await super().analyze(request)


def observed_gallery(delete: bool = False):
    strategy = ObservingStrategy(delete)
    gallery = CaptionGallery(CaptionService(strategies=[strategy]))
    strategy.gallery = gallery
    return gallery, strategy


class TestCaptionGallery:
    """Tests for pending entries and their replacement."""

    @pytest.mark.asyncio
    async def test_process_image_stores_caption(self, gray_image):
        gallery = CaptionGallery(CaptionService())

        entry = await gallery.process_image(gray_image, CaptionStyle.FACTUAL, source_name="gray.png")

        assert len(gallery) == 1
        assert gallery.get(entry.id) is entry
        assert entry.caption_type == CaptionStyle.FACTUAL
        assert entry.strategy == "smart"
        assert entry.source_name == "gray.png"
        assert entry.caption.startswith("Composition:")

    @pytest.mark.asyncio
    async def test_entry_is_pending_while_captioning(self, gray_image):
        gallery, strategy = observed_gallery()

        entry = await gallery.process_image(gray_image, CaptionStyle.CREATIVE)

        assert strategy.seen == [(None, CaptionStyle.PENDING)]
        assert gallery.images == [entry]
        assert entry.caption_type == CaptionStyle.CREATIVE

    @pytest.mark.asyncio
    async def test_deleted_entry_is_not_restored(self, gray_image):
        gallery, _ = observed_gallery(delete=True)

        entry = await gallery.process_image(gray_image, CaptionStyle.CREATIVE)

        assert len(gallery) == 0
        assert entry.caption

    @pytest.mark.asyncio
    async def test_invalid_image_is_typed_as_error(self, tmp_path):
        gallery = CaptionGallery(CaptionService())

        entry = await gallery.process_image(tmp_path / "missing.jpg", CaptionStyle.CREATIVE)

        assert entry.caption_type == CaptionStyle.ERROR
        assert entry.caption.startswith("Failed to generate caption")

    @pytest.mark.asyncio
    async def test_images_are_newest_first(self, gray_image, red_image):
        gallery = CaptionGallery(CaptionService())

        first = await gallery.process_image(gray_image, CaptionStyle.CREATIVE)
        second = await gallery.process_image(red_image, CaptionStyle.CREATIVE)
        gallery._storage[first.id] = first.model_copy(update={"created_at": second.created_at.replace(year=2000)})

        assert [entry.id for entry in gallery.images] == [second.id, first.id]

    @pytest.mark.asyncio
    async def test_delete(self, gray_image):
        gallery = CaptionGallery(CaptionService())
        entry = await gallery.process_image(gray_image, CaptionStyle.CREATIVE)

        gallery.delete(entry)
        gallery.delete(entry)

        assert len(gallery) == 0
        assert gallery.get(entry.id) is None


class TestCaptionedImage:
    def test_identity_is_by_id(self, gray_image):
        entry = CaptionedImage(image=gray_image)
        updated = entry.model_copy(update={"caption": "A gray square."})

        assert entry == updated
        assert entry != CaptionedImage(image=gray_image)
        assert len({entry, updated}) == 1
