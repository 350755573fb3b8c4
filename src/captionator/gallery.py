"""In-memory record of captioned images."""

import logging
from datetime import datetime
from typing import Dict, List, Optional
from uuid import UUID, uuid4

from pydantic import BaseModel, ConfigDict, Field

from .models import CaptionStyle
from .service import CaptionService, ImageInput

logger = logging.getLogger(__name__)


class CaptionedImage(BaseModel):
    """An image with its caption; caption_type tracks pending/creative/factual/error."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    id: UUID = Field(default_factory=uuid4)
    image: ImageInput
    caption: Optional[str] = None
    created_at: datetime = Field(default_factory=datetime.now)
    caption_type: CaptionStyle = CaptionStyle.PENDING
    strategy: Optional[str] = None
    source_name: Optional[str] = None

    def __eq__(self, other: object) -> bool:
        return isinstance(other, CaptionedImage) and other.id == self.id

    def __hash__(self) -> int:
        return hash(self.id)


class CaptionGallery:
    """Holds captioned images in process memory, newest first."""

    def __init__(self, service: CaptionService):
        self.service = service
        self._storage: Dict[UUID, CaptionedImage] = {}

    @property
    def images(self) -> List[CaptionedImage]:
        return sorted(self._storage.values(), key=lambda entry: entry.created_at, reverse=True)

    def get(self, image_id: UUID) -> Optional[CaptionedImage]:
        return self._storage.get(image_id)

    async def process_image(
        self,
        image: ImageInput,
        style: CaptionStyle,
        source_name: Optional[str] = None
    ) -> CaptionedImage:
        """
        Add an image as pending, caption it, then replace the pending entry.

        Args:
            image: Image to caption
            style: Creative or factual
            source_name: Display name, e.g. the file name

        Returns:
            The final entry, typed with the requested style or error
        """
        pending = CaptionedImage(image=image, source_name=source_name)
        self._storage[pending.id] = pending

        outcome = await self.service.caption(image, style)
        updated = pending.model_copy(update={
            "caption": outcome.caption,
            "caption_type": CaptionStyle.ERROR if outcome.strategy == "error" else style,
            "strategy": outcome.strategy,
        })

        if pending.id in self._storage:
            self._storage[pending.id] = updated
        else:
            logger.debug("Image %s was deleted while captioning", pending.id)
        return updated

    def delete(self, entry: CaptionedImage) -> None:
        self._storage.pop(entry.id, None)

    def __len__(self) -> int:
        return len(self._storage)

