from __future__ import annotations

import logging

from salon_agenda.schemas.block import Block, BlockCreateRequest, BlockListResponse
from salon_agenda.services.exceptions import NotFoundError, ValidationError
from salon_agenda.services.store import Store

logger = logging.getLogger(__name__)


class BlockService:
    """Manual blocks and arrival-order windows set by venue administrators."""

    def __init__(self, store: Store) -> None:
        self._store = store

    def _ensure_venue(self, venue_id: str) -> None:
        if self._store.master_data.get_venue(venue_id) is None:
            raise ValidationError(f"Venue '{venue_id}' not found")

    async def create(self, venue_id: str, request: BlockCreateRequest) -> Block:
        self._ensure_venue(venue_id)
        if request.professional_id and not self._store.master_data.get_professional(
            venue_id, request.professional_id
        ):
            raise ValidationError(f"Professional '{request.professional_id}' not found in venue '{venue_id}'")
        block = await self._store.blocks.create(venue_id, request)
        logger.info(
            "Created %s block %s for %s (%s - %s)",
            block.type.value,
            block.block_id,
            block.professional_id or "whole venue",
            block.start_time.isoformat(),
            block.end_time.isoformat(),
        )
        return block

    async def list(self, venue_id: str) -> BlockListResponse:
        self._ensure_venue(venue_id)
        items = await self._store.blocks.list(venue_id)
        return BlockListResponse(total=len(items), items=items)

    async def delete(self, venue_id: str, block_id: str) -> None:
        if not await self._store.blocks.delete(venue_id, block_id):
            raise NotFoundError(f"Block '{block_id}' not found")
        logger.info("Deleted block %s of venue %s", block_id, venue_id)
