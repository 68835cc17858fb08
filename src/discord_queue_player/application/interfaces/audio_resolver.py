"""Port interface for resolving audio tracks from queries and URLs."""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import TYPE_CHECKING

from discord_queue_player.domain.shared.types import NonEmptyStr

if TYPE_CHECKING:
    from ...domain.music.entities import Track


class AudioResolver(ABC):
    """Interface for resolving URLs and search queries to playable tracks."""

    @abstractmethod
    async def resolve(self, query: NonEmptyStr) -> "Track":
        """Resolve a query or URL to a playable track.

        Raises:
            TrackNotFoundError: Nothing matched the query.
            ResolutionFailedError: The lookup itself failed.
        """
        ...

    @abstractmethod
    def is_url(self, query: NonEmptyStr) -> bool:
        ...
