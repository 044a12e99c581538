"""Identity text cleaner, the neutral baseline for benchmarking."""

from __future__ import annotations

from typing import TYPE_CHECKING

from voxpipe.backends.interface import TextCleaner

if TYPE_CHECKING:
    import asyncio


class PassThroughCleaner(TextCleaner):
    """Returns the transcript unchanged."""

    @property
    def provider(self) -> str:
        return "PassThrough"

    async def clean(
        self,
        text: str,
        *,
        cancel_event: asyncio.Event | None = None,
        timeout_s: float | None = None,
    ) -> str:
        return text
