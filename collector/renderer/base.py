"""Interfaces for page renderers."""

from __future__ import annotations

from dataclasses import dataclass
from typing import Awaitable, Callable, Protocol


class Renderer(Protocol):
    """Anything that can fully render a page and hand back its final markup."""

    async def render(self, url: str) -> str:
        """Load `url`, wait until it is ready and return the rendered document.

        Implementations raise `collector.exceptions.RenderError` when the page
        cannot be loaded.
        """
        ...


@dataclass
class CallableRenderer(Renderer):
    """Wrap a coroutine function so it can stand in for a browser-backed renderer."""

    render_page: Callable[[str], Awaitable[str]]

    async def render(self, url: str) -> str:
        """Delegate to the configured coroutine."""
        return await self.render_page(url)
