"""Page renderers that turn a nullschool address into rendered markup."""

from .base import CallableRenderer, Renderer

__all__ = [
    "CallableRenderer",
    "Renderer",
]
