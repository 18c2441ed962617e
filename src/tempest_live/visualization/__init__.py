"""Text visualisation helpers."""

from .sparkline import DEFAULT_SPARKLINE_BLOCKS, render_sparkline

__all__ = ["DEFAULT_SPARKLINE_BLOCKS", "render_sparkline"]
