"""Sparkline rendering for wind speed history."""

from __future__ import annotations

from typing import Iterable, Sequence

DEFAULT_SPARKLINE_BLOCKS: Sequence[str] = "▁▂▃▄▅▆▇█"
MIN_SPREAD = 0.1

__all__ = ["DEFAULT_SPARKLINE_BLOCKS", "MIN_SPREAD", "render_sparkline"]


def render_sparkline(
    values: Iterable[float],
    *,
    width: int | None = None,
    blocks: Sequence[str] = DEFAULT_SPARKLINE_BLOCKS,
    min_spread: float = MIN_SPREAD,
) -> str:
    """Render ``values`` as a Unicode block-character sparkline.

    Parameters
    ----------
    values:
        Samples in chronological order.
    width:
        Optional maximum number of samples; the most recent ones are kept.
    blocks:
        Characters of increasing magnitude.
    min_spread:
        Ranges narrower than this are scaled against a spread of ``1.0`` so
        near-calm readings stay on the low blocks instead of filling the
        whole scale.
    """

    data = [float(value) for value in values]
    if width is not None:
        if width <= 0:
            return ""
        data = data[-width:]
    palette = tuple(blocks)
    if not data or not palette:
        return ""

    minimum = min(data)
    spread = max(data) - minimum
    if spread < min_spread:
        spread = 1.0

    top = len(palette) - 1
    rendered: list[str] = []
    for value in data:
        index = int((value - minimum) / spread * top)
        rendered.append(palette[max(0, min(top, index))])
    return "".join(rendered)
