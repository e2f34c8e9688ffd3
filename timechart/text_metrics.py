from __future__ import annotations

from dataclasses import dataclass
from functools import lru_cache
import math
from pathlib import Path
from typing import Protocol

from PIL import ImageFont


DEFAULT_FONT_FAMILY = "DejaVu Sans"
SANS_FONT_FALLBACK_PATTERNS = (
    "dejavusans",
    "dejavu sans",
    "liberationsans",
    "helvetica",
    "arial",
)


class TextMetrics(Protocol):
    def measure(self, text: str, *, font_size_px: float) -> tuple[int, int]:
        """Return ``(width, height)`` in pixels of ``text`` rendered at ``font_size_px``."""
        ...


@dataclass(frozen=True)
class FixedTextMetrics:
    """Font-free metrics: every glyph advances by a fixed share of the font size."""

    advance_ratio: float = 0.6
    height_ratio: float = 1.0

    def measure(self, text: str, *, font_size_px: float) -> tuple[int, int]:
        width = int(math.ceil(len(text) * font_size_px * self.advance_ratio))
        height = max(1, int(math.ceil(font_size_px * self.height_ratio)))
        return (width, height)


@dataclass(frozen=True)
class PillowTextMetrics:
    font_family: str = DEFAULT_FONT_FAMILY
    font_path: str | None = None

    def measure(self, text: str, *, font_size_px: float) -> tuple[int, int]:
        font = _load_font(self.font_family, self.font_path, font_size_px)
        if not text:
            ascent, descent = font.getmetrics()
            return (0, max(1, int(ascent + descent)))
        left, top, right, bottom = font.getbbox(text)
        return (max(0, int(right - left)), max(1, int(bottom - top)))


@lru_cache(maxsize=64)
def _load_font(
    font_family: str,
    font_path: str | None,
    font_size_px: float,
) -> ImageFont.FreeTypeFont | ImageFont.ImageFont:
    size = max(1, int(round(font_size_px)))
    path = Path(font_path) if font_path else _resolve_font_path(font_family)
    if path is None:
        return ImageFont.load_default(size=size)
    try:
        return ImageFont.truetype(str(path), size=size)
    except OSError:
        return ImageFont.load_default(size=size)


def _resolve_font_path(font_family: str) -> Path | None:
    wanted = font_family.strip().lower() if font_family.strip() else DEFAULT_FONT_FAMILY.lower()
    patterns = (wanted,) + SANS_FONT_FALLBACK_PATTERNS

    font_dirs = [
        Path.home() / "Library" / "Fonts",
        Path("/Library/Fonts"),
        Path("/System/Library/Fonts"),
        Path("/usr/share/fonts"),
        Path("/usr/local/share/fonts"),
    ]

    candidates: list[Path] = []
    for base in font_dirs:
        if not base.exists():
            continue
        for ext in ("*.ttf", "*.otf", "*.ttc"):
            candidates.extend(base.rglob(ext))

    for pattern in patterns:
        p = pattern.replace(" ", "")
        for path in candidates:
            stem = path.stem.lower().replace(" ", "")
            if p in stem:
                return path
    return None
