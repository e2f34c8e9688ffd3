from __future__ import annotations

from dataclasses import dataclass

from timechart.labels import HorizontalLabelSet, VerticalLabelSet


@dataclass
class DeferredRegeneration:
    """Coalesces invalidation requests with a generation token.

    Every ``request`` bumps the token and re-arms the deadline, so only the newest
    request in a burst is ever returned by ``take_due``.
    """

    delay_s: float = 0.0
    _token: int = 0
    _pending_token: int | None = None
    _due_at: float | None = None

    def __post_init__(self) -> None:
        if self.delay_s < 0:
            raise ValueError("delay_s must be >= 0")

    @property
    def token(self) -> int:
        return self._token

    @property
    def pending(self) -> bool:
        return self._pending_token is not None

    @property
    def due_at(self) -> float | None:
        return self._due_at

    def request(self, now: float) -> int:
        self._token += 1
        self._pending_token = self._token
        self._due_at = now + self.delay_s
        return self._token

    def is_current(self, token: int) -> bool:
        return token == self._token

    def take_due(self, now: float) -> int | None:
        if self._pending_token is None or self._due_at is None:
            return None
        if now < self._due_at:
            return None
        token = self._pending_token
        self._pending_token = None
        self._due_at = None
        return token

    def cancel(self) -> None:
        self._pending_token = None
        self._due_at = None


@dataclass
class LabelCache:
    horizontal: HorizontalLabelSet | None = None
    vertical: VerticalLabelSet | None = None
    label_height_px: int | None = None
    horizontal_label_width_px: int | None = None
    vertical_label_width_px: int | None = None

    def clear_labels(self) -> None:
        self.horizontal = None
        self.vertical = None

    def clear_text_metrics(self) -> None:
        self.label_height_px = None
        self.horizontal_label_width_px = None
        self.vertical_label_width_px = None

    def invalidate(self) -> None:
        self.clear_labels()
        self.clear_text_metrics()
