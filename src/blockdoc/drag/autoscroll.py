"""Edge auto-scrolling while a drag is in progress."""

from typing import Optional, Protocol


class Scroller(Protocol):
    """Scrollable viewport hosting the document."""

    viewport_height: float

    def scroll_by(self, dy: float) -> None:
        """Scroll by ``dy`` (positive scrolls down)."""


class AutoScroll:
    """
    Scrolls the viewport while the pointer sits near its top or bottom edge.

    ``update()`` is fed pointer positions relative to the viewport; the host
    calls ``tick()`` once per frame while ``active`` is true.

    Example:
        >>> autoscroll = AutoScroll(scroller, zone=50, speed=10)
        >>> autoscroll.update(20)
        -1
        >>> autoscroll.tick()
        -10.0
    """

    def __init__(self, scroller: Scroller, zone: float = 50, speed: float = 10) -> None:
        self.scroller = scroller
        self.zone = zone
        self.speed = speed
        self.direction = 0

    @property
    def active(self) -> bool:
        return self.direction != 0

    def update(self, pointer_y: float, viewport_height: Optional[float] = None) -> int:
        """
        Recompute the scroll direction.

        Returns:
            -1 to scroll up, 1 to scroll down, 0 to stay put
        """
        height = self.scroller.viewport_height if viewport_height is None else viewport_height
        if pointer_y < self.zone:
            self.direction = -1
        elif pointer_y > height - self.zone:
            self.direction = 1
        else:
            self.direction = 0
        return self.direction

    def tick(self) -> float:
        """Scroll one step in the current direction and return the offset."""
        if not self.direction:
            return 0.0
        dy = float(self.direction * self.speed)
        self.scroller.scroll_by(dy)
        return dy

    def stop(self) -> None:
        self.direction = 0
