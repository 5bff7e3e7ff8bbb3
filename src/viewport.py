"""Pan/zoom transform of the diagram and the auto-fit camera."""

from dataclasses import dataclass
import logging
import math
from typing import Iterable

from models import GraphNode

logger = logging.getLogger("clanscroll.viewport")

SCALE_EXTENT = (0.1, 3.0)
FIT_PADDING = (400.0, 600.0)
FIT_MAX_SCALE = 0.8
TRANSITION_MS = 750.0


def clamp(value: float, low: float, high: float) -> float:
    return max(low, min(high, value))


@dataclass(frozen=True)
class Transform:
    """screen = world * k + (x, y)"""

    x: float = 0.0
    y: float = 0.0
    k: float = 1.0

    def apply(self, wx: float, wy: float) -> tuple[float, float]:
        return wx * self.k + self.x, wy * self.k + self.y

    def invert(self, sx: float, sy: float) -> tuple[float, float]:
        return (sx - self.x) / self.k, (sy - self.y) / self.k


def bounding_box(nodes: Iterable[GraphNode]) -> tuple[float, float, float, float] | None:
    """(min_x, min_y, max_x, max_y) of the node centres, or None without nodes."""
    nodes = list(nodes)
    if not nodes:
        return None
    xs = [n.x for n in nodes]
    ys = [n.y for n in nodes]
    return min(xs), min(ys), max(xs), max(ys)


def fit_transform(
    nodes: Iterable[GraphNode],
    width: float,
    height: float,
    padding: tuple[float, float] = FIT_PADDING,
    min_scale: float = SCALE_EXTENT[0],
    max_scale: float = FIT_MAX_SCALE,
) -> Transform | None:
    """
    Transform that centres all nodes in a `width` x `height` viewport.

    The node bounding box is grown by `padding` (world units) and the scale is
    clamped to [min_scale, max_scale].
    """
    box = bounding_box(nodes)
    if box is None:
        return None

    min_x, min_y, max_x, max_y = box
    graph_width = max_x - min_x + padding[0]
    graph_height = max_y - min_y + padding[1]

    scale = clamp(min(width / graph_width, height / graph_height), min_scale, max_scale)
    center_x = (min_x + max_x) / 2
    center_y = (min_y + max_y) / 2

    return Transform(x=width / 2 - scale * center_x, y=height / 2 - scale * center_y, k=scale)


def ease_cubic_in_out(t: float) -> float:
    t *= 2
    if t <= 1:
        return t * t * t / 2
    t -= 2
    return (t * t * t + 2) / 2


@dataclass
class Transition:
    """Animated move between two transforms, driven by caller-supplied timestamps (ms)."""

    start: Transform
    end: Transform
    started_at: float
    duration: float = TRANSITION_MS

    def progress(self, now: float) -> float:
        if self.duration <= 0:
            return 1.0
        return clamp((now - self.started_at) / self.duration, 0.0, 1.0)

    def at(self, now: float) -> Transform:
        p = self.progress(now)
        if p >= 1.0:
            return self.end
        t = ease_cubic_in_out(p)
        # Interpolate the scale geometrically so zooming feels uniform
        k = math.exp(math.log(self.start.k) + (math.log(self.end.k) - math.log(self.start.k)) * t)
        return Transform(
            x=self.start.x + (self.end.x - self.start.x) * t,
            y=self.start.y + (self.end.y - self.start.y) * t,
            k=k,
        )

    def done(self, now: float) -> bool:
        return self.progress(now) >= 1.0


class Viewport:
    """
    Owns the diagram transform. The scale stays inside `scale_extent` at all
    times; panning is unbounded.
    """

    def __init__(
        self,
        width: float = 0.0,
        height: float = 0.0,
        scale_extent: tuple[float, float] = SCALE_EXTENT,
        initial_scale: float = 0.6,
    ):
        self.width = width
        self.height = height
        self.scale_extent = scale_extent
        self.transition: Transition | None = None
        self._transform = Transform(k=clamp(initial_scale, *scale_extent))

    @property
    def transform(self) -> Transform:
        return self._transform

    def set_transform(self, transform: Transform) -> Transform:
        k = clamp(transform.k, *self.scale_extent)
        self._transform = Transform(x=transform.x, y=transform.y, k=k)
        return self._transform

    def resize(self, width: float, height: float) -> None:
        self.width = width
        self.height = height

    # -- user gestures ------------------------------------------------------

    def pan_by(self, dx: float, dy: float) -> Transform:
        self.transition = None
        t = self._transform
        return self.set_transform(Transform(x=t.x + dx, y=t.y + dy, k=t.k))

    def zoom_to(self, k: float, anchor: tuple[float, float] | None = None) -> Transform:
        """Zoom to scale `k`, keeping the world point under `anchor` (screen) fixed."""
        self.transition = None
        if anchor is None:
            anchor = (self.width / 2, self.height / 2)

        t = self._transform
        wx, wy = t.invert(*anchor)
        k = clamp(k, *self.scale_extent)
        return self.set_transform(Transform(x=anchor[0] - wx * k, y=anchor[1] - wy * k, k=k))

    def zoom_by(self, factor: float, anchor: tuple[float, float] | None = None) -> Transform:
        return self.zoom_to(self._transform.k * factor, anchor)

    # -- auto-fit -------------------------------------------------------------

    def auto_fit(
        self,
        nodes: Iterable[GraphNode],
        now: float = 0.0,
        padding: tuple[float, float] = FIT_PADDING,
        duration: float = TRANSITION_MS,
    ) -> Transition | None:
        """
        Start an animated move to the transform that fits every node.

        Returns the running transition, or None when there is nothing to fit.
        """
        target = fit_transform(
            nodes, self.width, self.height, padding, min_scale=self.scale_extent[0], max_scale=FIT_MAX_SCALE
        )
        if target is None:
            logger.debug("Auto-fit skipped: no nodes")
            return None

        transition = Transition(start=self._transform, end=target, started_at=now, duration=duration)
        self.transition = transition
        if duration <= 0:
            self.finish()
        return transition

    def tick(self, now: float) -> Transform:
        """Advance a running transition to time `now` (ms)."""
        if self.transition is not None:
            self.set_transform(self.transition.at(now))
            if self.transition.done(now):
                self.transition = None
        return self._transform

    def finish(self) -> Transform:
        """Jump straight to the end of a running transition."""
        if self.transition is not None:
            self.set_transform(self.transition.end)
            self.transition = None
        return self._transform
