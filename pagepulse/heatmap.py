"""
Click Heatmap Renderer
Rasterizes weighted click points as red radial blobs over an optional page screenshot.
"""

import io
import ipaddress
import logging
import math
import os
import threading
from collections import OrderedDict
from concurrent.futures import ThreadPoolExecutor
from dataclasses import dataclass
from enum import Enum
from typing import Callable, Optional, Sequence
from urllib.parse import urlparse

import numpy as np
import requests
from PIL import Image

logger = logging.getLogger(__name__)

RADIUS = 30
MAX_ALPHA = 0.8
HEAT_COLOR = (255, 0, 0)
MOBILE_MAX_WIDTH = 375
DEFAULT_WIDTH = 800
DEFAULT_HEIGHT = 600


@dataclass(frozen=True)
class HeatmapPoint:
    x: float
    y: float
    value: float


class RenderState(Enum):
    LOADING = "loading"
    READY = "ready"
    FAILED = "failed"


def max_point_value(points: Sequence[HeatmapPoint]) -> float:
    """Batch maximum, floored at 1 so empty or all-zero batches normalize cleanly."""
    return max([p.value for p in points] + [1])


def point_intensity(value: float, max_value: float) -> float:
    return min(1.0, value / max_value)


class RenderSurface:
    """
    Fixed-size RGBA canvas backed by a PIL image.
    All drawing goes through these three methods so a test double can record call order.
    """

    def __init__(self, width: int, height: int):
        if width <= 0 or height <= 0:
            raise ValueError(f"Surface dimensions must be positive, got {width}x{height}")
        self.width = width
        self.height = height
        self.image = Image.new("RGBA", (width, height), (0, 0, 0, 0))

    def clear(self):
        self.image.paste((0, 0, 0, 0), (0, 0, self.width, self.height))

    def draw_image(self, image: Image.Image):
        scaled = image.convert("RGBA").resize((self.width, self.height))
        self.image.alpha_composite(scaled)

    def fill_radial_gradient(self, x: float, y: float, radius: float, color, center_alpha: float):
        """
        Composites a circular gradient at (x, y): `center_alpha` at the centre, fading
        linearly to transparent at `radius`. Anything outside the canvas is clipped.
        """
        left = max(0, int(math.floor(x - radius)))
        top = max(0, int(math.floor(y - radius)))
        right = min(self.width, int(math.ceil(x + radius)) + 1)
        bottom = min(self.height, int(math.ceil(y + radius)) + 1)
        if left >= right or top >= bottom:
            return

        ys, xs = np.mgrid[top:bottom, left:right]
        # Sample at pixel centres
        dist = np.hypot(xs + 0.5 - x, ys + 0.5 - y)
        alpha = np.clip(1.0 - dist / radius, 0.0, 1.0) * center_alpha

        blob = np.zeros((bottom - top, right - left, 4), dtype=np.uint8)
        blob[..., 0] = color[0]
        blob[..., 1] = color[1]
        blob[..., 2] = color[2]
        blob[..., 3] = np.round(alpha * 255).astype(np.uint8)

        self.image.alpha_composite(Image.fromarray(blob), dest=(left, top))


class HeatmapRenderer:
    """Single-pass clear / background / blobs renderer. Holds no state between passes."""

    def __init__(self, radius=RADIUS, color=HEAT_COLOR, max_alpha=MAX_ALPHA):
        self.radius = radius
        self.color = color
        self.max_alpha = max_alpha

    def render(self, surface: Optional[RenderSurface], points: Sequence[HeatmapPoint], background: Optional[Image.Image] = None):
        if surface is None:
            return

        surface.clear()

        if background is not None:
            surface.draw_image(background)

        max_value = max_point_value(points)

        # Input order is draw order; blending is order dependent
        for point in points:
            intensity = point_intensity(point.value, max_value)
            surface.fill_radial_gradient(point.x, point.y, self.radius, self.color, intensity * self.max_alpha)


# --- Background image loading ---

IMAGE_URL_SCHEMES = ("http", "https")


def validate_image_url(src):
    """
    Accepts only absolute http(s) URLs on a public host. Local paths, other schemes,
    localhost and private or loopback IP literals raise ValueError.
    """
    parsed = urlparse(src or "")
    if parsed.scheme not in IMAGE_URL_SCHEMES or not parsed.hostname:
        raise ValueError(f"Background image must be an http(s) URL, got {src!r}")

    host = parsed.hostname
    if host == "localhost" or host.endswith(".localhost"):
        raise ValueError(f"Background image host is not allowed: {host}")
    try:
        address = ipaddress.ip_address(host)
    except ValueError:
        return src
    if not address.is_global:
        raise ValueError(f"Background image host is not allowed: {host}")
    return src


def load_image(src, timeout=None):
    """
    Fetches and decodes an image from a public http(s) URL. Redirects are not followed.
    """
    validate_image_url(src)
    if timeout is None:
        timeout = float(os.getenv("HEATMAP_IMAGE_TIMEOUT", "10"))

    response = requests.get(src, timeout=timeout, allow_redirects=False)
    if response.is_redirect:
        raise ValueError(f"Background image URL redirects elsewhere: {src}")
    response.raise_for_status()

    image = Image.open(io.BytesIO(response.content))
    image.load()
    return image


@dataclass
class CachedImage:
    url: str
    state: RenderState
    generation: int
    image: Optional[Image.Image] = None
    error: Optional[str] = None


class ImageCache:
    """
    URL-keyed cache of decoded background images, bounded to `max_entries`.

    Each load request is stamped with a generation token. A completion is applied only
    when its token still matches the entry, so late results from superseded requests
    are dropped instead of overwriting newer state.

    Least recently used entries are evicted past the bound; entries still LOADING are
    never evicted, so the cache may briefly exceed it while many loads are in flight.
    """

    def __init__(self, loader: Callable = load_image, executor=None, max_entries=None):
        self._loader = loader
        self._executor = executor or ThreadPoolExecutor(max_workers=2, thread_name_prefix="heatmap-img")
        if max_entries is None:
            max_entries = int(os.getenv("HEATMAP_CACHE_SIZE", "32"))
        if max_entries < 1:
            raise ValueError("max_entries must be at least 1")
        self.max_entries = max_entries
        self._entries: "OrderedDict[str, CachedImage]" = OrderedDict()
        self._generation = 0
        self._lock = threading.Lock()

    def __len__(self):
        with self._lock:
            return len(self._entries)

    def request(self, url: str) -> CachedImage:
        """Returns the entry for `url`, starting a decode if none is cached or the last one failed."""
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None and entry.state != RenderState.FAILED:
                self._entries.move_to_end(url)
                return entry

            self._generation += 1
            entry = CachedImage(url=url, state=RenderState.LOADING, generation=self._generation)
            self._entries[url] = entry
            self._entries.move_to_end(url)
            self._evict(keep=url)
            token = entry.generation

        future = self._executor.submit(self._loader, url)
        future.add_done_callback(lambda f: self._complete(url, token, f))
        return entry

    def get(self, url: str) -> Optional[CachedImage]:
        with self._lock:
            entry = self._entries.get(url)
            if entry is not None:
                self._entries.move_to_end(url)
            return entry

    def invalidate(self, url: str):
        with self._lock:
            self._entries.pop(url, None)

    def _evict(self, keep=None):
        # Caller holds the lock
        excess = len(self._entries) - self.max_entries
        if excess <= 0:
            return
        evictable = [u for u, e in self._entries.items() if e.state != RenderState.LOADING and u != keep]
        for url in evictable[:excess]:
            logger.debug("Evicting cached background image %s", url)
            del self._entries[url]

    def _complete(self, url, token, future):
        try:
            image = future.result()
            error = None
        except Exception as e:
            image = None
            error = str(e)

        with self._lock:
            entry = self._entries.get(url)
            if entry is None or entry.generation != token:
                logger.debug("Discarding stale image load for %s (generation %s)", url, token)
                return

            if error is None:
                entry.image = image
                entry.state = RenderState.READY
            else:
                logger.warning("Background image failed to load: %s (%s)", url, error)
                entry.error = error
                entry.state = RenderState.FAILED
            self._evict(keep=url)


class HeatmapView:
    """
    Owns one render surface and the background-image lifecycle for a heatmap panel.

    The view stays in LOADING while its background is decoding and refuses to draw,
    so callers show a placeholder instead of a half-finished frame.
    """

    def __init__(self, width=DEFAULT_WIDTH, height=DEFAULT_HEIGHT, image_src=None, device_type="desktop", cache=None, renderer=None):
        self.surface = RenderSurface(width, height)
        self.device_type = device_type
        self.renderer = renderer or HeatmapRenderer()
        self.cache = cache or ImageCache()
        self.image_src = None
        self.set_image_src(image_src)

    @property
    def width(self):
        return self.surface.width

    @property
    def height(self):
        return self.surface.height

    @property
    def display_width(self):
        if self.device_type == "mobile":
            return min(self.width, MOBILE_MAX_WIDTH)
        return self.width

    def set_image_src(self, image_src):
        if image_src == self.image_src:
            return
        self.image_src = image_src
        if image_src:
            self.cache.request(image_src)

    def retry(self):
        """Starts a fresh load when the current background failed."""
        if self.image_src and self.state == RenderState.FAILED:
            self.cache.request(self.image_src)

    def _entry(self) -> Optional[CachedImage]:
        if not self.image_src:
            return None
        entry = self.cache.get(self.image_src)
        if entry is None:
            # Evicted or invalidated since it was requested
            entry = self.cache.request(self.image_src)
        return entry

    @property
    def state(self) -> RenderState:
        entry = self._entry()
        return entry.state if entry else RenderState.READY

    @property
    def error(self):
        entry = self._entry()
        return entry.error if entry else None

    def render(self, points: Sequence[HeatmapPoint]) -> Optional[Image.Image]:
        """
        Repaints the surface and returns a copy of it, or None while the background is
        still loading. A failed background degrades to a plain overlay.
        """
        entry = self._entry()
        if entry is not None and entry.state == RenderState.LOADING:
            return None

        background = entry.image if entry is not None and entry.state == RenderState.READY else None
        self.renderer.render(self.surface, points, background)
        return self.surface.image.copy()
