import contextlib
import logging
import os
import tempfile
import threading
from concurrent.futures import ThreadPoolExecutor

from django.db import DatabaseError, connection
from PIL import Image, ImageDraw, ImageFont

from .exceptions import RenderError
from .utils import get_now

logger = logging.getLogger(__name__)

IMAGE_SIZE = (1000, 600)
BACKGROUND = (245, 247, 250)
TEXT_COLOR = (20, 23, 26)
LINE_HEIGHT = 40

# One worker: renders run one at a time, off the request thread.
_executor = ThreadPoolExecutor(max_workers=1, thread_name_prefix="summary-render")


def _load_font(size):
    try:
        return ImageFont.truetype("DejaVuSans.ttf", size)
    except OSError:
        return ImageFont.load_default()


class SummaryRenderer:
    """Draws the cached summary image: total count, top-N by GDP, timestamp."""

    def __init__(self, path, top_n=5, executor=None):
        self.path = path
        self.top_n = top_n
        self.executor = executor or _executor

    @classmethod
    def from_config(cls, config, executor=None):
        return cls(config.summary_image_path, top_n=config.top_n, executor=executor)

    def summary_lines(self, store):
        total = store.count_entities()
        top = store.top_n_by_estimated_gdp(self.top_n)

        lines = [
            f"Total countries: {total}",
            f"Top {self.top_n} by estimated GDP:",
        ]
        if not top:
            lines.append("No GDP data available.")
        for rank, country in enumerate(top, start=1):
            lines.append(f"{rank}. {country.name} - {country.estimated_gdp:,.2f}")
        lines.append(f"Timestamp: {get_now().isoformat()}")
        return lines

    def render(self, store):
        """Write the summary PNG to ``self.path`` and return the path."""
        try:
            lines = self.summary_lines(store)
        except DatabaseError as exc:
            raise RenderError(f"could not read summary data: {exc}") from exc

        img = Image.new("RGB", IMAGE_SIZE, color=BACKGROUND)
        draw = ImageDraw.Draw(img)
        font = _load_font(28)

        y = 40
        for line in lines:
            draw.text((40, y), line, fill=TEXT_COLOR, font=font)
            y += LINE_HEIGHT

        try:
            self._write(img)
        except (OSError, ValueError) as exc:
            raise RenderError(f"could not write {self.path}: {exc}") from exc
        return self.path

    def _write(self, img):
        # Readers of self.path only ever see a complete image.
        parent = os.path.dirname(self.path) or "."
        os.makedirs(parent, exist_ok=True)
        fd, tmp_path = tempfile.mkstemp(dir=parent, prefix=".summary-", suffix=".png")
        try:
            with os.fdopen(fd, "wb") as fh:
                img.save(fh, "PNG")
            os.replace(tmp_path, self.path)
        except BaseException:
            with contextlib.suppress(FileNotFoundError):
                os.unlink(tmp_path)
            raise

    def schedule(self, store):
        """Render in the background. Failures are logged, never raised."""
        future = self.executor.submit(self._render_in_worker, store, threading.get_ident())
        future.add_done_callback(_log_failure)
        return future

    def _render_in_worker(self, store, caller_ident):
        try:
            path = self.render(store)
            logger.info("Summary image written to %s", path)
            return path
        finally:
            # a worker thread owns its connection; never close the caller's
            if threading.get_ident() != caller_ident:
                connection.close()


def _log_failure(future):
    if future.cancelled():
        logger.warning("Summary image render was cancelled")
        return
    exc = future.exception()
    if exc is not None:
        logger.error("Summary image render failed: %s", exc, exc_info=exc)
