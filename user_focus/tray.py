import logging
import threading
import pystray
from PIL import Image, ImageDraw

from .logging_setup import get_logger


class TrayController:
    def __init__(self, title: str, on_show, on_quit, logger: logging.Logger | None = None):
        self._title = title
        self._on_show = on_show
        self._on_quit = on_quit
        self._logger = logger or get_logger()

        self._icon = None
        self._thread = None
        self._running = False

    def _make_icon_image(self) -> Image.Image:
        img = Image.new("RGB", (64, 64), color=(40, 40, 40))
        draw = ImageDraw.Draw(img)
        draw.ellipse((8, 8, 56, 56), fill=(46, 204, 113))
        draw.polygon([(32, 14), (46, 40), (18, 40)], fill=(245, 245, 245))
        draw.rectangle((29, 40, 35, 50), fill=(245, 245, 245))
        return img

    @property
    def running(self) -> bool:
        return self._icon is not None and self._running

    def ensure_running(self) -> None:
        if self.running:
            return

        def on_show(icon, item):
            self._on_show()

        def on_quit(icon, item):
            self._on_quit()

        menu = pystray.Menu(
            pystray.MenuItem("Show", on_show, default=True),
            pystray.MenuItem("Quit", on_quit),
        )

        self._icon = pystray.Icon("UserFocus", self._make_icon_image(), self._title, menu)

        def run_icon():
            self._running = True
            try:
                self._icon.run()
            finally:
                self._running = False

        self._thread = threading.Thread(target=run_icon, daemon=True)
        self._thread.start()

    def notify(self, title: str, message: str) -> None:
        if not self.running:
            self._logger.info(f"TRAY notify skipped (tray hidden): {title}")
            return
        try:
            self._icon.notify(message, title)
        except NotImplementedError:
            self._logger.info(f"TRAY notify unsupported on this backend: {title}")

    def stop(self) -> None:
        if self._icon is None:
            return
        try:
            self._icon.stop()
        except Exception:
            self._logger.exception("TRAY stop failed")
        self._icon = None
