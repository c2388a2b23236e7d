import io

from PIL import Image, ImageDraw, UnidentifiedImageError

from .config import AVATAR_SIZE_PX


def avatar_image(data: bytes | None, size: int = AVATAR_SIZE_PX) -> Image.Image:
    if data:
        try:
            img = Image.open(io.BytesIO(data)).convert("RGB")
            img.thumbnail((size, size))
            return img
        except (UnidentifiedImageError, OSError):
            pass
    img = Image.new("RGB", (size, size), color=(60, 60, 60))
    draw = ImageDraw.Draw(img)
    draw.ellipse((size * 0.3, size * 0.15, size * 0.7, size * 0.55), fill=(150, 150, 150))
    draw.ellipse((size * 0.15, size * 0.6, size * 0.85, size * 1.2), fill=(150, 150, 150))
    return img


def encode_avatar(path: str, size: int = AVATAR_SIZE_PX * 2) -> bytes:
    img = Image.open(path).convert("RGB")
    img.thumbnail((size, size))
    buf = io.BytesIO()
    img.save(buf, format="PNG")
    return buf.getvalue()


class AvatarCache:
    """Decodes the profile avatar only when its bytes change."""

    _EMPTY = object()

    def __init__(self, size: int = AVATAR_SIZE_PX):
        self._size = size
        self._data = self._EMPTY
        self._image: Image.Image | None = None

    def changed(self, data: bytes | None) -> bool:
        return self._data is self._EMPTY or data != self._data

    def get(self, data: bytes | None) -> Image.Image:
        if self.changed(data):
            self._image = avatar_image(data, self._size)
            self._data = data
        return self._image
