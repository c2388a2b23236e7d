import io

from PIL import Image

from user_focus.avatar import AvatarCache, avatar_image, encode_avatar


def png_bytes(color=(200, 30, 30), size=(300, 200)) -> bytes:
    buf = io.BytesIO()
    Image.new("RGB", size, color=color).save(buf, format="PNG")
    return buf.getvalue()


class TestAvatarImage:
    def test_placeholder_when_missing(self):
        assert avatar_image(None, 96).size == (96, 96)

    def test_placeholder_when_undecodable(self):
        assert avatar_image(b"not an image", 96).size == (96, 96)

    def test_thumbnail_keeps_aspect(self):
        assert avatar_image(png_bytes(), 96).size == (96, 64)


class TestEncodeAvatar:
    def test_png_bounded(self, tmp_path):
        path = tmp_path / "me.jpg"
        Image.new("RGB", (1000, 500), color=(0, 0, 255)).save(path, format="JPEG")
        data = encode_avatar(str(path), 192)
        img = Image.open(io.BytesIO(data))
        assert img.format == "PNG"
        assert img.size == (192, 96)


class TestAvatarCache:
    def test_reuses_image_while_bytes_unchanged(self):
        cache = AvatarCache(96)
        data = png_bytes()
        first = cache.get(data)
        assert not cache.changed(data)
        assert cache.get(data) is first

    def test_rebuilds_when_bytes_change(self):
        cache = AvatarCache(96)
        first = cache.get(png_bytes())
        other = png_bytes(color=(0, 200, 0))
        assert cache.changed(other)
        assert cache.get(other) is not first

    def test_missing_avatar_cached_too(self):
        cache = AvatarCache(96)
        assert cache.changed(None)
        placeholder = cache.get(None)
        assert not cache.changed(None)
        assert cache.get(None) is placeholder
