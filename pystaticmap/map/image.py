"""
Raster layers of a static map.

``MapImage`` assembles the base layer from downloaded tiles, merges the
vector overlay on top of it and encodes the result.
"""

from io import BytesIO
from typing import Optional, Sequence, Tuple
import logging
import os
import time

from PIL import Image, UnidentifiedImageError

from pystaticmap.exceptions import CompositionError
from .raster_map_servers import TileResult

logger = logging.getLogger(__name__)

_FORMATS = {
    'png': 'PNG',
    'jpg': 'JPEG',
    'jpeg': 'JPEG',
    'webp': 'WEBP',
}

_MIME_FORMATS = {
    'image/png': 'PNG',
    'image/jpg': 'JPEG',
    'image/jpeg': 'JPEG',
    'image/webp': 'WEBP',
}


def blank_layer(width: int, height: int) -> 'Image.Image':
    """Transparent RGBA surface of the given size."""
    return Image.new('RGBA', (width, height), (0, 0, 0, 0))


class MapImage:
    """
    The raster surface of one render.

    Attributes:
        width (int): Canvas width in pixels
        height (int): Canvas height in pixels
        quality (int): Default encoder quality for JPEG and WEBP
        image (Optional[Image.Image]): Current RGBA raster, set by ``draw``
    """

    def __init__(self, width: int, height: int, quality: int = 100):
        self.width = width
        self.height = height
        self.quality = quality
        self.image: Optional[Image.Image] = None

    def prepare_tile_part(self, tile: TileResult) -> Optional[Tuple['Image.Image', Tuple[int, int]]]:
        """
        Clip a tile against the canvas.

        Args:
            tile: Successfully fetched tile

        Returns:
            ``(part, (left, top))`` to paste, or ``None`` when the tile does
            not overlap the canvas or cannot be decoded
        """
        try:
            img = Image.open(BytesIO(tile.body))
            img.load()
        except (UnidentifiedImageError, OSError) as e:
            logger.warning("Cannot decode tile %s: %s", tile.url, e)
            return None

        x, y = tile.box[0], tile.box[1]
        tile_width, tile_height = img.size

        src_left = -x if x < 0 else 0
        src_top = -y if y < 0 else 0
        src_right = min(tile_width, self.width - x)
        src_bottom = min(tile_height, self.height - y)

        if src_right <= src_left or src_bottom <= src_top:
            return None

        part = img.convert('RGBA').crop((src_left, src_top, src_right, src_bottom))
        return part, (max(x, 0), max(y, 0))

    def draw(self, tiles: Sequence[TileResult]) -> 'Image.Image':
        """
        Assemble the base layer from fetched tiles.

        Failed tiles are skipped and leave a transparent gap.

        Returns:
            The base layer, also stored on ``self.image``
        """
        t1 = time.perf_counter()
        baselayer = blank_layer(self.width, self.height)

        parts = []
        for tile in tiles:
            if not tile.success:
                continue
            part = self.prepare_tile_part(tile)
            if part is not None:
                parts.append(part)

        logger.debug("Compose base layer from %d of %d tiles", len(parts), len(tiles))
        for part, dest in parts:
            baselayer.alpha_composite(part, dest=dest)

        self.image = baselayer
        logger.debug("Finish baselayer. Take %.1f ms", (time.perf_counter() - t1) * 1000)
        return baselayer

    def compose(self, overlay: Optional['Image.Image']) -> 'Image.Image':
        """
        Merge the vector overlay over the base layer at the origin.

        Raises:
            CompositionError: If the layers cannot be merged
        """
        if self.image is None:
            raise CompositionError('Base layer has not been drawn')
        if overlay is None:
            return self.image
        if overlay.size != self.image.size:
            raise CompositionError(f"Overlay size {overlay.size} does not match map size {self.image.size}")

        t1 = time.perf_counter()
        try:
            if overlay.mode != 'RGBA':
                overlay = overlay.convert('RGBA')
            composed = self.image.copy()
            composed.alpha_composite(overlay, dest=(0, 0))
        except (ValueError, OSError) as e:
            raise CompositionError(f"Cannot compose map layers: {e}") from e

        self.image = composed
        logger.debug("Finish final compose. Take %.1f ms.", (time.perf_counter() - t1) * 1000)
        return composed

    def save(self, filename: str = 'output.png', **options) -> None:
        """
        Encode the map to a file; the format follows the file extension.

        Args:
            filename: Target path (``.png``, ``.jpg``/``.jpeg`` or ``.webp``)
            **options: Encoder options passed to Pillow (e.g. ``quality``)
        """
        ext = os.path.splitext(filename)[1].lstrip('.').lower()
        fmt = _FORMATS.get(ext, 'PNG')
        image, params = self._encodable(fmt, options)
        image.save(filename, format=fmt, **params)

    def buffer(self, mime: str = 'image/png', **options) -> bytes:
        """
        Encode the map to bytes.

        Args:
            mime: ``image/png``, ``image/jpeg`` or ``image/webp``
            **options: Encoder options passed to Pillow (e.g. ``quality``)
        """
        fmt = _MIME_FORMATS.get(mime.lower(), 'PNG')
        image, params = self._encodable(fmt, options)
        out = BytesIO()
        image.save(out, format=fmt, **params)
        return out.getvalue()

    def _encodable(self, fmt: str, options: dict):
        if self.image is None:
            raise CompositionError('Map has not been rendered')
        params = dict(options)
        image = self.image
        if fmt in ('JPEG', 'WEBP'):
            params.setdefault('quality', self.quality)
        if fmt == 'JPEG':
            # JPEG has no alpha channel
            background = Image.new('RGB', image.size, (255, 255, 255))
            background.paste(image, mask=image.getchannel('A'))
            image = background
        return image, params

