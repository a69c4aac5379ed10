"""Generate small PNG files without image libraries, used as the offline fallback payload."""

import struct
import zlib
from typing import Tuple

# 5x7 glyphs, one byte per row, most significant of the low five bits is the left column.
FONT_5X7 = {
    's': [0b01111, 0b10000, 0b10000, 0b01110, 0b00001, 0b00001, 0b11110],
    'h': [0b10000, 0b10000, 0b10110, 0b11001, 0b10001, 0b10001, 0b10001],
    'e': [0b00000, 0b01110, 0b10001, 0b11111, 0b10000, 0b10001, 0b01110],
    'l': [0b01100, 0b00100, 0b00100, 0b00100, 0b00100, 0b00100, 0b01110],
    'b': [0b10000, 0b10000, 0b10110, 0b11001, 0b10001, 0b10001, 0b11110],
    'y': [0b00000, 0b10001, 0b10001, 0b01111, 0b00001, 0b10001, 0b01110],
}

GLYPH_WIDTH = 5
GLYPH_HEIGHT = 7
BYTES_PER_PIXEL = 3


def draw_text(rows: list, width: int, height: int, text: str, x: int, y: int,
              color: Tuple[int, int, int]) -> None:
    """Draw text into RGB rows (bytearrays without filter byte), skipping unknown characters.

    :param rows: One bytearray of width*3 bytes per image row, modified in place.
    :param text: Text to draw; only glyphs in FONT_5X7 are rendered.
    :param x: Left edge of the first glyph.
    :param y: Top edge of the glyphs.
    :param color: (R, G, B) of the text.
    """
    for index, char in enumerate(text.lower()):
        bitmap = FONT_5X7.get(char)
        if bitmap is None:
            continue
        left = x + index * (GLYPH_WIDTH + 1)
        for row, bits in enumerate(bitmap):
            py = y + row
            if not 0 <= py < height:
                continue
            for col in range(GLYPH_WIDTH):
                px = left + col
                if 0 <= px < width and bits & (1 << (GLYPH_WIDTH - 1 - col)):
                    offset = px * BYTES_PER_PIXEL
                    rows[py][offset:offset + BYTES_PER_PIXEL] = bytes(color)


def create_minimal_png(width: int, height: int, background: Tuple[int, int, int] = (36, 52, 71),
                       text: str = "shelby", text_color: Tuple[int, int, int] = (255, 255, 255)) -> bytes:
    """Create an 8-bit RGB PNG with a solid background and a short text label.

    :param width: Image width in pixels.
    :param height: Image height in pixels.
    :param background: (R, G, B) fill color.
    :param text: Label drawn near the top-left corner.
    :param text_color: (R, G, B) of the label.
    :return: PNG file bytes.
    """
    if width <= 0 or height <= 0:
        raise ValueError("PNG dimensions must be positive")
    rows = [bytearray(bytes(background) * width) for _ in range(height)]
    draw_text(rows, width, height, text, x=2, y=2, color=text_color)

    # Filter type 0 (none) before each scanline.
    raw = b''.join(b'\x00' + bytes(row) for row in rows)

    png_sig = b'\x89PNG\r\n\x1a\n'
    ihdr = _make_chunk('IHDR', struct.pack('>IIBBBBB', width, height, 8, 2, 0, 0, 0))
    idat = _make_chunk('IDAT', zlib.compress(raw, 9))
    iend = _make_chunk('IEND', b'')
    return png_sig + ihdr + idat + iend


def _make_chunk(chunk_type: str, data: bytes) -> bytes:
    """Create a PNG chunk: length, type, data, CRC over type+data."""
    chunk_type_bytes = chunk_type.encode('ascii')
    length = struct.pack('>I', len(data))
    crc = zlib.crc32(chunk_type_bytes + data) & 0xffffffff
    return length + chunk_type_bytes + data + struct.pack('>I', crc)
