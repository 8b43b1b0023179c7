"""VTFフォーマットカタログモジュール

VTFのピクセルフォーマットごとのメタ情報（1ピクセルあたりのバイト数、
ブロック圧縮の有無）と、画像サイズ計算・面数算出・ピクセル展開を提供する。
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from dataclasses import dataclass
from enum import IntEnum, IntFlag
from typing import TYPE_CHECKING

from vtfkit.vtf.errors import UnsupportedFormatError

if TYPE_CHECKING:
    from vtfkit.vtf.header import VTFHeader


class ImageFormat(IntEnum):
    """VTFのピクセルフォーマット

    値はファイル中に格納されている列挙値そのもの。
    """

    NONE = -1
    RGBA8888 = 0
    ABGR8888 = 1
    RGB888 = 2
    BGR888 = 3
    RGB565 = 4
    I8 = 5
    IA88 = 6
    P8 = 7
    A8 = 8
    RGB888_BLUESCREEN = 9
    BGR888_BLUESCREEN = 10
    ARGB8888 = 11
    BGRA8888 = 12
    DXT1 = 13
    DXT3 = 14
    DXT5 = 15
    BGRX8888 = 16
    BGR565 = 17
    BGRX5551 = 18
    BGRA4444 = 19
    DXT1_ONEBITALPHA = 20
    BGRA5551 = 21
    UV88 = 22
    UVWQ8888 = 23
    RGBA16161616F = 24
    RGBA16161616 = 25
    UVLX8888 = 26
    ATI2N = 37
    ATI1N = 38


class VTFFlags(IntFlag):
    """VTFヘッダーのテクスチャフラグ"""

    POINT_SAMPLE = 0x00000001
    TRILINEAR = 0x00000002
    CLAMP_S = 0x00000004
    CLAMP_T = 0x00000008
    ANISOTROPIC = 0x00000010
    HINT_DXT5 = 0x00000020
    PWL_CORRECTED = 0x00000040
    NORMAL = 0x00000080
    NO_MIP = 0x00000100
    NO_LOD = 0x00000200
    ALL_MIPS = 0x00000400
    PROCEDURAL = 0x00000800
    ONEBITALPHA = 0x00001000
    EIGHTBITALPHA = 0x00002000
    ENVMAP = 0x00004000
    RENDER_TARGET = 0x00008000
    DEPTH_RENDER_TARGET = 0x00010000
    NO_DEBUG_OVERRIDE = 0x00020000
    SINGLE_COPY = 0x00040000
    PRE_SRGB = 0x00080000
    NO_DEPTH_BUFFER = 0x00800000
    CLAMP_U = 0x02000000
    VERTEX_TEXTURE = 0x04000000
    SS_BUMP = 0x08000000
    BORDER = 0x20000000


@dataclass(frozen=True)
class FormatInfo:
    """ピクセルフォーマットのメタ情報

    Attributes:
        name: フォーマット名
        bytes_per_pixel: 1ピクセルあたりのバイト数（ブロック圧縮形式では0）
        is_compressed: 4x4ブロック単位で圧縮されているか
        block_size: 4x4ブロック1つあたりのバイト数（非圧縮形式では0）
        is_supported: ピクセル展開に対応しているか
    """

    name: str
    bytes_per_pixel: int
    is_compressed: bool = False
    block_size: int = 0
    is_supported: bool = True


@dataclass(frozen=True)
class Pixel:
    """正規化済みRGBAピクセル

    各チャンネルは通常0.0〜1.0の範囲だが、クランプは行わない。
    """

    r: float = 0.0
    g: float = 0.0
    b: float = 0.0
    a: float = 0.0

    def to_rgba8(self) -> tuple[int, int, int, int]:
        """8bit RGBAタプルに変換する（範囲外の値は飽和させる）"""
        return (
            _to_byte(self.r),
            _to_byte(self.g),
            _to_byte(self.b),
            _to_byte(self.a),
        )


def _to_byte(value: float) -> int:
    return min(255, max(0, round(value * 255.0)))


# 画像フォーマットごとのメタ情報
_FORMAT_TABLE: dict[ImageFormat, FormatInfo] = {
    ImageFormat.NONE: FormatInfo("NONE", 0, is_supported=False),
    ImageFormat.RGBA8888: FormatInfo("RGBA8888", 4),
    ImageFormat.ABGR8888: FormatInfo("ABGR8888", 4),
    ImageFormat.RGB888: FormatInfo("RGB888", 3),
    ImageFormat.BGR888: FormatInfo("BGR888", 3),
    ImageFormat.RGB565: FormatInfo("RGB565", 2),
    ImageFormat.I8: FormatInfo("I8", 1),
    ImageFormat.IA88: FormatInfo("IA88", 2),
    # パレット形式はValve側でも実装されていない
    ImageFormat.P8: FormatInfo("P8", 1, is_supported=False),
    ImageFormat.A8: FormatInfo("A8", 1),
    ImageFormat.RGB888_BLUESCREEN: FormatInfo("RGB888_BLUESCREEN", 3),
    ImageFormat.BGR888_BLUESCREEN: FormatInfo("BGR888_BLUESCREEN", 3),
    ImageFormat.ARGB8888: FormatInfo("ARGB8888", 4),
    ImageFormat.BGRA8888: FormatInfo("BGRA8888", 4),
    ImageFormat.DXT1: FormatInfo("DXT1", 0, is_compressed=True, block_size=8),
    ImageFormat.DXT3: FormatInfo("DXT3", 0, is_compressed=True, block_size=16),
    ImageFormat.DXT5: FormatInfo("DXT5", 0, is_compressed=True, block_size=16),
    ImageFormat.BGRX8888: FormatInfo("BGRX8888", 4),
    ImageFormat.BGR565: FormatInfo("BGR565", 2),
    ImageFormat.BGRX5551: FormatInfo("BGRX5551", 2),
    ImageFormat.BGRA4444: FormatInfo("BGRA4444", 2),
    ImageFormat.DXT1_ONEBITALPHA: FormatInfo(
        "DXT1_ONEBITALPHA", 0, is_compressed=True, block_size=8
    ),
    ImageFormat.BGRA5551: FormatInfo("BGRA5551", 2),
    ImageFormat.UV88: FormatInfo("UV88", 2),
    ImageFormat.UVWQ8888: FormatInfo("UVWQ8888", 4),
    ImageFormat.RGBA16161616F: FormatInfo("RGBA16161616F", 8),
    ImageFormat.RGBA16161616: FormatInfo("RGBA16161616", 8),
    ImageFormat.UVLX8888: FormatInfo("UVLX8888", 4),
    ImageFormat.ATI2N: FormatInfo("ATI2N", 0, is_compressed=True, block_size=16),
    ImageFormat.ATI1N: FormatInfo("ATI1N", 0, is_compressed=True, block_size=8),
}

CUBEMAP_FACE_COUNT = 7
"""スフィアマップ込みのキューブマップ面数"""

MIN_VERSION_NO_SPHERE_MAP = 5
"""スフィアマップ面が廃止されたマイナーバージョン"""

FIRST_FRAME_NO_SPHERE_MAP = 0xFFFF
"""スフィアマップ面を持たないことを示すfirst_frame値"""


def get_format_info(image_format: ImageFormat) -> FormatInfo:
    """ピクセルフォーマットのメタ情報を取得する

    Args:
        image_format: ピクセルフォーマット

    Returns:
        フォーマットのメタ情報
    """
    return _FORMAT_TABLE[image_format]


def _plane_size(width: int, height: int, depth: int, info: FormatInfo) -> int:
    if info.is_compressed:
        blocks_x = (width + 3) // 4
        blocks_y = (height + 3) // 4
        return blocks_x * blocks_y * info.block_size * depth
    return width * height * depth * info.bytes_per_pixel


def calc_image_size(
    width: int,
    height: int,
    depth: int,
    mip_count: int,
    image_format: ImageFormat,
) -> int:
    """ミップチェーン全体のバイト数を計算する

    指定された寸法を0番目のミップとして、mip_count段分のサイズを合計する。
    各段の寸法は1未満にならないよう切り上げる。

    Args:
        width: 基準ミップの幅
        height: 基準ミップの高さ
        depth: 基準ミップの奥行き
        mip_count: 合計するミップ段数
        image_format: ピクセルフォーマット

    Returns:
        ミップチェーン全体のバイト数
    """
    info = get_format_info(image_format)
    total = 0
    for mip in range(mip_count):
        total += _plane_size(
            max(1, width >> mip),
            max(1, height >> mip),
            max(1, depth >> mip),
            info,
        )
    return total


def get_face_count(header: VTFHeader) -> int:
    """ヘッダーから面数を算出する

    環境マップは6面（7.5未満かつfirst_frameが0xFFFFでない場合は
    スフィアマップを含む7面）、それ以外は1面。

    Args:
        header: VTFヘッダー

    Returns:
        面数（1、6、7のいずれか）
    """
    if not header.flags & VTFFlags.ENVMAP:
        return 1
    if (
        header.first_frame != FIRST_FRAME_NO_SPHERE_MAP
        and header.version[1] < MIN_VERSION_NO_SPHERE_MAP
    ):
        return CUBEMAP_FACE_COUNT
    return CUBEMAP_FACE_COUNT - 1


def _unorm(value: int, bits: int) -> float:
    return value / ((1 << bits) - 1)


def _unpack_565(value: int) -> tuple[float, float, float]:
    return (
        _unorm((value >> 11) & 0x1F, 5),
        _unorm((value >> 5) & 0x3F, 6),
        _unorm(value & 0x1F, 5),
    )


def _rgba8888(p: bytes) -> Pixel:
    return Pixel(p[0] / 255, p[1] / 255, p[2] / 255, p[3] / 255)


def _abgr8888(p: bytes) -> Pixel:
    return Pixel(p[3] / 255, p[2] / 255, p[1] / 255, p[0] / 255)


def _argb8888(p: bytes) -> Pixel:
    return Pixel(p[1] / 255, p[2] / 255, p[3] / 255, p[0] / 255)


def _bgra8888(p: bytes) -> Pixel:
    return Pixel(p[2] / 255, p[1] / 255, p[0] / 255, p[3] / 255)


def _bgrx8888(p: bytes) -> Pixel:
    return Pixel(p[2] / 255, p[1] / 255, p[0] / 255, 1.0)


def _rgb888(p: bytes) -> Pixel:
    return Pixel(p[0] / 255, p[1] / 255, p[2] / 255, 1.0)


def _bgr888(p: bytes) -> Pixel:
    return Pixel(p[2] / 255, p[1] / 255, p[0] / 255, 1.0)


def _rgb888_bluescreen(p: bytes) -> Pixel:
    alpha = 0.0 if (p[0], p[1], p[2]) == (0, 0, 255) else 1.0
    return Pixel(p[0] / 255, p[1] / 255, p[2] / 255, alpha)


def _bgr888_bluescreen(p: bytes) -> Pixel:
    alpha = 0.0 if (p[2], p[1], p[0]) == (0, 0, 255) else 1.0
    return Pixel(p[2] / 255, p[1] / 255, p[0] / 255, alpha)


def _rgb565(p: bytes) -> Pixel:
    # VTFのRGB565は赤が下位ビット側
    b, g, r = _unpack_565(p[0] | (p[1] << 8))
    return Pixel(r, g, b, 1.0)


def _bgr565(p: bytes) -> Pixel:
    r, g, b = _unpack_565(p[0] | (p[1] << 8))
    return Pixel(r, g, b, 1.0)


def _bgrx5551(p: bytes) -> Pixel:
    value = p[0] | (p[1] << 8)
    return Pixel(
        _unorm((value >> 10) & 0x1F, 5),
        _unorm((value >> 5) & 0x1F, 5),
        _unorm(value & 0x1F, 5),
        1.0,
    )


def _bgra5551(p: bytes) -> Pixel:
    value = p[0] | (p[1] << 8)
    return Pixel(
        _unorm((value >> 10) & 0x1F, 5),
        _unorm((value >> 5) & 0x1F, 5),
        _unorm(value & 0x1F, 5),
        float((value >> 15) & 0x1),
    )


def _bgra4444(p: bytes) -> Pixel:
    value = p[0] | (p[1] << 8)
    return Pixel(
        _unorm((value >> 8) & 0xF, 4),
        _unorm((value >> 4) & 0xF, 4),
        _unorm(value & 0xF, 4),
        _unorm((value >> 12) & 0xF, 4),
    )


def _i8(p: bytes) -> Pixel:
    grey = p[0] / 255
    return Pixel(grey, grey, grey, 1.0)


def _ia88(p: bytes) -> Pixel:
    grey = p[0] / 255
    return Pixel(grey, grey, grey, p[1] / 255)


def _a8(p: bytes) -> Pixel:
    return Pixel(0.0, 0.0, 0.0, p[0] / 255)


def _uv88(p: bytes) -> Pixel:
    return Pixel(p[0] / 255, p[1] / 255, 0.0, 1.0)


def _rgba16161616f(p: bytes) -> Pixel:
    r, g, b, a = struct.unpack("<4e", p)
    return Pixel(r, g, b, a)


def _rgba16161616(p: bytes) -> Pixel:
    r, g, b, a = struct.unpack("<4H", p)
    return Pixel(r / 65535, g / 65535, b / 65535, a / 65535)


_PIXEL_UNPACKERS: dict[ImageFormat, Callable[[bytes], Pixel]] = {
    ImageFormat.RGBA8888: _rgba8888,
    ImageFormat.ABGR8888: _abgr8888,
    ImageFormat.RGB888: _rgb888,
    ImageFormat.BGR888: _bgr888,
    ImageFormat.RGB565: _rgb565,
    ImageFormat.I8: _i8,
    ImageFormat.IA88: _ia88,
    ImageFormat.A8: _a8,
    ImageFormat.RGB888_BLUESCREEN: _rgb888_bluescreen,
    ImageFormat.BGR888_BLUESCREEN: _bgr888_bluescreen,
    ImageFormat.ARGB8888: _argb8888,
    ImageFormat.BGRA8888: _bgra8888,
    ImageFormat.BGRX8888: _bgrx8888,
    ImageFormat.BGR565: _bgr565,
    ImageFormat.BGRX5551: _bgrx5551,
    ImageFormat.BGRA4444: _bgra4444,
    ImageFormat.BGRA5551: _bgra5551,
    ImageFormat.UV88: _uv88,
    # UVWQ/UVLXはチャンネルをそのままRGBAとして扱う
    ImageFormat.UVWQ8888: _rgba8888,
    ImageFormat.UVLX8888: _rgba8888,
    ImageFormat.RGBA16161616F: _rgba16161616f,
    ImageFormat.RGBA16161616: _rgba16161616,
}


def parse_pixel(
    data: bytes | bytearray | memoryview, offset: int, image_format: ImageFormat
) -> Pixel:
    """バッファ上の1ピクセルを正規化済みピクセルに展開する

    Args:
        data: ピクセルデータを含むバッファ
        offset: ピクセル先頭のバイトオフセット
        image_format: 格納されているピクセルフォーマット

    Returns:
        展開されたピクセル

    Raises:
        UnsupportedFormatError: 圧縮形式など、ピクセル単位で展開できない形式の場合
        ValueError: バッファにピクセル1つ分のデータが残っていない場合
    """
    unpacker = _PIXEL_UNPACKERS.get(image_format)
    if unpacker is None:
        raise UnsupportedFormatError(image_format)

    size = get_format_info(image_format).bytes_per_pixel
    raw = bytes(data[offset : offset + size])
    if len(raw) != size:
        raise ValueError(f"ピクセルデータが不足しています: offset={offset}")
    return unpacker(raw)
