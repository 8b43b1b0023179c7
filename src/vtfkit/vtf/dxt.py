"""DXTブロック圧縮解凍モジュール

DXT1/DXT3/DXT5形式でブロック圧縮された画像プレーン1枚を
RGBA8888形式のバイト列に展開する。

各形式は4x4ピクセルのブロック単位で格納される:
- DXT1: カラーブロック(8)
- DXT3: 4bitアルファ(8) + カラーブロック(8)
- DXT5: 補間アルファ(8) + カラーブロック(8)

幅・高さが4の倍数でない場合（4x4未満の小さなミップを含む）も
ブロック数は切り上げで格納されており、範囲内のピクセルだけを書き込む。
"""

from __future__ import annotations

from vtfkit.vtf.errors import DXTError

DXT1_BLOCK_SIZE = 8
"""DXT1ブロックのバイト数"""

DXT3_BLOCK_SIZE = 16
"""DXT3ブロックのバイト数"""

DXT5_BLOCK_SIZE = 16
"""DXT5ブロックのバイト数"""

Color = tuple[int, int, int, int]

_TRANSPARENT_BLACK: Color = (0, 0, 0, 0)


def _expand_565(value: int) -> tuple[int, int, int]:
    """RGB565を上位ビットの複製で8bit RGBに拡張する"""
    r = (value >> 11) & 0x1F
    g = (value >> 5) & 0x3F
    b = value & 0x1F
    return (r << 3) | (r >> 2), (g << 2) | (g >> 4), (b << 3) | (b >> 2)


def _block_counts(width: int, height: int) -> tuple[int, int]:
    return (width + 3) // 4, (height + 3) // 4


def _check_length(data: bytes | memoryview, expected: int, name: str) -> None:
    if len(data) < expected:
        raise DXTError(f"{name}ブロックデータが不完全です: {len(data)} < {expected}")


def _color_table(data: bytes | memoryview, offset: int, *, four_color: bool) -> list[Color]:
    """カラーブロックの4色パレットを作成する

    Args:
        data: 圧縮データ
        offset: カラーブロックの先頭オフセット
        four_color: 常に4色モードで補間するか（DXT3/DXT5）

    Returns:
        インデックス0〜3に対応する色のリスト
    """
    c0 = data[offset] | (data[offset + 1] << 8)
    c1 = data[offset + 2] | (data[offset + 3] << 8)
    r0, g0, b0 = _expand_565(c0)
    r1, g1, b1 = _expand_565(c1)

    if four_color or c0 > c1:
        c2 = ((2 * r0 + r1) // 3, (2 * g0 + g1) // 3, (2 * b0 + b1) // 3, 255)
        c3 = ((r0 + 2 * r1) // 3, (g0 + 2 * g1) // 3, (b0 + 2 * b1) // 3, 255)
    else:
        # 3色モード: インデックス3は透明な黒
        c2 = ((r0 + r1) // 2, (g0 + g1) // 2, (b0 + b1) // 2, 255)
        c3 = _TRANSPARENT_BLACK

    return [(r0, g0, b0, 255), (r1, g1, b1, 255), c2, c3]


def _decode_color_block(
    data: bytes | memoryview, offset: int, *, four_color: bool
) -> list[Color]:
    """カラーブロックを16ピクセル分の色に展開する"""
    table = _color_table(data, offset, four_color=four_color)
    indices = int.from_bytes(data[offset + 4 : offset + 8], "little")
    return [table[(indices >> (2 * i)) & 0x03] for i in range(16)]


def _decode_explicit_alpha(data: bytes | memoryview, offset: int) -> list[int]:
    """DXT3の4bitアルファを16ピクセル分展開する"""
    bits = int.from_bytes(data[offset : offset + 8], "little")
    return [((bits >> (4 * i)) & 0x0F) * 17 for i in range(16)]


def _decode_interpolated_alpha(data: bytes | memoryview, offset: int) -> list[int]:
    """DXT5の補間アルファを16ピクセル分展開する"""
    a0 = data[offset]
    a1 = data[offset + 1]
    table = [a0, a1]
    if a0 > a1:
        table.extend(((7 - i) * a0 + i * a1) // 7 for i in range(1, 7))
    else:
        table.extend(((5 - i) * a0 + i * a1) // 5 for i in range(1, 5))
        table.extend((0, 255))

    bits = int.from_bytes(data[offset + 2 : offset + 8], "little")
    return [table[(bits >> (3 * i)) & 0x07] for i in range(16)]


def _write_block(
    out: bytearray,
    width: int,
    height: int,
    block_x: int,
    block_y: int,
    texels: list[Color],
) -> None:
    """4x4ブロックの範囲内ピクセルを出力バッファに書き込む"""
    for row in range(4):
        y = block_y * 4 + row
        if y >= height:
            break
        for col in range(4):
            x = block_x * 4 + col
            if x >= width:
                break
            index = (y * width + x) * 4
            out[index : index + 4] = bytes(texels[row * 4 + col])


def decompress_dxt1(data: bytes | memoryview, width: int, height: int) -> bytes:
    """DXT1（および1bitアルファ付きDXT1）のプレーンを展開する

    Args:
        data: DXT1圧縮データ（先頭からプレーン1枚分を使用する）
        width: プレーンの幅
        height: プレーンの高さ

    Returns:
        width * height * 4 バイトのRGBA8888データ

    Raises:
        DXTError: 圧縮データが不足している場合
    """
    blocks_x, blocks_y = _block_counts(width, height)
    _check_length(data, blocks_x * blocks_y * DXT1_BLOCK_SIZE, "DXT1")

    out = bytearray(width * height * 4)
    offset = 0
    for block_y in range(blocks_y):
        for block_x in range(blocks_x):
            texels = _decode_color_block(data, offset, four_color=False)
            _write_block(out, width, height, block_x, block_y, texels)
            offset += DXT1_BLOCK_SIZE
    return bytes(out)


def decompress_dxt3(data: bytes | memoryview, width: int, height: int) -> bytes:
    """DXT3のプレーンを展開する

    Args:
        data: DXT3圧縮データ
        width: プレーンの幅
        height: プレーンの高さ

    Returns:
        width * height * 4 バイトのRGBA8888データ

    Raises:
        DXTError: 圧縮データが不足している場合
    """
    blocks_x, blocks_y = _block_counts(width, height)
    _check_length(data, blocks_x * blocks_y * DXT3_BLOCK_SIZE, "DXT3")

    out = bytearray(width * height * 4)
    offset = 0
    for block_y in range(blocks_y):
        for block_x in range(blocks_x):
            alphas = _decode_explicit_alpha(data, offset)
            colors = _decode_color_block(data, offset + 8, four_color=True)
            texels = [(r, g, b, alpha) for (r, g, b, _), alpha in zip(colors, alphas)]
            _write_block(out, width, height, block_x, block_y, texels)
            offset += DXT3_BLOCK_SIZE
    return bytes(out)


def decompress_dxt5(data: bytes | memoryview, width: int, height: int) -> bytes:
    """DXT5のプレーンを展開する

    Args:
        data: DXT5圧縮データ
        width: プレーンの幅
        height: プレーンの高さ

    Returns:
        width * height * 4 バイトのRGBA8888データ

    Raises:
        DXTError: 圧縮データが不足している場合
    """
    blocks_x, blocks_y = _block_counts(width, height)
    _check_length(data, blocks_x * blocks_y * DXT5_BLOCK_SIZE, "DXT5")

    out = bytearray(width * height * 4)
    offset = 0
    for block_y in range(blocks_y):
        for block_x in range(blocks_x):
            alphas = _decode_interpolated_alpha(data, offset)
            colors = _decode_color_block(data, offset + 8, four_color=True)
            texels = [(r, g, b, alpha) for (r, g, b, _), alpha in zip(colors, alphas)]
            _write_block(out, width, height, block_x, block_y, texels)
            offset += DXT5_BLOCK_SIZE
    return bytes(out)
