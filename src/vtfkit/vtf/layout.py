"""デコード済みバッファのレイアウト計算モジュール

デコード済みバッファはファイルと同じ順序で格納される:
ミップ（小さい順）→ フレーム → 面 → スライス → 行 → ピクセル。
このモジュールは (ミップ, フレーム, 面, z, y, x) からバイトオフセットを求める。
"""

from __future__ import annotations

from vtfkit.vtf.formats import calc_image_size, get_format_info
from vtfkit.vtf.header import VTFHeader


def mip_dimensions(header: VTFHeader, mip_level: int) -> tuple[int, int, int]:
    """指定ミップレベルの寸法を返す

    Args:
        header: VTFヘッダー
        mip_level: ミップレベル

    Returns:
        (幅, 高さ, 奥行き)。各値は1未満にならない
    """
    return (
        max(1, header.width >> mip_level),
        max(1, header.height >> mip_level),
        max(1, header.depth >> mip_level),
    )


def mip_offset(header: VTFHeader, face_count: int, mip_level: int) -> int:
    """指定ミップレベルの先頭オフセットを計算する

    ミップは小さい順に格納されているため、
    mip_levelより小さいミップ全体（全フレーム・全面）のサイズを合計する。

    Args:
        header: VTFヘッダー
        face_count: 面数
        mip_level: ミップレベル

    Returns:
        バッファ先頭からのバイトオフセット
    """
    offset = 0
    for level in range(mip_level + 1, header.mipmap_count):
        width, height, depth = mip_dimensions(header, level)
        offset += (
            calc_image_size(width, height, depth, 1, header.image_format)
            * face_count
            * header.frames
        )
    return offset


def slice_offset(
    header: VTFHeader,
    face_count: int,
    mip_level: int,
    frame: int,
    face: int,
    z: int,
) -> int:
    """指定スライスの先頭オフセットを計算する

    Args:
        header: VTFヘッダー
        face_count: 面数
        mip_level: ミップレベル
        frame: フレーム番号
        face: 面番号
        z: スライス番号

    Returns:
        バッファ先頭からのバイトオフセット
    """
    width, height, depth = mip_dimensions(header, mip_level)
    pixel_size = get_format_info(header.image_format).bytes_per_pixel
    slice_size = width * height * pixel_size
    face_size = slice_size * depth
    frame_size = face_size * face_count

    return (
        mip_offset(header, face_count, mip_level)
        + frame * frame_size
        + face * face_size
        + z * slice_size
    )


def pixel_offset(
    header: VTFHeader,
    face_count: int,
    mip_level: int,
    frame: int,
    face: int,
    z: int,
    y: int,
    x: int,
) -> int:
    """指定ピクセルのオフセットを計算する

    Args:
        header: VTFヘッダー
        face_count: 面数
        mip_level: ミップレベル
        frame: フレーム番号
        face: 面番号
        z: スライス番号
        y: 行
        x: 列

    Returns:
        バッファ先頭からのバイトオフセット
    """
    width = mip_dimensions(header, mip_level)[0]
    pixel_size = get_format_info(header.image_format).bytes_per_pixel
    return (
        slice_offset(header, face_count, mip_level, frame, face, z)
        + y * width * pixel_size
        + x * pixel_size
    )
