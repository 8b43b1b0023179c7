"""テスト共通フィクスチャ

VTFファイルのバイト列を組み立てるビルダーを提供する。
"""

from __future__ import annotations

import struct
from collections.abc import Callable
from pathlib import Path

import pytest

from vtfkit.vtf.formats import ImageFormat

_BASE_HEADER = struct.Struct("<4sIIIHHIHH4x3f4xfiBiBB")
_HEADER_SIZE_V72 = 80
_RESOURCE_TABLE_OFFSET = 80

VTFBuilder = Callable[..., bytes]


def build_vtf(
    *,
    width: int,
    height: int,
    payload: bytes = b"",
    image_format: ImageFormat = ImageFormat.RGBA8888,
    version: tuple[int, int] = (7, 2),
    flags: int = 0,
    frames: int = 1,
    first_frame: int = 0,
    mipmap_count: int = 1,
    depth: int = 1,
    low_res_format: ImageFormat = ImageFormat.NONE,
    low_res_size: tuple[int, int] = (0, 0),
    low_res_payload: bytes = b"",
    signature: bytes = b"VTF\x00",
) -> bytes:
    """VTFファイルのバイト列を組み立てる

    7.2以前は「ヘッダー + 低解像度 + 高解像度」、7.3以降はリソーステーブルに
    低解像度・高解像度のオフセットを書き込んでから同じ順で配置する。

    Args:
        width: 幅
        height: 高さ
        payload: 高解像度画像データ（ファイル上の格納順）
        image_format: 高解像度フォーマット
        version: (メジャー, マイナー)バージョン
        flags: テクスチャフラグ
        frames: フレーム数
        first_frame: 先頭フレーム
        mipmap_count: ミップ数
        depth: 奥行き（7.2以降のみ書き込まれる）
        low_res_format: 低解像度フォーマット
        low_res_size: 低解像度の (幅, 高さ)
        low_res_payload: 低解像度画像データ
        signature: シグネチャ

    Returns:
        VTFファイルのバイト列
    """
    major, minor = version
    resource_count = 0
    if minor >= 3:
        resource_count = 2 if low_res_payload else 1
        header_size = _RESOURCE_TABLE_OFFSET + resource_count * 8
    elif minor == 2:
        header_size = _HEADER_SIZE_V72
    else:
        header_size = 64

    header = _BASE_HEADER.pack(
        signature,
        major,
        minor,
        header_size,
        width,
        height,
        flags,
        frames,
        first_frame,
        0.5,
        0.5,
        0.5,
        1.0,
        int(image_format),
        mipmap_count,
        int(low_res_format),
        low_res_size[0],
        low_res_size[1],
    )
    if minor >= 2:
        header += struct.pack("<H", depth)
    if minor >= 3:
        header += struct.pack("<3xI8x", resource_count)
        offset = header_size
        if low_res_payload:
            header += struct.pack("<3sBI", b"\x01\x00\x00", 0, offset)
            offset += len(low_res_payload)
        header += struct.pack("<3sBI", b"\x30\x00\x00", 0, offset)

    header = header.ljust(header_size, b"\x00")
    return header + low_res_payload + payload


def rgba_bytes(*pixels: tuple[int, int, int, int]) -> bytes:
    """RGBA8888ピクセル列をバイト列にする"""
    return b"".join(bytes(pixel) for pixel in pixels)


@pytest.fixture
def make_vtf() -> VTFBuilder:
    """VTFビルダー関数"""
    return build_vtf


@pytest.fixture
def gradient_vtf() -> bytes:
    """2x2、ミップ2段のRGBA8888テクスチャ

    ミップ0:
        (0,0)=赤 (1,0)=緑
        (0,1)=青 (1,1)=白
    ミップ1: 灰色(128)の1ピクセル
    """
    mip1 = rgba_bytes((128, 128, 128, 255))
    mip0 = rgba_bytes(
        (255, 0, 0, 255),
        (0, 255, 0, 255),
        (0, 0, 255, 255),
        (255, 255, 255, 255),
    )
    # ファイル上は小さいミップから格納される
    return build_vtf(width=2, height=2, mipmap_count=2, payload=mip1 + mip0)


@pytest.fixture
def gradient_vtf_file(tmp_path: Path, gradient_vtf: bytes) -> Path:
    """gradient_vtfを書き込んだファイル"""
    path = tmp_path / "gradient.vtf"
    path.write_bytes(gradient_vtf)
    return path
