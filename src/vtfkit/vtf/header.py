"""VTFヘッダー解析モジュール

VTF（Valve Texture Format）ファイルのヘッダーを解析し、
高解像度画像データの位置を特定して切り出す機能を提供する。

VTFヘッダーの構造（リトルエンディアン）:
- シグネチャ(4) + バージョン(4+4) + ヘッダーサイズ(4)
- 幅(2) + 高さ(2) + フラグ(4) + フレーム数(2) + 先頭フレーム(2)
- パディング(4) + 反射率(12) + パディング(4) + バンプスケール(4)
- 高解像度フォーマット(4) + ミップ数(1) + 低解像度フォーマット(4)
- 低解像度幅(1) + 低解像度高さ(1)
- 7.2以降: 奥行き(2)
- 7.3以降: パディング(3) + リソース数(4) + パディング(8) + リソースエントリ(8 * n)
"""

from __future__ import annotations

import struct
from dataclasses import dataclass

from vtfkit.vtf.errors import VTFFormatError
from vtfkit.vtf.formats import (
    ImageFormat,
    VTFFlags,
    calc_image_size,
    get_face_count,
    get_format_info,
)

VTF_SIGNATURE = b"VTF\x00"
"""VTFファイルのシグネチャ"""

VTF_MAJOR_VERSION = 7
"""対応するメジャーバージョン"""

VTF_MAX_MINOR_VERSION = 5
"""対応する最大マイナーバージョン"""

RESOURCE_TAG_LOW_RES = b"\x01\x00\x00"
"""低解像度サムネイルのリソースタグ"""

RESOURCE_TAG_HIGH_RES = b"\x30\x00\x00"
"""高解像度画像のリソースタグ"""

RESOURCE_FLAG_NO_DATA = 0x02
"""リソースがオフセットではなく値そのものを持つことを示すフラグ"""

_BASE_HEADER = struct.Struct(
    "<"
    "4s"  # シグネチャ
    "II"  # バージョン
    "I"  # ヘッダーサイズ
    "HH"  # 幅、高さ
    "I"  # フラグ
    "H"  # フレーム数
    "H"  # 先頭フレーム
    "4x"
    "3f"  # 反射率
    "4x"
    "f"  # バンプスケール
    "i"  # 高解像度フォーマット
    "B"  # ミップ数
    "i"  # 低解像度フォーマット
    "BB"  # 低解像度の幅、高さ
)
_DEPTH = struct.Struct("<H")
_RESOURCE_COUNT = struct.Struct("<3xI8x")
_RESOURCE_ENTRY = struct.Struct("<3sBI")

_DEPTH_OFFSET = _BASE_HEADER.size
_RESOURCE_COUNT_OFFSET = _DEPTH_OFFSET + _DEPTH.size
_RESOURCE_TABLE_OFFSET = _RESOURCE_COUNT_OFFSET + _RESOURCE_COUNT.size


@dataclass(frozen=True)
class ResourceEntry:
    """7.3以降のリソースエントリ

    Attributes:
        tag: 3バイトのリソースID
        flags: リソースフラグ
        data: データのオフセット、またはフラグによっては値そのもの
    """

    tag: bytes
    flags: int
    data: int


@dataclass(frozen=True)
class VTFHeader:
    """VTFヘッダー情報

    VTFファイルのヘッダーから読み取った情報を保持する不変データクラス。

    Attributes:
        version: (メジャー, マイナー)バージョン
        header_size: ヘッダー全体のバイト数
        width: ミップ0の幅（ピクセル）
        height: ミップ0の高さ（ピクセル）
        depth: ミップ0の奥行き（ボリュームテクスチャ以外は1）
        flags: テクスチャフラグ
        frames: アニメーションのフレーム数
        first_frame: 既定フレームのインデックス
        reflectivity: 反射率ベクトル
        bumpmap_scale: バンプマップのスケール
        image_format: 高解像度画像のピクセルフォーマット
        mipmap_count: ミップレベル数
        low_res_format: 低解像度サムネイルのピクセルフォーマット
        low_res_width: 低解像度サムネイルの幅
        low_res_height: 低解像度サムネイルの高さ
        resources: リソースエントリ（7.3以降のみ）
    """

    version: tuple[int, int]
    header_size: int
    width: int
    height: int
    depth: int
    flags: VTFFlags
    frames: int
    first_frame: int
    reflectivity: tuple[float, float, float]
    bumpmap_scale: float
    image_format: ImageFormat
    mipmap_count: int
    low_res_format: ImageFormat
    low_res_width: int
    low_res_height: int
    resources: tuple[ResourceEntry, ...] = ()


def _to_format(value: int, label: str) -> ImageFormat:
    try:
        return ImageFormat(value)
    except ValueError as e:
        raise VTFFormatError(f"不明な{label}フォーマットです: {value}") from e


def parse_header(data: bytes | bytearray | memoryview) -> VTFHeader:
    """VTFヘッダーを解析する

    Args:
        data: VTFファイル全体のバイト列

    Returns:
        解析されたヘッダー情報

    Raises:
        VTFFormatError: シグネチャやバージョンが不正、データが短すぎる、
            または値が範囲外の場合
    """
    if len(data) < _BASE_HEADER.size:
        raise VTFFormatError("データが短すぎます")

    (
        signature,
        version_major,
        version_minor,
        header_size,
        width,
        height,
        flags,
        frames,
        first_frame,
        ref_r,
        ref_g,
        ref_b,
        bumpmap_scale,
        high_format,
        mipmap_count,
        low_format,
        low_width,
        low_height,
    ) = _BASE_HEADER.unpack_from(data, 0)

    if signature != VTF_SIGNATURE:
        raise VTFFormatError(f"VTFシグネチャが不正です: {signature!r}")

    if version_major != VTF_MAJOR_VERSION or version_minor > VTF_MAX_MINOR_VERSION:
        raise VTFFormatError(f"対応していないバージョンです: {version_major}.{version_minor}")

    if header_size > len(data):
        raise VTFFormatError(f"ヘッダーが不完全です: header_size={header_size}")

    if width == 0 or height == 0:
        raise VTFFormatError(f"画像サイズが不正です: {width}x{height}")

    if mipmap_count < 1:
        raise VTFFormatError("ミップレベル数が0です")

    if frames < 1:
        raise VTFFormatError("フレーム数が0です")

    image_format = _to_format(high_format, "高解像度")
    if not get_format_info(image_format).is_supported:
        raise VTFFormatError(f"高解像度フォーマットが不正です: {image_format.name}")

    low_res_format = _to_format(low_format, "低解像度")

    depth = 1
    if version_minor >= 2:
        if len(data) < _DEPTH_OFFSET + _DEPTH.size:
            raise VTFFormatError("データが短すぎます")
        (depth,) = _DEPTH.unpack_from(data, _DEPTH_OFFSET)
        # 奥行き0は1として扱う
        depth = max(1, depth)

    resources: tuple[ResourceEntry, ...] = ()
    if version_minor >= 3:
        resources = _parse_resources(data)

    return VTFHeader(
        version=(version_major, version_minor),
        header_size=header_size,
        width=width,
        height=height,
        depth=depth,
        flags=VTFFlags(flags),
        frames=frames,
        first_frame=first_frame,
        reflectivity=(ref_r, ref_g, ref_b),
        bumpmap_scale=bumpmap_scale,
        image_format=image_format,
        mipmap_count=mipmap_count,
        low_res_format=low_res_format,
        low_res_width=low_width,
        low_res_height=low_height,
        resources=resources,
    )


def _parse_resources(data: bytes | bytearray | memoryview) -> tuple[ResourceEntry, ...]:
    """7.3以降のリソーステーブルを解析する

    Args:
        data: VTFファイル全体のバイト列

    Returns:
        リソースエントリのタプル

    Raises:
        VTFFormatError: リソーステーブルが不完全な場合
    """
    if len(data) < _RESOURCE_TABLE_OFFSET:
        raise VTFFormatError("リソーステーブルが不完全です")

    (count,) = _RESOURCE_COUNT.unpack_from(data, _RESOURCE_COUNT_OFFSET)
    end = _RESOURCE_TABLE_OFFSET + count * _RESOURCE_ENTRY.size
    if end > len(data):
        raise VTFFormatError(f"リソーステーブルが不完全です: count={count}")

    entries: list[ResourceEntry] = []
    for index in range(count):
        tag, flags, value = _RESOURCE_ENTRY.unpack_from(
            data, _RESOURCE_TABLE_OFFSET + index * _RESOURCE_ENTRY.size
        )
        entries.append(ResourceEntry(tag=tag, flags=flags, data=value))
    return tuple(entries)


def find_resource(header: VTFHeader, tag: bytes) -> ResourceEntry | None:
    """タグに一致するリソースエントリを探す

    Args:
        header: VTFヘッダー
        tag: 3バイトのリソースID

    Returns:
        見つかったリソースエントリ、存在しない場合はNone
    """
    for entry in header.resources:
        if entry.tag == tag:
            return entry
    return None


def get_image_data_size(header: VTFHeader) -> int:
    """高解像度画像データ全体のバイト数を計算する

    Args:
        header: VTFヘッダー

    Returns:
        全ミップ・フレーム・面を含む画像データのバイト数
    """
    chain_size = calc_image_size(
        header.width,
        header.height,
        header.depth,
        header.mipmap_count,
        header.image_format,
    )
    return chain_size * header.frames * get_face_count(header)


def get_image_data_offset(header: VTFHeader) -> int:
    """高解像度画像データの開始オフセットを求める

    Args:
        header: VTFヘッダー

    Returns:
        ファイル先頭からのバイトオフセット

    Raises:
        VTFFormatError: 7.3以降で高解像度画像のリソースが存在しない、
            またはオフセットを持たない場合
    """
    if header.version[1] >= 3:
        entry = find_resource(header, RESOURCE_TAG_HIGH_RES)
        if entry is None:
            raise VTFFormatError("高解像度画像のリソースがありません")
        if entry.flags & RESOURCE_FLAG_NO_DATA:
            raise VTFFormatError("高解像度画像のリソースがデータを指していません")
        return entry.data

    # 7.2以前は低解像度サムネイルの直後に格納される
    low_res_size = 0
    if (
        header.low_res_format != ImageFormat.NONE
        and header.low_res_width > 0
        and header.low_res_height > 0
    ):
        low_res_size = calc_image_size(
            header.low_res_width,
            header.low_res_height,
            1,
            1,
            header.low_res_format,
        )
    return header.header_size + low_res_size


def parse_image_data(data: bytes | bytearray | memoryview, header: VTFHeader) -> bytes:
    """高解像度画像データを切り出す

    Args:
        data: VTFファイル全体のバイト列
        header: parse_header()で解析したヘッダー

    Returns:
        高解像度画像データ（ブロック圧縮されたままの場合がある）

    Raises:
        VTFFormatError: 画像データがファイル内に収まっていない場合
    """
    offset = get_image_data_offset(header)
    size = get_image_data_size(header)

    if offset < 0 or offset + size > len(data):
        raise VTFFormatError(
            f"画像データが不完全です: offset={offset}, size={size}, length={len(data)}"
        )

    return bytes(data[offset : offset + size])
