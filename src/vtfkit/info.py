"""テクスチャ情報解析モジュール"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import Protocol

from vtfkit.vtf.formats import VTFFlags
from vtfkit.vtf.header import get_image_data_size
from vtfkit.vtf.texture import VTFTexture


@dataclass(frozen=True)
class TextureInfo:
    """テクスチャ情報

    Attributes:
        path: VTFファイルのパス
        file_size_bytes: ファイルサイズ
        version: VTFバージョン（"7.2"形式）
        width: ミップ0の幅
        height: ミップ0の高さ
        depth: ミップ0の奥行き
        format_name: 格納フォーマット名
        is_compressed: ブロック圧縮フォーマットか
        mip_levels: ミップレベル数
        frames: フレーム数
        first_frame: 開始フレーム
        face_count: 面の数（1/6/7）
        flags: 立っているフラグ名
        low_res_format_name: サムネイルのフォーマット名
        low_res_size: サムネイルの寸法
        reflectivity: 反射率
        image_data_size: 格納されている画像データのバイト数
    """

    path: Path
    file_size_bytes: int
    version: str
    width: int
    height: int
    depth: int
    format_name: str
    is_compressed: bool
    mip_levels: int
    frames: int
    first_frame: int
    face_count: int
    flags: tuple[str, ...]
    low_res_format_name: str
    low_res_size: tuple[int, int]
    reflectivity: tuple[float, float, float]
    image_data_size: int


class TextureAnalyzer(Protocol):
    """テクスチャ解析インターフェース"""

    def analyze(self, path: Path) -> TextureInfo:
        """テクスチャを解析する"""
        ...


def flag_names(flags: VTFFlags) -> tuple[str, ...]:
    """立っているフラグの名前を列挙する

    Args:
        flags: フラグ

    Returns:
        フラグ名のタプル（ビット順）
    """
    return tuple(flag.name for flag in VTFFlags if flag.name and flag in flags)


def read_texture_info(path: Path) -> TextureInfo:
    """VTFファイルのヘッダーを解析する

    画像データはデコードせず、ヘッダーのみを読み込む。

    Args:
        path: VTFファイルのパス

    Returns:
        テクスチャ情報

    Raises:
        FileNotFoundError: ファイルが存在しない場合
        ValueError: VTFヘッダーとして解析できない場合
    """
    if not path.is_file():
        raise FileNotFoundError(f"VTFファイルが見つかりません: {path}")

    data = path.read_bytes()
    texture = VTFTexture(data, header_only=True)
    header = texture.header
    if header is None:
        raise ValueError(f"VTFヘッダーを解析できません: {path}")

    format_info = texture.get_format()

    return TextureInfo(
        path=path,
        file_size_bytes=len(data),
        version=f"{texture.version_major}.{texture.version_minor}",
        width=texture.get_width(),
        height=texture.get_height(),
        depth=texture.get_depth(),
        format_name=format_info.name,
        is_compressed=format_info.is_compressed,
        mip_levels=texture.mip_levels,
        frames=texture.frames,
        first_frame=texture.first_frame,
        face_count=texture.face_count,
        flags=flag_names(texture.flags),
        low_res_format_name=header.low_res_format.name,
        low_res_size=(header.low_res_width, header.low_res_height),
        reflectivity=header.reflectivity,
        image_data_size=get_image_data_size(header),
    )
