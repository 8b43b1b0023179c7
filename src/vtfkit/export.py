"""画像エクスポートモジュール

デコードしたVTFテクスチャの1面（ミップ・フレーム・面・スライスを指定）を
PIL.Imageに描画し、PPM/PNG形式で保存する機能を提供する。
nearestはピクセルをそのまま読み取り、bilinear/trilinearは
テクスチャサンプラーを使って任意のサイズにリサンプリングする。
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from enum import Enum
from pathlib import Path

from PIL import Image

from vtfkit.config import VtfkitConfig
from vtfkit.logger import ExportLogger, NullProgressDisplay, ProgressDisplay
from vtfkit.vtf.formats import Pixel
from vtfkit.vtf.texture import VTFTexture


class ExportPhase(Enum):
    """エクスポート処理のフェーズ"""

    DECODE = "decode"
    RENDER = "render"
    WRITE = "write"


class OutputFormat(Enum):
    """画像出力形式

    PPMはRGB各8bit（アルファなし）、PNGはRGB/RGBAで出力する。
    """

    PPM = "ppm"
    PNG = "png"


class FilterMode(Enum):
    """描画時のフィルタリング方式"""

    NEAREST = "nearest"
    BILINEAR = "bilinear"
    TRILINEAR = "trilinear"


class ExportError(Exception):
    """エクスポート要求を処理できない場合に発生する例外"""

    pass


@dataclass(frozen=True)
class ExportOptions:
    """エクスポートオプション

    Attributes:
        output_format: 出力形式
        mip_level: 描画するミップレベル（trilinearでは無視される）
        frame: フレーム番号
        face: 面番号
        slice: スライス番号
        include_alpha: アルファチャンネルを出力するか（PNGのみ）
        filter: フィルタリング方式
        width: 出力幅（Noneの場合はミップの幅）
        height: 出力高さ（Noneの場合はミップの高さ）
        lod_bias: trilinear時のミップレベル補正値
    """

    output_format: OutputFormat = OutputFormat.PPM
    mip_level: int = 0
    frame: int = 0
    face: int = 0
    slice: int = 0
    include_alpha: bool = False
    filter: FilterMode = FilterMode.NEAREST
    width: int | None = None
    height: int | None = None
    lod_bias: float = 0.0

    @classmethod
    def from_config(cls, config: VtfkitConfig) -> ExportOptions:
        """設定からエクスポートオプションを作成する

        Args:
            config: 読み込み済みの設定

        Returns:
            エクスポートオプション

        Raises:
            ExportError: 出力形式またはフィルタ名が不正な場合
        """
        try:
            output_format = OutputFormat(str(config.export.format).lower())
        except ValueError as e:
            raise ExportError(f"不明な出力形式です: {config.export.format}") from e
        try:
            filter_mode = FilterMode(str(config.sampling.filter).lower())
        except ValueError as e:
            raise ExportError(f"不明なフィルタです: {config.sampling.filter}") from e

        return cls(
            output_format=output_format,
            mip_level=config.export.mip_level,
            frame=config.export.frame,
            face=config.export.face,
            slice=config.export.slice,
            include_alpha=config.export.include_alpha,
            filter=filter_mode,
            width=config.sampling.width,
            height=config.sampling.height,
            lod_bias=config.sampling.lod_bias,
        )


@dataclass(frozen=True)
class ExportResult:
    """エクスポート結果

    Attributes:
        source_path: 入力VTFファイルのパス
        dest_path: 出力画像ファイルのパス
        width: 出力画像の幅
        height: 出力画像の高さ
        bytes_after: 出力ファイルのサイズ（バイト）
    """

    source_path: Path
    dest_path: Path
    width: int
    height: int
    bytes_after: int = 0


def _validate_selection(texture: VTFTexture, options: ExportOptions) -> None:
    """描画対象のミップ・フレーム・面・スライスを検証する

    Raises:
        ExportError: テクスチャが無効、または指定が範囲外の場合
    """
    if not texture.is_valid() or texture.image_data_size == 0:
        raise ExportError("テクスチャが無効です")

    if options.output_format is OutputFormat.PPM and options.include_alpha:
        raise ExportError("PPM形式はアルファチャンネルに対応していません")

    if not 0 <= options.mip_level < texture.mip_levels:
        raise ExportError(f"ミップレベルが範囲外です: {options.mip_level}")
    if not 0 <= options.frame < texture.frames:
        raise ExportError(f"フレームが範囲外です: {options.frame}")
    if not 0 <= options.face < texture.face_count:
        raise ExportError(f"面が範囲外です: {options.face}")
    if not 0 <= options.slice < texture.get_depth(options.mip_level):
        raise ExportError(f"スライスが範囲外です: {options.slice}")

    for size in (options.width, options.height):
        if size is not None and size < 1:
            raise ExportError(f"出力サイズが不正です: {size}")


def _output_size(texture: VTFTexture, options: ExportOptions) -> tuple[int, int]:
    width = options.width or texture.get_width(options.mip_level)
    height = options.height or texture.get_height(options.mip_level)
    return width, height


def trilinear_lod(texture: VTFTexture, width: int, height: int, bias: float = 0.0) -> float:
    """出力サイズに対応する小数ミップレベルを求める

    Args:
        texture: テクスチャ
        width: 出力幅
        height: 出力高さ
        bias: 補正値

    Returns:
        log2(縮小率) + bias（拡大時は0以下になり、サンプラー側で0に収められる）
    """
    ratio = max(texture.get_width(0) / width, texture.get_height(0) / height)
    return math.log2(ratio) + bias


def render_image(
    texture: VTFTexture,
    options: ExportOptions,
    progress: ProgressDisplay | None = None,
) -> Image.Image:
    """テクスチャの1面をPIL.Imageに描画する

    Args:
        texture: デコード済みテクスチャ
        options: エクスポートオプション
        progress: 行単位の進捗表示（オプション）

    Returns:
        RGBまたはRGBAのPIL.Imageオブジェクト

    Raises:
        ExportError: テクスチャが無効、または指定が範囲外の場合
    """
    _validate_selection(texture, options)

    if progress is None:
        progress = NullProgressDisplay()

    width, height = _output_size(texture, options)
    src_width = texture.get_width(options.mip_level)
    src_height = texture.get_height(options.mip_level)
    lod = trilinear_lod(texture, width, height, options.lod_bias)

    mode = "RGBA" if options.include_alpha else "RGB"
    channels = len(mode)
    buffer = bytearray(width * height * channels)

    progress.start(ExportPhase.RENDER, height)
    for y in range(height):
        v = (y + 0.5) / height
        for x in range(width):
            # nearest用: 出力サイズが異なる場合は最近傍のテクセルを選ぶ
            src_x = min(src_width - 1, x * src_width // width)
            src_y = min(src_height - 1, y * src_height // height)
            pixel = _render_pixel(texture, options, (x + 0.5) / width, v, src_x, src_y, lod)
            index = (y * width + x) * channels
            buffer[index : index + channels] = bytes(pixel.to_rgba8()[:channels])
        progress.update(y + 1)
    progress.finish(True)

    return Image.frombytes(mode, (width, height), bytes(buffer))


def _render_pixel(
    texture: VTFTexture,
    options: ExportOptions,
    u: float,
    v: float,
    src_x: int,
    src_y: int,
    lod: float,
) -> Pixel:
    if options.filter is FilterMode.BILINEAR:
        return texture.sample_bilinear(
            u, v, options.slice, options.mip_level, options.frame, options.face
        )
    if options.filter is FilterMode.TRILINEAR:
        return texture.sample(u, v, options.slice, lod, options.frame, options.face)

    return texture.get_pixel(
        src_x, src_y, options.slice, options.mip_level, options.frame, options.face
    )


def export_texture(
    source: Path,
    dest: Path,
    options: ExportOptions,
    logger: ExportLogger | None = None,
) -> ExportResult:
    """VTFファイルをデコードして画像ファイルに保存する

    Args:
        source: 入力VTFファイルのパス
        dest: 出力画像ファイルのパス
        options: エクスポートオプション
        logger: ログ出力（オプション）

    Returns:
        エクスポート結果

    Raises:
        FileNotFoundError: 入力ファイルが存在しない場合
        ExportError: デコードに失敗した、または指定が範囲外の場合
    """
    if not source.exists():
        raise FileNotFoundError(f"VTFファイルが見つかりません: {source}")

    progress = logger.create_progress() if logger else NullProgressDisplay()

    progress.start(ExportPhase.DECODE, 1)
    texture = VTFTexture(source.read_bytes())
    if not texture.is_valid():
        progress.finish(False, "デコード失敗")
        raise ExportError(f"VTFファイルをデコードできません: {source}")
    progress.update(1)
    progress.finish(True)

    if logger:
        logger.verbose(
            f"{source.name}: {texture.get_width()}x{texture.get_height()} "
            f"{texture.get_format().name} mips={texture.mip_levels} "
            f"frames={texture.frames} faces={texture.face_count}"
        )

    image = render_image(texture, options, progress)
    try:
        progress.start(ExportPhase.WRITE, 1)
        dest.parent.mkdir(parents=True, exist_ok=True)
        image.save(dest, options.output_format.value.upper())
        progress.update(1)
        progress.finish(True)
        result = ExportResult(
            source_path=source,
            dest_path=dest,
            width=image.width,
            height=image.height,
            bytes_after=dest.stat().st_size,
        )
    finally:
        image.close()

    if logger:
        logger.log_export(source, dest, "success")
    return result
