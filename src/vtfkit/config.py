"""Configuration module for vtfkit."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, Protocol

import yaml


class ConfigError(Exception):
    """設定ファイル読み込みエラー"""

    pass


@dataclass(frozen=True)
class ExportConfig:
    """画像エクスポート設定"""

    format: str = "ppm"
    mip_level: int = 0
    frame: int = 0
    face: int = 0
    slice: int = 0
    include_alpha: bool = False


@dataclass(frozen=True)
class SamplingConfig:
    """リサンプリング設定

    filterがnearestの場合はミップの寸法そのままで出力し、
    bilinear/trilinearの場合はwidth/heightにリサンプリングする。
    """

    filter: str = "nearest"
    width: int | None = None
    height: int | None = None
    lod_bias: float = 0.0


@dataclass(frozen=True)
class VtfkitConfig:
    """ルート設定"""

    export: ExportConfig = field(default_factory=ExportConfig)
    sampling: SamplingConfig = field(default_factory=SamplingConfig)


class ConfigLoader(Protocol):
    """設定読み込みインターフェース"""

    def load_config(self, path: Path) -> VtfkitConfig:
        """設定ファイルを読み込む"""
        ...

    def get_default_config(self) -> VtfkitConfig:
        """デフォルト設定を取得する"""
        ...


def load_config(path: Path) -> VtfkitConfig:
    """設定ファイルを読み込む

    Args:
        path: 設定ファイルパス

    Returns:
        VtfkitConfig: 読み込んだ設定（デフォルトとマージ済み）

    Raises:
        ConfigError: ファイル読み込みまたはパースエラー
    """
    if not path.exists():
        raise ConfigError(f"設定ファイルが見つかりません: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data = yaml.safe_load(f) or {}
    except yaml.YAMLError as e:
        raise ConfigError(f"YAML解析エラー: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError("設定ファイルはYAMLのマッピング形式である必要があります")

    default = get_default_config()

    return VtfkitConfig(
        export=_merge_export_config(data.get("export", {}), default.export),
        sampling=_merge_sampling_config(data.get("sampling", {}), default.sampling),
    )


def get_default_config() -> VtfkitConfig:
    """デフォルト設定を取得する"""
    return VtfkitConfig()


def _get_value(
    data: dict[str, Any],
    key: str,
    default: Any,
    expected: type | tuple[type, ...],
    section: str,
    *,
    optional: bool = False,
) -> Any:
    """設定値を取り出し、型を検証する

    Raises:
        ConfigError: 値の型が不正な場合
    """
    value = data.get(key, default)
    if value is None and optional:
        return None
    allowed = expected if isinstance(expected, tuple) else (expected,)
    # boolはintのサブクラスのため、数値の項目では明示的に除外する
    if not isinstance(value, allowed) or (isinstance(value, bool) and bool not in allowed):
        raise ConfigError(f"設定値の型が不正です: {section}.{key}={value!r}")
    return value


def _merge_export_config(data: dict[str, Any], default: ExportConfig) -> ExportConfig:
    """エクスポート設定をマージする"""
    if not isinstance(data, dict):
        return default
    return ExportConfig(
        format=_get_value(data, "format", default.format, str, "export"),
        mip_level=_get_value(data, "mip_level", default.mip_level, int, "export"),
        frame=_get_value(data, "frame", default.frame, int, "export"),
        face=_get_value(data, "face", default.face, int, "export"),
        slice=_get_value(data, "slice", default.slice, int, "export"),
        include_alpha=_get_value(
            data, "include_alpha", default.include_alpha, bool, "export"
        ),
    )


def _merge_sampling_config(data: dict[str, Any], default: SamplingConfig) -> SamplingConfig:
    """リサンプリング設定をマージする"""
    if not isinstance(data, dict):
        return default
    return SamplingConfig(
        filter=_get_value(data, "filter", default.filter, str, "sampling"),
        width=_get_value(data, "width", default.width, int, "sampling", optional=True),
        height=_get_value(data, "height", default.height, int, "sampling", optional=True),
        lod_bias=float(
            _get_value(data, "lod_bias", default.lod_bias, (int, float), "sampling")
        ),
    )
