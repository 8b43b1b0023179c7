"""テクスチャサンプリング補助モジュール

バイリニア／トライリニアフィルタリングで使用する
アドレッシングモード（ラップ／クランプ）と補間計算を提供する。
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from dataclasses import dataclass
from enum import Enum

from vtfkit.vtf.formats import Pixel

CLAMP_EPSILON = 1e-6
"""クランプ時に正規化座標の上限を1.0未満に保つための値"""


class AddressMode(Enum):
    """テクスチャ座標のアドレッシングモード

    WRAP: 範囲外の座標を周期的に繰り返す
    CLAMP: 範囲外の座標を端のテクセルに飽和させる
    """

    WRAP = "wrap"
    CLAMP = "clamp"


@dataclass(frozen=True)
class BilinearFootprint:
    """バイリニアサンプリングで参照する4テクセルと重み

    Attributes:
        x0: 左列
        x1: 右列
        y0: 上行
        y1: 下行
        fx: 右列の重み
        fy: 下行の重み
    """

    x0: int
    x1: int
    y0: int
    y1: int
    fx: float
    fy: float

    def corners(self) -> tuple[tuple[int, int, float], ...]:
        """(x, y, 重み) を左上・右上・左下・右下の順で返す"""
        return (
            (self.x0, self.y0, (1.0 - self.fx) * (1.0 - self.fy)),
            (self.x1, self.y0, self.fx * (1.0 - self.fy)),
            (self.x0, self.y1, (1.0 - self.fx) * self.fy),
            (self.x1, self.y1, self.fx * self.fy),
        )


def int_mod(value: int, modulus: int) -> int:
    """常に非負となる剰余を返す"""
    return ((value % modulus) + modulus) % modulus


def clamp_int(value: int, low: int, high: int) -> int:
    """整数を [low, high] に収める"""
    return max(low, min(value, high))


def normalize_coord(coord: float, mode: AddressMode) -> float:
    """正規化テクスチャ座標をアドレッシングモードに従って範囲内に収める

    Args:
        coord: 正規化座標
        mode: アドレッシングモード

    Returns:
        WRAPなら [0, 1)、CLAMPなら [0, 1 - CLAMP_EPSILON] の座標
    """
    if mode is AddressMode.CLAMP:
        return min(max(coord, 0.0), 1.0 - CLAMP_EPSILON)
    return coord - math.floor(coord)


def resolve_texel(index: int, size: int, mode: AddressMode) -> int:
    """テクセルのインデックスをアドレッシングモードに従って範囲内に収める"""
    if mode is AddressMode.CLAMP:
        return clamp_int(index, 0, size - 1)
    return int_mod(index, size)


def bilinear_footprint(
    u: float,
    v: float,
    width: int,
    height: int,
    mode_u: AddressMode,
    mode_v: AddressMode,
) -> BilinearFootprint:
    """バイリニアサンプリングで参照するテクセルと重みを求める

    座標はテクセル中心基準 (u * width - 0.5) に変換してから分解する。

    Args:
        u: 水平方向の正規化座標
        v: 垂直方向の正規化座標
        width: ミップの幅
        height: ミップの高さ
        mode_u: 水平方向のアドレッシングモード
        mode_v: 垂直方向のアドレッシングモード

    Returns:
        参照テクセルと重み
    """
    px = normalize_coord(u, mode_u) * width - 0.5
    py = normalize_coord(v, mode_v) * height - 0.5
    x0 = math.floor(px)
    y0 = math.floor(py)

    return BilinearFootprint(
        x0=resolve_texel(x0, width, mode_u),
        x1=resolve_texel(x0 + 1, width, mode_u),
        y0=resolve_texel(y0, height, mode_v),
        y1=resolve_texel(y0 + 1, height, mode_v),
        fx=px - x0,
        fy=py - y0,
    )


def weighted_sum(samples: Iterable[tuple[Pixel, float]]) -> Pixel:
    """重み付きでピクセルをチャンネルごとに合計する"""
    r = g = b = a = 0.0
    for pixel, weight in samples:
        r += pixel.r * weight
        g += pixel.g * weight
        b += pixel.b * weight
        a += pixel.a * weight
    return Pixel(r, g, b, a)


def lerp_pixel(fine: Pixel, coarse: Pixel, t: float) -> Pixel:
    """2つのピクセルを線形補間する（t=0でfine、t=1でcoarse）"""
    return weighted_sum(((fine, 1.0 - t), (coarse, t)))
