"""VTFテクスチャモジュール

VTFファイルのバイト列をデコードし、全ミップ・フレーム・面・スライスを
非圧縮の単一バッファとして保持するテクスチャオブジェクトを提供する。
ピクセル単位の読み取りと、バイリニア／トライリニアサンプリングに対応する。

デコードに失敗しても例外は送出せず、is_valid()がFalseとなり、
すべてのアクセサがゼロ値を返す。
"""

from __future__ import annotations

import logging
import math
from collections.abc import Callable
from dataclasses import replace

from vtfkit.vtf.dxt import decompress_dxt1, decompress_dxt3, decompress_dxt5
from vtfkit.vtf.errors import UnsupportedFormatError, VTFError
from vtfkit.vtf.formats import (
    FormatInfo,
    ImageFormat,
    Pixel,
    VTFFlags,
    calc_image_size,
    get_face_count,
    get_format_info,
    parse_pixel,
)
from vtfkit.vtf.header import VTFHeader, parse_header, parse_image_data
from vtfkit.vtf.layout import mip_dimensions, pixel_offset, slice_offset
from vtfkit.vtf.sampler import (
    AddressMode,
    bilinear_footprint,
    lerp_pixel,
    weighted_sum,
)

logger = logging.getLogger(__name__)

DECODED_FORMAT = ImageFormat.RGBA8888
"""ブロック圧縮形式の展開先フォーマット"""

Decompressor = Callable[[memoryview, int, int], bytes]

# ブロック圧縮形式ごとの解凍関数
_DECOMPRESSORS: dict[ImageFormat, Decompressor] = {
    ImageFormat.DXT1: decompress_dxt1,
    ImageFormat.DXT1_ONEBITALPHA: decompress_dxt1,
    ImageFormat.DXT3: decompress_dxt3,
    ImageFormat.DXT5: decompress_dxt5,
}


class VTFTexture:
    """デコード済みVTFテクスチャ

    コンストラクタでデコードを完了させ、以降は不変オブジェクトとして扱う。
    copy()で得られる複製はバッファを共有しない。

    使用例:
        >>> texture = VTFTexture(Path("brick.vtf").read_bytes())
        >>> if texture.is_valid():
        ...     pixel = texture.sample(0.5, 0.5, mip_level=1.5)
    """

    def __init__(self, data: bytes | bytearray | memoryview, header_only: bool = False) -> None:
        """VTFデータをデコードする

        Args:
            data: VTFファイル全体のバイト列
            header_only: ヘッダーのみを解析し、画像データをデコードしないか
        """
        self._header: VTFHeader | None = None
        self._image_data: bytearray | None = None
        self._is_valid = False

        try:
            header = parse_header(data)
        except VTFError as e:
            logger.debug(f"ヘッダーの解析に失敗しました: {e}")
            return

        if header_only:
            self._header = header
            self._is_valid = True
            return

        try:
            payload = parse_image_data(data, header)
            if get_format_info(header.image_format).is_compressed:
                image_data = self._decompress(header, payload)
                header = replace(header, image_format=DECODED_FORMAT)
            else:
                image_data = bytearray(payload)
        except VTFError as e:
            logger.warning(f"画像データのデコードに失敗しました: {e}")
            return
        except MemoryError:
            logger.warning("画像データ用のメモリを確保できませんでした")
            return

        self._header = header
        self._image_data = image_data
        self._is_valid = True
        logger.debug(
            f"デコード完了: {header.width}x{header.height}x{header.depth} "
            f"mips={header.mipmap_count} frames={header.frames} "
            f"size={len(image_data)}"
        )

    @staticmethod
    def _decompress(header: VTFHeader, payload: bytes) -> bytearray:
        """ブロック圧縮された画像データを全プレーン展開する

        ミップ（小さい順）→ フレーム → 面 → スライスの順にプレーンを展開し、
        圧縮側・展開側それぞれのカーソルをプレーンごとに進める。

        Args:
            header: 圧縮フォーマットを示すヘッダー
            payload: 圧縮された画像データ

        Returns:
            RGBA8888に展開された画像データ

        Raises:
            UnsupportedFormatError: 解凍関数のない圧縮形式の場合
            DXTError: 圧縮データが不足している場合
        """
        decompressor = _DECOMPRESSORS.get(header.image_format)
        if decompressor is None:
            raise UnsupportedFormatError(header.image_format)

        face_count = get_face_count(header)
        size = (
            calc_image_size(
                header.width,
                header.height,
                header.depth,
                header.mipmap_count,
                DECODED_FORMAT,
            )
            * header.frames
            * face_count
        )
        image_data = bytearray(size)
        source = memoryview(payload)

        comp_offset = 0
        uncomp_offset = 0
        for mip in reversed(range(header.mipmap_count)):
            width, height, depth = mip_dimensions(header, mip)
            comp_size = calc_image_size(width, height, 1, 1, header.image_format)
            uncomp_size = calc_image_size(width, height, 1, 1, DECODED_FORMAT)

            for _frame in range(header.frames):
                for _face in range(face_count):
                    for _slice in range(depth):
                        plane = decompressor(source[comp_offset:], width, height)
                        image_data[uncomp_offset : uncomp_offset + uncomp_size] = plane
                        comp_offset += comp_size
                        uncomp_offset += uncomp_size

        return image_data

    # ------------------------------------------------------------------
    # 複製・解放

    def copy(self) -> VTFTexture:
        """バッファを共有しない複製を作成する"""
        clone = VTFTexture.__new__(VTFTexture)
        clone._header = replace(self._header) if self._header is not None else None
        clone._image_data = bytearray(self._image_data) if self._image_data is not None else None
        clone._is_valid = self._is_valid
        return clone

    def __copy__(self) -> VTFTexture:
        return self.copy()

    def __deepcopy__(self, memo: dict[int, object]) -> VTFTexture:
        clone = self.copy()
        memo[id(self)] = clone
        return clone

    def close(self) -> None:
        """保持しているヘッダーと画像データを解放する

        解放後は無効なテクスチャとして振る舞う。
        """
        self._header = None
        self._image_data = None
        self._is_valid = False

    def __enter__(self) -> VTFTexture:
        """コンテキストマネージャのエントリポイント"""
        return self

    def __exit__(self, *args: object) -> None:
        """コンテキストマネージャの終了処理"""
        self.close()

    # ------------------------------------------------------------------
    # メタ情報

    def is_valid(self) -> bool:
        """ヘッダーと画像データを正常に読み込めたかを返す"""
        return self._is_valid

    @property
    def header(self) -> VTFHeader | None:
        """解析済みヘッダー（無効な場合はNone）"""
        return self._header if self._is_valid else None

    def get_format(self) -> FormatInfo:
        """格納されているピクセルフォーマットのメタ情報を返す"""
        if self._header is None or not self._is_valid:
            return get_format_info(ImageFormat.NONE)
        return get_format_info(self._header.image_format)

    @property
    def image_format(self) -> ImageFormat:
        """格納されているピクセルフォーマット"""
        if self._header is None or not self._is_valid:
            return ImageFormat.NONE
        return self._header.image_format

    @property
    def version_major(self) -> int:
        return self._header.version[0] if self._header is not None and self._is_valid else 0

    @property
    def version_minor(self) -> int:
        return self._header.version[1] if self._header is not None and self._is_valid else 0

    def _dimensions(self, mip_level: int) -> tuple[int, int, int]:
        # 無効なテクスチャと負のミップレベルは寸法0として扱う
        if self._header is None or not self._is_valid or mip_level < 0:
            return (0, 0, 0)
        return mip_dimensions(self._header, mip_level)

    def get_width(self, mip_level: int = 0) -> int:
        """指定ミップレベルの幅を返す"""
        return self._dimensions(mip_level)[0]

    def get_height(self, mip_level: int = 0) -> int:
        """指定ミップレベルの高さを返す"""
        return self._dimensions(mip_level)[1]

    def get_depth(self, mip_level: int = 0) -> int:
        """指定ミップレベルの奥行きを返す"""
        return self._dimensions(mip_level)[2]

    @property
    def mip_levels(self) -> int:
        return self._header.mipmap_count if self._header is not None and self._is_valid else 0

    @property
    def frames(self) -> int:
        return self._header.frames if self._header is not None and self._is_valid else 0

    @property
    def first_frame(self) -> int:
        return self._header.first_frame if self._header is not None and self._is_valid else 0

    @property
    def face_count(self) -> int:
        if self._header is None or not self._is_valid:
            return 0
        return get_face_count(self._header)

    @property
    def flags(self) -> VTFFlags:
        if self._header is None or not self._is_valid:
            return VTFFlags(0)
        return self._header.flags

    @property
    def image_data_size(self) -> int:
        """デコード済みバッファのバイト数"""
        return len(self._image_data) if self._image_data is not None else 0

    @property
    def image_data(self) -> bytes:
        """デコード済みバッファのコピー（バッファがない場合は空）"""
        return bytes(self._image_data) if self._image_data is not None else b""

    # ------------------------------------------------------------------
    # ピクセル読み取り

    def _in_range(self, header: VTFHeader, mip_level: int, frame: int, face: int, z: int) -> bool:
        if not 0 <= mip_level < header.mipmap_count:
            return False
        if not 0 <= frame < header.frames:
            return False
        if not 0 <= face < get_face_count(header):
            return False
        return 0 <= z < mip_dimensions(header, mip_level)[2]

    def get_pixel(
        self,
        x: int,
        y: int,
        z: int = 0,
        mip_level: int = 0,
        frame: int = 0,
        face: int = 0,
    ) -> Pixel:
        """指定座標のピクセルを取得する

        Args:
            x: 列
            y: 行
            z: スライス（ボリュームテクスチャのみ）
            mip_level: ミップレベル（座標はこのミップの寸法基準）
            frame: フレーム番号（アニメーションテクスチャのみ）
            face: 面番号（環境マップのみ）

        Returns:
            ピクセル。無効なテクスチャや範囲外の座標ではゼロ値
        """
        header = self._header
        if not self._is_valid or header is None or self._image_data is None:
            return Pixel()
        if not self._in_range(header, mip_level, frame, face, z):
            return Pixel()

        width, height, _ = mip_dimensions(header, mip_level)
        if not (0 <= x < width and 0 <= y < height):
            return Pixel()

        offset = pixel_offset(header, get_face_count(header), mip_level, frame, face, z, y, x)
        return parse_pixel(self._image_data, offset, header.image_format)

    def get_frame_pixel(self, x: int, y: int, mip_level: int, frame: int) -> Pixel:
        """アニメーション2Dテクスチャのピクセルを取得する（z=0、face=0）"""
        return self.get_pixel(x, y, 0, mip_level, frame, 0)

    def get_mip_pixel(self, x: int, y: int, mip_level: int = 0) -> Pixel:
        """通常の2Dテクスチャのピクセルを取得する（z=0、frame=0、face=0）"""
        return self.get_frame_pixel(x, y, mip_level, 0)

    # ------------------------------------------------------------------
    # サンプリング

    def address_modes(self) -> tuple[AddressMode, AddressMode]:
        """ヘッダーのクランプフラグから (水平, 垂直) のアドレッシングモードを返す"""
        flags = self.flags
        mode_u = AddressMode.CLAMP if flags & VTFFlags.CLAMP_S else AddressMode.WRAP
        mode_v = AddressMode.CLAMP if flags & VTFFlags.CLAMP_T else AddressMode.WRAP
        return mode_u, mode_v

    def sample_bilinear(
        self,
        u: float,
        v: float,
        z: int = 0,
        mip_level: int = 0,
        frame: int = 0,
        face: int = 0,
    ) -> Pixel:
        """指定ミップレベルをバイリニアサンプリングする

        Args:
            u: 水平方向の正規化座標
            v: 垂直方向の正規化座標
            z: スライス（ボリュームテクスチャのみ）
            mip_level: ミップレベル
            frame: フレーム番号
            face: 面番号

        Returns:
            補間されたピクセル。無効なテクスチャや範囲外の指定ではゼロ値
        """
        header = self._header
        data = self._image_data
        if not self._is_valid or header is None or data is None:
            return Pixel()
        if not self._in_range(header, mip_level, frame, face, z):
            return Pixel()

        width, height, _ = mip_dimensions(header, mip_level)
        pixel_size = get_format_info(header.image_format).bytes_per_pixel
        base = slice_offset(header, get_face_count(header), mip_level, frame, face, z)
        mode_u, mode_v = self.address_modes()

        footprint = bilinear_footprint(u, v, width, height, mode_u, mode_v)
        return weighted_sum(
            (
                parse_pixel(data, base + (y * width + x) * pixel_size, header.image_format),
                weight,
            )
            for x, y, weight in footprint.corners()
        )

    def sample(
        self,
        u: float,
        v: float,
        z: int = 0,
        mip_level: float = 0.0,
        frame: int = 0,
        face: int = 0,
    ) -> Pixel:
        """トライリニアサンプリングする

        小数のミップレベルを挟む2つのミップをそれぞれバイリニアサンプリングし、
        小数部を粗いミップ側の重みとして補間する。
        ボリュームテクスチャでは、粗いミップ側のスライスを z >> 1
        （その奥行きの範囲に収めたもの）とする。

        Args:
            u: 水平方向の正規化座標
            v: 垂直方向の正規化座標
            z: スライス（ボリュームテクスチャのみ）
            mip_level: 小数を含むミップレベル（[0, ミップ数-1] に収められる）
            frame: フレーム番号
            face: 面番号

        Returns:
            補間されたピクセル。無効なテクスチャではゼロ値
        """
        header = self._header
        if not self._is_valid or header is None or self._image_data is None:
            return Pixel()

        level = min(max(mip_level, 0.0), float(header.mipmap_count - 1))
        mip_floor = math.floor(level)
        mip_ceil = math.ceil(level)

        if mip_floor == mip_ceil:
            return self.sample_bilinear(u, v, z, mip_floor, frame, face)

        if not 0 <= z < self.get_depth(mip_floor):
            return Pixel()

        # 粗いミップでは奥行きが半分になるため、対応するスライスに写す
        coarse_z = min(z >> (mip_ceil - mip_floor), self.get_depth(mip_ceil) - 1)
        fine = self.sample_bilinear(u, v, z, mip_floor, frame, face)
        coarse = self.sample_bilinear(u, v, coarse_z, mip_ceil, frame, face)
        return lerp_pixel(fine, coarse, level - mip_floor)

