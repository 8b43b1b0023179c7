"""VTFデコード時の例外定義"""

from __future__ import annotations

from typing import TYPE_CHECKING

if TYPE_CHECKING:
    from vtfkit.vtf.formats import ImageFormat


class VTFError(Exception):
    """VTF処理の基底例外"""

    pass


class VTFFormatError(VTFError, ValueError):
    """ヘッダーまたは画像データが不正な場合に発生する例外"""

    pass


class DXTError(VTFError, ValueError):
    """DXTブロックデータが不完全な場合に発生する例外"""

    pass


class UnsupportedFormatError(VTFError):
    """対応していないピクセルフォーマットの場合に発生する例外

    Attributes:
        image_format: 対応していないピクセルフォーマット
    """

    def __init__(self, image_format: ImageFormat) -> None:
        """フォーマットを指定して初期化する

        Args:
            image_format: 対応していないピクセルフォーマット
        """
        self.image_format = image_format
        super().__init__(f"対応していないピクセルフォーマットです: {image_format.name}")
