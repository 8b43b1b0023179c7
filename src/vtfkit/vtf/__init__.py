"""VTFデコーダーパッケージ

Valve Texture Format (VTF) のヘッダー解析、DXT解凍、
テクスチャのピクセル読み取りとサンプリングを提供する。
"""

from vtfkit.vtf.errors import DXTError, UnsupportedFormatError, VTFError, VTFFormatError
from vtfkit.vtf.formats import FormatInfo, ImageFormat, Pixel, VTFFlags
from vtfkit.vtf.header import VTFHeader, parse_header, parse_image_data
from vtfkit.vtf.sampler import AddressMode
from vtfkit.vtf.texture import VTFTexture

__all__ = [
    "AddressMode",
    "DXTError",
    "FormatInfo",
    "ImageFormat",
    "Pixel",
    "UnsupportedFormatError",
    "VTFError",
    "VTFFlags",
    "VTFFormatError",
    "VTFHeader",
    "VTFTexture",
    "parse_header",
    "parse_image_data",
]
