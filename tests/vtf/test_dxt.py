"""DXTブロック解凍のテスト"""

import struct

import pytest

from vtfkit.vtf.dxt import decompress_dxt1, decompress_dxt3, decompress_dxt5
from vtfkit.vtf.errors import DXTError

RED_565 = 0xF800
BLUE_565 = 0x001F

RED = (255, 0, 0, 255)
BLUE = (0, 0, 255, 255)


def _color_block(c0: int, c1: int, row_indices: int = 0xE4) -> bytes:
    """カラーブロックを作る（各行のインデックスは同じ）"""
    return struct.pack("<HH", c0, c1) + bytes([row_indices] * 4)


def _pixels(data: bytes) -> list[tuple[int, ...]]:
    return [tuple(data[i : i + 4]) for i in range(0, len(data), 4)]


class TestDecompressDXT1:
    """decompress_dxt1()のテスト"""

    def test_four_color_block(self) -> None:
        """c0 > c1 の場合は4色モードで補間される"""
        data = _color_block(RED_565, BLUE_565)
        pixels = _pixels(decompress_dxt1(data, 4, 4))

        # インデックス0xE4 = 行ごとに 0, 1, 2, 3
        expected_row = [RED, BLUE, (170, 0, 85, 255), (85, 0, 170, 255)]
        assert len(pixels) == 16
        for row in range(4):
            assert pixels[row * 4 : row * 4 + 4] == expected_row

    def test_three_color_block(self) -> None:
        """c0 <= c1 の場合は3色モードでインデックス3が透明な黒"""
        data = _color_block(BLUE_565, RED_565)
        pixels = _pixels(decompress_dxt1(data, 4, 4))
        assert pixels[:4] == [BLUE, RED, (127, 0, 127, 255), (0, 0, 0, 0)]

    def test_endpoint_bit_replication(self) -> None:
        """565の端点は上位ビットの複製で8bitに拡張される"""
        # r=16, g=32, b=16
        value = (16 << 11) | (32 << 5) | 16
        data = _color_block(value, value, row_indices=0x00)
        assert _pixels(decompress_dxt1(data, 4, 4))[0] == (132, 130, 132, 255)

    @pytest.mark.parametrize(
        "width, height",
        [
            pytest.param(1, 1, id="正常系: 1x1"),
            pytest.param(2, 2, id="正常系: 2x2"),
            pytest.param(2, 1, id="正常系: 2x1"),
        ],
    )
    def test_plane_smaller_than_block(self, width: int, height: int) -> None:
        """4x4未満のプレーンでも範囲内のピクセルだけが書き込まれる"""
        data = _color_block(RED_565, BLUE_565)
        out = decompress_dxt1(data, width, height)
        assert len(out) == width * height * 4

        pixels = _pixels(out)
        for y in range(height):
            for x in range(width):
                assert pixels[y * width + x] == [RED, BLUE][x]

    def test_partial_blocks(self) -> None:
        """幅が4の倍数でない場合もブロックの並びを正しく追う"""
        first = _color_block(RED_565, RED_565, row_indices=0x00)
        second = _color_block(BLUE_565, BLUE_565, row_indices=0x00)
        out = decompress_dxt1(first + second, 5, 3)
        pixels = _pixels(out)

        assert len(out) == 5 * 3 * 4
        for y in range(3):
            assert pixels[y * 5 : y * 5 + 4] == [RED] * 4
            assert pixels[y * 5 + 4] == BLUE

    def test_uses_only_one_plane(self) -> None:
        """余分なデータは無視される"""
        data = _color_block(RED_565, BLUE_565) + b"\xff" * 8
        assert len(decompress_dxt1(data, 4, 4)) == 64

    @pytest.mark.parametrize(
        "length, width, height",
        [
            pytest.param(0, 4, 4, id="異常系: 空のデータ"),
            pytest.param(7, 4, 4, id="異常系: 1ブロックに1バイト不足"),
            pytest.param(8, 8, 4, id="異常系: 2ブロック必要"),
        ],
    )
    def test_short_data(self, length: int, width: int, height: int) -> None:
        """圧縮データが不足している場合はDXTErrorが発生する"""
        with pytest.raises(DXTError, match="DXT1"):
            decompress_dxt1(b"\x00" * length, width, height)


class TestDecompressDXT3:
    """decompress_dxt3()のテスト"""

    def test_explicit_alpha(self) -> None:
        """4bitアルファが17倍されて8bitになる"""
        alpha = bytes([0xF0] * 8)
        data = alpha + _color_block(RED_565, BLUE_565)
        pixels = _pixels(decompress_dxt3(data, 4, 4))

        assert pixels[0] == (255, 0, 0, 0)
        assert pixels[1] == (0, 0, 255, 255)
        assert pixels[2] == (170, 0, 85, 0)
        assert pixels[3] == (85, 0, 170, 255)

    def test_always_four_color(self) -> None:
        """c0 <= c1 でも4色モードで補間される"""
        alpha = b"\xff" * 8
        data = alpha + _color_block(BLUE_565, RED_565)
        pixels = _pixels(decompress_dxt3(data, 4, 4))
        assert pixels[3] == (170, 0, 85, 255)

    def test_middle_alpha_value(self) -> None:
        """アルファ値7は119になる"""
        alpha = bytes([0x77] * 8)
        data = alpha + _color_block(RED_565, BLUE_565)
        assert all(pixel[3] == 119 for pixel in _pixels(decompress_dxt3(data, 4, 4)))

    def test_short_data(self) -> None:
        """圧縮データが不足している場合はDXTErrorが発生する"""
        with pytest.raises(DXTError, match="DXT3"):
            decompress_dxt3(b"\x00" * 15, 4, 4)


class TestDecompressDXT5:
    """decompress_dxt5()のテスト"""

    @staticmethod
    def _alpha_block(a0: int, a1: int) -> bytes:
        # ピクセルiにインデックス i % 8 を割り当てる
        bits = 0
        for i in range(16):
            bits |= (i % 8) << (3 * i)
        return bytes([a0, a1]) + bits.to_bytes(6, "little")

    @pytest.mark.parametrize(
        "a0, a1, expected_table",
        [
            pytest.param(
                255, 0, [255, 0, 218, 182, 145, 109, 72, 36], id="正常系: 8段階補間"
            ),
            pytest.param(
                0, 255, [0, 255, 51, 102, 153, 204, 0, 255], id="正常系: 6段階補間と0/255"
            ),
        ],
    )
    def test_interpolated_alpha(self, a0: int, a1: int, expected_table: list[int]) -> None:
        """アルファ端点の大小で補間段数が切り替わる"""
        data = self._alpha_block(a0, a1) + _color_block(RED_565, BLUE_565)
        pixels = _pixels(decompress_dxt5(data, 4, 4))
        assert [pixel[3] for pixel in pixels] == [expected_table[i % 8] for i in range(16)]

    def test_colors_follow_dxt3_rules(self) -> None:
        """カラーブロックは常に4色モード"""
        data = self._alpha_block(255, 255) + _color_block(BLUE_565, RED_565)
        pixels = _pixels(decompress_dxt5(data, 4, 4))
        assert [pixel[:3] for pixel in pixels[:4]] == [
            (0, 0, 255),
            (255, 0, 0),
            (85, 0, 170),
            (170, 0, 85),
        ]

    def test_small_plane(self) -> None:
        """1x1のプレーンでは左上のピクセルだけを書き込む"""
        data = self._alpha_block(200, 100) + _color_block(RED_565, BLUE_565)
        assert decompress_dxt5(data, 1, 1) == bytes((255, 0, 0, 200))

    def test_short_data(self) -> None:
        """圧縮データが不足している場合はDXTErrorが発生する"""
        with pytest.raises(DXTError, match="DXT5"):
            decompress_dxt5(b"\x00" * 16, 8, 8)
