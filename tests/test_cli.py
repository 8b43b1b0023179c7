"""CLIエントリポイントのテスト"""

from pathlib import Path

import pytest
from PIL import Image
from typer.testing import CliRunner

from vtfkit.cli import app
from vtfkit.vtf.formats import ImageFormat, VTFFlags

runner = CliRunner()


class TestMainCommand:
    """メインコマンドのテスト"""

    @pytest.mark.parametrize(
        "args,expected_in_output",
        [
            pytest.param(["--help"], "VTF", id="正常系: ヘルプ表示"),
            pytest.param(["--version"], "0.1.0", id="正常系: バージョン表示"),
        ],
    )
    def test_main_options(self, args: list[str], expected_in_output: str) -> None:
        result = runner.invoke(app, args)
        assert result.exit_code == 0
        assert expected_in_output in result.stdout


class TestInfoCommand:
    """infoコマンドのテスト"""

    def test_info_success(self, tmp_path: Path, make_vtf) -> None:
        """ヘッダー情報がテーブル表示される"""
        path = tmp_path / "sky.vtf"
        path.write_bytes(
            make_vtf(
                width=8,
                height=8,
                image_format=ImageFormat.DXT1,
                flags=int(VTFFlags.ENVMAP),
            )
        )
        result = runner.invoke(app, ["info", str(path)])
        assert result.exit_code == 0
        assert "Texture Info" in result.stdout
        assert "7.2" in result.stdout
        assert "8x8x1" in result.stdout
        assert "DXT1 (compressed)" in result.stdout
        assert "ENVMAP" in result.stdout

    def test_info_missing_file(self, tmp_path: Path) -> None:
        """存在しないファイルで終了コード2"""
        result = runner.invoke(app, ["info", str(tmp_path / "missing.vtf")])
        assert result.exit_code == 2
        assert "Error" in result.stdout

    def test_info_invalid_file(self, tmp_path: Path) -> None:
        """VTFでないファイルで終了コード1"""
        path = tmp_path / "broken.vtf"
        path.write_bytes(b"not a texture")
        result = runner.invoke(app, ["info", str(path)])
        assert result.exit_code == 1
        assert "Error" in result.stdout


class TestExportCommand:
    """exportコマンドのテスト"""

    def test_export_help(self) -> None:
        """exportコマンドのヘルプが表示される"""
        result = runner.invoke(app, ["export", "--help"])
        assert result.exit_code == 0
        assert "--filter" in result.stdout

    def test_export_default_ppm(self, gradient_vtf_file: Path) -> None:
        """出力パスを省略すると入力と同じ場所にPPMで保存される"""
        result = runner.invoke(app, ["export", str(gradient_vtf_file)])
        assert result.exit_code == 0
        assert "エクスポート完了" in result.stdout
        output = gradient_vtf_file.with_suffix(".ppm")
        assert output.read_bytes().startswith(b"P6")

    def test_export_png_with_options(self, tmp_path: Path, gradient_vtf_file: Path) -> None:
        """CLIオプションでフィルタと出力サイズを指定できる"""
        output = tmp_path / "resized.png"
        result = runner.invoke(
            app,
            [
                "export",
                str(gradient_vtf_file),
                "-o",
                str(output),
                "--format",
                "png",
                "--filter",
                "nearest",
                "--width",
                "4",
                "--height",
                "4",
                "--alpha",
            ],
        )
        assert result.exit_code == 0
        with Image.open(output) as image:
            assert image.size == (4, 4)
            assert image.mode == "RGBA"
            assert image.getpixel((3, 3)) == (255, 255, 255, 255)

    def test_export_with_config(self, tmp_path: Path, gradient_vtf_file: Path) -> None:
        """設定ファイルの値が使われ、CLIオプションで上書きされる"""
        config_file = tmp_path / "vtfkit.yml"
        config_file.write_text("export:\n  format: png\n  mip_level: 0\n")
        output = tmp_path / "mip1.png"
        result = runner.invoke(
            app,
            [
                "export",
                str(gradient_vtf_file),
                "-o",
                str(output),
                "--config",
                str(config_file),
                "--mip",
                "1",
            ],
        )
        assert result.exit_code == 0
        with Image.open(output) as image:
            assert image.format == "PNG"
            assert image.size == (1, 1)
            assert image.getpixel((0, 0)) == (128, 128, 128)

    def test_export_with_log_file(self, tmp_path: Path, gradient_vtf_file: Path) -> None:
        """--log-fileでログがファイルに書き込まれる"""
        log_file = tmp_path / "export.log"
        output = tmp_path / "out.ppm"
        result = runner.invoke(
            app,
            [
                "export",
                str(gradient_vtf_file),
                "-o",
                str(output),
                "-v",
                "--log-file",
                str(log_file),
            ],
        )
        assert result.exit_code == 0
        content = log_file.read_text(encoding="utf-8")
        assert "gradient.vtf -> out.ppm" in content
        assert "Export complete" in content

    @pytest.mark.parametrize(
        "args",
        [
            pytest.param(["--filter", "cubic"], id="異常系: 不明なフィルタ"),
            pytest.param(["--format", "jpeg"], id="異常系: 不明な出力形式"),
        ],
    )
    def test_export_invalid_option(self, gradient_vtf_file: Path, args: list[str]) -> None:
        """不正なオプション値で終了コード2"""
        result = runner.invoke(app, ["export", str(gradient_vtf_file), *args])
        assert result.exit_code == 2
        assert "Error" in result.stdout

    def test_export_missing_config(self, tmp_path: Path, gradient_vtf_file: Path) -> None:
        """存在しない設定ファイルで終了コード2"""
        result = runner.invoke(
            app, ["export", str(gradient_vtf_file), "--config", str(tmp_path / "none.yml")]
        )
        assert result.exit_code == 2

    def test_export_config_with_invalid_type(
        self, tmp_path: Path, gradient_vtf_file: Path
    ) -> None:
        """設定値の型が不正な場合はエラーメッセージを表示して終了コード2"""
        config_file = tmp_path / "vtfkit.yml"
        config_file.write_text('export:\n  mip_level: "1"\n')
        result = runner.invoke(
            app, ["export", str(gradient_vtf_file), "--config", str(config_file)]
        )
        assert result.exit_code == 2
        assert "型が不正" in result.stdout
        assert result.exception is None or isinstance(result.exception, SystemExit)

    def test_export_missing_file(self, tmp_path: Path) -> None:
        """存在しない入力ファイルで終了コード2"""
        result = runner.invoke(app, ["export", str(tmp_path / "missing.vtf")])
        assert result.exit_code == 2
        assert "Error" in result.stdout

    def test_export_mip_out_of_range(self, tmp_path: Path, gradient_vtf_file: Path) -> None:
        """範囲外のミップレベルで終了コード1"""
        output = tmp_path / "out.ppm"
        result = runner.invoke(
            app, ["export", str(gradient_vtf_file), "-o", str(output), "--mip", "5"]
        )
        assert result.exit_code == 1
        assert "エクスポート失敗" in result.stdout
        assert not output.exists()


class TestSampleCommand:
    """sampleコマンドのテスト"""

    def test_sample_trilinear(self, gradient_vtf_file: Path) -> None:
        """テクセル中心をサンプリングするとそのテクセルの色になる"""
        result = runner.invoke(app, ["sample", str(gradient_vtf_file), "0.25", "0.25"])
        assert result.exit_code == 0
        assert "trilinear" in result.stdout
        assert "1.000000" in result.stdout
        assert "255 0 0 255" in result.stdout

    def test_sample_bilinear_mip(self, gradient_vtf_file: Path) -> None:
        """--bilinearでは指定ミップのみをサンプリングする"""
        result = runner.invoke(
            app,
            ["sample", str(gradient_vtf_file), "0.5", "0.5", "--lod", "1", "--bilinear"],
        )
        assert result.exit_code == 0
        assert "bilinear" in result.stdout
        assert "128 128 128 255" in result.stdout

    def test_sample_missing_file(self, tmp_path: Path) -> None:
        """存在しないファイルで終了コード2"""
        result = runner.invoke(app, ["sample", str(tmp_path / "missing.vtf"), "0", "0"])
        assert result.exit_code == 2

    def test_sample_invalid_file(self, tmp_path: Path) -> None:
        """デコードできないファイルで終了コード1"""
        path = tmp_path / "broken.vtf"
        path.write_bytes(b"VTF\x00")
        result = runner.invoke(app, ["sample", str(path), "0.5", "0.5"])
        assert result.exit_code == 1
        assert "デコードできません" in result.stdout
