"""設定ファイル読み込みのテスト"""

from pathlib import Path

import pytest

from vtfkit.config import (
    ConfigError,
    ExportConfig,
    SamplingConfig,
    VtfkitConfig,
    get_default_config,
    load_config,
)


class TestDefaultConfig:
    """デフォルト設定のテスト"""

    def test_get_default_config_returns_vtfkit_config(self) -> None:
        """デフォルト設定がVtfkitConfigを返す"""
        config = get_default_config()
        assert isinstance(config, VtfkitConfig)

    def test_default_export_config(self) -> None:
        """エクスポート設定のデフォルト値が正しい"""
        config = get_default_config()
        assert config.export.format == "ppm"
        assert config.export.mip_level == 0
        assert config.export.frame == 0
        assert config.export.face == 0
        assert config.export.slice == 0
        assert config.export.include_alpha is False

    def test_default_sampling_config(self) -> None:
        """リサンプリング設定のデフォルト値が正しい"""
        config = get_default_config()
        assert config.sampling.filter == "nearest"
        assert config.sampling.width is None
        assert config.sampling.height is None
        assert config.sampling.lod_bias == 0.0


class TestLoadConfig:
    """設定読み込みのテスト"""

    def test_load_config_valid_file(self, tmp_path: Path) -> None:
        """有効な設定ファイルが読み込める"""
        config_file = tmp_path / "vtfkit.yml"
        config_file.write_text("export:\n  format: png\n")

        config = load_config(config_file)
        assert config.export.format == "png"

    def test_load_config_file_not_found(self, tmp_path: Path) -> None:
        """存在しないファイルでConfigError"""
        with pytest.raises(ConfigError, match="見つかりません"):
            load_config(tmp_path / "nonexistent.yml")

    def test_load_config_invalid_yaml(self, tmp_path: Path) -> None:
        """無効なYAMLでConfigError"""
        config_file = tmp_path / "invalid.yml"
        config_file.write_text("this is not valid yaml: [")

        with pytest.raises(ConfigError, match="YAML"):
            load_config(config_file)

    def test_load_config_empty_file(self, tmp_path: Path) -> None:
        """空のファイルはデフォルト設定を返す"""
        config_file = tmp_path / "empty.yml"
        config_file.write_text("")

        config = load_config(config_file)
        assert config == get_default_config()

    def test_load_config_merges_with_defaults(self, tmp_path: Path) -> None:
        """部分的な設定がデフォルト値とマージされる"""
        config_content = """
export:
  mip_level: 2
sampling:
  filter: trilinear
  width: 64
"""
        config_file = tmp_path / "partial.yml"
        config_file.write_text(config_content)

        config = load_config(config_file)
        assert config.export.mip_level == 2
        assert config.export.format == "ppm"
        assert config.sampling.filter == "trilinear"
        assert config.sampling.width == 64
        assert config.sampling.height is None

    def test_load_config_full_settings(self, tmp_path: Path) -> None:
        """全ての設定が正しく読み込まれる"""
        config_content = """
export:
  format: png
  mip_level: 1
  frame: 3
  face: 5
  slice: 2
  include_alpha: true
sampling:
  filter: bilinear
  width: 128
  height: 32
  lod_bias: -0.5
"""
        config_file = tmp_path / "full.yml"
        config_file.write_text(config_content)

        config = load_config(config_file)
        assert config.export == ExportConfig(
            format="png", mip_level=1, frame=3, face=5, slice=2, include_alpha=True
        )
        assert config.sampling == SamplingConfig(
            filter="bilinear", width=128, height=32, lod_bias=-0.5
        )

    @pytest.mark.parametrize(
        "content",
        [
            pytest.param("export: png\n", id="正常系: exportがマッピングでない"),
            pytest.param("sampling:\n  - bilinear\n", id="正常系: samplingがリスト"),
        ],
    )
    def test_load_config_invalid_section(self, tmp_path: Path, content: str) -> None:
        """セクションがマッピングでない場合はデフォルト値を使う"""
        config_file = tmp_path / "section.yml"
        config_file.write_text(content)

        config = load_config(config_file)
        assert config == get_default_config()

    @pytest.mark.parametrize(
        "content",
        [
            pytest.param('export:\n  mip_level: "1"\n', id="異常系: ミップレベルが文字列"),
            pytest.param("export:\n  frame: true\n", id="異常系: フレームが真偽値"),
            pytest.param("export:\n  include_alpha: 1\n", id="異常系: アルファが数値"),
            pytest.param("export:\n  format: 3\n", id="異常系: 出力形式が数値"),
            pytest.param("sampling:\n  width: 1.5\n", id="異常系: 幅が小数"),
            pytest.param("sampling:\n  lod_bias: high\n", id="異常系: 補正値が文字列"),
        ],
    )
    def test_load_config_invalid_value_type(self, tmp_path: Path, content: str) -> None:
        """設定値の型が不正な場合はConfigError"""
        config_file = tmp_path / "typed.yml"
        config_file.write_text(content)

        with pytest.raises(ConfigError, match="型が不正"):
            load_config(config_file)

    def test_load_config_integer_lod_bias(self, tmp_path: Path) -> None:
        """整数の補正値は小数として読み込まれる"""
        config_file = tmp_path / "bias.yml"
        config_file.write_text("sampling:\n  lod_bias: 1\n  width: null\n")

        config = load_config(config_file)
        assert config.sampling.lod_bias == 1.0
        assert isinstance(config.sampling.lod_bias, float)
        assert config.sampling.width is None

    def test_load_config_non_mapping_yaml(self, tmp_path: Path) -> None:
        """マッピング形式でないYAMLでConfigError"""
        config_file = tmp_path / "list.yml"
        config_file.write_text("- item1\n- item2")

        with pytest.raises(ConfigError, match="マッピング"):
            load_config(config_file)


class TestConfigImmutability:
    """設定のイミュータビリティテスト"""

    def test_config_is_frozen(self) -> None:
        """VtfkitConfigはイミュータブル"""
        config = get_default_config()
        with pytest.raises(AttributeError):
            config.export = ExportConfig()  # type: ignore[misc]

    def test_nested_config_is_frozen(self) -> None:
        """ネストされた設定もイミュータブル"""
        config = get_default_config()
        with pytest.raises(AttributeError):
            config.sampling.filter = "bilinear"  # type: ignore[misc]
