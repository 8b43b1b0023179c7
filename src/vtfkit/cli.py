"""CLI entry point for vtfkit."""

from dataclasses import replace
from pathlib import Path
from typing import Annotated

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from vtfkit import __version__
from vtfkit.config import ConfigError, VtfkitConfig, get_default_config, load_config
from vtfkit.export import ExportError, ExportOptions, OutputFormat, export_texture
from vtfkit.info import read_texture_info
from vtfkit.logger import ExportLogger, LogConfig, VerboseLevel
from vtfkit.types import ExitCode
from vtfkit.vtf.texture import VTFTexture

app = typer.Typer(help="Valve Texture Format (VTF) を解析・デコードするCLIツール")
console = Console()


def _format_size(size_bytes: int) -> str:
    """バイト数を人間が読みやすい形式に変換する"""
    if size_bytes < 1024:
        return f"{size_bytes} B"
    elif size_bytes < 1024 * 1024:
        return f"{size_bytes / 1024:.1f} KB"
    else:
        return f"{size_bytes / (1024 * 1024):.1f} MB"


@app.command()
def info(
    input_path: Annotated[Path, typer.Argument(help="VTFファイルパス")],
) -> None:
    """VTFファイルのヘッダー情報を表示する"""
    try:
        texture_info = read_texture_info(input_path)
    except FileNotFoundError:
        console.print(f"[red]Error: ファイルが見つかりません: {input_path}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT) from None
    except ValueError as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.ERROR) from None

    table = Table(title="Texture Info")
    table.add_column("Property", style="cyan")
    table.add_column("Value", style="green")

    table.add_row("Version", texture_info.version)
    table.add_row(
        "Size", f"{texture_info.width}x{texture_info.height}x{texture_info.depth}"
    )
    format_label = texture_info.format_name
    if texture_info.is_compressed:
        format_label += " (compressed)"
    table.add_row("Format", format_label)
    table.add_row("File Size", _format_size(texture_info.file_size_bytes))

    table.add_section()
    table.add_row("Mip Levels", str(texture_info.mip_levels))
    table.add_row("Frames", str(texture_info.frames))
    table.add_row("First Frame", str(texture_info.first_frame))
    table.add_row("Faces", str(texture_info.face_count))
    table.add_row("Image Data", _format_size(texture_info.image_data_size))

    table.add_section()
    table.add_row("Flags", ", ".join(texture_info.flags) if texture_info.flags else "N/A")
    low_width, low_height = texture_info.low_res_size
    table.add_row(
        "Thumbnail", f"{texture_info.low_res_format_name} {low_width}x{low_height}"
    )
    table.add_row(
        "Reflectivity", ", ".join(f"{value:.3f}" for value in texture_info.reflectivity)
    )

    console.print(table)
    raise typer.Exit(ExitCode.SUCCESS)


def _build_options(
    config: VtfkitConfig,
    output_format: str | None,
    mip: int | None,
    frame: int | None,
    face: int | None,
    slice_index: int | None,
    alpha: bool | None,
    filter_name: str | None,
    width: int | None,
    height: int | None,
) -> ExportOptions:
    """設定ファイルの値にCLIオプションを上書きしてエクスポートオプションを作る"""
    export_config = config.export
    overrides = {
        "format": output_format,
        "mip_level": mip,
        "frame": frame,
        "face": face,
        "slice": slice_index,
        "include_alpha": alpha,
    }
    export_config = replace(
        export_config, **{key: value for key, value in overrides.items() if value is not None}
    )

    sampling_config = config.sampling
    sampling_overrides = {"filter": filter_name, "width": width, "height": height}
    sampling_config = replace(
        sampling_config,
        **{key: value for key, value in sampling_overrides.items() if value is not None},
    )

    return ExportOptions.from_config(
        VtfkitConfig(export=export_config, sampling=sampling_config)
    )


@app.command()
def export(
    input_path: Annotated[Path, typer.Argument(help="入力VTFファイルパス")],
    output: Annotated[Path | None, typer.Option("-o", "--output", help="出力画像パス")] = None,
    output_format: Annotated[
        str | None, typer.Option("--format", help="出力形式（ppm/png）")
    ] = None,
    mip: Annotated[int | None, typer.Option("--mip", help="ミップレベル")] = None,
    frame: Annotated[int | None, typer.Option("--frame", help="フレーム番号")] = None,
    face: Annotated[int | None, typer.Option("--face", help="面番号")] = None,
    slice_index: Annotated[int | None, typer.Option("--slice", help="スライス番号")] = None,
    alpha: Annotated[
        bool | None, typer.Option("--alpha/--no-alpha", help="アルファチャンネルを出力")
    ] = None,
    filter_name: Annotated[
        str | None, typer.Option("--filter", help="フィルタ（nearest/bilinear/trilinear）")
    ] = None,
    width: Annotated[int | None, typer.Option("--width", help="出力幅")] = None,
    height: Annotated[int | None, typer.Option("--height", help="出力高さ")] = None,
    config_path: Annotated[
        Path | None, typer.Option("--config", help="設定ファイル（YAML）")
    ] = None,
    verbose: Annotated[int, typer.Option("-v", "--verbose", count=True, help="詳細ログ出力")] = 0,
    log_file: Annotated[Path | None, typer.Option(help="ログファイル出力先")] = None,
) -> None:
    """VTFファイルを画像に変換する"""
    try:
        config = load_config(config_path) if config_path else get_default_config()
        options = _build_options(
            config,
            output_format,
            mip,
            frame,
            face,
            slice_index,
            alpha,
            filter_name,
            width,
            height,
        )
    except (ConfigError, ExportError) as e:
        console.print(f"[red]Error: {e}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT) from None

    if output is None:
        suffix = ".png" if options.output_format is OutputFormat.PNG else ".ppm"
        output = input_path.with_suffix(suffix)

    log_config = LogConfig(
        verbose_level=VerboseLevel(min(verbose, VerboseLevel.DEBUG)),
        log_file=log_file,
    )
    with ExportLogger(log_config) as logger:
        try:
            result = export_texture(input_path, output, options, logger)
        except FileNotFoundError:
            logger.error(f"ファイルが見つかりません: {input_path}")
            console.print(f"[red]Error: ファイルが見つかりません: {input_path}[/red]")
            raise typer.Exit(ExitCode.INVALID_INPUT) from None
        except ExportError as e:
            logger.error(str(e))
            console.print(f"[red]エクスポート失敗: {e}[/red]")
            raise typer.Exit(ExitCode.ERROR) from None

        logger.log_summary(
            {
                "output_path": result.dest_path,
                "output_size": result.bytes_after,
                "width": result.width,
                "height": result.height,
            }
        )

    console.print(f"[green]エクスポート完了: {result.dest_path}[/green]")
    raise typer.Exit(ExitCode.SUCCESS)


@app.command()
def sample(
    input_path: Annotated[Path, typer.Argument(help="VTFファイルパス")],
    u: Annotated[float, typer.Argument(help="水平方向の正規化座標")],
    v: Annotated[float, typer.Argument(help="垂直方向の正規化座標")],
    lod: Annotated[float, typer.Option("--lod", help="ミップレベル（小数可）")] = 0.0,
    z: Annotated[int, typer.Option("--z", help="スライス")] = 0,
    frame: Annotated[int, typer.Option("--frame", help="フレーム番号")] = 0,
    face: Annotated[int, typer.Option("--face", help="面番号")] = 0,
    bilinear: Annotated[
        bool, typer.Option("--bilinear", help="単一ミップのバイリニアサンプリング")
    ] = False,
) -> None:
    """テクスチャを正規化座標でサンプリングしてRGBAを表示する"""
    if not input_path.is_file():
        console.print(f"[red]Error: ファイルが見つかりません: {input_path}[/red]")
        raise typer.Exit(ExitCode.INVALID_INPUT)

    with VTFTexture(input_path.read_bytes()) as texture:
        if not texture.is_valid():
            console.print(f"[red]Error: VTFファイルをデコードできません: {input_path}[/red]")
            raise typer.Exit(ExitCode.ERROR)

        if bilinear:
            pixel = texture.sample_bilinear(u, v, z, int(lod), frame, face)
        else:
            pixel = texture.sample(u, v, z, lod, frame, face)

    table = Table(show_header=False)
    table.add_column("Channel", style="cyan")
    table.add_column("Value", style="white")
    for name, value in zip("RGBA", (pixel.r, pixel.g, pixel.b, pixel.a)):
        table.add_row(name, f"{value:.6f}")
    table.add_row("RGBA8", " ".join(str(channel) for channel in pixel.to_rgba8()))

    mode = "bilinear" if bilinear else "trilinear"
    console.print(Panel(table, title=f"({u}, {v}) {mode}", border_style="blue"))
    raise typer.Exit(ExitCode.SUCCESS)


def version_callback(value: bool) -> None:
    """バージョン表示コールバック"""
    if value:
        typer.echo(f"vtfkit {__version__}")
        raise typer.Exit(0)


@app.callback()
def main(
    version: Annotated[
        bool,
        typer.Option(
            "--version",
            callback=version_callback,
            is_eager=True,
            help="バージョンを表示する",
        ),
    ] = False,
) -> None:
    """vtfkit CLI - VTFテクスチャの解析・デコード"""
    pass
