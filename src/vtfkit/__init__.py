"""vtfkit - Valve Texture Format decoder and CLI tool."""

from vtfkit.logger import (
    ExportLogger,
    LogConfig,
    ProgressDisplay,
    VerboseLevel,
)
from vtfkit.vtf import (
    AddressMode,
    ImageFormat,
    Pixel,
    VTFError,
    VTFTexture,
)

__version__ = "0.1.0"

__all__ = [
    "AddressMode",
    "ExportLogger",
    "ImageFormat",
    "LogConfig",
    "Pixel",
    "ProgressDisplay",
    "VTFError",
    "VTFTexture",
    "VerboseLevel",
]
