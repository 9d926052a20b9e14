from .command import CommandAction, CommandController
from .ffmpeg import FfmpegAction, FfmpegController, FfmpegProgressParser

__all__ = [
    "CommandAction",
    "CommandController",
    "FfmpegAction",
    "FfmpegController",
    "FfmpegProgressParser",
]
