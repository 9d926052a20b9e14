from __future__ import annotations

import logging
import re
from typing import Any, List, Mapping

from ...models import Entry
from ..execution.managed_process import ManagedProcess
from .common import ensure_output_dirs, profile_args

logger = logging.getLogger(__name__)

DURATION_PATTERN = re.compile(r" Duration: ([^,]+),")
TIME_PATTERN = re.compile(r"\btime=(\S+)")


def time_to_seconds(text: str) -> float:
    """`time_to_seconds("00:03:22.45") == 202.45`"""
    total = 0.0
    for part in text.strip().split(":"):
        total = total * 60 + float(part)
    return total


class FfmpegProgressParser:
    """
    Tracks encoding progress from ffmpeg's stderr.

    The input duration comes from the ` Duration: ` banner line, the current
    position from `time=` fields of the status lines. Status lines are
    `\\r` terminated, so both separators split records.
    """

    def __init__(self, total_seconds: float = 0.0) -> None:
        self.total = max(0.0, float(total_seconds))
        self.finished = 0.0
        self._pending = ""

    def feed(self, text: str) -> None:
        self._pending += text
        *lines, self._pending = re.split(r"[\r\n]", self._pending)
        for line in lines:
            self._parse_line(line)

    def progress(self) -> float:
        return self.finished / (self.total or 1.0)

    def _parse_line(self, line: str) -> None:
        if self.total == 0:
            matched = DURATION_PATTERN.search(line)
            if matched:
                try:
                    self.total = time_to_seconds(matched.group(1))
                except ValueError:
                    pass
        if not line.startswith("frame=") and not line.startswith("size="):
            return
        if self.total == 0:
            # encoding started but the duration is still unknown
            self.total = 1.0
        matched = TIME_PATTERN.search(line)
        if not matched:
            return
        value = matched.group(1)
        # ffmpeg prints N/A or bogus negative stamps like -577014:32:22.77
        if value == "N/A" or value.startswith("-"):
            return
        try:
            self.finished = time_to_seconds(value)
        except ValueError:
            return


class FfmpegController:
    def __init__(self, argv: List[str], total_seconds: float = 0.0) -> None:
        self._parser = FfmpegProgressParser(total_seconds)
        self._process = ManagedProcess(argv, on_stderr=self._parser.feed, prefix="ffmpeg")

    def progress(self) -> float:
        return self._parser.progress()

    def stop(self) -> None:
        self._process.stop()

    async def wait(self) -> None:
        await self._process.wait()


class FfmpegAction:
    """
    Runs `ffmpeg -i <input> <profile args> <output>` per entry.

    Profile fields: `args` (list of extra arguments placed between input
    and output) and optional `duration` seconds when the input banner is
    not trustworthy.
    """

    executor_kind = "ffmpeg"

    def __init__(self, program: str) -> None:
        self.program = program

    def build_argv(self, profile: Mapping[str, Any], entry: Entry) -> List[str]:
        argv = [self.program, "-hide_banner", "-y"]
        for input_path in entry.input.main:
            argv += ["-i", input_path]
        argv += profile_args(profile, entry)
        argv += list(entry.output.main)
        return argv

    def execute(self, profile: Mapping[str, Any], entry: Entry) -> FfmpegController:
        ensure_output_dirs(entry)
        argv = self.build_argv(profile, entry)
        logger.debug("ffmpeg argv: %s", argv)
        return FfmpegController(argv, float(profile.get("duration") or 0.0))
