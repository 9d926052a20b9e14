from __future__ import annotations

import logging
import os
import re
from pathlib import Path
from typing import List

from ..errors import EntryGenerationError
from ..models import (
    EntriesCommonFiles,
    EntriesNumberSequence,
    EntriesPlain,
    EntriesRequest,
    Entry,
)

logger = logging.getLogger(__name__)

# Trailing ".ext" of the last path segment; never crosses a separator and
# needs a non-empty stem, so dotfiles like ".bashrc" have no extension.
EXTENSION_SUFFIX_PATTERN = re.compile(r"(?<=[^/\\])\.[^./\\]*$")


def replace_extension(relative_path: str, output_extension: str | None) -> str:
    """
    Swap the file extension of a relative path.

    Names without a matching suffix are returned unchanged, as are all names
    when `output_extension` is empty.
    """
    if not output_extension:
        return relative_path
    extension = output_extension.lstrip(".")
    if not extension:
        return relative_path
    return EXTENSION_SUFFIX_PATTERN.sub(lambda _match: "." + extension, relative_path, count=1)


def generate(input_dir: str | Path, output_dir: str | Path, output_extension: str | None) -> List[Entry]:
    """
    Build the worklist for a directory pair.

    Every file below `input_dir` (recursively, sorted per directory) yields
    one entry whose output is the same relative path under `output_dir`
    with the extension rewritten. Directories are traversed, never emitted.
    Output directories are not created.
    """
    input_root = os.path.abspath(os.fspath(input_dir))
    output_root = os.path.abspath(os.fspath(output_dir))
    if not os.path.exists(input_root):
        raise EntryGenerationError(
            f"Input directory does not exist: {input_root}",
            details={"input_dir": input_root},
        )
    if not os.path.isdir(input_root):
        raise EntryGenerationError(
            f"Input path is not a directory: {input_root}",
            details={"input_dir": input_root},
        )

    def _on_walk_error(error: OSError) -> None:
        raise EntryGenerationError(
            f"Cannot read directory {error.filename}: {error.strerror or error}",
            details={"input_dir": input_root, "path": str(error.filename)},
        )

    entries: List[Entry] = []
    for current_dir, dir_names, file_names in os.walk(input_root, onerror=_on_walk_error):
        dir_names.sort()
        for file_name in sorted(file_names):
            input_path = os.path.join(current_dir, file_name)
            relative = os.path.relpath(input_path, input_root)
            output_path = os.path.abspath(
                os.path.join(output_root, replace_extension(relative, output_extension))
            )
            entries.append(Entry.single(input_path, output_path))

    logger.info("Generated %s entries from %s", len(entries), input_root)
    return entries


def generate_entries(request: EntriesRequest) -> List[Entry]:
    """Dispatch an entries request by its `kind`."""
    if isinstance(request, EntriesCommonFiles):
        return generate(request.input_dir, request.output_dir, request.output_extension)
    if isinstance(request, EntriesPlain):
        return list(request.entries)
    if isinstance(request, EntriesNumberSequence):
        raise EntryGenerationError(
            "Entries kind 'number-sequence' is not supported",
            details={"kind": request.kind},
        )
    raise EntryGenerationError(f"Unknown entries request: {type(request).__name__}")
