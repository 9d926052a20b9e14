from __future__ import annotations

import os
from typing import Any, List, Mapping

from ...models import Entry


def ensure_output_dirs(entry: Entry) -> None:
    for output_path in entry.output.main:
        parent = os.path.dirname(output_path)
        if parent:
            os.makedirs(parent, exist_ok=True)


def profile_args(profile: Mapping[str, Any], entry: Entry) -> List[str]:
    """
    Expand the profile's `args` template.

    `{input}` and `{output}` refer to the first path of each group,
    `{input_N}` / `{output_N}` to the N-th one.
    """
    raw_args = profile.get("args") or []
    if isinstance(raw_args, str) or not isinstance(raw_args, (list, tuple)):
        raise ValueError("profile 'args' must be a list of strings")
    values = {
        "input": entry.input.main[0] if entry.input.main else "",
        "output": entry.output.main[0] if entry.output.main else "",
    }
    for index, path in enumerate(entry.input.main):
        values[f"input_{index}"] = path
    for index, path in enumerate(entry.output.main):
        values[f"output_{index}"] = path
    return [str(arg).format_map(values) for arg in raw_args]
