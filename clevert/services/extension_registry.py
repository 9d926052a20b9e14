import json
import logging
import shutil
from pathlib import Path
from typing import Dict, List, Optional

from ..config import config
from ..errors import ActionNotFoundError, ExtensionNotFoundError
from ..models import ActionManifest, ActionSummary, ExtensionManifest, ExtensionSummary
from ..runtime.execution.contracts import Executor
from .action_executor_registry import action_executor_registry

logger = logging.getLogger(__name__)

MANIFEST_FILE = "extension.json"


class ExtensionRegistry:
    """
    Registry for discovering installed extensions.

    Capabilities:
    - Scans `EXTENSIONS_DIR` for `<id>_<version>/extension.json`.
    - Provides lookup by id (and optionally version).
    - Binds an extension action to its executor.
    """
    def __init__(self, extensions_dir: Optional[Path] = None):
        self._extensions_dir = extensions_dir
        self._extensions: Dict[str, ExtensionManifest] = {}

    @property
    def extensions_dir(self) -> Path:
        if self._extensions_dir is not None:
            return self._extensions_dir
        return Path(config.SYSTEM.EXTENSIONS_DIR)

    def scan_extensions(self) -> None:
        """
        Rescans the extensions directory and replaces the internal cache.
        """
        self._extensions.clear()
        root = self.extensions_dir
        if not root.exists():
            return

        invalid_dirs: List[str] = []
        for extension_dir in sorted(root.iterdir()):
            if not extension_dir.is_dir() or extension_dir.name.startswith("."):
                continue
            manifest_path = extension_dir / MANIFEST_FILE
            if not manifest_path.exists():
                invalid_dirs.append(extension_dir.name)
                continue
            manifest = self._load_manifest(extension_dir, manifest_path)
            if manifest is None:
                invalid_dirs.append(extension_dir.name)
                continue
            self._extensions[extension_dir.name] = manifest

        if invalid_dirs:
            logger.warning("Ignored invalid extension directories: %s", ", ".join(invalid_dirs))

    def _load_manifest(self, extension_dir: Path, manifest_path: Path) -> Optional[ExtensionManifest]:
        try:
            with open(manifest_path, "r", encoding="utf-8") as f:
                data = json.load(f)
            manifest = ExtensionManifest(**data, path=extension_dir)
        except Exception:
            logger.exception("Error loading extension %s", extension_dir.name)
            return None
        expected = f"{manifest.id}_{manifest.version}"
        if extension_dir.name != expected:
            logger.warning(
                "Extension directory '%s' does not match manifest '%s'",
                extension_dir.name,
                expected,
            )
            return None
        return manifest

    def list_extensions(self) -> List[ExtensionManifest]:
        self.scan_extensions()
        return list(self._extensions.values())

    def get_extension(self, extension_id: str, version: Optional[str] = None) -> Optional[ExtensionManifest]:
        self.scan_extensions()
        if version is not None:
            return self._extensions.get(f"{extension_id}_{version}")
        # unversioned lookups resolve to the last installed directory in name order
        candidates = [m for m in self._extensions.values() if m.id == extension_id]
        return candidates[-1] if candidates else None

    def resolve_executor(
        self,
        extension_id: str,
        action_id: str,
        version: Optional[str] = None,
    ) -> Executor:
        extension = self.get_extension(extension_id, version)
        if extension is None:
            raise ExtensionNotFoundError(extension_id, version)
        action = extension.find_action(action_id)
        if action is None:
            raise ActionNotFoundError(extension_id, action_id)
        factory = action_executor_registry.get(action.executor)
        if factory is None:
            raise ActionNotFoundError(
                extension_id,
                action_id,
                reason=(
                    f"unknown executor '{action.executor}' "
                    f"(known: {', '.join(action_executor_registry.kinds())})"
                ),
            )
        return factory(self._resolve_program(extension, action)).execute

    def _resolve_program(self, extension: ExtensionManifest, action: ActionManifest) -> str:
        if extension.path is not None:
            bundled = (extension.path / action.program).resolve()
            if bundled.is_file():
                return str(bundled)
        found = shutil.which(action.program)
        return found or action.program


def summarize(extension: ExtensionManifest) -> ExtensionSummary:
    return ExtensionSummary(
        id=extension.id,
        version=extension.version,
        name=extension.name,
        description=extension.description,
        actions=[
            ActionSummary(id=a.id, name=a.name, description=a.description, kind=a.kind)
            for a in extension.actions
        ],
        profiles=[p.model_dump() for p in extension.profiles],
    )


extension_registry = ExtensionRegistry()
