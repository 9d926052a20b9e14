import sys
from pathlib import Path
import pytest

# Add project root to sys.path
# This ensures that 'clevert' is importable as a top-level module during tests
project_root = Path(__file__).parent.parent
sys.path.insert(0, str(project_root))


@pytest.fixture
def override_config():
    """Temporarily set `config.<SECTION>.<KEY>` values; restored afterwards."""
    from clevert.config import config

    saved: list[tuple[str, str, object]] = []

    def _set(section: str, key: str, value: object) -> None:
        node = getattr(config, section)
        saved.append((section, key, getattr(node, key)))
        config.defrost()
        setattr(node, key, value)
        config.freeze()

    try:
        yield _set
    finally:
        config.defrost()
        for section, key, value in reversed(saved):
            setattr(getattr(config, section), key, value)
        config.freeze()


@pytest.fixture
def temp_extensions_dir(tmp_path, override_config):
    extensions_dir = tmp_path / "extensions"
    extensions_dir.mkdir()
    override_config("SYSTEM", "EXTENSIONS_DIR", str(extensions_dir))
    return extensions_dir
