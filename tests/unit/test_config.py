import pytest
from pathlib import Path
from clevert.core_config import get_cfg_defaults
from clevert.config import config


def test_default_config_loading():
    """Verify default values are loaded correctly."""
    cfg = get_cfg_defaults()
    assert cfg.SYSTEM.ROOT == str(Path(__file__).parent.parent.parent)
    assert cfg.RUNNER.PARALLEL >= 1
    assert cfg.PROCESS.TERMINATE_GRACE_SEC > 0


def test_defaults_are_independent_clones():
    first = get_cfg_defaults()
    second = get_cfg_defaults()
    first.RUNNER.PARALLEL = 99
    assert second.RUNNER.PARALLEL != 99


def test_config_singleton():
    """Verify the singleton config object is loaded and frozen."""
    assert config.is_frozen()
    with pytest.raises(AttributeError):
        config.RUNNER.PARALLEL = 5


def test_path_resolution():
    root = Path(config.SYSTEM.ROOT)
    assert root.exists()
    assert (root / "clevert").exists()


def test_override_config_fixture_restores_values(override_config):
    previous = config.RUNNER.PARALLEL
    override_config("RUNNER", "PARALLEL", previous + 3)
    assert config.RUNNER.PARALLEL == previous + 3
