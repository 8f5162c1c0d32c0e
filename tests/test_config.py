"""Tests for gmroom.ini loading."""

import pytest

from gmroom.config import CodecConfig, load_config
from gmroom.format import Branch, VersionContext


def write_ini(tmp_path, text):
    path = tmp_path / "gmroom.ini"
    path.write_text(text, encoding="utf-8")
    return path


class TestLoadConfig:
    """INI parsing and validation."""

    def test_full_file(self, tmp_path):
        path = write_ini(tmp_path, """
[version]
minimum = 2023.2      ; floor applied on top of GEN8
lts = yes

[load]
resolve_references = false

[logging]
log_path = logs/gmroom.log
""")
        config = load_config(str(path))
        assert config.minimum_version == "2023.2"
        assert config.minimum == (2023, 2, 0, 0)
        assert config.lts is True
        assert config.resolve_references is False
        assert config.log_path == "logs/gmroom.log"
        assert config.config_path == str(path)

    def test_everything_optional(self, tmp_path):
        config = load_config(str(write_ini(tmp_path, "")))
        assert config.minimum is None
        assert config.lts is False
        assert config.resolve_references is True
        assert config.log_path is None

    def test_missing_file(self, tmp_path):
        with pytest.raises(FileNotFoundError):
            load_config(str(tmp_path / "nope.ini"))

    def test_bad_boolean(self, tmp_path):
        path = write_ini(tmp_path, "[load]\nresolve_references = maybe\n")
        with pytest.raises(ValueError, match="resolve_references"):
            load_config(str(path))

    def test_bad_version(self, tmp_path):
        path = write_ini(tmp_path, "[version]\nminimum = 2024.x\n")
        with pytest.raises(ValueError):
            load_config(str(path))

    def test_malformed_ini(self, tmp_path):
        path = write_ini(tmp_path, "minimum = 2024.6\n")
        with pytest.raises(ValueError):
            load_config(str(path))


class TestVersionContextFromConfig:
    """Starting version of a load."""

    def test_minimum_raises_declared_version(self):
        version = CodecConfig(minimum_version="2024.6").version_context(VersionContext(2023, 2))
        assert version.as_tuple == (2024, 6, 0, 0)

    def test_minimum_never_lowers(self):
        declared = VersionContext(2024, 13)
        version = CodecConfig(minimum_version="2.3").version_context(declared)
        assert version.as_tuple == (2024, 13, 0, 0)
        assert version is not declared

    def test_lts_flag(self):
        version = CodecConfig(lts=True).version_context(VersionContext(2022, 0))
        assert version.branch == Branch.LTS_2022_0

    def test_invalid_minimum(self):
        with pytest.raises(ValueError):
            CodecConfig(minimum_version="latest")
