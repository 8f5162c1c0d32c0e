"""
Codec Configuration

Parser for the gmroom.ini configuration file:

    [version]
    minimum = 2023.2      ; floor applied on top of the GEN8 version
    lts = false           ; file comes from the 2022.0 LTS branch

    [load]
    resolve_references = true

    [logging]
    log_path = gmroom.log

Every section and key is optional.
"""

import configparser
from dataclasses import dataclass
from pathlib import Path
from typing import Optional, Tuple

from gmroom.format.version import VersionContext
from gmroom.utils import log

_TRUE = ('true', '1', 'yes', 'on')
_FALSE = ('false', '0', 'no', 'off')


@dataclass
class CodecConfig:
    """Settings applied to every load and save"""
    minimum_version: Optional[str] = None  # dotted, e.g. "2023.2"
    lts: bool = False
    resolve_references: bool = True
    log_path: Optional[str] = None
    config_path: Optional[str] = None

    def __post_init__(self):
        """Validate configuration"""
        if self.minimum_version is not None:
            # Raises ValueError on malformed versions
            VersionContext.parse(self.minimum_version)

    @property
    def minimum(self) -> Optional[Tuple[int, int, int, int]]:
        if self.minimum_version is None:
            return None
        return VersionContext.parse(self.minimum_version).as_tuple

    def version_context(self, declared: VersionContext) -> VersionContext:
        """
        Starting version of a load: the declared (GEN8) version raised to the
        configured minimum.
        """
        version = declared.copy()
        version.lts = declared.lts or self.lts
        if self.minimum is not None:
            version.upgrade(*self.minimum, reason="configured minimum version")
        return version

    def print_summary(self):
        """Print configuration summary"""
        source = self.config_path or "defaults"
        log(f"Configuration ({source}):")
        log(f"  Minimum version:    {self.minimum_version or 'none'}{' (LTS)' if self.lts else ''}")
        log(f"  Resolve references: {'yes' if self.resolve_references else 'no'}")
        log(f"  Log file:           {self.log_path or 'none'}")


def _parse_bool(section: str, key: str, value: str) -> bool:
    lowered = value.strip().lower()
    if lowered in _TRUE:
        return True
    if lowered in _FALSE:
        return False
    raise ValueError(f"[{section}] {key}: expected a boolean, got {value!r}")


def load_config(config_path: str = "gmroom.ini") -> CodecConfig:
    """
    Load and validate a configuration file.

    Raises:
        FileNotFoundError: config_path does not exist
        ValueError: a value is malformed
    """
    if not Path(config_path).exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    parser = configparser.ConfigParser(inline_comment_prefixes=(';', '#'))
    try:
        parser.read(config_path, encoding='utf-8')
    except configparser.Error as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e

    version = parser['version'] if parser.has_section('version') else {}
    load = parser['load'] if parser.has_section('load') else {}
    logging_section = parser['logging'] if parser.has_section('logging') else {}

    minimum = version.get('minimum')
    if minimum is not None:
        minimum = minimum.strip() or None

    log_path = logging_section.get('log_path')
    if log_path is not None:
        log_path = log_path.strip() or None

    try:
        return CodecConfig(
            minimum_version=minimum,
            lts=_parse_bool('version', 'lts', version.get('lts', 'false')),
            resolve_references=_parse_bool('load', 'resolve_references', load.get('resolve_references', 'true')),
            log_path=log_path,
            config_path=str(config_path),
        )
    except ValueError as e:
        raise ValueError(f"Invalid config file {config_path}: {e}") from e
