"""
Version Context

The engine version detected for one load, consulted before every
version-gated field.

Two predicate families exist:
- is_version_at_least(major, minor, release, build): plain ordering
- is_non_lts_version_at_least(major, minor, ...): same, but always false on
  the 2022.0 LTS branch, which never received features added after it forked

The version only ever moves forward, through upgrade(), when the parser finds
data that proves a newer engine wrote the file.
"""

from enum import IntEnum
from typing import Tuple

from gmroom.utils import logDebug

VersionTuple = Tuple[int, int, int, int]


class Branch(IntEnum):
    """Release branch, relevant only from 2022 on."""
    PRE_2022_0 = 0
    LTS_2022_0 = 1
    POST_2022_0 = 2


class VersionContext:
    """
    Mutable version state scoped to a single load or save.

    Usage:
        version = VersionContext(2023, 2)
        if version.is_version_at_least(2, 3):
            ...
        version.upgrade(2024, 6, reason="text items pointer present")
    """

    def __init__(self, major: int = 1, minor: int = 0, release: int = 0, build: int = 0,
                 lts: bool = False, bytecode_version: int = 17):
        self.major = major
        self.minor = minor
        self.release = release
        self.build = build
        self.lts = lts
        self.bytecode_version = bytecode_version
        self.upgrades = []  # (from, to, reason), in the order they happened

    @classmethod
    def parse(cls, text: str, lts: bool = False, bytecode_version: int = 17) -> 'VersionContext':
        """Build from a dotted string such as '2024.6' or '2.2.2.302'."""
        try:
            parts = [int(part) for part in text.strip().split('.')]
        except ValueError:
            raise ValueError(f"Invalid version string: {text!r}") from None
        if not 1 <= len(parts) <= 4 or any(part < 0 for part in parts):
            raise ValueError(f"Invalid version string: {text!r}")
        parts += [0] * (4 - len(parts))
        return cls(*parts, lts=lts, bytecode_version=bytecode_version)

    @property
    def as_tuple(self) -> VersionTuple:
        return (self.major, self.minor, self.release, self.build)

    @property
    def branch(self) -> Branch:
        if self.major < 2022:
            return Branch.PRE_2022_0
        if self.lts and self.major == 2022:
            return Branch.LTS_2022_0
        return Branch.POST_2022_0

    def is_version_at_least(self, major: int, minor: int = 0, release: int = 0, build: int = 0) -> bool:
        return self.as_tuple >= (major, minor, release, build)

    def is_non_lts_version_at_least(self, major: int, minor: int = 0, release: int = 0, build: int = 0) -> bool:
        if self.branch == Branch.LTS_2022_0:
            return False
        return self.is_version_at_least(major, minor, release, build)

    def is_gm2(self) -> bool:
        """GameMaker Studio 2 or later: rooms use layers."""
        return self.major >= 2

    def upgrade(self, major: int, minor: int = 0, release: int = 0, build: int = 0,
                reason: str = "") -> bool:
        """
        Raise the version to at least the given one.

        Returns:
            True if the version changed
        """
        target = (major, minor, release, build)
        if self.as_tuple >= target:
            return False

        previous = self.as_tuple
        self.major, self.minor, self.release, self.build = target
        if major >= 2023:
            # LTS never went past 2022
            self.lts = False
        self.upgrades.append((previous, target, reason))
        logDebug(f"Version upgraded {_dotted(previous)} -> {_dotted(target)}"
                 + (f" ({reason})" if reason else ""))
        return True

    def copy(self) -> 'VersionContext':
        """Independent context with the same version (upgrade history not carried)."""
        return VersionContext(self.major, self.minor, self.release, self.build,
                              lts=self.lts, bytecode_version=self.bytecode_version)

    def __eq__(self, other) -> bool:
        if not isinstance(other, VersionContext):
            return NotImplemented
        return (self.as_tuple, self.lts, self.bytecode_version) == \
               (other.as_tuple, other.lts, other.bytecode_version)

    def __repr__(self) -> str:
        suffix = " LTS" if self.branch == Branch.LTS_2022_0 else ""
        return f"VersionContext({_dotted(self.as_tuple)}{suffix}, bytecode {self.bytecode_version})"

    def __str__(self) -> str:
        return _dotted(self.as_tuple)


def _dotted(version: VersionTuple) -> str:
    return ".".join(str(part) for part in version)
