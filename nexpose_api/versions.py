"""API version handling.

The server exposes its control API under ``/api/{version}/{protocol}``.
Versions are totally ordered; a request declares the window of versions
it is valid for and the session uses that window to pick (or refuse) the
path segment for each call.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum

from nexpose_api.errors import ConfigurationError


class APIVersion(str, Enum):
    """Supported server API versions, declared in ascending order."""

    V1_0 = "1.0"
    V1_1 = "1.1"
    V1_2 = "1.2"

    @property
    def _rank(self) -> int:
        return _ORDER.index(self)

    def __lt__(self, other: object) -> bool:
        if not isinstance(other, APIVersion):
            return NotImplemented
        return self._rank < other._rank

    def __le__(self, other: object) -> bool:
        if not isinstance(other, APIVersion):
            return NotImplemented
        return self._rank <= other._rank

    def __gt__(self, other: object) -> bool:
        if not isinstance(other, APIVersion):
            return NotImplemented
        return self._rank > other._rank

    def __ge__(self, other: object) -> bool:
        if not isinstance(other, APIVersion):
            return NotImplemented
        return self._rank >= other._rank

    @classmethod
    def parse(cls, value: str | APIVersion) -> APIVersion:
        """Convert "1.1" (or an APIVersion) to an APIVersion.

        Raises:
            ConfigurationError: If the version is not one the client speaks.
        """
        if isinstance(value, APIVersion):
            return value
        try:
            return cls(str(value).strip())
        except ValueError:
            supported = ", ".join(v.value for v in cls)
            raise ConfigurationError(
                f"Unsupported API version '{value}'. Supported: {supported}"
            ) from None

    def normalized(self) -> APIVersion:
        """Version 1.0 sessions are served by the 1.1 endpoint."""
        if self is APIVersion.V1_0:
            return APIVersion.V1_1
        return self


_ORDER = list(APIVersion)


@dataclass(frozen=True)
class VersionRange:
    """Inclusive [first, last] window of API versions a request is valid for."""

    first: APIVersion
    last: APIVersion

    def __post_init__(self) -> None:
        if self.first > self.last:
            raise ConfigurationError(
                f"Invalid version range: {self.first.value} > {self.last.value}"
            )

    def __contains__(self, version: object) -> bool:
        if not isinstance(version, APIVersion):
            return False
        return self.first <= version <= self.last

    def __str__(self) -> str:
        return f"[{self.first.value}, {self.last.value}]"
