"""Template expansion for API request bodies.

Request bodies are XML skeletons containing ``$(name)`` placeholders. A
TemplateRequest owns one skeleton plus a parameter map from placeholder
name to Content Generator; ``to_xml()`` substitutes each placeholder with
its generator's render output.

Escaping happens exactly once. Plain string values are escaped when they
are assigned (``set``) and wrapped in a StringContent leaf; generators
escape their own attribute and text values when they render. Rendered
output is final markup and is never re-scanned for placeholders.
"""

from __future__ import annotations

import re
from functools import lru_cache
from pathlib import Path
from typing import ClassVar, Mapping, Self

from nexpose_api.errors import ConfigurationError
from nexpose_api.generators import ContentGenerator, StringContent
from nexpose_api.versions import APIVersion, VersionRange
from nexpose_api.xml_utils import to_wire_text, xml_escape

# Packaged request templates, one <RequestClassName>.xml per request
TEMPLATE_DIR = Path(__file__).parent / "templates"

# $(name): name is anything up to the closing parenthesis.
_PLACEHOLDER = re.compile(r"\$\(([^)]+)\)")


def expand_variables(template: str, params: Mapping[str, ContentGenerator | None]) -> str:
    """Substitute every ``$(name)`` placeholder in *template*.

    A placeholder whose name is not in *params*, or is mapped to ``None``,
    becomes the empty string. Generator output is inserted verbatim and is
    not scanned again, so a rendered value that happens to contain
    ``$(...)`` stays literal.
    """

    def replacer(match: re.Match) -> str:
        generator = params.get(match.group(1))
        if generator is None:
            return ""
        return generator.render()

    return _PLACEHOLDER.sub(replacer, template)


def placeholders(template: str) -> list[str]:
    """Return placeholder names in order of first appearance."""
    seen: dict[str, None] = {}
    for match in _PLACEHOLDER.finditer(template):
        seen.setdefault(match.group(1), None)
    return list(seen)


@lru_cache(maxsize=None)
def load_template(name: str) -> str:
    """Read ``<name>.xml`` from the packaged templates.

    Raises:
        ConfigurationError: If the resource does not exist or cannot be read.
    """
    filename = f"{name}.xml"
    try:
        return (TEMPLATE_DIR / filename).read_text(encoding="utf-8")
    except FileNotFoundError:
        raise ConfigurationError(f"Resource file {filename} does not exist") from None
    except OSError as e:
        raise ConfigurationError(f"Error reading {filename}: {e}") from e


class TemplateRequest:
    """An API request rendered from an XML template.

    Subclasses declare ``versions`` and, optionally, ``template_name``
    (defaults to the class name); the template is loaded when the request
    is constructed so a missing resource fails fast.

    Usage:
        request = SiteDeleteRequest(session_id=None, sync_id="1", site_id=4)
        xml = request.to_xml()
    """

    template_name: ClassVar[str | None] = None
    versions: ClassVar[VersionRange] = VersionRange(APIVersion.V1_0, APIVersion.V1_1)
    # The session overwrites session-id on these even when the caller set one.
    force_session_token: ClassVar[bool] = False

    def __init__(
        self,
        session_id: str | None = None,
        sync_id: str | None = None,
        *,
        template: str | None = None,
    ) -> None:
        """Initialize the request.

        Args:
            session_id: Session token to send instead of the session's own.
                Only set when non-empty.
            sync_id: Caller-chosen id echoed back in the response. Only set
                when non-empty.
            template: Explicit template text. When omitted the packaged
                ``<template_name>.xml`` resource is used.
        """
        if template is None:
            template = load_template(self.template_name or type(self).__name__)
        self._template = template
        self._params: dict[str, ContentGenerator | None] = {}
        self._request_xml: str | None = None
        if session_id:
            self.set("session-id", session_id)
        if sync_id:
            self.set("sync-id", sync_id)

    @property
    def name(self) -> str:
        return type(self).__name__

    @property
    def template(self) -> str:
        return self._template

    @property
    def request_xml(self) -> str | None:
        """The body produced by the last ``to_xml()`` call, exactly as sent."""
        return self._request_xml

    def set(self, param: str, value: ContentGenerator | str | int | float | bool | None) -> None:
        """Bind *param* to a value.

        Strings (and scalars converted to their wire text) are escaped here,
        once, and wrapped in a StringContent leaf. Generators are stored as
        given. ``None`` marks the parameter as set-but-empty.
        """
        if value is None:
            self._params[param] = None
        elif isinstance(value, (str, int, float, bool)):
            self._params[param] = StringContent(xml_escape(to_wire_text(value)))
        else:
            self._params[param] = value

    def is_set(self, param: str) -> bool:
        return param in self._params

    def get(self, param: str) -> ContentGenerator | None:
        return self._params.get(param)

    @property
    def parameters(self) -> dict[str, ContentGenerator | None]:
        """A shallow copy of the parameter map."""
        return dict(self._params)

    def to_xml(self) -> str:
        """Expand the template against the parameter map and remember the result."""
        self._request_xml = expand_variables(self._template, self._params)
        return self._request_xml

    def copy(self) -> Self:
        """Return a request sharing the template but with its own parameter map."""
        clone = object.__new__(type(self))
        clone.__dict__.update(self.__dict__)
        clone._params = dict(self._params)
        return clone

    def __repr__(self) -> str:
        return f"{self.name}(params={sorted(self._params)}, versions={self.versions})"
