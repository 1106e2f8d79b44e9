"""Process-wide TLS context.

The host application calls ``init()`` once, before the first session
sends anything; every session then shares the same ``ssl.SSLContext``.
The context is read-only after initialization and is never torn down.

Verification is on by default. ``insecure=True`` accepts any certificate
for any host name, for consoles still running the self-signed
certificate they were installed with; it must be asked for explicitly.
"""

from __future__ import annotations

import logging
import ssl
from dataclasses import dataclass
from threading import Lock

from nexpose_api.errors import ConfigurationError

_logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class TLSSettings:
    verify: bool = True
    ca_bundle: str | None = None


_lock = Lock()
_settings: TLSSettings | None = None
_context: ssl.SSLContext | None = None


def _build_context(settings: TLSSettings) -> ssl.SSLContext:
    context = ssl.create_default_context()
    if settings.ca_bundle:
        try:
            context.load_verify_locations(settings.ca_bundle)
        except (OSError, ssl.SSLError) as e:
            raise ConfigurationError(f"Cannot load CA bundle '{settings.ca_bundle}': {e}") from e
    if not settings.verify:
        context.check_hostname = False
        context.verify_mode = ssl.CERT_NONE
    return context


def init(verify: bool = True, ca_bundle: str | None = None, *, insecure: bool = False) -> ssl.SSLContext:
    """Create the shared TLS context.

    Args:
        verify: Verify the server certificate chain and host name.
        ca_bundle: Extra PEM bundle of trusted CAs.
        insecure: Required together with ``verify=False``; turning
            verification off without it is a ConfigurationError.

    Returns:
        The shared context.

    Raises:
        ConfigurationError: If verification is disabled without
            ``insecure=True``, the CA bundle cannot be loaded, or the
            context was already initialized with different settings.
    """
    global _settings, _context
    if not verify and not insecure:
        raise ConfigurationError(
            "Disabling certificate verification requires insecure=True"
        )
    settings = TLSSettings(verify=verify, ca_bundle=ca_bundle)
    with _lock:
        if _context is not None:
            if settings != _settings:
                raise ConfigurationError(
                    f"TLS already initialized with {_settings}; cannot re-initialize with {settings}"
                )
            return _context
        _context = _build_context(settings)
        _settings = settings
    if not verify:
        _logger.warning("TLS certificate and host name verification is DISABLED")
    return _context


def is_initialized() -> bool:
    return _context is not None


def get_context() -> ssl.SSLContext:
    """Return the shared context.

    Raises:
        ConfigurationError: If ``init()`` has not been called.
    """
    if _context is None:
        raise ConfigurationError("TLS is not initialized; call nexpose_api.tls.init() first")
    return _context


def settings() -> TLSSettings | None:
    return _settings
