"""tracedebug configuration."""

from __future__ import annotations

import os
from dataclasses import dataclass

from tracedebug.models import OrphanPolicy


@dataclass
class TracedebugConfig:
    """Configuration for tracedebug."""

    api_endpoint: str = "https://api.epsagon.com"
    """Base URL of the Epsagon API."""

    api_token: str | None = None
    """Bearer token used when a call does not supply its own."""

    time_frame: str = "last_week"
    """Search window passed to the trace search query."""

    timeout: float = 30.0
    """Seconds to wait for each backend response."""

    orphan_policy: OrphanPolicy = OrphanPolicy.APPEND
    """How spans that never reach a root span are handled."""

    server_host: str = "127.0.0.1"
    """Host to bind the API server to."""

    server_port: int = 8746
    """Port for the API server."""

    @classmethod
    def from_env(cls) -> TracedebugConfig:
        """Build a config from ``EPSAGON_*`` / ``TRACEDEBUG_*`` variables."""
        defaults = cls()
        return cls(
            api_endpoint=os.getenv("EPSAGON_API_ENDPOINT", defaults.api_endpoint),
            api_token=os.getenv("EPSAGON_TOKEN") or None,
            time_frame=os.getenv("TRACEDEBUG_TIME_FRAME", defaults.time_frame),
            timeout=float(os.getenv("TRACEDEBUG_TIMEOUT", str(defaults.timeout))),
            orphan_policy=OrphanPolicy(
                os.getenv("TRACEDEBUG_ORPHANS", defaults.orphan_policy.value)
            ),
        )
