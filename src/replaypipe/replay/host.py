# src/replaypipe/replay/host.py
"""Default host environment."""

from dataclasses import dataclass, field

import structlog

from replaypipe.contracts.session import Viewport

logger = structlog.get_logger(__name__)


@dataclass
class StaticHostEnvironment:
    """Host environment with fixed page context and a settable user.

    Used when the pipeline runs outside a browser (CLI, tests) or when the
    embedding application supplies page context once at startup.
    """

    url: str = ""
    user_agent: str = ""
    viewport: Viewport = field(default_factory=Viewport)
    device_pixel_ratio: float = 1.0
    user_id: str | None = None

    def identify(self, user_id: str) -> None:
        """Set the identified user for subsequent envelopes."""
        if not user_id:
            raise ValueError("user_id must be a non-empty string")
        self.user_id = user_id
        logger.debug("Host user identified", user_id=user_id)

    def reset_identity(self) -> None:
        self.user_id = None
