"""
Navigation side channel. The dispatcher asks for a redirect to the login route when a
session cannot be renewed; whoever renders pages decides what that means.
"""
import logging
from typing import Callable

logger = logging.getLogger(__name__)

# Redirect history kept per navigator; older entries are dropped
MAX_REDIRECTS = 20


class Navigator:
    def __init__(self, current: str = "/", on_navigate: Callable[[str], None] | None = None) -> None:
        self.current = current
        # Most recent redirects requested through navigate(), oldest first
        self.redirects: list[str] = []
        self._on_navigate = on_navigate

    def navigate(self, route: str) -> None:
        logger.info("Navigating to %s", route)
        self.redirects.append(route)
        del self.redirects[:-MAX_REDIRECTS]
        self.current = route
        if self._on_navigate is not None:
            self._on_navigate(route)
