"""SessionRegistry - validates and mints opaque session identifiers.

Format: ``sess_<epoch-ms>_<9 base36 chars>``. The registry is stateless;
clients persist the id and send it back with later searches and clicks.
"""

import re
import secrets
import string
import time
from collections.abc import Callable


SESSION_PREFIX = "sess_"
SUFFIX_LENGTH = 9
MAX_SESSION_ID_LENGTH = 128

_ALPHABET = string.digits + string.ascii_lowercase
_SESSION_PATTERN = re.compile(r"^sess_[0-9a-z]+_[0-9a-z]+$")


class SessionRegistry:
    """Issues and validates session ids.

    Uniqueness is best-effort: the millisecond timestamp plus 9 random
    base36 characters (~46 bits) make collisions between concurrent
    requests in the same millisecond unlikely.

    Example:
        >>> registry = SessionRegistry()
        >>> registry.ensure(None)
        'sess_1718000000000_k3j9x0q2a'
        >>> registry.ensure("sess_1718000000000_k3j9x0q2a")
        'sess_1718000000000_k3j9x0q2a'
    """

    def __init__(self, clock: Callable[[], float] = time.time) -> None:
        """Initialize the registry.

        Args:
            clock: Returns the current epoch time in seconds
        """
        self._clock = clock

    @staticmethod
    def is_valid(session_id: str | None) -> bool:
        """Check whether a session id is syntactically valid."""
        if not session_id or len(session_id) > MAX_SESSION_ID_LENGTH:
            return False
        return _SESSION_PATTERN.match(session_id) is not None

    def mint(self) -> str:
        """Create a new session id."""
        millis = int(self._clock() * 1000)
        suffix = "".join(secrets.choice(_ALPHABET) for _ in range(SUFFIX_LENGTH))
        return f"{SESSION_PREFIX}{millis}_{suffix}"

    def ensure(self, existing_id: str | None) -> str:
        """Return ``existing_id`` if valid, otherwise a freshly minted id."""
        if existing_id is not None:
            existing_id = existing_id.strip()
        if self.is_valid(existing_id):
            return existing_id  # type: ignore[return-value]
        return self.mint()
