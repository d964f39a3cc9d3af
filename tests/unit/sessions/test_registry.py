"""Tests for SessionRegistry."""

import re

import pytest

from search_proxy.sessions.registry import SessionRegistry


class TestSessionRegistry:
    """Tests for minting and validating session ids."""

    def test_mint_format(self) -> None:
        registry = SessionRegistry(clock=lambda: 1718000000.5)

        session_id = registry.mint()

        assert re.fullmatch(r"sess_1718000000500_[0-9a-z]{9}", session_id)

    def test_minted_ids_are_unique(self) -> None:
        registry = SessionRegistry(clock=lambda: 1718000000.0)

        assert len({registry.mint() for _ in range(200)}) == 200

    @pytest.mark.parametrize(
        "session_id",
        ["sess_1718000000000_k3j9x0q2a", "sess_1_a"],
    )
    def test_valid_ids(self, session_id: str) -> None:
        assert SessionRegistry.is_valid(session_id)

    @pytest.mark.parametrize(
        "session_id",
        [None, "", "session_1_a", "sess_1718000000000_K3J9", "sess__abc", "sess_1_" + "a" * 200, "sess_1_a;drop"],
    )
    def test_invalid_ids(self, session_id: str | None) -> None:
        assert not SessionRegistry.is_valid(session_id)

    def test_ensure_keeps_valid_id(self) -> None:
        registry = SessionRegistry()

        assert registry.ensure(" sess_1718000000000_k3j9x0q2a ") == "sess_1718000000000_k3j9x0q2a"

    def test_ensure_replaces_invalid_id(self) -> None:
        registry = SessionRegistry(clock=lambda: 1.0)

        session_id = registry.ensure("garbage")

        assert session_id.startswith("sess_1000_")
        assert SessionRegistry.is_valid(session_id)

    def test_ensure_mints_when_missing(self) -> None:
        assert SessionRegistry.is_valid(SessionRegistry().ensure(None))
