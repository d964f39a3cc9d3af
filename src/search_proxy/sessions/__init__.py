"""Session identifiers correlating a client's searches and clicks."""

from search_proxy.sessions.registry import SessionRegistry


__all__ = ["SessionRegistry"]
