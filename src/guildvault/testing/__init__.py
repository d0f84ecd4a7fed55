"""In-memory doubles for exercising capture and restore without Discord."""

from .fakes import FakeGateway, FakeGuild, http_error

__all__ = ["FakeGateway", "FakeGuild", "http_error"]
