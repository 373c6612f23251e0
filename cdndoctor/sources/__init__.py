"""Config Source implementations."""
from cdndoctor.sources.base import ConfigSource
from cdndoctor.sources.fixture import FixtureConfigSource, load_document

__all__ = ["ConfigSource", "FixtureConfigSource", "load_document"]
