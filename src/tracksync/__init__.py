"""Keep an editor's view of a project limited to git-tracked files."""

from tracksync.version import __version__

__all__ = ["__version__"]
