"""Remote document store access (GitHub Gists)."""

from gistsync.remote.gist import Gist, GistClient, GistFile

__all__ = ["Gist", "GistClient", "GistFile"]
