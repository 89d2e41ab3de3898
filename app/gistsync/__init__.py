"""gistsync - keep installed winget packages in sync with a GitHub Gist."""

__version__ = "0.4.0"
