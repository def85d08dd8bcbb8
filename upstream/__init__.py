"""UpStream project data: milestone entities over a post/post-meta store."""

__version__ = "1.24.0"
