"""Sprint-level pull request delivery metrics."""

__version__ = "0.1.0"
