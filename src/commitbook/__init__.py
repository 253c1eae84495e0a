"""Turn a git repository's commit history into tutorial steps."""

__version__ = "0.1.0"
