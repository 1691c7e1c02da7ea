"""Bundle selected files of a directory, optionally with their diffs, into one text."""

__version__ = "1.1.3"
