"""annosync: merge reading-app highlights and reviews into a Markdown vault."""

__version__ = "0.3.0"
