"""Card Snapshots - cached screenshots of cards for link previews."""

__version__ = "0.1.0"
