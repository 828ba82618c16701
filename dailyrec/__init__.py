"""dailyrec: Daily.co recording automation and webhook receiver."""

__version__ = "0.1.0"
