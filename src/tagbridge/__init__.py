"""tagbridge: a GNU GLOBAL code index served over a line-delimited JSON protocol."""

__version__ = "0.1.0"
