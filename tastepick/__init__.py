"""TastePick: taste-vector recommendations over an embedded content catalogue."""

__version__ = "0.1.0"
