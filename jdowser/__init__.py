"""jdowser: discover Java runtime installations on a host."""

__version__ = "0.1.0"
