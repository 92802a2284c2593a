"""handprint - human edit attribution for live documents."""

__version__ = "0.1.0"
