"""Greeter: a tiny server-pushed greeting service over WebSockets."""

__version__ = "0.1.0"
