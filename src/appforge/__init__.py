"""Generated single-page app service: generate, publish, notify."""

__version__ = "0.1.0"
