"""Event planning assistant: a tool-calling chat engine over HTTP and stdio."""

__version__ = "0.1.0"
