"""coderag: semantic index of a source tree for code review."""

__version__ = "0.1.0"
