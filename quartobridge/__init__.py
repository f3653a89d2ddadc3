"""quartobridge: preview, render, and create Quarto projects from a notes vault."""

__version__ = "0.1.0"
