"""Packages installers into .intunewin archives through IntuneWinAppUtil."""

__version__ = "1.0.0"
