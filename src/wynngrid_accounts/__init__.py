"""Wynngrid account service: registration, verification and sign-in."""

__version__ = "0.1.0"
