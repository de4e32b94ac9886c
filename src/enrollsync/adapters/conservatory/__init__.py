"""Conservatory backend adapter."""

from __future__ import annotations

from .backend import HttpConservatoryBackend
from .client import ConservatoryAPIError, ConservatoryClient

__all__ = ["ConservatoryAPIError", "ConservatoryClient", "HttpConservatoryBackend"]
