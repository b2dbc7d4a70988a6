"""Mindweave - AI-assisted personal knowledge base"""

from __future__ import annotations

__version__ = "1.0.0"
