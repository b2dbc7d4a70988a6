"""
Content items - the notes, links and files a user captures.
"""

from mindweave.content.models import ContentCreate, ContentItem, ContentType
from mindweave.content.repository import ContentRepository

__all__ = [
    "ContentCreate",
    "ContentItem",
    "ContentRepository",
    "ContentType",
]
