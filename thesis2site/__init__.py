"""
thesis2site - Extract thesis content for the website

This is the main public API module.
"""

from .core.models import ContentDocument, ImageRecord
from .core.pipeline import ThesisPipeline

__version__ = "0.1.0"
__all__ = [
    "ThesisPipeline",
    "ContentDocument",
    "ImageRecord",
]
