"""
thesis2site - Extract thesis content for the website

This package provides the authoring stages that turn the thesis PDF,
figure folders and caption table into the files the website renders:
image metadata, published images and the section-keyed content document.
"""

__version__ = "0.1.0"
__license__ = "MIT"

from .models import ContentDocument, ImageRecord
from .pipeline import ThesisPipeline

__all__ = [
    "ContentDocument",
    "ImageRecord",
    "ThesisPipeline",
]
