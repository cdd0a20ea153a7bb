"""
Runtime settings for thesis2site
"""
from __future__ import annotations

from pathlib import Path
from typing import List, Optional

from pydantic import Field
from pydantic_settings import BaseSettings, SettingsConfigDict


class Settings(BaseSettings):
    model_config = SettingsConfigDict(
        env_prefix="THESIS2SITE_",
        env_file=".env",
        env_file_encoding="utf-8",
        extra="ignore",
    )

    # Workspace layout, relative to root
    root: Path = Path(".")
    source_dir: str = "thesis_images_context"
    metadata_path: str = "data/image-metadata.json"
    captions_path: str = "data/image-captions.json"
    mapping_path: str = "data/image-filename-mapping.json"
    pages_path: str = "data/extracted-pages.json"
    content_path: str = "content/thesis-content.json"
    public_dir: str = "public/images"
    pdf_path: str = "public/thesis.pdf"
    slides_path: str = "public/presentation.pptx"
    sections_config: str = "sections.yaml"

    # Extraction
    context_filenames: List[str] = Field(default_factory=lambda: ["info.txt", "context.txt"])
    public_prefix: str = "/images"
    min_image_bytes: int = 0
    min_paragraph_length: int = 50
    header_patterns: Optional[List[str]] = None
    repeat_threshold: int = 3

    def resolve(self, relative: str) -> Path:
        path = Path(relative).expanduser()
        if path.is_absolute():
            return path
        return (self.root / path).resolve()
