"""
Data models for thesis2site
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, ClassVar, Dict, List, Optional, Union

IMAGE_EXTENSIONS = (".png", ".jpg", ".jpeg")
SECTION_KEYS = ("introduction", "methodology", "results", "conclusions")

CaptionMapping = Dict[str, Dict[str, str]]


class PipelineError(RuntimeError):
    """Raised when a whole pipeline run cannot continue."""


@dataclass
class ImageRecord:
    """One figure folder: its image plus the narrative around it"""
    folder_name: str
    context_before: List[str] = field(default_factory=list)
    caption: str = ""
    context_after: List[str] = field(default_factory=list)
    image_path: str = ""
    image_filename: str = ""

    @property
    def has_valid_extension(self) -> bool:
        return Path(self.image_filename).suffix.lower() in IMAGE_EXTENSIONS

    def to_dict(self) -> Dict[str, Any]:
        return {
            "folderName": self.folder_name,
            "contextBefore": list(self.context_before),
            "caption": self.caption,
            "contextAfter": list(self.context_after),
            "imagePath": self.image_path,
            "imageFilename": self.image_filename,
        }

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ImageRecord":
        if not isinstance(data, dict) or not data.get("folderName"):
            raise PipelineError(f"Invalid image metadata entry: {data!r}")
        return cls(
            folder_name=str(data["folderName"]),
            context_before=[str(line) for line in data.get("contextBefore") or []],
            caption=str(data.get("caption") or ""),
            context_after=[str(line) for line in data.get("contextAfter") or []],
            image_path=str(data.get("imagePath") or ""),
            image_filename=str(data.get("imageFilename") or ""),
        )

    def __str__(self):
        return f"{self.folder_name} ({self.image_filename or 'no image'})"


@dataclass
class PageText:
    """Raw text of one PDF page"""
    page_number: int
    text: str

    def to_dict(self) -> Dict[str, Any]:
        return {"pageNumber": self.page_number, "text": self.text}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "PageText":
        try:
            return cls(page_number=int(data["pageNumber"]), text=str(data.get("text") or ""))
        except (KeyError, TypeError, ValueError) as exc:
            raise PipelineError(f"Invalid page entry: {data!r}") from exc


@dataclass
class TextBlock:
    """A paragraph of body text; written back in the form it was read"""
    value: str
    bare: bool = True
    source: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)
    type: ClassVar[str] = "text"

    def to_dict(self) -> Any:
        if self.bare:
            return self.value
        if self.source is None:
            return {"type": self.type, "value": self.value}
        data = dict(self.source)
        if str(self.source.get("value") or "") != self.value:
            data["value"] = self.value
        return data


@dataclass
class ImageBlock:
    """An image embedded in a content section"""
    src: str
    alt: str = ""
    caption: str = ""
    extra: Dict[str, Any] = field(default_factory=dict)
    source: Optional[Dict[str, Any]] = field(default=None, compare=False, repr=False)
    type: ClassVar[str] = "image"

    @property
    def filename(self) -> str:
        return self.src.rstrip("/").rsplit("/", 1)[-1]

    def to_dict(self) -> Dict[str, Any]:
        if self.source is None:
            data: Dict[str, Any] = {
                "type": self.type,
                "src": self.src,
                "alt": self.alt,
                "caption": self.caption,
            }
        else:
            # only fields that changed since loading are written
            data = dict(self.source)
            for key, value in (("src", self.src), ("alt", self.alt), ("caption", self.caption)):
                if str(self.source.get(key) or "") != value:
                    data[key] = value
        data.update(self.extra)
        return data


ContentBlock = Union[TextBlock, ImageBlock]


def block_from_data(item: Any) -> ContentBlock:
    """Parse one serialized content entry; bare strings are text blocks."""
    if isinstance(item, str):
        return TextBlock(value=item)
    if not isinstance(item, dict):
        raise PipelineError(f"Invalid content block: {item!r}")

    kind = item.get("type") or ("image" if "src" in item else None)
    if kind == "text":
        return TextBlock(value=str(item.get("value") or ""), bare=False, source=dict(item))
    if kind == "image":
        if not item.get("src"):
            raise PipelineError(f"Image block without src: {item!r}")
        extra = {
            key: value
            for key, value in item.items()
            if key not in {"type", "src", "alt", "caption"}
        }
        return ImageBlock(
            src=str(item["src"]),
            alt=str(item.get("alt") or ""),
            caption=str(item.get("caption") or ""),
            extra=extra,
            source=dict(item),
        )
    raise PipelineError(f"Unknown content block type: {kind!r}")


@dataclass
class ContentSection:
    """A titled, ordered list of content blocks"""
    title: str
    content: List[ContentBlock] = field(default_factory=list)
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)

    @property
    def images(self) -> List[ImageBlock]:
        return [block for block in self.content if isinstance(block, ImageBlock)]

    @property
    def paragraphs(self) -> List[str]:
        return [block.value for block in self.content if isinstance(block, TextBlock)]

    def to_dict(self) -> Dict[str, Any]:
        fields: Dict[str, Any] = {
            "title": self.title,
            "content": [block.to_dict() for block in self.content],
        }
        fields.update(self.extra)
        if self.key_order and "title" not in self.key_order and not self.title:
            del fields["title"]
        keys = self.key_order or ["title", "content"]
        keys = list(keys) + [key for key in fields if key not in keys]
        return {key: fields[key] for key in keys if key in fields}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentSection":
        return cls(
            title=str(data.get("title") or ""),
            content=[block_from_data(item) for item in data["content"]],
            extra={key: value for key, value in data.items() if key not in {"title", "content"}},
            key_order=list(data.keys()),
        )

    def __str__(self):
        return f"{self.title} ({len(self.content)} blocks)"


@dataclass
class ContentDocument:
    """Section-keyed document rendered by the site"""
    sections: Dict[str, ContentSection] = field(default_factory=dict)
    extra: Dict[str, Any] = field(default_factory=dict)
    key_order: List[str] = field(default_factory=list)

    def iter_images(self):
        """Yield (section key, block index, image block) for every image."""
        for key, section in self.sections.items():
            for index, block in enumerate(section.content):
                if isinstance(block, ImageBlock):
                    yield key, index, block

    def to_dict(self) -> Dict[str, Any]:
        data: Dict[str, Any] = {}
        keys = list(self.key_order)
        keys += [key for key in self.sections if key not in keys]
        keys += [key for key in self.extra if key not in keys]
        for key in keys:
            if key in self.sections:
                data[key] = self.sections[key].to_dict()
            elif key in self.extra:
                data[key] = self.extra[key]
        return data

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), ensure_ascii=False, indent=2) + "\n"

    def save(self, filepath: str) -> None:
        """Save document as JSON"""
        output = Path(filepath)
        output.parent.mkdir(parents=True, exist_ok=True)
        output.write_text(self.to_json(), encoding="utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "ContentDocument":
        if not isinstance(data, dict):
            raise PipelineError("Content document must be a JSON object.")

        document = cls(key_order=list(data.keys()))
        for key, value in data.items():
            if _looks_like_section(key, value):
                document.sections[key] = ContentSection.from_dict(value)
            else:
                document.extra[key] = value
        return document

    @classmethod
    def load(cls, filepath: str) -> "ContentDocument":
        """Load document from a JSON file"""
        path = Path(filepath)
        if not path.exists():
            raise FileNotFoundError(f"Content document not found: {path}")
        try:
            data = json.loads(path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as exc:
            raise PipelineError(f"Malformed content document: {path}") from exc
        return cls.from_dict(data)

    def section(self, key: str) -> Optional[ContentSection]:
        return self.sections.get(key)

    def __str__(self):
        return f"ContentDocument({', '.join(self.sections) or 'empty'})"


def _looks_like_section(key: str, value: Any) -> bool:
    if key in SECTION_KEYS:
        if not isinstance(value, dict) or not isinstance(value.get("content"), list):
            raise PipelineError(f"Section '{key}' must have a content list.")
        return True
    return (
        isinstance(value, dict)
        and isinstance(value.get("content"), list)
        and set(value.keys()) <= {"title", "content"}
    )
