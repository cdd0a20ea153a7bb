"""
Section specs: which markers delimit each thesis section
"""
from __future__ import annotations

from dataclasses import dataclass, replace
from pathlib import Path
from typing import Any, Dict, List, Optional

import yaml
from loguru import logger

from .models import PipelineError


@dataclass(frozen=True)
class SectionSpec:
    """Where a section starts and ends in the cleaned thesis text"""
    key: str
    title: str
    start_marker: str
    end_marker: Optional[str] = None
    min_length: int = 50


DEFAULT_SECTION_SPECS: List[SectionSpec] = [
    SectionSpec("introduction", "Introduction", "Introduction", "Methodology"),
    SectionSpec("methodology", "Methodology", "Methodology", "Results"),
    SectionSpec("results", "Results", "Results", "Conclusion"),
    SectionSpec("conclusions", "Conclusions", "Conclusion", "References"),
]


def load_section_specs(
    path: Optional[Path],
    default_min_length: int = 50,
) -> List[SectionSpec]:
    """
    Load section specs from a YAML file

    Args:
        path: YAML file with a top-level ``sections`` list
        default_min_length: Paragraph length floor for entries that set none

    Returns:
        Parsed specs, or the built-in defaults when the file is absent
    """
    if path is None or not Path(path).exists():
        logger.debug("No section config at {}, using defaults", path)
        return [replace(spec, min_length=default_min_length) for spec in DEFAULT_SECTION_SPECS]

    try:
        raw = yaml.safe_load(Path(path).read_text(encoding="utf-8")) or {}
    except yaml.YAMLError as exc:
        raise PipelineError(f"Malformed section config: {path}") from exc

    entries = raw.get("sections") if isinstance(raw, dict) else None
    if not isinstance(entries, list) or not entries:
        raise PipelineError(f"Section config needs a non-empty 'sections' list: {path}")

    return [_spec_from_entry(entry, path, default_min_length) for entry in entries]


def _spec_from_entry(entry: Any, path: Path, default_min_length: int) -> SectionSpec:
    if not isinstance(entry, dict) or not entry.get("key") or not entry.get("start"):
        raise PipelineError(f"Section entry needs 'key' and 'start' in {path}: {entry!r}")

    key = str(entry["key"])
    data: Dict[str, Any] = {
        "key": key,
        "title": str(entry.get("title") or key.title()),
        "start_marker": str(entry["start"]),
        "end_marker": str(entry["end"]) if entry.get("end") else None,
        "min_length": default_min_length,
    }
    if entry.get("min_length") is not None:
        data["min_length"] = int(entry["min_length"])
    return SectionSpec(**data)
