"""Destination resolution for matched rules."""

from __future__ import annotations

import logging
import os
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Dict, Mapping, Optional, Union

from sortora.ingestion.models import FileDescriptor
from sortora.rules.models import Rule

from .filename_analyzer import DEFAULT_FOLDER, analyze_filename, sanitize_component

LOGGER = logging.getLogger(__name__)

Variables = Dict[str, Union[str, int]]

FREE_TEXT_LIMIT = 100
_TOKEN = re.compile(r"\{([^{}]+)\}")
_OFFICE_EXTENSIONS = {"pdf", "docx", "doc", "xlsx", "xls", "pptx", "ppt"}
_GENERIC_DOCUMENT_FOLDER = "Documents"
_FREE_TEXT_KEYS = (
    ("artist", "audio.artist"),
    ("album", "audio.album"),
    ("author", "doc.author"),
    ("title", "doc.title"),
)


class ResolutionMode(str, Enum):
    """Where resolved destinations live."""

    LOCAL = "local"
    GLOBAL = "global"


def interpolate_path(template: str, variables: Mapping[str, Union[str, int]]) -> str:
    """Substitute ``{key}`` tokens; unknown tokens are left verbatim."""

    def _replace(match: re.Match[str]) -> str:
        key = match.group(1)
        if key in variables:
            return str(variables[key])
        return match.group(0)

    return _TOKEN.sub(_replace, template)


def append_filename(directory: Path, filename: str) -> Path:
    """Return ``directory/filename`` unless ``directory`` already ends with it."""

    if directory.name == filename:
        return directory
    return directory / filename


class DestinationResolver:
    """Turn a matched rule and a file into a concrete target path.

    Args:
        destinations: Named destination aliases exposed to templates as
            ``{destinations.<name>}``.
    """

    def __init__(self, destinations: Optional[Mapping[str, str]] = None) -> None:
        self._destinations = dict(destinations or {})

    def resolve(
        self,
        file: FileDescriptor,
        rule: Rule,
        mode: ResolutionMode = ResolutionMode.GLOBAL,
        base_dir: Optional[Path] = None,
    ) -> Optional[Path]:
        """Resolve the destination path for ``file`` under ``rule``.

        Args:
            file: File being organized.
            rule: Matched rule.
            mode: ``GLOBAL`` uses the rule template and configured aliases,
                ``LOCAL`` organizes beneath ``base_dir``.
            base_dir: Root for local organization.

        Returns:
            Optional[Path]: Full target path including the filename, or None
            for delete rules and rules without a usable template.

        Raises:
            ValueError: If ``mode`` is ``LOCAL`` and ``base_dir`` is missing.
        """

        if rule.action.delete:
            return None

        variables = self.build_variables(file)
        if mode is ResolutionMode.LOCAL:
            if base_dir is None:
                raise ValueError("Local resolution requires a base directory.")
            folder = self.local_folder(file, rule, variables)
            return append_filename(Path(base_dir).expanduser() / folder, file.filename)

        template = rule.action.template
        if not template:
            return None
        for alias, target in self._destinations.items():
            variables[f"destinations.{alias}"] = target
        expanded = os.path.expanduser(interpolate_path(template, variables))
        destination = append_filename(Path(expanded), file.filename)
        LOGGER.debug("Resolved %s via %r to %s", file.filename, rule.name, destination)
        return destination

    def build_variables(self, file: FileDescriptor) -> Variables:
        """Return the flat, ordered interpolation variables for ``file``."""

        metadata = file.metadata or {}
        taken = file.date_taken
        year = _year_of(file, taken)
        month = taken.month if taken else file.modified.month

        variables: Variables = {
            "year": year,
            "month": f"{month:02d}",
            "filename": file.filename,
            "extension": file.extension,
            "category": file.category,
        }
        if taken is not None:
            variables["exif.year"] = taken.year
            variables["exif.month"] = f"{taken.month:02d}"
        for meta_key, variable in _FREE_TEXT_KEYS:
            value = metadata.get(meta_key)
            if isinstance(value, str):
                cleaned = sanitize_component(value, FREE_TEXT_LIMIT)
                if cleaned:
                    variables[variable] = cleaned
        return variables

    def local_folder(self, file: FileDescriptor, rule: Rule, variables: Variables) -> str:
        """Return the folder (relative to the base directory) for local mode."""

        if rule.local_destination:
            return interpolate_path(rule.local_destination, variables)

        category = file.category
        rule_name = rule.name.lower()

        if category == "document" or file.extension in _OFFICE_EXTENSIONS:
            suggested = analyze_filename(file.filename).suggested_folder
            if suggested and suggested != _GENERIC_DOCUMENT_FOLDER:
                return suggested

        if ("photo" in rule_name or category == "image") and file.date_taken is not None:
            return interpolate_path("Photos/{exif.year}/{exif.month}", variables)

        if "screenshot" in rule_name:
            analysis = analyze_filename(file.filename)
            if analysis.year:
                month = f"{analysis.month:02d}" if analysis.month else variables["month"]
                return f"Screenshots/{analysis.year}-{month}"
            return interpolate_path("Screenshots/{year}-{month}", variables)

        if "music" in rule_name or "audio" in rule_name or category == "audio":
            artist = variables.get("audio.artist")
            album = variables.get("audio.album")
            if artist and album:
                return f"Music/{artist}/{album}"
            if artist:
                return f"Music/{artist}"
            return "Music/Unsorted"

        if category == "video":
            return interpolate_path("Videos/{year}", variables)

        if category == "archive":
            entity = analyze_filename(file.filename).entity
            return f"Archives/{sanitize_component(entity)}" if entity else "Archives"

        if category == "code":
            analysis = analyze_filename(file.filename)
            return analysis.suggested_folder if analysis.language else "Code"

        if category == "executable" or "installer" in rule_name:
            return "Installers"
        if "ebook" in rule_name or "book" in rule_name:
            return "Books"
        for keyword, folder in (
            ("font", "Fonts"),
            ("design", "Design"),
            ("torrent", "Torrents"),
            ("log", "Logs"),
        ):
            if keyword in rule_name:
                return folder

        if category == "image":
            return interpolate_path("Images/{year}", variables)
        if category == "data":
            return "Data"

        suggested = analyze_filename(file.filename).suggested_folder
        if suggested and suggested not in (_GENERIC_DOCUMENT_FOLDER, DEFAULT_FOLDER):
            return suggested
        return _GENERIC_DOCUMENT_FOLDER if category == "document" else DEFAULT_FOLDER


def _year_of(file: FileDescriptor, taken: Optional[datetime]) -> int:
    if taken is not None:
        return taken.year
    metadata_year = (file.metadata or {}).get("year")
    if isinstance(metadata_year, int) and not isinstance(metadata_year, bool):
        return metadata_year
    return file.modified.year


__all__ = [
    "DestinationResolver",
    "ResolutionMode",
    "Variables",
    "append_filename",
    "interpolate_path",
]
