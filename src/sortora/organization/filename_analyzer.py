"""Filename heuristics used to build meaningful local folder structures.

The analyzer only looks at the name itself: it detects document types
(English and Russian vocabulary), organisation or person names, dates,
and, for source files, the language and the kind of file.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable, Optional

DEFAULT_FOLDER = "Other"
_FOLDER_NAME_LIMIT = 50
_UNSAFE_CHARS = re.compile(r'[<>:"/\\|?*\x00-\x1f\x7f]')
_WHITESPACE = re.compile(r"\s+")


def _patterns(*sources: str, flags: int = re.IGNORECASE) -> tuple[re.Pattern[str], ...]:
    return tuple(re.compile(source, flags) for source in sources)


DOCUMENT_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "contract": _patterns("договор", "контракт", "соглашени", "contract", "agreement"),
    "invoice": _patterns("счёт", "счет", "инвойс", "оплат", "invoice", "bill", "payment"),
    "receipt": _patterns("чек", "квитанци", "receipt"),
    "resume": _patterns("резюме", "cv", "resume", "curriculum"),
    "report": _patterns("отчёт", "отчет", "report", "анализ", "analysis"),
    "presentation": _patterns("презентаци", "presentation", "слайд", "slide"),
    "letter": _patterns("письмо", "letter", "заявлени", "application"),
    "certificate": _patterns(
        "сертификат", "certificate", "диплом", "diploma", "лицензи", "license"
    ),
    "manual": _patterns("инструкци", "руководств", "manual", "guide", "tutorial"),
    "proposal": _patterns("предложени", "proposal", "коммерческ", "commercial"),
    "act": _patterns("акт", "act", "протокол", "protocol"),
    "order": _patterns("заказ", "order", "приказ"),
    "screenshot": _patterns("снимок", "screenshot", "screen shot", "capture", "скриншот"),
    "photo": _patterns("фото", "photo", "img_", "dsc_", "image"),
}

DOCUMENT_FOLDERS = {
    "contract": "Contracts",
    "invoice": "Finance/Invoices",
    "receipt": "Finance/Receipts",
    "resume": "Documents/Resumes",
    "report": "Documents/Reports",
    "presentation": "Documents/Presentations",
    "letter": "Documents/Letters",
    "certificate": "Documents/Certificates",
    "manual": "Documents/Manuals",
    "proposal": "Documents/Proposals",
    "act": "Documents/Acts",
    "order": "Documents/Orders",
    "screenshot": "Screenshots",
    "photo": "Photos",
}

_YEARLY_DOCUMENT_TYPES = {"contract", "invoice", "receipt", "report", "act"}

_ENTITY_PATTERNS = (
    # Russian legal forms: "ИП Name", "ООО «Name»"
    re.compile(
        r"(?:ип|ооо|оао|зао|пао)\s+[«\"]?([А-ЯЁа-яёA-Za-z]+(?:\s+[А-ЯЁа-яёA-Za-z]+){0,2})[»\"]?",
        re.IGNORECASE,
    ),
    re.compile(r"([A-Z][a-zA-Z]+(?:\s+[A-Z][a-zA-Z]+){0,2})\s+(?:Inc|LLC|Ltd|Corp|GmbH|AG)", re.IGNORECASE),
    # First-Last-Resume
    re.compile(r"^([A-Z][a-z]+[-_][A-Z][a-z]+)[-_](?:resume|cv|договор|контракт|contract)", re.IGNORECASE),
    re.compile(
        r"(?:invoice|счет|счёт|contract|договор)[-_]([A-Za-zА-Яа-яЁё]+(?:[-_][A-Za-zА-Яа-яЁё]+)?)",
        re.IGNORECASE,
    ),
    re.compile(r"\[([^\]]+)\]"),
    re.compile(r"\(([^)]+)\)"),
)
_ENTITY_SUFFIX = re.compile(r"[-_](resume|cv|договор|контракт|contract|invoice|счет|счёт)$", re.IGNORECASE)

# (pattern, year group, month group)
_DATE_PATTERNS: tuple[tuple[re.Pattern[str], int, Optional[int]], ...] = (
    (re.compile(r"\b(20\d{2})[-_]?(0[1-9]|1[0-2])[-_]?(0[1-9]|[12]\d|3[01])\b"), 1, 2),
    (re.compile(r"\b(0[1-9]|[12]\d|3[01])[-.](0[1-9]|1[0-2])[-.](20\d{2})\b"), 3, 2),
    (re.compile(r"\b(20\d{2})\b"), 1, None),
    (
        re.compile(
            r"\b(январ|феврал|март|апрел|ма[йя]|июн|июл|август|сентябр|октябр|ноябр|декабр"
            r"|january|february|march|april|may|june|july|august|september|october|november|december)"
            r"[а-я]*\s*(20\d{2})\b",
            re.IGNORECASE,
        ),
        2,
        None,
    ),
)

_STOP_WORDS = re.compile(r"^(the|and|для|или|копия|copy|final|new|old|draft)$", re.IGNORECASE)

LANGUAGE_BY_EXTENSION = {
    "js": "JavaScript",
    "jsx": "React",
    "ts": "TypeScript",
    "tsx": "React TypeScript",
    "py": "Python",
    "rb": "Ruby",
    "go": "Go",
    "rs": "Rust",
    "java": "Java",
    "kt": "Kotlin",
    "scala": "Scala",
    "cpp": "C++",
    "c": "C",
    "cs": "C#",
    "php": "PHP",
    "swift": "Swift",
    "vue": "Vue",
    "svelte": "Svelte",
    "sql": "SQL",
    "sh": "Shell",
    "bash": "Bash",
    "ps1": "PowerShell",
}

# Order matters: the first matching code type wins.
CODE_TYPE_PATTERNS: dict[str, tuple[re.Pattern[str], ...]] = {
    "component": (
        *_patterns(r"component", r"\.component\."),
        *_patterns(r"^[A-Z][a-z]+\.", r"\.vue$", r"\.svelte$", r"\.jsx$", r"\.tsx$", flags=0),
    ),
    "config": (
        *_patterns(r"config", r"\.config\.", r"settings", r"\.rc$", r"dockerfile"),
        *_patterns(
            r"webpack", r"vite", r"rollup", r"babel", r"eslint", r"prettier", r"tsconfig",
            r"package\.json", r"docker-compose", r"\.env", r"\.yaml$", r"\.yml$", r"\.toml$",
            flags=0,
        ),
    ),
    "util": _patterns("util", "helper", "lib", "common", "shared"),
    "test": _patterns(r"\.test\.", r"\.spec\.", r"_test\.", r"test_", r"\.test$", r"\.spec$"),
    "style": (
        *_patterns(r"\.css$", r"\.scss$", r"\.sass$", r"\.less$", r"\.styl$", flags=0),
        *_patterns("style", "theme"),
    ),
    "doc": (
        *_patterns("readme", "changelog", "license", "contributing"),
        *_patterns(r"\.md$", r"\.rst$", r"\.txt$", flags=0),
    ),
    "data": (
        *_patterns("schema", "migration", "seed", "fixture", "data"),
        *_patterns(r"\.sql$", r"\.json$", flags=0),
    ),
    "script": (
        *_patterns("script", "build", "deploy", "install"),
        *_patterns(r"\.sh$", r"\.bash$", r"\.ps1$", r"\.bat$", flags=0),
    ),
}

CODE_TYPE_FOLDERS = {
    "component": "Components",
    "config": "Config",
    "util": "Utils",
    "test": "Tests",
    "style": "Styles",
    "doc": "Docs",
    "data": "Data",
    "script": "Scripts",
}


@dataclass(slots=True)
class FilenameAnalysis:
    """Facts derived from a filename.

    Attributes:
        suggested_folder: Relative folder such as ``Finance/Invoices/Acme/2024``.
        keywords: Up to five significant words from the name.
        document_type: Detected document kind (``invoice``, ``resume``, ...).
        entity: Organisation, person, or project name.
        year: Year found in the name.
        month: Month found in the name.
        language: Programming language for source files.
        code_type: Kind of source file (``component``, ``test``, ...).
    """

    suggested_folder: str = DEFAULT_FOLDER
    keywords: list[str] = field(default_factory=list)
    document_type: Optional[str] = None
    entity: Optional[str] = None
    year: Optional[int] = None
    month: Optional[int] = None
    language: Optional[str] = None
    code_type: Optional[str] = None


def sanitize_component(value: str, limit: int = _FOLDER_NAME_LIMIT) -> str:
    """Make ``value`` safe as a single path component.

    Removes ``<>:"/\\|?*`` and control characters, collapses whitespace,
    trims, and truncates to ``limit`` characters.
    """

    cleaned = _UNSAFE_CHARS.sub("", value)
    cleaned = _WHITESPACE.sub(" ", cleaned).strip()
    return cleaned[:limit].rstrip()


def analyze_filename(filename: str) -> FilenameAnalysis:
    """Analyze ``filename`` and suggest a folder for it.

    Args:
        filename: Final path component, including the extension.

    Returns:
        FilenameAnalysis: Detected facts and the suggested relative folder.
    """

    analysis = FilenameAnalysis()
    stem = re.sub(r"\.[^.]+$", "", filename)
    extension = filename.rsplit(".", 1)[-1].lower() if "." in filename else ""

    language = LANGUAGE_BY_EXTENSION.get(extension)
    if language:
        analysis.language = language
        analysis.code_type = _first_matching(CODE_TYPE_PATTERNS, filename)
        analysis.suggested_folder = _code_folder(analysis)
        return analysis

    analysis.document_type = _first_matching(DOCUMENT_PATTERNS, stem)
    analysis.entity = _extract_entity(stem)
    analysis.year, analysis.month = _extract_date(stem)
    analysis.keywords = [
        word
        for word in re.sub(r"[_\-.]", " ", stem).split()
        if len(word) > 3 and not _STOP_WORDS.match(word)
    ][:5]
    analysis.suggested_folder = _document_folder(analysis)
    return analysis


def suggest_group_folder(filenames: Iterable[str]) -> Optional[str]:
    """Return a shared ``<type>/<entity>`` folder when all names agree, else None."""

    names = list(filenames)
    if len(names) < 2:
        return None
    analyses = [analyze_filename(name) for name in names]
    types = {item.document_type for item in analyses if item.document_type}
    entities = {item.entity for item in analyses if item.entity}
    if len(types) == 1 and len(entities) == 1:
        return f"{types.pop()}/{entities.pop()}"
    return None


def _first_matching(table: dict[str, tuple[re.Pattern[str], ...]], text: str) -> Optional[str]:
    for name, patterns in table.items():
        if any(pattern.search(text) for pattern in patterns):
            return name
    return None


def _extract_entity(stem: str) -> Optional[str]:
    for pattern in _ENTITY_PATTERNS:
        match = pattern.search(stem)
        if not match or not match.group(1):
            continue
        entity = _ENTITY_SUFFIX.sub("", match.group(1).strip())
        entity = " ".join(
            word[:1].upper() + word[1:].lower() for word in re.split(r"[-_\s]+", entity) if word
        )
        if 2 < len(entity) < 50:
            return entity
    return None


def _extract_date(stem: str) -> tuple[Optional[int], Optional[int]]:
    for pattern, year_group, month_group in _DATE_PATTERNS:
        match = pattern.search(stem)
        if not match:
            continue
        year = int(match.group(year_group))
        month = int(match.group(month_group)) if month_group else None
        return year, month
    return None, None


def _code_folder(analysis: FilenameAnalysis) -> str:
    parts = ["Code"]
    language = analysis.language or ""
    if "React" in language:
        parts.append("React")
    elif language:
        parts.append(language)
    if analysis.code_type:
        parts.append(CODE_TYPE_FOLDERS.get(analysis.code_type, "Src"))
    return "/".join(parts)


def _document_folder(analysis: FilenameAnalysis) -> str:
    parts = [DOCUMENT_FOLDERS.get(analysis.document_type or "", "Documents")]
    if analysis.entity:
        parts.append(sanitize_component(analysis.entity))
    if analysis.year and analysis.document_type in _YEARLY_DOCUMENT_TYPES:
        parts.append(str(analysis.year))
    if analysis.document_type == "screenshot" and analysis.year:
        parts.append(f"{analysis.year}-{analysis.month or 1:02d}")
    return "/".join(parts)


__all__ = [
    "CODE_TYPE_FOLDERS",
    "DEFAULT_FOLDER",
    "DOCUMENT_FOLDERS",
    "FilenameAnalysis",
    "LANGUAGE_BY_EXTENSION",
    "analyze_filename",
    "sanitize_component",
    "suggest_group_folder",
]
