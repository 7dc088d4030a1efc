"""Built-in rules applied after any user-defined rules."""

from __future__ import annotations

from typing import Any, List

from .models import Rule

_DEFAULT_RULE_DATA: List[dict[str, Any]] = [
    {
        "name": "Screenshots",
        "priority": 100,
        "match": {
            "extension": ["png", "jpg", "jpeg"],
            "filename": ["Screenshot*", "Screen Shot*", "Capture*", "Снимок*", "Снимок экрана*"],
        },
        "action": {"move_to": "{destinations.screenshots}/{year}-{month}/"},
    },
    {
        "name": "Photos with EXIF",
        "priority": 90,
        "match": {
            "extension": ["jpg", "jpeg", "heic", "heif", "raw", "cr2", "nef", "arw", "dng"],
            "has_exif": True,
        },
        "action": {"move_to": "{destinations.photos}/{exif.year}/{exif.month}/"},
    },
    {
        "name": "Design files",
        "priority": 85,
        "match": {"extension": ["psd", "ai", "sketch", "fig", "xd", "svg"]},
        "action": {"suggest_to": "{destinations.photos}/Design/"},
    },
    {
        "name": "Config files",
        "priority": 80,
        "match": {"extension": ["json", "yaml", "yml", "toml", "ini", "env"]},
        "action": {"suggest_to": "{destinations.code}/Config/"},
    },
    {
        "name": "Frontend components",
        "priority": 75,
        "match": {"extension": ["jsx", "tsx", "vue", "svelte"]},
        "action": {"suggest_to": "{destinations.code}/Components/"},
    },
    {
        "name": "JavaScript/TypeScript",
        "priority": 70,
        "match": {"extension": ["js", "ts", "mjs", "cjs"]},
        "action": {"suggest_to": "{destinations.code}/JavaScript/"},
    },
    {
        "name": "Python scripts",
        "priority": 70,
        "match": {"extension": ["py", "pyw", "ipynb"]},
        "action": {"suggest_to": "{destinations.code}/Python/"},
    },
    {
        "name": "Go files",
        "priority": 70,
        "match": {"extension": ["go"]},
        "action": {"suggest_to": "{destinations.code}/Go/"},
    },
    {
        "name": "Database files",
        "priority": 75,
        "match": {"extension": ["sql"]},
        "action": {"suggest_to": "{destinations.code}/Database/"},
    },
    {
        "name": "Stylesheets",
        "priority": 70,
        "match": {"extension": ["css", "scss", "sass", "less", "styl"]},
        "action": {"suggest_to": "{destinations.code}/Styles/"},
    },
    {
        "name": "Shell scripts",
        "priority": 70,
        "match": {"extension": ["sh", "bash", "zsh", "ps1", "bat", "cmd"]},
        "action": {"suggest_to": "{destinations.code}/Scripts/"},
    },
    {
        "name": "Code files",
        "priority": 60,
        "match": {"type": "code"},
        "action": {"suggest_to": "{destinations.code}/"},
    },
    {
        "name": "Other images",
        "priority": 80,
        "match": {"type": "image"},
        "action": {"suggest_to": "{destinations.photos}/Unsorted/"},
    },
    {
        "name": "Resumes",
        "priority": 95,
        "match": {
            "extension": ["pdf", "docx", "doc"],
            "filename": ["*resume*", "*cv*", "*резюме*"],
        },
        "action": {"move_to": "{destinations.documents}/Resumes/"},
    },
    {
        "name": "Invoices",
        "priority": 90,
        "match": {
            "extension": ["pdf"],
            "filename": ["*invoice*", "*receipt*", "*счёт*", "*чек*"],
        },
        "action": {"move_to": "{destinations.finance}/Invoices/{year}/"},
    },
    {
        "name": "Contracts",
        "priority": 90,
        "match": {
            "extension": ["pdf", "docx", "doc"],
            "filename": ["*contract*", "*agreement*", "*договор*"],
        },
        "action": {"move_to": "{destinations.documents}/Contracts/{year}/"},
    },
    {
        "name": "E-books",
        "priority": 85,
        "match": {"extension": ["epub", "mobi", "azw", "azw3", "fb2", "djvu"]},
        "action": {"move_to": "{destinations.documents}/Books/"},
    },
    {
        "name": "PDF documents",
        "priority": 70,
        "match": {"extension": ["pdf"]},
        "action": {"suggest_to": "{destinations.documents}/{year}/"},
    },
    {
        "name": "Spreadsheets",
        "priority": 75,
        "match": {"extension": ["xlsx", "xls", "csv", "numbers", "ods"]},
        "action": {"suggest_to": "{destinations.documents}/Spreadsheets/{year}/"},
    },
    {
        "name": "Presentations",
        "priority": 75,
        "match": {"extension": ["pptx", "ppt", "key", "odp"]},
        "action": {"suggest_to": "{destinations.documents}/Presentations/{year}/"},
    },
    {
        "name": "Office documents",
        "priority": 70,
        "match": {"extension": ["docx", "doc", "odt", "rtf", "pages"]},
        "action": {"suggest_to": "{destinations.documents}/{year}/"},
    },
    {
        "name": "Text files",
        "priority": 65,
        "match": {"extension": ["txt", "md", "markdown", "rst"]},
        "action": {"suggest_to": "{destinations.documents}/Notes/"},
    },
    {
        "name": "Music files",
        "priority": 85,
        "match": {"extension": ["mp3", "flac", "wav", "aac", "ogg", "m4a", "wma", "alac"]},
        "action": {"move_to": "{destinations.music}/{audio.artist}/{audio.album}/"},
    },
    {
        "name": "Video files",
        "priority": 85,
        "match": {"extension": ["mp4", "mkv", "avi", "mov", "webm", "wmv", "flv", "m4v", "3gp"]},
        "action": {"suggest_to": "{destinations.video}/{year}/"},
    },
    {
        "name": "Code archives",
        "priority": 80,
        "match": {
            "extension": ["zip", "tar", "gz"],
            "filename": ["*-main.zip", "*-master.zip", "*-src*", "*source*"],
        },
        "action": {"suggest_to": "{destinations.code}/Archives/"},
    },
    {
        "name": "Archives",
        "priority": 75,
        "match": {"extension": ["zip", "rar", "7z", "tar", "gz", "bz2", "xz", "tgz"]},
        "action": {"suggest_to": "{destinations.archives}/"},
    },
    {
        "name": "Torrents",
        "priority": 90,
        "match": {"extension": ["torrent"]},
        "action": {"suggest_to": "{destinations.archives}/Torrents/"},
    },
    {
        "name": "Fonts",
        "priority": 85,
        "match": {"extension": ["ttf", "otf", "woff", "woff2", "eot"]},
        "action": {"suggest_to": "{destinations.documents}/Fonts/"},
    },
    {
        "name": "Disk images",
        "priority": 70,
        "match": {"extension": ["iso", "img", "dmg"]},
        "action": {"suggest_to": "{destinations.archives}/Disk Images/"},
    },
    {
        "name": "Old installers",
        "priority": 100,
        "match": {
            "extension": ["dmg", "pkg", "exe", "msi", "deb", "rpm", "appimage"],
            "age": "> 30 days",
        },
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Incomplete downloads",
        "priority": 100,
        "match": {"extension": ["crdownload", "part", "partial", "download"]},
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Temporary files",
        "priority": 100,
        "match": {"extension": ["tmp", "temp", "bak", "swp", "swo", "swn"]},
        "action": {"delete": True},
    },
    {
        "name": "Office lock files",
        "priority": 100,
        "match": {"filename": ["~$*"]},
        "action": {"delete": True, "confirm": True},
    },
    {
        "name": "Log files",
        "priority": 60,
        "match": {"extension": ["log"]},
        "action": {"archive_to": "{destinations.archives}/Logs/"},
    },
    {
        "name": "macOS junk",
        "priority": 100,
        "match": {"filename": [".DS_Store", "._*", ".Spotlight*", ".Trashes"]},
        "action": {"delete": True},
    },
    {
        "name": "Windows junk",
        "priority": 100,
        "match": {"filename": ["Thumbs.db", "desktop.ini", "*.lnk"]},
        "action": {"delete": True},
    },
]


def default_rules() -> List[Rule]:
    """Return freshly validated copies of the built-in rules.

    Returns:
        List[Rule]: Built-in rules in declaration order.
    """

    return [Rule.model_validate(data) for data in _DEFAULT_RULE_DATA]


__all__ = ["default_rules"]
