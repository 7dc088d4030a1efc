"""Tests for destination resolution in global and local modes."""

from __future__ import annotations

from datetime import datetime, timezone
from pathlib import Path

import pytest

from sortora.organization import DestinationResolver, ResolutionMode, interpolate_path
from sortora.rules import Rule


def _rule(name: str, action: dict, **extra) -> Rule:
    return Rule.model_validate(
        {"name": name, "match": {"extension": ["any"]}, "action": action, **extra}
    )


def test_interpolate_leaves_unknown_tokens_verbatim() -> None:
    assert interpolate_path("{year}/{unknown}/{month}", {"year": 2024, "month": "03"}) == (
        "2024/{unknown}/03"
    )


def test_global_mode_expands_destination_aliases(tmp_path: Path, make_file) -> None:
    resolver = DestinationResolver({"photos": str(tmp_path / "Pictures")})
    rule = _rule("Photos", {"move_to": "{destinations.photos}/{exif.year}/{exif.month}/"})
    file = make_file("/in/IMG_1.jpg", metadata={"date_taken": datetime(2023, 7, 4, 9, 30)})

    destination = resolver.resolve(file, rule)

    assert destination == tmp_path / "Pictures" / "2023" / "07" / "IMG_1.jpg"


def test_global_mode_expands_home(monkeypatch: pytest.MonkeyPatch, tmp_path: Path, make_file) -> None:
    monkeypatch.setenv("HOME", str(tmp_path))
    rule = _rule("Docs", {"suggest_to": "~/Docs/{year}"})

    destination = DestinationResolver().resolve(make_file("/in/a.pdf"), rule)

    assert destination == tmp_path / "Docs" / "2024" / "a.pdf"


def test_filename_is_not_appended_twice(make_file) -> None:
    rule = _rule("Exact", {"move_to": "Out/{filename}"})

    assert DestinationResolver().resolve(make_file("/in/a.pdf"), rule) == Path("Out/a.pdf")


def test_delete_rules_have_no_destination(make_file) -> None:
    rule = _rule("Junk", {"delete": True})

    assert DestinationResolver().resolve(make_file("/in/a.tmp"), rule) is None
    assert (
        DestinationResolver().resolve(
            make_file("/in/a.tmp"), rule, mode=ResolutionMode.LOCAL, base_dir=Path("/base")
        )
        is None
    )


def test_variables_are_ordered_and_sanitized(make_file) -> None:
    file = make_file(
        "/in/track.mp3",
        modified=datetime(2022, 11, 5, tzinfo=timezone.utc),
        metadata={"artist": 'AC/DC: "Live"', "album": "  Back in   Black ", "year": 1980},
    )

    variables = DestinationResolver().build_variables(file)

    assert list(variables)[:5] == ["year", "month", "filename", "extension", "category"]
    assert variables["year"] == 1980
    assert variables["month"] == "11"
    assert variables["audio.artist"] == "ACDC Live"
    assert variables["audio.album"] == "Back in Black"
    assert "exif.year" not in variables


def test_free_text_metadata_is_capped(make_file) -> None:
    file = make_file("/in/book.pdf", metadata={"title": "x" * 300})

    assert len(DestinationResolver().build_variables(file)["doc.title"]) == 100


def test_local_mode_requires_base_dir(make_file) -> None:
    rule = _rule("Docs", {"move_to": "Docs/"})

    with pytest.raises(ValueError):
        DestinationResolver().resolve(make_file("/in/a.pdf"), rule, mode=ResolutionMode.LOCAL)


def test_local_destination_template_overrides_tree(tmp_path: Path, make_file) -> None:
    rule = _rule("Custom", {"move_to": "Elsewhere/"}, local_destination="Sorted/{extension}")

    destination = DestinationResolver().resolve(
        make_file("/in/a.pdf"), rule, mode=ResolutionMode.LOCAL, base_dir=tmp_path
    )

    assert destination == tmp_path / "Sorted" / "pdf" / "a.pdf"


@pytest.mark.parametrize(
    ("rule_name", "filename", "metadata", "expected"),
    [
        ("Invoices", "invoice-acme-2024-03-15.pdf", None, "Finance/Invoices/Acme/2024"),
        ("Photos with EXIF", "IMG_0001.jpg", {"date_taken": datetime(2021, 5, 2)}, "Photos/2021/05"),
        ("Screenshots", "Screenshot 2023-08-19 at 10.15.png", None, "Screenshots/2023-08"),
        ("Screenshots", "Capture.png", None, "Screenshots/2024-01"),
        ("Music", "song.mp3", {"artist": "Nina Simone", "album": "Pastel Blues"}, "Music/Nina Simone/Pastel Blues"),
        ("Music", "song.mp3", {"artist": "Nina Simone"}, "Music/Nina Simone"),
        ("Music", "song.mp3", None, "Music/Unsorted"),
        ("Videos", "clip.mp4", None, "Videos/2024"),
        ("Archives", "backup.zip", None, "Archives"),
        ("Python scripts", "test_parser.py", None, "Code/Python/Tests"),
        ("Installers", "setup.exe", None, "Installers"),
        ("Other images", "cat.gif", None, "Images/2024"),
        ("Databases", "cache.sqlite", None, "Data"),
        ("Anything", "mystery.bin", None, "Other"),
    ],
)
def test_local_decision_tree(
    tmp_path: Path, make_file, rule_name: str, filename: str, metadata, expected: str
) -> None:
    rule = _rule(rule_name, {"move_to": "Ignored/"})
    file = make_file(f"/in/{filename}", metadata=metadata)

    destination = DestinationResolver().resolve(
        file, rule, mode=ResolutionMode.LOCAL, base_dir=tmp_path
    )

    assert destination == tmp_path / expected / filename
