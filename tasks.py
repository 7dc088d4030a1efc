"""Invoke tasks for developing Sortora.

Every task shells out to ``uv`` so local runs match CI.
"""

from __future__ import annotations

import shlex
import shutil
from collections.abc import Sequence
from pathlib import Path

from invoke import Collection, Context, task

PROJECT_ROOT = Path(__file__).parent
DIST_DIR = PROJECT_ROOT / "dist"
SOURCES = ("src", "tests")


def _uv(ctx: Context, args: Sequence[str], *, dry_run: bool = False) -> None:
    """Run ``uv`` with ``args``, or print the command when ``dry_run`` is set."""
    command = shlex.join(("uv", *args))
    if dry_run:
        print(f"[dry-run] {command}")
        return
    ctx.run(command, echo=True, pty=True)


@task(help={"dev": "Install the test and dev extras as well."})
def sync(ctx: Context, dev: bool = True) -> None:
    """Synchronize the virtual environment."""
    args = ["sync"]
    if dev:
        args.extend(["--extra", "test", "--extra", "dev"])
    _uv(ctx, args)


@task(help={"clean": "Empty dist/ first.", "dry_run": "Print the commands without running them."})
def build(ctx: Context, clean: bool = False, dry_run: bool = False) -> None:
    """Build sdist and wheel into dist/."""
    if clean and DIST_DIR.exists():
        if dry_run:
            print(f"[dry-run] rm -rf {DIST_DIR}")
        else:
            shutil.rmtree(DIST_DIR)
    _uv(ctx, ["build"], dry_run=dry_run)


@task(
    help={
        "k": "pytest -k expression.",
        "path": "Test path (defaults to tests/).",
        "options": "Extra flags forwarded to pytest.",
    }
)
def tests(ctx: Context, k: str = "", path: str = "tests", options: str = "") -> None:
    """Run the pytest suite."""
    args: list[str] = ["run", "pytest"]
    if k:
        args.extend(["-k", k])
    if options:
        args.extend(shlex.split(options))
    args.append(path)
    _uv(ctx, args)


@task(help={"fix": "Let ruff apply fixes."})
def lint(ctx: Context, fix: bool = False) -> None:
    """Check formatting and lint with ruff."""
    _uv(ctx, ["run", "ruff", "format", "--check", *SOURCES])
    args = ["run", "ruff", "check", *SOURCES]
    if fix:
        args.append("--fix")
    _uv(ctx, args)


@task
def mypy(ctx: Context) -> None:
    """Type-check the package."""
    _uv(ctx, ["run", "mypy", "src"])


@task
def ci(ctx: Context) -> None:
    """Lint, type-check, then test."""
    ctx.invoke(lint)
    ctx.invoke(mypy)
    ctx.invoke(tests)


namespace = Collection(sync, build, tests, lint, mypy, ci)
