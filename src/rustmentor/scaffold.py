"""Write generated content out as Cargo projects."""

from __future__ import annotations

import logging
import re
from datetime import date
from pathlib import Path

from .models import GeneratedApplication, TutoringModule

logger = logging.getLogger(__name__)

NON_IDENTIFIER_RE = re.compile(r"[^a-z0-9_]")

MAIN_STUB = 'fn main() {\n    println!("Run the examples with `cargo run --example <name>`.");\n}\n'


def sanitize_name(name: str, prefix: str, fallback_index: int) -> str:
    """Lowercase identifier usable as a file and binary name."""
    sanitized = NON_IDENTIFIER_RE.sub("_", name.strip().lower()).strip("_")
    sanitized = re.sub(r"_+", "_", sanitized)
    if not sanitized or sanitized[0].isdigit():
        return f"{prefix}_{fallback_index}"
    return sanitized


def _unique(name: str, used: set[str]) -> str:
    candidate = name
    counter = 2
    while candidate in used:
        candidate = f"{name}_{counter}"
        counter += 1
    used.add(candidate)
    return candidate


def _cargo_manifest(package_name: str, bins: list[str]) -> str:
    lines = [
        "[package]",
        f'name = "{package_name}"',
        'version = "0.1.0"',
        'edition = "2021"',
        "",
        "[dependencies]",
        "",
    ]
    for bin_name in bins:
        lines.extend(["[[bin]]", f'name = "{bin_name}"', f'path = "src/bin/{bin_name}.rs"', ""])
    return "\n".join(lines)


def _source_file(title: str, description: str, code: str) -> str:
    header = f"// {title}\n"
    if description:
        header += f"// {description}\n"
    return f"{header}\n{code.rstrip()}\n"


def create_module_project(module: TutoringModule, level: int, base_dir: Path, today: date | None = None) -> Path:
    """Create ``<topic>_<level>_<date>/`` holding the module's explanation, examples and exercises."""
    current = today or date.today()
    topic_slug = sanitize_name(module.topic, "topic", 1)
    project_dir = base_dir / f"{topic_slug}_{level}_{current.isoformat()}"
    (project_dir / "src" / "bin").mkdir(parents=True, exist_ok=True)
    (project_dir / "examples").mkdir(parents=True, exist_ok=True)

    (project_dir / "README.md").write_text(f"# {module.topic}\n\n{module.explanation}\n", encoding="utf-8")
    (project_dir / "src" / "main.rs").write_text(MAIN_STUB, encoding="utf-8")

    used_examples: set[str] = set()
    for index, snippet in enumerate(module.code_snippets, start=1):
        file_stem = _unique(sanitize_name(snippet.title, "example", index), used_examples)
        (project_dir / "examples" / f"{file_stem}.rs").write_text(
            _source_file(snippet.title, snippet.description, snippet.code), encoding="utf-8"
        )

    used_bins: set[str] = set()
    bins: list[str] = []
    for index, exercise in enumerate(module.exercises, start=1):
        bin_name = _unique(sanitize_name(exercise.name, "exercise", index), used_bins)
        bins.append(bin_name)
        (project_dir / "src" / "bin" / f"{bin_name}.rs").write_text(
            _source_file(exercise.name, exercise.description, exercise.code), encoding="utf-8"
        )

    (project_dir / "Cargo.toml").write_text(_cargo_manifest(topic_slug, bins), encoding="utf-8")
    logger.info("Created module project at %s", project_dir)
    return project_dir


def create_application_project(application: GeneratedApplication, base_dir: Path) -> Path:
    """Create a Cargo project whose first snippet becomes ``src/main.rs``."""
    if not application.code_snippets:
        raise ValueError("Application has no code to write.")
    package_name = sanitize_name(application.name, "application", 1)
    project_dir = base_dir / package_name
    (project_dir / "src").mkdir(parents=True, exist_ok=True)

    readme = [f"# {application.name}", "", application.description, ""]
    if application.features:
        readme.append("## Features")
        readme.extend(f"- {feature}" for feature in application.features)
        readme.append("")
    (project_dir / "README.md").write_text("\n".join(readme), encoding="utf-8")

    entry, *modules = application.code_snippets
    (project_dir / "src" / "main.rs").write_text(_source_file(entry.title, "", entry.code), encoding="utf-8")
    used = {"main"}
    for index, snippet in enumerate(modules, start=1):
        stem = _unique(sanitize_name(snippet.title, "module", index), used)
        (project_dir / "src" / f"{stem}.rs").write_text(_source_file(snippet.title, "", snippet.code), encoding="utf-8")

    (project_dir / "Cargo.toml").write_text(_cargo_manifest(package_name, []), encoding="utf-8")
    logger.info("Created application project at %s", project_dir)
    return project_dir
