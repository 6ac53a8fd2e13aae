# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Changelog file handling.

The changelog holds one section per released version, newest first. Each
section starts with an anchor ``<a name="{version}"></a>`` which is how the
section of a version is found again for cherry-picking.
"""

from __future__ import annotations

import re
from datetime import date
from pathlib import Path

from release_train.version import SemanticVersion

# Start of any version section, used to find where a section ends.
SECTION_ANCHOR_PATTERN = re.compile(r'<a name="[^"]+"></a>')


def get_section_anchor(version: SemanticVersion) -> str:
    return f'<a name="{version}"></a>'


def create_section_header(version: SemanticVersion, release_date: date | None = None) -> str:
    """Return the heading block that starts the section of a version.

    Examples:
        >>> print(create_section_header(parse_version("10.0.3"), date(2026, 1, 2)))
        <a name="10.0.3"></a>
        # 10.0.3 (2026-01-02)
        <BLANKLINE>
    """
    day = release_date or date.today()
    return f"{get_section_anchor(version)}\n# {version} ({day.isoformat()})\n"


def extract_section(changelog: str, version: SemanticVersion) -> str | None:
    """Extract the section of a version from changelog text.

    Returns:
        The section, from its anchor up to the next version anchor, with
        trailing whitespace normalized to one newline. None if the changelog
        has no section for the version.
    """
    anchor = get_section_anchor(version)
    start = changelog.find(anchor)
    if start == -1:
        return None

    following = SECTION_ANCHOR_PATTERN.search(changelog, start + len(anchor))
    end = following.start() if following else len(changelog)
    return changelog[start:end].rstrip() + "\n"


def prepend_section(changelog_path: Path, section: str) -> None:
    """Insert a section at the top of the changelog, creating the file if needed."""
    existing = changelog_path.read_text(encoding="utf-8") if changelog_path.exists() else ""
    content = section.rstrip() + "\n\n" + existing if existing else section.rstrip() + "\n"
    changelog_path.write_text(content, encoding="utf-8")
