# Copyright (c) 2026 Mark Ferrell. MIT License.
"""Long-term support branch discovery.

LTS branches are not discovered from live branches. A major version is under
long-term support when the registry has a ``v{major}-lts`` dist-tag for it,
and the tagged version tells which branch the LTS patches come from.
"""

from __future__ import annotations

import calendar
import logging
import re
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Any

from release_train.version import SemanticVersion, get_version_branch_name, parse_version

logger = logging.getLogger(__name__)

LTS_DIST_TAG_PATTERN = re.compile(r"^v(\d+)-lts$")

# A major is actively supported for 6 months after its release, followed by
# 12 months of long-term support.
MAJOR_ACTIVE_SUPPORT_MONTHS = 6
MAJOR_LTS_MONTHS = 12


@dataclass(frozen=True)
class LtsBranch:
    """A version branch in the long-term support phase.

    Attributes:
        name: Name of the branch (e.g., '9.2.x').
        version: Most recent version published from the branch.
        dist_tag: Registry dist-tag of the LTS major (e.g., 'v9-lts').
    """

    name: str
    version: SemanticVersion
    dist_tag: str


@dataclass
class LtsBranches:
    """LTS branches split by support state, each list newest first."""

    active: list[LtsBranch] = field(default_factory=list)
    inactive: list[LtsBranch] = field(default_factory=list)


def get_lts_dist_tag_of_major(major: int) -> str:
    """Return the LTS dist-tag for a major version.

    Examples:
        >>> get_lts_dist_tag_of_major(10)
        'v10-lts'
    """
    return f"v{major}-lts"


def add_months(moment: datetime, months: int) -> datetime:
    """Shift a datetime by whole calendar months.

    The day is clamped to the length of the target month, so that
    August 31st plus six months is February 28th (or 29th).
    """
    month_index = moment.month - 1 + months
    year = moment.year + month_index // 12
    month = month_index % 12 + 1
    day = min(moment.day, calendar.monthrange(year, month)[1])
    return moment.replace(year=year, month=month, day=day)


def compute_lts_end_date_of_major(major_release_date: datetime) -> datetime:
    """Compute the date when long-term support of a major ends."""
    return add_months(major_release_date, MAJOR_ACTIVE_SUPPORT_MONTHS + MAJOR_LTS_MONTHS)


def parse_registry_time(value: str) -> datetime:
    """Parse a timestamp from the registry ``time`` mapping (ISO 8601, UTC)."""
    parsed = datetime.fromisoformat(value.replace("Z", "+00:00"))
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


def find_lts_branches(package_info: dict[str, Any], today: datetime | None = None) -> LtsBranches:
    """Determine active and inactive LTS branches from registry metadata.

    Every dist-tag matching ``v{major}-lts`` is assumed to point at the most
    recent minor of its major. Its branch is derived from that version, and
    the branch is active while ``today`` is not past the end of support of
    the major.

    Args:
        package_info: Registry document of the representative package.
        today: Reference date. Defaults to the current time.

    Returns:
        LtsBranches with both lists sorted by version, most recent first.

    Examples:
        >>> info = {"dist-tags": {"v9-lts": "9.2.3"}, "time": {"9.0.0": "2020-02-06T00:00:00Z"}}
        >>> find_lts_branches(info, datetime(2020, 6, 1, tzinfo=timezone.utc)).active[0].name
        '9.2.x'
    """
    now = today or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    dist_tags: dict[str, str] = package_info.get("dist-tags", {})
    times: dict[str, str] = package_info.get("time", {})
    result = LtsBranches()

    for dist_tag, raw_version in dist_tags.items():
        if not LTS_DIST_TAG_PATTERN.match(dist_tag):
            continue

        version = parse_version(raw_version)
        branch = LtsBranch(name=get_version_branch_name(version), version=version, dist_tag=dist_tag)
        major_release = times.get(f"{version.major}.0.0")

        if major_release is None:
            logger.warning("No release date known for v%s.0.0, treating '%s' as inactive", version.major, dist_tag)
            result.inactive.append(branch)
        elif now <= compute_lts_end_date_of_major(parse_registry_time(major_release)):
            result.active.append(branch)
        else:
            result.inactive.append(branch)

    result.active.sort(key=lambda b: b.version, reverse=True)
    result.inactive.sort(key=lambda b: b.version, reverse=True)
    return result
