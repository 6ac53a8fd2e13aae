# Copyright (c) 2026 Mark Ferrell. MIT License.
"""npm registry operations.

Publishing and dist-tag updates go through the ``npm`` CLI so that the
operator's registry authentication applies. Package metadata is read
directly from the registry's JSON endpoint.

References:
    - npm publish: https://docs.npmjs.com/cli/commands/npm-publish
    - npm dist-tag: https://docs.npmjs.com/cli/commands/npm-dist-tag
    - Registry API: https://github.com/npm/registry/blob/main/docs/REGISTRY-API.md
"""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

import requests

from release_train.process import run_silent_with_debug_output
from release_train.version import SemanticVersion

logger = logging.getLogger(__name__)

DEFAULT_REGISTRY_URL = "https://registry.npmjs.org"
REQUEST_TIMEOUT_SECONDS = 30


class NpmRegistry:
    """Client for one npm registry.

    Package metadata is cached per instance, and a new instance is created
    for every release run.
    """

    def __init__(self, registry_url: str | None = None) -> None:
        self.registry_url = registry_url
        self._package_info: dict[str, dict[str, Any]] = {}

    def _registry_args(self) -> list[str]:
        # If a custom registry URL has been specified, add the `--registry` flag.
        if self.registry_url is None:
            return []
        return ["--registry", self.registry_url]

    def publish(self, package_path: Path, dist_tag: str) -> bool:
        """Run ``npm publish`` within a built package directory.

        Returns:
            True if the package was published.
        """
        args = ["npm", "publish", "--access", "public", "--tag", dist_tag, *self._registry_args()]
        return run_silent_with_debug_output(args, cwd=package_path).success

    def set_dist_tag(self, package_name: str, dist_tag: str, version: SemanticVersion) -> bool:
        """Point a dist-tag of a package at a published version.

        Returns:
            True if the dist-tag was updated.
        """
        args = ["npm", "dist-tag", "add", f"{package_name}@{version}", dist_tag, *self._registry_args()]
        return run_silent_with_debug_output(args).success

    def fetch_package_info(self, package_name: str) -> dict[str, Any]:
        """Fetch the registry document of a package.

        The document contains the ``dist-tags`` mapping, the ``time`` mapping
        of publish dates and the ``versions`` mapping.

        Raises:
            requests.HTTPError: If the registry responds with an error.
        """
        if package_name not in self._package_info:
            base_url = (self.registry_url or DEFAULT_REGISTRY_URL).rstrip("/")
            # Scoped package names keep their '@' but the slash is encoded.
            url = f"{base_url}/{package_name.replace('/', '%2f')}"
            logger.debug("Fetching package information from %s", url)
            response = requests.get(url, timeout=REQUEST_TIMEOUT_SECONDS)
            response.raise_for_status()
            self._package_info[package_name] = response.json()
        return self._package_info[package_name]

    def is_version_published(self, package_name: str, version: SemanticVersion) -> bool:
        """Check whether a version of a package exists in the registry."""
        info = self.fetch_package_info(package_name)
        return str(version) in info.get("versions", {})
