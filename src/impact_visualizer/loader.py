# Copyright 2026 Pennyworth Technologies, Inc.
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""Read manifest files from disk into parsed documents."""

from __future__ import annotations

import logging
import re
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

RAW_GITHUB_PATTERN = re.compile(
    r"^https://raw\.githubusercontent\.com/([^/]+)/([^/]+)/([^/]+)/(.+)$"
)


class ManifestLoadError(Exception):
    """Raised when a manifest file cannot be read or parsed."""

    pass


def parse_manifest_text(text: str, source: str = "<string>") -> Any:
    """Parse manifest YAML (or JSON) text.

    Args:
        text: Raw manifest contents
        source: Name used in error messages

    Returns:
        The parsed document, unvalidated

    Raises:
        ManifestLoadError: If the text is not valid YAML or is empty
    """
    try:
        parsed = yaml.safe_load(text)
    except yaml.YAMLError as e:
        raise ManifestLoadError(f"Invalid YAML in {source}: {e}")
    except RecursionError:
        # the YAML composer recurses once per nesting level
        raise ManifestLoadError(f"Manifest {source} is nested too deeply to parse")

    if parsed is None:
        raise ManifestLoadError(f"Manifest {source} is empty")
    return parsed


def read_manifest_text(path: Path | str) -> str:
    """Read a manifest file as written.

    Raises:
        ManifestLoadError: If the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise ManifestLoadError(f"Manifest not found: {path}")

    try:
        text = path.read_text()
    except OSError as e:
        raise ManifestLoadError(f"Error reading {path}: {e}")

    logger.debug("Read manifest %s (%d bytes)", path, len(text))
    return text


def load_manifest(path: Path | str) -> Any:
    """Read and parse a manifest file.

    Raises:
        ManifestLoadError: If the file is missing, unreadable or invalid
    """
    return parse_manifest_text(read_manifest_text(path), source=str(path))


def source_link(url: str | None) -> str | None:
    """GitHub page for a raw.githubusercontent.com manifest URL.

    >>> source_link("https://raw.githubusercontent.com/org/repo/main/m.yml")
    'https://github.com/org/repo/blob/main/m.yml'
    """
    if not url:
        return None
    match = RAW_GITHUB_PATTERN.match(url.strip())
    if not match:
        return None
    owner, repo, branch, path = match.groups()
    return f"https://github.com/{owner}/{repo}/blob/{branch}/{path}"
