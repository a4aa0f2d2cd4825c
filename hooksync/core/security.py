"""Identifier validation and delivery URL helpers.

Every org or repository name is checked here before it is interpolated into
a ``gh api`` path, so a name like ``../repos/victim`` never reaches the CLI.
"""

import re
from typing import Optional, Tuple

# GitHub login rules: 1-39 chars, alphanumeric plus "-", "." and "_",
# no separator at either end, no "..".
IDENTIFIER_PATTERN = re.compile(r"^(?!.*\.\.)[A-Za-z0-9](?:[A-Za-z0-9._-]{0,37}[A-Za-z0-9])?$")

REF_PATTERN = re.compile(r"^([^/#\s]+)/([^/#\s]+)#(\d+)$")


def validate_identifier(name: Optional[str]) -> bool:
    """Return True when ``name`` is a safe org/owner/repo path segment."""
    if not isinstance(name, str):
        return False
    return IDENTIFIER_PATTERN.fullmatch(name) is not None


def validate_repo(repository: Optional[str]) -> bool:
    """
    Validate an ``owner/name`` repository identifier.

    Both halves must pass validate_identifier and there must be exactly one
    slash.
    """
    if not isinstance(repository, str) or repository.count("/") != 1:
        return False
    owner, name = repository.split("/")
    return validate_identifier(owner) and validate_identifier(name)


def parse_ref(ref: str) -> Optional[Tuple[str, int]]:
    """
    Parse an ``owner/repo#number`` reference.

    Returns:
        (repository, number), or None for URLs, bare numbers and other shapes
    """
    match = REF_PATTERN.fullmatch(ref.strip()) if ref else None
    if not match:
        return None
    repository = f"{match.group(1)}/{match.group(2)}"
    if not validate_repo(repository):
        return None
    return repository, int(match.group(3))


def delivery_suffix(base_path: str) -> str:
    """Path every registration managed here ends with."""
    return f"{base_path}/github"


def build_webhook_url(hostname: Optional[str], base_path: Optional[str]) -> Optional[str]:
    """
    Build the public delivery URL, e.g. ``https://host.ts.net/hooks/github``.

    Returns None when either part is missing.
    """
    if not hostname or not base_path:
        return None
    return f"https://{hostname}{delivery_suffix(base_path)}"


def org_hooks_path(org: str) -> str:
    return f"orgs/{org}/hooks"


def repo_hooks_path(repository: str) -> str:
    return f"repos/{repository}/hooks"
