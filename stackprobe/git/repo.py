"""Repository identity lookups through the git CLI."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path
from typing import Callable, Optional, Sequence
from urllib.parse import urlsplit, urlunsplit

from ..logging import get_logger
from ..models import GitInfo

_LOGGER = get_logger("git")

_SCHEME_PREFIXES = ("https://", "http://", "ssh://", "git://", "git@")


class GitInspector:
    """Resolves repository roots and identities by shelling out to ``git``."""

    def __init__(self, runner: Callable[..., str] | None = None) -> None:
        self._runner = runner or self._default_runner

    def find_repo_root(self, path: str) -> Optional[str]:
        """Return the top-level directory of the repository containing ``path``."""
        output = self._try(["git", "rev-parse", "--show-toplevel"], cwd=path)
        if not output:
            return None
        return os.path.normpath(output)

    def read_info(self, repo_root: str) -> Optional[GitInfo]:
        """Return branch, short commit and sanitized origin URL for a repository."""
        commit = self._try(["git", "rev-parse", "--short=7", "HEAD"], cwd=repo_root)
        branch = self._try(["git", "rev-parse", "--abbrev-ref", "HEAD"], cwd=repo_root)
        remote = self._try(["git", "config", "--get", "remote.origin.url"], cwd=repo_root)
        if not (commit or branch or remote):
            return None
        return GitInfo(
            branch=branch or "",
            commit=commit or "",
            remote_url=sanitize_remote_url(remote or ""),
        )

    def _try(self, args: Sequence[str], *, cwd: str) -> Optional[str]:
        try:
            output = self._runner(list(args), cwd=cwd)
        except (OSError, subprocess.CalledProcessError) as exc:
            _LOGGER.debug("git %s failed in %s: %s", " ".join(args[1:]), cwd, exc)
            return None
        output = (output or "").strip()
        return output or None

    @staticmethod
    def _default_runner(args: Sequence[str], cwd: str) -> str:
        completed = subprocess.run(
            list(args),
            cwd=cwd,
            check=True,
            text=True,
            stdout=subprocess.PIPE,
            stderr=subprocess.DEVNULL,
        )
        return completed.stdout


def find_git_dir(repo_root: str) -> Optional[Path]:
    """Locate the git directory for a checkout, following ``gitdir:`` files."""
    dot_git = Path(repo_root) / ".git"
    if dot_git.is_dir():
        return dot_git
    if dot_git.is_file():
        try:
            content = dot_git.read_text(encoding="utf-8").strip()
        except OSError:
            return None
        if content.startswith("gitdir:"):
            target = Path(content[len("gitdir:"):].strip())
            if not target.is_absolute():
                target = Path(repo_root) / target
            return target
    return None


def sanitize_remote_url(url: str) -> str:
    """Drop userinfo (credentials) from a remote URL.

    scp-style SSH remotes (``git@host:org/repo``) carry no secret and are
    returned unchanged.
    """
    url = url.strip()
    if not url or url.startswith("git@") or "://" not in url:
        return url
    parts = urlsplit(url)
    if "@" not in parts.netloc:
        return url
    host = parts.netloc.rsplit("@", 1)[1]
    return urlunsplit((parts.scheme, host, parts.path, parts.query, parts.fragment))


def normalize_remote_url(url: str) -> str:
    """Reduce a remote URL to ``host/org/repo`` so SSH and HTTPS forms agree."""
    url = sanitize_remote_url(url)
    for prefix in _SCHEME_PREFIXES:
        if url.startswith(prefix):
            url = url[len(prefix):]
            break
    if "@" in url.split("/", 1)[0]:
        url = url.split("@", 1)[1]
    if url.endswith(".git"):
        url = url[: -len(".git")]
    host, sep, rest = url.partition(":")
    if sep and "/" not in host and not rest.split("/", 1)[0].isdigit():
        url = f"{host}/{rest}"
    return url.rstrip("/")


__all__ = [
    "GitInspector",
    "find_git_dir",
    "normalize_remote_url",
    "sanitize_remote_url",
]
