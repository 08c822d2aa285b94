"""Git helpers for repository identity."""

from .repo import GitInspector, find_git_dir, normalize_remote_url, sanitize_remote_url

__all__ = ["GitInspector", "find_git_dir", "normalize_remote_url", "sanitize_remote_url"]
