"""Environment templates (.env.example and friends)."""

from __future__ import annotations

from typing import List, Sequence

from ..matchers.dependencies import DependencyMatcher
from ..models import FileEntry
from ..payload import Payload
from ..providers import StorageProvider
from .base import Detector, file_names, manifest_path, read_manifest
from .parsers import parse_env_names

# Real .env files hold secrets and are never read.
ENV_TEMPLATES = (".env.example", ".env.sample", ".env.template", ".env.dist")


class DotenvDetector(Detector):
    name = "dotenv"

    def detect(
        self,
        files: Sequence[FileEntry],
        current_path: str,
        root_path: str,
        provider: StorageProvider,
        matcher: DependencyMatcher,
    ) -> List[Payload]:
        names = file_names(files)
        fragment = None
        for file_name in ENV_TEMPLATES:
            if file_name not in names:
                continue
            text = read_manifest(provider, current_path, file_name)
            if text is None:
                continue
            matches = matcher.match_env_variables(parse_env_names(text))
            if not matches:
                continue
            if fragment is None:
                fragment = Payload.fragment(manifest_path(provider, current_path, file_name))
            matcher.apply(fragment, matches)
        return [fragment] if fragment is not None else []


__all__ = ["DotenvDetector"]
