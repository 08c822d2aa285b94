"""License evidence from well-known license files."""

from __future__ import annotations

import re
from typing import Iterable, List, Optional, Tuple

from .logging import get_logger
from .models import FileEntry, License
from .payload import Payload
from .providers import StorageProvider

_LOGGER = get_logger("licenses")

_LICENSE_FILE = re.compile(r"^(LICEN[CS]E|COPYING|UNLICENSE)([.-].*)?$", re.IGNORECASE)
_MAX_LICENSE_BYTES = 256 * 1024

# Ordered: more specific signatures come before the ones they contain.
_SIGNATURES: Tuple[Tuple[str, Tuple[str, ...]], ...] = (
    ("AGPL-3.0", ("GNU AFFERO GENERAL PUBLIC LICENSE", "Version 3")),
    ("LGPL-3.0", ("GNU LESSER GENERAL PUBLIC LICENSE", "Version 3")),
    ("LGPL-2.1", ("GNU LESSER GENERAL PUBLIC LICENSE", "Version 2.1")),
    ("GPL-3.0", ("GNU GENERAL PUBLIC LICENSE", "Version 3")),
    ("GPL-2.0", ("GNU GENERAL PUBLIC LICENSE", "Version 2")),
    ("Apache-2.0", ("Apache License", "Version 2.0")),
    ("MPL-2.0", ("Mozilla Public License", "2.0")),
    ("Unlicense", ("This is free and unencumbered software released into the public domain",)),
    ("MIT", ("Permission is hereby granted, free of charge",)),
    ("ISC", ("Permission to use, copy, modify, and/or distribute this software for any purpose",)),
    ("BSD-3-Clause", ("Redistribution and use in source and binary forms", "Neither the name")),
    ("BSD-2-Clause", ("Redistribution and use in source and binary forms",)),
)


def classify_license(text: str) -> Optional[str]:
    """SPDX identifier for a license text, or ``None`` when unrecognized."""
    normalized = " ".join(text.split())
    lowered = normalized.lower()
    for spdx, phrases in _SIGNATURES:
        if all(phrase.lower() in lowered for phrase in phrases):
            return spdx
    return None


def is_license_file(file_name: str) -> bool:
    return bool(_LICENSE_FILE.match(file_name))


class LicenseDetector:
    """Adds license entries for license files sitting directly in a directory."""

    def __init__(self, provider: StorageProvider) -> None:
        self._provider = provider

    def add_license_evidence(
        self, node: Payload, directory: str, files: Iterable[FileEntry]
    ) -> List[License]:
        found: List[License] = []
        for entry in sorted(files, key=lambda item: item.name):
            if entry.is_dir or not is_license_file(entry.name):
                continue
            path = self._provider.join(directory, entry.name)
            try:
                text = self._provider.read_file(path)[:_MAX_LICENSE_BYTES].decode("utf-8", errors="replace")
            except OSError as exc:
                _LOGGER.warning("Could not read license file %s: %s", path, exc)
                continue
            spdx = classify_license(text)
            if spdx is None:
                _LOGGER.debug("Unrecognized license text in %s", path)
                continue
            license_ = License(spdx, "file", self._provider.relative(path), confidence=0.95)
            node.add_license(license_)
            found.append(license_)
        return found


__all__ = ["LicenseDetector", "classify_license", "is_license_file"]
