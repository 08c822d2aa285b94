"""Matching primitives that turn a directory listing into ``tech -> reasons``."""

from .content import ContentMatcher
from .dependencies import DependencyMatcher
from .extensions import ExtensionMatcher, file_extension
from .files import FileMatcher

__all__ = [
    "ContentMatcher",
    "DependencyMatcher",
    "ExtensionMatcher",
    "FileMatcher",
    "file_extension",
]
