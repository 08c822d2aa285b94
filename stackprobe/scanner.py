"""Traversal engine: walks a tree and builds the component tree."""

from __future__ import annotations

import os
import time
from pathlib import Path
from typing import Callable, Dict, List, Mapping, Optional, Sequence, Set, Tuple

from .config import ConfiguredTech, ScanConfig, load_config
from .detectors import Detector, default_detectors
from .errors import ScanError
from .events import Event, EventSink, EventType, NullSink
from .exclusion import IGNORE_FILENAME, ExclusionStack, parse_ignore_patterns
from .git.repo import GitInspector, find_git_dir
from .identity import assign_ids, multi_root_id, normalize_relative_path, resolve_root_id
from .languages import detect_language
from .licenses import LicenseDetector
from .logging import get_logger
from .matchers import ContentMatcher, DependencyMatcher, ExtensionMatcher, FileMatcher
from .models import FileEntry, GitInfo, ScanMetadata
from .payload import ComponentNode, Payload
from .providers import FileSystemProvider, StorageProvider
from .rules.catalog import RuleCatalog
from .rules.loader import load_catalog

_LOGGER = get_logger("scanner")

ROOT_NAME = "main"
DEFAULT_MAX_CONTENT_BYTES = 1024 * 1024

_ALWAYS_EXCLUDED_DIRS = {
    ".git",
    ".hg",
    ".svn",
    "node_modules",
    "__pycache__",
    ".venv",
    ".tox",
    ".mypy_cache",
    ".pytest_cache",
}


class Scanner:
    """Depth-first, single-threaded scan of one provider tree.

    Per directory: list and filter the entries, run every detector and merge
    their fragments, apply the rule catalog, attach repository identity and
    license evidence, then recurse. The exclusion stack and both repository
    caches belong to the scanner and are reset at the start of every scan.
    """

    def __init__(
        self,
        provider: StorageProvider,
        catalog: RuleCatalog,
        detectors: Sequence[Detector] | None = None,
        *,
        exclude_patterns: Sequence[str] = (),
        root_id: Optional[str] = None,
        properties: Mapping[str, object] | None = None,
        configured_techs: Sequence[ConfiguredTech] = (),
        git: Optional[GitInspector] = None,
        events: Optional[EventSink] = None,
        should_stop: Optional[Callable[[], bool]] = None,
        max_content_bytes: int = DEFAULT_MAX_CONTENT_BYTES,
    ) -> None:
        self._provider = provider
        self._catalog = catalog
        self._detectors: Tuple[Detector, ...] = tuple(
            default_detectors() if detectors is None else detectors
        )
        self._exclude_patterns = list(exclude_patterns)
        self._root_id = root_id
        self._properties = dict(properties or {})
        self._configured_techs = list(configured_techs)
        self._git = git
        self._events = events or NullSink()
        self._should_stop = should_stop
        self._max_content_bytes = max_content_bytes

        self._file_matcher = FileMatcher(catalog)
        self._extension_matcher = ExtensionMatcher(catalog)
        self._content_matcher = ContentMatcher(catalog)
        self._dependency_matcher = DependencyMatcher(catalog)
        self._licenses = LicenseDetector(provider)

        self._exclusions = ExclusionStack()
        self._repo_roots: Dict[str, Optional[str]] = {}
        self._repo_infos: Dict[str, Optional[GitInfo]] = {}
        self._file_count = 0
        self._stopped = False

    @property
    def stopped(self) -> bool:
        """True when the last scan ended early because ``should_stop`` fired."""
        return self._stopped

    def scan(self, subfolders: Sequence[str] | None = None) -> ComponentNode:
        """Scan the provider root, or only ``subfolders`` of it, and freeze the tree."""
        base = self._provider.base_path
        if not self._provider.is_directory(base):
            raise ScanError(f"Scan root is not a directory: {base}")
        sub_paths = self._validate_subfolders(base, subfolders or ())

        started = time.monotonic()
        self._exclusions = ExclusionStack()
        self._repo_roots = {}
        self._repo_infos = {}
        self._file_count = 0
        self._stopped = False
        self._emit(EventType.SCAN_START, base)

        root = Payload(ROOT_NAME, ["/"])
        repo_root = self._find_base_repo_root(base)
        root.git = self._repo_info(repo_root)
        self._exclusions.initialize(self._exclude_patterns, self._local_exclude_patterns(repo_root))

        if sub_paths:
            entries = self._list_root(base)
            pushed = self._enter_ignore_scope(base, "", entries)
            try:
                for sub_path in sub_paths:
                    self._visit(root, sub_path, repo_root)
            finally:
                if pushed:
                    self._exclusions.pop()
        else:
            self._visit(root, base, repo_root, is_root=True)

        for configured in self._configured_techs:
            child = Payload(configured.tech)
            child.add_primary_tech(configured.tech, configured.reason)
            root.add_child(child)

        root.metadata = self._build_metadata(root, base, started)
        root_id = self._resolve_root_id(base, repo_root, root.git, subfolders)
        tree = assign_ids(root, root_id)
        self._emit(EventType.SCAN_COMPLETE, base, details={"components": root.metadata.component_count})
        return tree

    # Traversal

    def _visit(self, parent: Payload, path: str, inherited_repo: Optional[str], *, is_root: bool = False) -> None:
        if self._should_stop is not None and self._should_stop():
            if not self._stopped:
                _LOGGER.info("Scan stopped before visiting %s", path)
            self._stopped = True
            return

        relative = self._provider.relative(path)
        if is_root:
            entries = self._list_root(path)
        else:
            try:
                entries = self._list(path)
            except OSError as exc:
                _LOGGER.warning("Skipping unreadable directory %s: %s", path, exc)
                self._emit(EventType.FILE_SKIPPED, relative, reason=f"unreadable directory: {exc}")
                return

        self._emit(EventType.ENTER_DIRECTORY, relative)
        pushed = self._enter_ignore_scope(path, relative, entries)
        try:
            visible = self._filter(relative, entries)
            files = [entry for entry in visible if not entry.is_dir]

            ctx = self._apply_detectors(parent, visible, path, relative)
            self._apply_rules(ctx, files, path, relative)
            repo_root = self._attach_repository(ctx, path, entries, inherited_repo)
            self._licenses.add_license_evidence(ctx, path, files)

            for entry in files:
                self._file_count += 1
                language = detect_language(entry.name)
                if language:
                    ctx.add_language(language)

            for entry in visible:
                if entry.is_dir:
                    self._visit(ctx, self._provider.join(path, entry.name), repo_root)
        finally:
            if pushed:
                self._exclusions.pop()
            self._emit(EventType.LEAVE_DIRECTORY, relative)

    def _list(self, path: str) -> List[FileEntry]:
        # Sorted so detector and matcher input never depends on platform listing order.
        return sorted(self._provider.list_directory(path), key=lambda entry: entry.name)

    def _list_root(self, path: str) -> List[FileEntry]:
        try:
            return self._list(path)
        except OSError as exc:
            raise ScanError(f"Cannot list scan root {path}: {exc}") from exc

    def _enter_ignore_scope(self, path: str, relative: str, entries: Sequence[FileEntry]) -> bool:
        if not any(entry.name == IGNORE_FILENAME and not entry.is_dir for entry in entries):
            return False
        ignore_path = self._provider.join(path, IGNORE_FILENAME)
        try:
            patterns = parse_ignore_patterns(self._provider.read_text(ignore_path))
        except OSError as exc:
            _LOGGER.warning("Could not read %s: %s", ignore_path, exc)
            return False
        return self._exclusions.push(relative, patterns, source=ignore_path)

    def _filter(self, relative: str, entries: Sequence[FileEntry]) -> List[FileEntry]:
        visible: List[FileEntry] = []
        for entry in entries:
            if entry.kind not in ("file", "dir"):
                continue
            if entry.is_dir and entry.name in _ALWAYS_EXCLUDED_DIRS:
                continue
            entry_relative = f"{relative}/{entry.name}" if relative else entry.name
            if self._exclusions.should_exclude(entry.name, entry_relative, entry.is_dir):
                self._emit(EventType.FILE_SKIPPED, entry_relative, reason="excluded by pattern")
                continue
            visible.append(entry)
        return visible

    # Detection and merge

    def _apply_detectors(
        self, parent: Payload, entries: Sequence[FileEntry], path: str, relative: str
    ) -> Payload:
        virtual: List[Payload] = []
        named: List[Payload] = []
        for detector in self._detectors:
            try:
                fragments = detector.detect(
                    entries,
                    path,
                    self._provider.base_path,
                    self._provider,
                    self._dependency_matcher,
                )
            except Exception as exc:  # plugin code: one failing detector must not stop the scan
                _LOGGER.warning("Detector %s failed in %s: %s", detector.name or type(detector).__name__, path, exc)
                continue
            for fragment in fragments or ():
                (virtual if fragment.virtual else named).append(fragment)

        before = set(parent.techs)
        for fragment in virtual:
            parent.merge(fragment)
        for tech in list(parent.techs):
            if tech not in before:
                self._add_implicit_child(parent, tech, relative)

        ctx = parent
        for fragment in named:
            node = parent.add_child(fragment)
            self._emit(EventType.COMPONENT_DETECTED, relative, name=node.name)
            for tech in list(fragment.techs):
                self._add_implicit_child(node, tech, relative)
            ctx = node
        return ctx

    def _apply_rules(self, ctx: Payload, files: Sequence[FileEntry], path: str, relative: str) -> None:
        names = [entry.name for entry in files]
        matched: Dict[str, List[str]] = {}
        for tech, reasons in self._file_matcher.match(names, relative).items():
            matched.setdefault(tech, list(reasons))
        for tech, reasons in self._extension_matcher.match(names).items():
            matched.setdefault(tech, list(reasons))

        structural: Set[str] = set(matched)
        for entry in files:
            if not self._content_matcher.has_candidates(entry.name):
                continue
            text = self._read_candidate(path, entry)
            if text is None:
                continue
            for tech, reasons in self._content_matcher.match(entry.name, text).items():
                if tech in structural:
                    continue
                bucket = matched.setdefault(tech, [])
                bucket.extend(reason for reason in reasons if reason not in bucket)

        before = set(ctx.techs)
        for tech, reasons in matched.items():
            for reason in reasons:
                ctx.add_tech(tech, reason)
                self._emit(EventType.RULE_MATCHED, relative, tech=tech, reason=reason)
            self._dependency_matcher.add_primary_tech_if_needed(ctx, tech)
            if tech not in before:
                self._add_implicit_child(ctx, tech, relative)

    def _read_candidate(self, directory: str, entry: FileEntry) -> Optional[str]:
        path = self._provider.join(directory, entry.name)
        if entry.size > self._max_content_bytes:
            self._emit(EventType.FILE_SKIPPED, self._provider.relative(path), reason="too large for content matching")
            return None
        try:
            return self._provider.read_text(path)
        except OSError as exc:
            _LOGGER.warning("Could not read %s: %s", path, exc)
            self._emit(EventType.FILE_SKIPPED, self._provider.relative(path), reason=f"unreadable: {exc}")
            return None

    def _add_implicit_child(self, node: Payload, tech: str, relative: str) -> None:
        rule = self._catalog.get(tech)
        if rule is None or not self._catalog.should_create_component(rule):
            return
        reasons = list(node.techs.get(tech) or [f"{tech} detected"])
        child = Payload(rule.name, node.paths, component_type=rule.category)
        child.implicit = True
        if self._catalog.should_add_primary_tech(rule):
            child.add_primary_tech(tech, reasons[0])
        for reason in reasons:
            child.add_tech(tech, reason)
        placed = node.add_child(child)
        if self._catalog.should_create_edge(rule):
            node.add_edge(placed)
        self._emit(EventType.COMPONENT_DETECTED, relative, name=placed.name, tech=tech)

    # Repository identity

    def _find_base_repo_root(self, base: str) -> Optional[str]:
        if self._git is None:
            return None
        key = os.path.realpath(base)
        if key not in self._repo_roots:
            toplevel = self._git.find_repo_root(base)
            self._repo_roots[key] = os.path.realpath(toplevel) if toplevel else None
        return self._repo_roots[key]

    def _repo_info(self, repo_root: Optional[str]) -> Optional[GitInfo]:
        if self._git is None or repo_root is None:
            return None
        if repo_root not in self._repo_infos:
            self._repo_infos[repo_root] = self._git.read_info(repo_root)
        return self._repo_infos[repo_root]

    def _attach_repository(
        self,
        ctx: Payload,
        path: str,
        entries: Sequence[FileEntry],
        inherited_repo: Optional[str],
    ) -> Optional[str]:
        """Return the repository root for ``path``; a nested checkout opens a new boundary."""
        if self._git is None:
            return inherited_repo
        # Keys are symlink-resolved to line up with git's --show-toplevel output.
        key = os.path.realpath(path)
        if key not in self._repo_roots:
            has_checkout = any(entry.name == ".git" for entry in entries)
            self._repo_roots[key] = key if has_checkout else inherited_repo
        repo_root = self._repo_roots[key]
        if repo_root and repo_root != inherited_repo and ctx.git is None:
            ctx.git = self._repo_info(repo_root)
        return repo_root

    def _local_exclude_patterns(self, repo_root: Optional[str]) -> List[str]:
        if repo_root is None:
            return []
        git_dir = find_git_dir(repo_root)
        if git_dir is None:
            return []
        exclude_file = git_dir / "info" / "exclude"
        try:
            return parse_ignore_patterns(exclude_file.read_text(encoding="utf-8"))
        except FileNotFoundError:
            return []
        except OSError as exc:
            _LOGGER.warning("Could not read %s: %s", exclude_file, exc)
            return []

    def _resolve_root_id(
        self,
        base: str,
        repo_root: Optional[str],
        git: Optional[GitInfo],
        subfolders: Sequence[str] | None,
    ) -> str:
        remote = git.remote_url if git and git.remote_url else None
        relative = ""
        if remote and repo_root:
            relative = os.path.relpath(os.path.realpath(base), repo_root)
        if self._root_id:
            return self._root_id
        if subfolders:
            return multi_root_id(base, subfolders, remote_url=remote, relative_path=relative)
        return resolve_root_id(base, remote_url=remote, relative_path=relative)

    # Helpers

    def _validate_subfolders(self, base: str, subfolders: Sequence[str]) -> List[str]:
        paths: List[str] = []
        for sub in sorted({normalize_relative_path(sub) for sub in subfolders} - {""}):
            if sub.startswith(".."):
                raise ScanError(f"Subfolder {sub} is outside the scan root {base}")
            path = self._provider.join(base, *sub.split("/"))
            if not self._provider.is_directory(path):
                raise ScanError(f"Subfolder is not a directory: {path}")
            paths.append(path)
        return paths

    def _build_metadata(self, root: Payload, base: str, started: float) -> ScanMetadata:
        languages: Set[str] = set()
        primary: Set[str] = set()
        techs: Set[str] = set()
        components = 0
        for node in root.iter_nodes():
            if node is not root:
                components += 1
            languages.update(node.languages)
            primary.update(node.primary_techs)
            techs.update(node.techs)
        return ScanMetadata(
            scan_path=base,
            duration_ms=int((time.monotonic() - started) * 1000),
            file_count=self._file_count,
            component_count=components,
            language_count=len(languages),
            tech_count=len(primary),
            techs_count=len(techs),
            properties=dict(self._properties),
        )

    def _emit(
        self,
        event_type: EventType,
        path: str,
        *,
        name: Optional[str] = None,
        tech: Optional[str] = None,
        reason: Optional[str] = None,
        details: Optional[Dict[str, object]] = None,
    ) -> None:
        event = Event(event_type, path, name=name, tech=tech, reason=reason, details=dict(details or {}))
        try:
            self._events.emit(event)
        except Exception as exc:  # observers must never change scan results
            _LOGGER.warning("Event sink failed on %s: %s", event_type.value, exc)


def scan_path(
    path: str | os.PathLike[str],
    *,
    catalog: Optional[RuleCatalog] = None,
    config: Optional[ScanConfig] = None,
    exclude: Sequence[str] = (),
    root_id: Optional[str] = None,
    rules_dirs: Sequence[str | os.PathLike[str]] = (),
    detectors: Sequence[Detector] | None = None,
    events: Optional[EventSink] = None,
    git: Optional[GitInspector] = None,
    use_git: bool = True,
    subfolders: Sequence[str] | None = None,
) -> ComponentNode:
    """Scan a directory on the local filesystem with config and git wired in."""
    base = os.path.abspath(os.fspath(path))
    if not os.path.exists(base):
        raise FileNotFoundError(f"Scan root does not exist: {base}")
    if not os.path.isdir(base):
        raise ScanError(f"Scan root is not a directory: {base}")
    config = config or load_config(Path(base))
    if catalog is None:
        catalog = load_catalog([*config.rules_dirs, *(Path(item) for item in rules_dirs)])
    if git is None and use_git:
        git = GitInspector()

    scanner = Scanner(
        FileSystemProvider(base),
        catalog,
        detectors,
        exclude_patterns=config.merged_excludes(exclude),
        root_id=root_id or config.root_id,
        properties=config.properties,
        configured_techs=config.techs,
        git=git,
        events=events,
    )
    return scanner.scan(subfolders)


def scan_paths(paths: Sequence[str | os.PathLike[str]], **kwargs: object) -> ComponentNode:
    """Scan several directories as one tree rooted at their common parent."""
    if not paths:
        raise ScanError("No paths to scan")
    absolute = [os.path.abspath(os.fspath(path)) for path in paths]
    if len(set(absolute)) == 1:
        return scan_path(absolute[0], **kwargs)  # type: ignore[arg-type]
    common = os.path.commonpath(absolute)
    subfolders = [os.path.relpath(path, common) for path in absolute]
    if any(sub == os.curdir for sub in subfolders):
        return scan_path(common, **kwargs)  # type: ignore[arg-type]
    return scan_path(common, subfolders=[sub.replace(os.sep, "/") for sub in subfolders], **kwargs)  # type: ignore[arg-type]


__all__ = ["ROOT_NAME", "Scanner", "scan_path", "scan_paths"]
