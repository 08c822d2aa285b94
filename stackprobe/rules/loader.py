"""Load and validate rule definitions from YAML directories."""

from __future__ import annotations

import re
from pathlib import Path
from typing import Any, Dict, List, Mapping, Optional, Sequence, Tuple

import yaml

from ..errors import CatalogLoadError, RuleLoadError
from ..logging import get_logger
from .catalog import RuleCatalog
from .models import CONTENT_TYPES, Category, ContentRule, Rule, RuleDependency

BUILTIN_RULES_DIR = Path(__file__).resolve().parent / "techs"
CATEGORIES_FILE = "categories.yaml"

_LOGGER = get_logger("rules")


def load_catalog(
    sources: Sequence[Path | str] = (), *, include_builtin: bool = True
) -> RuleCatalog:
    """Build the rule catalog from the built-in rules plus extra directories.

    Invalid rules are rejected one by one and recorded on ``catalog.errors``.
    A missing source directory, a malformed categories file, or a catalog
    that ends up empty raises :class:`CatalogLoadError`.
    """
    directories: List[Path] = [BUILTIN_RULES_DIR] if include_builtin else []
    directories.extend(Path(source).expanduser() for source in sources)
    if not directories:
        raise CatalogLoadError("No rule sources were provided")

    rules: Dict[str, Rule] = {}
    categories: Dict[str, Category] = {}
    errors: List[RuleLoadError] = []

    for directory in directories:
        loaded, categories_found, rejected = load_rule_directory(directory)
        categories.update(categories_found)
        errors.extend(rejected)
        for rule in loaded:
            if rule.tech in rules:
                _LOGGER.debug("Rule %s from %s overrides %s", rule.tech, rule.source, rules[rule.tech].source)
            rules[rule.tech] = rule

    for error in errors:
        _LOGGER.warning("Rejected rule %s", error)

    if not rules:
        raise CatalogLoadError("No valid rules were loaded from " + ", ".join(str(d) for d in directories))

    return RuleCatalog(rules.values(), categories, errors)


def load_rule_directory(
    directory: Path,
) -> Tuple[List[Rule], Dict[str, Category], List[RuleLoadError]]:
    """Read every ``*.yaml`` rule below ``directory``.

    The first folder below ``directory`` names the default category of the
    rules it contains.
    """
    if not directory.is_dir():
        raise CatalogLoadError(f"Rule source is not a directory: {directory}")

    categories: Dict[str, Category] = {}
    categories_path = directory / CATEGORIES_FILE
    if categories_path.is_file():
        categories = parse_categories(_read_yaml(categories_path, fatal=True), str(categories_path))

    rules: List[Rule] = []
    errors: List[RuleLoadError] = []
    seen: Dict[str, str] = {}
    files = sorted(
        path
        for path in directory.rglob("*")
        if path.is_file() and path.suffix in {".yaml", ".yml"} and path != categories_path
    )
    for path in files:
        relative = path.relative_to(directory)
        default_category = relative.parts[0] if len(relative.parts) > 1 else None
        try:
            source = relative.as_posix()
            rule = parse_rule(_read_yaml(path, source=source), source=source, default_category=default_category)
        except RuleLoadError as exc:
            errors.append(exc)
            continue
        if rule.tech in seen:
            errors.append(
                RuleLoadError(rule.source, f"duplicate tech '{rule.tech}' (already defined in {seen[rule.tech]})")
            )
            continue
        seen[rule.tech] = rule.source
        rules.append(rule)
    return rules, categories, errors


def parse_rule(
    data: Any, *, source: str = "<memory>", default_category: Optional[str] = None
) -> Rule:
    """Validate a decoded rule mapping and return a :class:`Rule`."""
    if not isinstance(data, Mapping):
        raise RuleLoadError(source, "rule must be a mapping")

    tech = _as_str(data.get("tech"))
    name = _as_str(data.get("name"))
    category = _as_str(data.get("type")) or _as_str(data.get("category")) or default_category
    missing = [label for label, value in (("tech", tech), ("name", name), ("type", category)) if not value]
    if missing:
        raise RuleLoadError(source, f"missing required field(s): {', '.join(missing)}")

    extensions = tuple(_normalize_extension(ext) for ext in _as_str_list(data.get("extensions")))
    files = tuple(_as_str_list(data.get("files")))
    dependencies = tuple(_parse_dependency(entry, source) for entry in _as_list(data.get("dependencies")))
    content = tuple(
        _parse_content(entry, source, extensions, files) for entry in _as_list(data.get("content"))
    )

    content_required = _as_bool(data.get("content_required"))
    if content_required is None:
        content_required = bool(content)

    properties = data.get("properties")
    if properties is not None and not isinstance(properties, Mapping):
        raise RuleLoadError(source, "properties must be a mapping")

    return Rule(
        tech=tech,  # type: ignore[arg-type]
        name=name,  # type: ignore[arg-type]
        category=category,  # type: ignore[arg-type]
        description=_as_str(data.get("description")) or "",
        files=files,
        extensions=extensions,
        content=content,
        dependencies=dependencies,
        dotenv=tuple(_as_str_list(data.get("dotenv"))),
        is_component=_as_bool(data.get("is_component")),
        is_primary_tech=_as_bool(data.get("is_primary_tech")),
        creates_edge=_as_bool(data.get("creates_edge")),
        content_required=content_required,
        properties=dict(properties or {}),
        source=source,
    )


def parse_categories(data: Any, source: str = CATEGORIES_FILE) -> Dict[str, Category]:
    if data is None:
        return {}
    if not isinstance(data, Mapping):
        raise CatalogLoadError(f"{source}: categories must be a mapping")
    entries = data.get("categories", data)
    if not isinstance(entries, Mapping):
        raise CatalogLoadError(f"{source}: categories must be a mapping")

    categories: Dict[str, Category] = {}
    for name, settings in entries.items():
        settings = settings if isinstance(settings, Mapping) else {}
        categories[str(name)] = Category(
            name=str(name),
            is_component=bool(_as_bool(settings.get("is_component"))),
            creates_edge=bool(_as_bool(settings.get("creates_edge"))),
            description=_as_str(settings.get("description")) or "",
        )
    return categories


def _parse_dependency(entry: Any, source: str) -> RuleDependency:
    if not isinstance(entry, Mapping):
        raise RuleLoadError(source, "dependency entries must be mappings with type and name")
    dep_type = _as_str(entry.get("type"))
    dep_name = _as_str(entry.get("name"))
    if not dep_type or not dep_name:
        raise RuleLoadError(source, f"dependency entry requires type and name: {dict(entry)!r}")
    dependency = RuleDependency(type=dep_type, name=dep_name)
    try:
        dependency.compile()
    except re.error as exc:
        raise RuleLoadError(source, f"invalid dependency pattern {dep_name!r}: {exc}") from exc
    return dependency


def _parse_content(
    entry: Any, source: str, extensions: Tuple[str, ...], files: Tuple[str, ...]
) -> ContentRule:
    if not isinstance(entry, Mapping):
        raise RuleLoadError(source, "content entries must be mappings")
    content_type = _as_str(entry.get("type")) or "regex"
    if content_type not in CONTENT_TYPES:
        raise RuleLoadError(source, f"unsupported content type '{content_type}'")

    pattern = _as_str(entry.get("pattern")) or ""
    path = _as_str(entry.get("path")) or ""
    if content_type == "regex":
        if not pattern:
            raise RuleLoadError(source, "regex content entries require a pattern")
        try:
            re.compile(pattern)
        except re.error as exc:
            raise RuleLoadError(source, f"invalid content pattern {pattern!r}: {exc}") from exc
    elif not path:
        raise RuleLoadError(source, f"{content_type} content entries require a path")

    own_extensions = tuple(_normalize_extension(ext) for ext in _as_str_list(entry.get("extensions")))
    own_files = tuple(_as_str_list(entry.get("files")))
    if not own_extensions and not own_files:
        own_extensions, own_files = extensions, files
    if not own_extensions and not own_files:
        raise RuleLoadError(source, "content entries need extensions or files to select candidates")

    value = entry.get("value")
    return ContentRule(
        type=content_type,
        pattern=pattern,
        path=path,
        value=None if value is None else str(value),
        extensions=own_extensions,
        files=own_files,
    )


def _read_yaml(path: Path, *, fatal: bool = False, source: Optional[str] = None) -> Any:
    try:
        return yaml.safe_load(path.read_text(encoding="utf-8"))
    except (OSError, yaml.YAMLError) as exc:
        if fatal:
            raise CatalogLoadError(f"Failed to read {path}: {exc}") from exc
        raise RuleLoadError(source or path.name, f"failed to parse YAML: {exc}") from exc


def _normalize_extension(extension: str) -> str:
    extension = extension.strip().lower()
    return extension if extension.startswith(".") else f".{extension}"


def _as_list(value: Any) -> List[Any]:
    if value is None:
        return []
    if isinstance(value, list):
        return value
    return [value]


def _as_str(value: Any) -> Optional[str]:
    if isinstance(value, str):
        return value.strip() or None
    if isinstance(value, (int, float)) and not isinstance(value, bool):
        return str(value)
    return None


def _as_str_list(value: Any) -> List[str]:
    return [item.strip() for item in _as_list(value) if isinstance(item, str) and item.strip()]


def _as_bool(value: Any) -> Optional[bool]:
    if isinstance(value, bool):
        return value
    if isinstance(value, str):
        lowered = value.strip().lower()
        if lowered in {"true", "yes", "1"}:
            return True
        if lowered in {"false", "no", "0"}:
            return False
    return None


def catalog_from_mappings(
    rules: Sequence[Mapping[str, Any]],
    categories: Optional[Mapping[str, Any]] = None,
) -> RuleCatalog:
    """Build a catalog from in-memory rule mappings, raising on the first invalid rule."""
    parsed = [parse_rule(data, source=f"<rule {index}>") for index, data in enumerate(rules)]
    return RuleCatalog(parsed, parse_categories(categories or {}, "<categories>"))


__all__ = [
    "BUILTIN_RULES_DIR",
    "catalog_from_mappings",
    "load_catalog",
    "load_rule_directory",
    "parse_categories",
    "parse_rule",
]
