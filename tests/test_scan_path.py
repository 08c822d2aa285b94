"""Scans of real directories on disk."""

from __future__ import annotations

import os
import subprocess
from pathlib import Path

import pytest

from stackprobe.errors import ScanError
from stackprobe.git import GitInspector
from stackprobe.identity import multi_root_id, root_id
from stackprobe.scanner import scan_path, scan_paths
from tests._fixtures.repo_builder import RepoBuilder


def test_scan_path_uses_builtin_rules(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            "requirements.txt": "django==4.2\npsycopg2-binary\n",
            "manage.py": "import django\n",
            "web/package.json": '{"name": "web", "dependencies": {"react": "18.2.0"}}',
        }
    )

    tree = repo_builder.scan()

    assert {"django", "pip", "python"} <= set(tree.techs)
    assert "python" in tree.primary_techs
    web = tree.find("web")
    assert web is not None and "react" in web.techs
    assert tree.find("PostgreSQL") is not None


def test_config_file_excludes_and_declares_techs(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".stackprobe.yml": """
            exclude:
              - legacy
            techs:
              - tech: kafka
                reason: managed cluster
            root_id: configured-root
            properties:
              owner: platform
            """,
            "legacy/app.py": "",
            "src/app.py": "",
        }
    )

    tree = repo_builder.scan()

    assert tree.id == "configured-root"
    assert tree.languages.get("Python") == 1
    assert tree.find("kafka") is not None
    assert tree.metadata is not None and tree.metadata.properties == {"owner": "platform"}


def test_explicit_root_id_beats_config(repo_builder: RepoBuilder) -> None:
    repo_builder.write({".stackprobe.yml": "root_id: from-config\n"})

    assert repo_builder.scan(root_id="from-cli").id == "from-cli"


def test_gitignore_on_disk_is_respected(repo_builder: RepoBuilder) -> None:
    repo_builder.write(
        {
            ".gitignore": "dist/\n",
            "dist/bundle.py": "",
            "pkg/.gitignore": "generated.py\n",
            "pkg/generated.py": "",
            "pkg/module.py": "",
            "other/generated.py": "",
        }
    )

    tree = repo_builder.scan()

    assert tree.languages.get("Python") == 2


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_symlinks_are_not_followed(repo_builder: RepoBuilder, tmp_path: Path) -> None:
    outside = tmp_path / "outside"
    outside.mkdir()
    (outside / "package.json").write_text('{"name": "outside"}', encoding="utf-8")
    repo_builder.write({"main.py": ""})
    os.symlink(outside, repo_builder.path() / "linked", target_is_directory=True)

    tree = repo_builder.scan()

    assert tree.find("outside") is None


def test_missing_root_raises_file_not_found(tmp_path: Path) -> None:
    with pytest.raises(FileNotFoundError):
        scan_path(tmp_path / "missing", use_git=False)


def test_root_that_is_a_file_raises_scan_error(tmp_path: Path) -> None:
    target = tmp_path / "notes.txt"
    target.write_text("hello", encoding="utf-8")

    with pytest.raises(ScanError):
        scan_path(target, use_git=False)


def test_root_id_is_the_same_through_a_symlinked_checkout(tmp_path: Path) -> None:
    real = tmp_path / "real"
    real.mkdir()
    (real / "main.py").write_text("", encoding="utf-8")
    link = tmp_path / "link"
    os.symlink(real, link, target_is_directory=True)
    toplevel = os.path.realpath(real)
    answers = {
        "rev-parse --show-toplevel": toplevel,
        "rev-parse --short=7 HEAD": "abc1234",
        "rev-parse --abbrev-ref HEAD": "main",
        "config --get remote.origin.url": "https://example.com/org/repo.git",
    }

    def runner(args, cwd):
        if cwd not in (str(link), str(real), toplevel):
            raise subprocess.CalledProcessError(128, args)
        return answers[" ".join(args[1:])] + "\n"

    through_link = scan_path(link, git=GitInspector(runner))
    direct = scan_path(real, git=GitInspector(runner))

    assert through_link.id == direct.id == root_id("https://example.com/org/repo.git")
    assert through_link.git == direct.git


def test_scan_paths_scans_common_root_subfolders(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"a/x.py": "", "b/y.py": "", "c/z.py": ""})
    root = repo_builder.path()

    tree = scan_paths([root / "b", root / "a"], use_git=False)

    assert tree.id == multi_root_id(str(root), ["a", "b"])
    assert tree.languages.get("Python") == 2


def test_scan_paths_with_single_path_is_a_plain_scan(repo_builder: RepoBuilder) -> None:
    repo_builder.write({"x.py": ""})

    tree = scan_paths([repo_builder.path()], use_git=False)

    assert tree.metadata is not None
    assert tree.metadata.scan_path == str(repo_builder.path())
