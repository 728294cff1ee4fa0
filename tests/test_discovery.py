import os

import pytest

from epcheck.discovery import FileDiscovery, is_candidate
from epcheck.errors import DiscoveryError


def rel_set(root, files):
    return {p.relative_to(root).as_posix() for p in files}


def test_is_candidate_extensions():
    assert is_candidate("app.ts")
    assert is_candidate("SERVICE.PY")
    assert is_candidate("Makefile")
    assert not is_candidate("logo.png")
    assert not is_candidate("archive.tar.gz")


def test_includes_hidden_and_extensionless_files(make_tree):
    root = make_tree({
        "src/app.ts": "x",
        ".config/client.js": "x",
        ".hidden.py": "x",
        "bin/deploy": "x",
        "assets/logo.png": "x",
    })
    files = rel_set(root, FileDiscovery().find_files(root))
    assert files == {"src/app.ts", ".config/client.js", ".hidden.py", "bin/deploy"}


def test_vcs_directories_are_not_descended(make_tree):
    root = make_tree({".git/HEAD": "ref", ".git/hooks/pre-commit": "x", "a.ts": "x"})
    assert rel_set(root, FileDiscovery().find_files(root)) == {"a.ts"}


def test_gitignore_rules_are_honored(make_tree):
    root = make_tree({
        ".gitignore": "build/\ngenerated.ts\n!keep/generated.ts\n",
        "build/out.js": "x",
        "generated.ts": "x",
        "keep/generated.ts": "x",
        "src/app.ts": "x",
    })
    files = rel_set(root, FileDiscovery().find_files(root))
    assert "build/out.js" not in files
    assert "generated.ts" not in files
    assert "keep/generated.ts" in files
    assert "src/app.ts" in files


def test_nested_gitignore_is_scoped_to_its_directory(make_tree):
    root = make_tree({
        "pkg/.gitignore": "local.ts\n",
        "pkg/local.ts": "x",
        "local.ts": "x",
        "other/local.ts": "x",
    })
    files = rel_set(root, FileDiscovery().find_files(root))
    assert "pkg/local.ts" not in files
    assert "local.ts" in files
    assert "other/local.ts" in files


def test_git_info_exclude_is_honored(make_tree):
    root = make_tree({".git/info/exclude": "scratch.ts\n", "scratch.ts": "x", "a.ts": "x"})
    assert rel_set(root, FileDiscovery().find_files(root)) == {"a.ts"}


def test_gitignore_can_be_disabled(make_tree):
    root = make_tree({".gitignore": "ignored.ts\n", "ignored.ts": "x"})
    files = rel_set(root, FileDiscovery(respect_gitignore=False).find_files(root))
    assert "ignored.ts" in files


def test_user_exclusions(make_tree):
    root = make_tree({
        "openapi.json": "{}",
        "docs/openapi.json": "{}",
        "node_modules/lib/index.js": "x",
        "web/node_modules/x.js": "x",
        "src/app.ts": "x",
    })
    files = rel_set(root, FileDiscovery(exclude=["/openapi.json", "node_modules"]).find_files(root))
    assert files == {"docs/openapi.json", "src/app.ts"}


def test_exclusion_with_dot_slash_prefix(make_tree):
    root = make_tree({"src/gen/client.ts": "x", "src/app.ts": "x"})
    files = rel_set(root, FileDiscovery(exclude=["./src/gen/"]).find_files(root))
    assert files == {"src/app.ts"}


@pytest.mark.skipif(not hasattr(os, "symlink"), reason="symlinks unavailable")
def test_broken_symlink_is_a_warning(make_tree):
    root = make_tree({"a.ts": "x"})
    os.symlink(root / "missing.ts", root / "dangling.ts")

    discovery = FileDiscovery()
    files = rel_set(root, discovery.find_files(root))

    assert files == {"a.ts"}
    assert any("Broken symlink" in w for w in discovery.warnings)


def test_missing_root_is_fatal(tmp_path):
    with pytest.raises(DiscoveryError):
        FileDiscovery().find_files(tmp_path / "missing")


def test_file_root_is_fatal(tmp_path):
    fp = tmp_path / "a.ts"
    fp.write_text("x")
    with pytest.raises(DiscoveryError):
        FileDiscovery().find_files(fp)


def test_subdirectory_scan_honors_repository_rules(make_tree):
    root = make_tree({
        ".git/info/exclude": "scratch.ts\n",
        ".gitignore": "generated/\n",
        "src/.ignore": "local/\n",
        "src/app.ts": "x",
        "src/scratch.ts": "x",
        "src/generated/client.ts": "x",
        "src/lib/local/tmp.ts": "x",
    })
    files = rel_set(root / "src", FileDiscovery().find_files(root / "src"))
    assert files == {"app.ts"}


def test_ancestor_ignore_files_between_repo_and_scan_root(make_tree):
    root = make_tree({
        ".git/HEAD": "ref",
        "services/.gitignore": "/api/dist/\n",
        "services/api/dist/bundle.js": "x",
        "services/api/src/app.ts": "x",
    })
    scan = root / "services" / "api"
    assert rel_set(scan, FileDiscovery().find_files(scan)) == {"src/app.ts"}


def test_ignore_rules_outside_a_repository_stay_local(make_tree):
    root = make_tree({".gitignore": "*.ts\n", "src/app.ts": "x"})
    # No .git above: the parent's .gitignore does not apply to a scan of src/
    assert rel_set(root / "src", FileDiscovery().find_files(root / "src")) == {"app.ts"}


def test_global_excludes_file(make_tree, git_home):
    (git_home / ".config" / "git").mkdir(parents=True)
    (git_home / ".config" / "git" / "ignore").write_text("*.generated.ts\n")
    root = make_tree({".git/HEAD": "ref", "a.ts": "x", "b.generated.ts": "x"})
    assert rel_set(root, FileDiscovery().find_files(root)) == {"a.ts"}


def test_configured_global_excludes_file(make_tree, git_home, tmp_path_factory):
    excludes = tmp_path_factory.mktemp("gitcfg") / "excludes"
    excludes.write_text("secret.ts\n")
    (git_home / ".gitconfig").write_text(f"[core]\n\texcludesFile = {excludes}\n")
    root = make_tree({".git/HEAD": "ref", "a.ts": "x", "secret.ts": "x"})
    assert rel_set(root, FileDiscovery().find_files(root)) == {"a.ts"}


def test_nested_negation_reincludes_file(make_tree):
    root = make_tree({
        ".gitignore": "*.ts\n",
        "sub/.gitignore": "!keep.ts\n",
        "sub/keep.ts": "x",
        "sub/drop.ts": "x",
        "top.ts": "x",
    })
    assert rel_set(root, FileDiscovery().find_files(root)) == {"sub/keep.ts"}


def test_ignore_file_overrides_gitignore_in_same_directory(make_tree):
    root = make_tree({".gitignore": "*.js\n", ".ignore": "!vendor.js\n", "vendor.js": "x", "app.js": "x"})
    assert rel_set(root, FileDiscovery().find_files(root)) == {"vendor.js"}


def test_user_exclusion_cannot_be_reincluded(make_tree):
    root = make_tree({"sub/.gitignore": "!keep.ts\n", "sub/keep.ts": "x"})
    assert rel_set(root, FileDiscovery(exclude=["keep.ts"]).find_files(root)) == set()
