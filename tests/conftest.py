# Shared fixtures: small source trees and specs written under tmp_path.

import json

import pytest

from epcheck.base import Endpoint, HttpMethod


@pytest.fixture
def make_tree(tmp_path):
    """Write {relative_path: content} under tmp_path and return the root."""
    def _make(files, root=None):
        base = root or tmp_path
        for rel, content in files.items():
            fp = base / rel
            fp.parent.mkdir(parents=True, exist_ok=True)
            if isinstance(content, bytes):
                fp.write_bytes(content)
            else:
                fp.write_text(content, encoding="utf-8")
        return base
    return _make


@pytest.fixture(autouse=True)
def git_home(tmp_path_factory, monkeypatch):
    """Point HOME and XDG_CONFIG_HOME away from the real user's git config."""
    home = tmp_path_factory.mktemp("home")
    monkeypatch.setenv("HOME", str(home))
    monkeypatch.setenv("XDG_CONFIG_HOME", str(home / ".config"))
    return home


@pytest.fixture
def spec_dict():
    return {
        "openapi": "3.0.0",
        "info": {"title": "Users API", "version": "1.0"},
        "paths": {
            "/api/users": {
                "get": {"summary": "List users"},
                "post": {"summary": "Create user"},
                "parameters": [],
            },
            "/api/users/{id}": {
                "get": {"summary": "Get user"},
                "put": {"summary": "Update user"},
                "x-internal": True,
            },
        },
    }


@pytest.fixture
def spec_file(tmp_path, spec_dict):
    fp = tmp_path / "openapi.json"
    fp.write_text(json.dumps(spec_dict), encoding="utf-8")
    return fp


def ep(method, path):
    return Endpoint(path=path, method=HttpMethod[method])
