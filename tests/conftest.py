"""Shared fixtures: throwaway extension trees under tmp_path."""

import json

import pytest

from extension_checker import load_config

MANIFEST = {
    "manifest_version": 3,
    "name": "Sample Extension",
    "version": "1.0.0",
    "description": "A sample extension",
    "background": {"service_worker": "background.js"},
    "action": {"default_popup": "popup.html"},
    "permissions": ["storage"],
}

BASE_FILES = {
    "background.js": "chrome.runtime.onInstalled.addListener(() => {});\n",
    "popup.html": (
        "<!doctype html>\n"
        "<html><body><div id=\"out\"></div><script src=\"popup.js\"></script></body></html>\n"
    ),
    "popup.js": "document.getElementById('out').textContent = 'ready';\n",
}


def write_tree(root, files):
    for rel, content in files.items():
        path = root / rel
        path.parent.mkdir(parents=True, exist_ok=True)
        if not isinstance(content, str):
            content = json.dumps(content, indent=2)
        path.write_text(content, encoding="utf-8")
    return root


@pytest.fixture
def make_extension(tmp_path):
    def _make(files=None, manifest=MANIFEST, name="ext"):
        tree = dict(BASE_FILES)
        if manifest is not None:
            tree["manifest.json"] = manifest
        tree.update(files or {})
        return write_tree(tmp_path / name, tree)
    return _make


@pytest.fixture
def extension(make_extension):
    return make_extension()


@pytest.fixture
def config_for():
    def _config(root, **overrides):
        data = {"extensionPath": str(root)}
        data.update(overrides)
        return load_config(overrides=data, environ={})
    return _config
