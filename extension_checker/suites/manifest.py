"""
Manifest Validation: manifest.json shape and the files it points at.
"""

import json
import re

from ..errors import ValidationError
from ..issue import Severity
from ..utils import MANIFEST_FILE
from .base import ExtensionSuite

REQUIRED_FIELDS = ("manifest_version", "name", "version")
VERSION_RE = re.compile(r"^\d+(\.\d+){0,3}$")
MAX_NAME_LENGTH = 45
MAX_DESCRIPTION_LENGTH = 132
RECOMMENDED_ICON_SIZES = ("16", "48", "128")
BROAD_HOSTS = ("<all_urls>", "http://*/*", "https://*/*", "*://*/*")
DEPRECATED_PERMISSIONS = ("background", "unlimitedStorage")


class ManifestSuite(ExtensionSuite):
    key = "manifest"
    title = "Manifest Validation"
    summary = "Validates manifest.json"

    def setup_tests(self):
        self.test("manifest.json exists", self.check_exists)
        self.test("Valid JSON format", self.check_json)
        self.test("Manifest version is 3", self.check_version_3)
        self.test("Required fields present", self.check_required)
        self.test("Version format valid", self.check_version_format)
        self.test("Name length within limits", self.check_name_length, severity=Severity.WARNING)
        self.test("Description length within limits", self.check_description_length, severity=Severity.WARNING)
        self.test("Valid permissions", self.check_permissions)
        self.test("Icons present", self.check_icons)
        self.test("Service worker configuration", self.check_service_worker)
        self.test("Content scripts validation", self.check_content_scripts)

    def check_exists(self, ctx):
        if not self.file_exists(MANIFEST_FILE):
            raise ValidationError("manifest.json not found")

    def check_json(self, ctx):
        try:
            json.loads(self.load_file(MANIFEST_FILE))
        except json.JSONDecodeError as e:
            raise ValidationError(f"Invalid JSON: {e}") from e

    def check_version_3(self, ctx):
        version = self.load_manifest().get("manifest_version")
        if version != 3:
            raise ValidationError(f"Expected manifest_version 3, got {version}")

    def check_required(self, ctx):
        manifest = self.load_manifest()
        missing = [f for f in REQUIRED_FIELDS if f not in manifest]
        if missing:
            raise ValidationError(f"Missing required fields: {', '.join(missing)}")

    def check_version_format(self, ctx):
        version = self.load_manifest().get("version")
        if not isinstance(version, str) or not VERSION_RE.match(version):
            raise ValidationError(f"Invalid version format: {version}")

    def check_name_length(self, ctx):
        name = self.load_manifest().get("name") or ""
        # __MSG_*__ placeholders are resolved from _locales at install time
        if not name.startswith("__MSG_") and len(name) > MAX_NAME_LENGTH:
            raise ValidationError(f"Name too long: {len(name)} characters (max {MAX_NAME_LENGTH})")

    def check_description_length(self, ctx):
        description = self.load_manifest().get("description") or ""
        if not description.startswith("__MSG_") and len(description) > MAX_DESCRIPTION_LENGTH:
            raise ValidationError(
                f"Description too long: {len(description)} characters (max {MAX_DESCRIPTION_LENGTH})"
            )

    def check_permissions(self, ctx):
        manifest = self.load_manifest()
        collected = []
        for key in ("permissions", "optional_permissions", "host_permissions"):
            values = manifest.get(key, [])
            if not isinstance(values, list) or not all(isinstance(v, str) for v in values):
                raise ValidationError(f"{key} must be a list of strings")
            collected.extend(values)
        if manifest.get("manifest_version") == 3:
            hosts = [p for p in manifest.get("permissions", []) if "://" in p or p == "<all_urls>"]
            if hosts:
                raise ValidationError(f"Host patterns belong in host_permissions in Manifest V3: {', '.join(hosts)}")
        broad = [p for p in collected if p in BROAD_HOSTS]
        if broad:
            ctx.warn(f"Broad host permissions detected: {', '.join(broad)}")
        deprecated = [p for p in collected if p in DEPRECATED_PERMISSIONS]
        if deprecated:
            ctx.warn(f"Deprecated permissions: {', '.join(deprecated)}")

    def check_icons(self, ctx):
        icons = self.load_manifest().get("icons")
        if not icons:
            return
        if not isinstance(icons, dict):
            raise ValidationError("icons must map sizes to file paths")
        missing_sizes = [s for s in RECOMMENDED_ICON_SIZES if s not in icons]
        if missing_sizes:
            ctx.warn(f"Missing recommended icon sizes: {', '.join(missing_sizes)}")
        for size, icon_path in icons.items():
            if not isinstance(icon_path, str) or not self.file_exists(icon_path):
                raise ValidationError(f"Icon file not found: {icon_path}")

    def check_service_worker(self, ctx):
        background = self.load_manifest().get("background")
        if not background:
            return
        worker = background.get("service_worker") if isinstance(background, dict) else None
        if not worker:
            raise ValidationError("Manifest V3 requires service_worker in background")
        if not self.file_exists(worker):
            raise ValidationError(f"Service worker file not found: {worker}")

    def check_content_scripts(self, ctx):
        scripts = self.load_manifest().get("content_scripts") or []
        for index, script in enumerate(scripts):
            if not script.get("matches"):
                raise ValidationError(f"Content script {index} missing matches pattern")
            for rel in list(script.get("js", [])) + list(script.get("css", [])):
                if not self.file_exists(rel):
                    raise ValidationError(f"Content script file not found: {rel}")


def build(config):
    return ManifestSuite(config)
