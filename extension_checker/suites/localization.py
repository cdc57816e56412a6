"""
Localization Validation: _locales layout and messages.json consistency.
"""

import json
import re

from ..errors import ValidationError
from ..issue import Severity
from .base import ExtensionSuite

LOCALES_DIR = "_locales"
MESSAGES_FILE = "messages.json"
PLACEHOLDER_RE = re.compile(r"\$([A-Za-z0-9_@]+)\$")


def uses_locales(config) -> bool:
    """True when the extension declares default_locale or ships _locales."""
    root = config.root
    if (root / LOCALES_DIR).is_dir():
        return True
    try:
        manifest = json.loads((root / "manifest.json").read_text(encoding="utf-8-sig"))
    except (OSError, ValueError):
        return False
    return isinstance(manifest, dict) and bool(manifest.get("default_locale"))


class LocalizationSuite(ExtensionSuite):
    key = "localization"
    title = "Localization Validation"
    summary = "Checks _locales against default_locale"

    def setup_tests(self):
        self.test_if(uses_locales, "Locales directory exists", self.check_locales_dir)
        self.test_if(uses_locales, "Default locale validation", self.check_default_locale)
        self.test_if(uses_locales, "Messages format validation", self.check_messages_format)
        self.test_if(
            uses_locales, "Consistency across locales", self.check_consistency, severity=Severity.WARNING,
        )

    def locales(self):
        return [name for name in self.read_directory(LOCALES_DIR) if self.path(f"{LOCALES_DIR}/{name}").is_dir()]

    def messages(self, locale):
        data = self.load_json(f"{LOCALES_DIR}/{locale}/{MESSAGES_FILE}")
        if not isinstance(data, dict):
            raise ValidationError(f"{LOCALES_DIR}/{locale}/{MESSAGES_FILE} must contain a JSON object")
        return data

    def check_locales_dir(self, ctx):
        default_locale = self.load_manifest().get("default_locale")
        has_dir = self.path(LOCALES_DIR).is_dir()
        if default_locale and not has_dir:
            raise ValidationError("_locales directory is required when default_locale is set")
        if has_dir and not default_locale:
            raise ValidationError(
                "_locales directory exists but default_locale is not set",
                suggestion="Set default_locale in manifest.json or remove _locales",
            )

    def check_default_locale(self, ctx):
        default_locale = self.load_manifest().get("default_locale")
        if not default_locale:
            return
        if not self.path(f"{LOCALES_DIR}/{default_locale}").is_dir():
            raise ValidationError(f"Default locale directory not found: {LOCALES_DIR}/{default_locale}")
        if not self.file_exists(f"{LOCALES_DIR}/{default_locale}/{MESSAGES_FILE}"):
            raise ValidationError(f"Messages file not found for default locale: {default_locale}")

    def check_messages_format(self, ctx):
        for locale in self.locales():
            if not self.file_exists(f"{LOCALES_DIR}/{locale}/{MESSAGES_FILE}"):
                continue
            for key, entry in self.messages(locale).items():
                if not isinstance(entry, dict) or "message" not in entry:
                    raise ValidationError(f"Missing 'message' property for key '{key}' in {locale}")
                defined = {p.lower() for p in (entry.get("placeholders") or {})}
                for name in PLACEHOLDER_RE.findall(str(entry["message"])):
                    if name.lower() not in defined and not name.isdigit():
                        ctx.warn(f"Placeholder ${name}$ used but not defined in {locale}/{key}")

    def check_consistency(self, ctx):
        default_locale = self.load_manifest().get("default_locale")
        if not default_locale:
            return
        reference = set(self.messages(default_locale))
        problems = []
        for locale in self.locales():
            if locale == default_locale:
                continue
            if not self.file_exists(f"{LOCALES_DIR}/{locale}/{MESSAGES_FILE}"):
                problems.append(f"{locale}: missing {MESSAGES_FILE}")
                continue
            missing = sorted(reference - set(self.messages(locale)))
            if missing:
                problems.append(f"{locale}: missing {', '.join(missing)}")
        if problems:
            raise ValidationError(f"Inconsistent locales: {'; '.join(problems)}")


def build(config):
    return LocalizationSuite(config)
