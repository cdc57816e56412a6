"""
Security Validation.

Source-level checks are answered from the scanner: the shared toolkit scans
the tree once, the severity resolver classifies the matches, and each case
fails when an issue of its rule type resolves high enough.
"""

import json
import re

from ..errors import SecurityError
from ..issue import Severity
from ..utils import MARKUP_EXTENSIONS
from .base import ExtensionSuite, fail_on_issues

BROAD_PERMISSIONS = ("<all_urls>", "http://*/*", "https://*/*", "*://*/*")
POWERFUL_PERMISSIONS = ("debugger", "management", "proxy", "webRequest", "webRequestBlocking", "nativeMessaging")

INLINE_HANDLER_RE = re.compile(r"<[a-z][^>]*\son[a-z]+\s*=", re.IGNORECASE)
EXTERNAL_SCRIPT_RE = re.compile(
    r"<script[^>]+src\s*=\s*[\"']https?://(?!localhost|127\.0\.0\.1)", re.IGNORECASE
)
INSECURE_CSP_SOURCE_RE = re.compile(r"http://(?!localhost|127\.0\.0\.1)")


class SecuritySuite(ExtensionSuite):
    key = "security"
    title = "Security Validation"
    summary = "Checks extension code and manifest for security problems"

    def setup_tests(self):
        self.before(self.report_scan_problems)
        self.test("Content Security Policy validation", self.check_csp)
        self.test("No eval() usage", self.check_eval)
        self.test("No hardcoded secrets", self.check_secrets)
        self.test("Safe innerHTML usage", self.check_sinks)
        self.test("Secure storage usage", self.check_storage, severity=Severity.WARNING)
        self.test("Message passing security", self.check_messaging, severity=Severity.WARNING)
        self.test("Least privilege permissions", self.check_permissions)
        self.test("No inline scripts in HTML", self.check_inline_scripts)
        self.test("No external script loading", self.check_external_scripts)

    def report_scan_problems(self, ctx):
        for message in ctx.toolkit.scan_warnings():
            ctx.warn(message)

    def check_csp(self, ctx):
        csp = self.load_manifest().get("content_security_policy")
        if not csp:
            return
        text = csp if isinstance(csp, str) else json.dumps(csp)
        if "unsafe-eval" in text:
            raise SecurityError("CSP contains unsafe-eval directive")
        if INSECURE_CSP_SOURCE_RE.search(text):
            raise SecurityError("CSP should enforce HTTPS for external resources")
        if "unsafe-inline" in text:
            ctx.warn("CSP contains unsafe-inline directive")

    def check_eval(self, ctx):
        fail_on_issues(ctx, ("eval", "function-constructor", "string-timer"), "Dynamic code execution", SecurityError)

    def check_secrets(self, ctx):
        fail_on_issues(ctx, ("hardcoded-secret",), "Hardcoded secrets", SecurityError)

    def check_sinks(self, ctx):
        fail_on_issues(
            ctx, ("unsafe-innerHTML", "unsafe-outerHTML", "document-write"),
            "Unsafe HTML sink assignment", SecurityError, minimum=Severity.WARNING,
        )

    def check_storage(self, ctx):
        fail_on_issues(ctx, ("localStorage",), "Insecure storage usage", SecurityError)

    def check_messaging(self, ctx):
        fail_on_issues(ctx, ("unsafe-message-passing",), "Unverified message listeners", SecurityError)

    def check_permissions(self, ctx):
        manifest = self.load_manifest()
        permissions = list(manifest.get("permissions", [])) + list(manifest.get("host_permissions", []))
        broad = [p for p in permissions if p in BROAD_PERMISSIONS]
        if broad:
            ctx.warn(f"Overly broad permissions: {', '.join(broad)}")
        powerful = [p for p in permissions if p in POWERFUL_PERMISSIONS]
        if powerful:
            ctx.warn(f"Powerful API permissions: {', '.join(powerful)}")
        if broad and powerful:
            raise SecurityError(
                "Broad host access combined with powerful APIs",
                details={"hosts": broad, "apis": powerful},
                suggestion="Request host permissions for specific origins or make them optional",
            )

    def check_inline_scripts(self, ctx):
        fail_on_issues(ctx, ("inline-script",), "Inline scripts", SecurityError)
        for rel in self.get_all_files(ctx, MARKUP_EXTENSIONS):
            if INLINE_HANDLER_RE.search(self.load_file(rel)):
                raise SecurityError(f"Inline event handlers found in {rel}")

    def check_external_scripts(self, ctx):
        for rel in self.get_all_files(ctx, MARKUP_EXTENSIONS):
            if EXTERNAL_SCRIPT_RE.search(self.load_file(rel)):
                raise SecurityError(f"External scripts found in {rel}")


def build(config):
    return SecuritySuite(config)
