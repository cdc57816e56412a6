"""AI service: Together.ai for fix suggestions."""

from deps import Any, List, OpenAI, Optional, logging

from ..ai_status import TOGETHER_BASE_URL, key_problem
from ..config import get_together_api_key, get_together_model
from ..schemas import IssueOut

logger = logging.getLogger(__name__)

MAX_PROMPT_ISSUES = 50


def _client() -> Optional[Any]:
    """Return OpenAI-compatible client for Together.ai, or None without a usable API key."""
    key = get_together_api_key()
    if key_problem(key):
        return None
    return OpenAI(api_key=key, base_url=TOGETHER_BASE_URL)


def _issues_summary(issues: List[IssueOut]) -> str:
    if not issues:
        return "No rule-based issues found."
    parts = []
    for i in issues[:MAX_PROMPT_ISSUES]:
        line = f"- {i.file}:{i.line} [{i.severity}] {i.type}: {i.message}"
        if i.context:
            line += f"\n  Code: {i.context}"
        if i.suggestion:
            line += f"\n  Suggestion: {i.suggestion}"
        parts.append(line)
    if len(issues) > MAX_PROMPT_ISSUES:
        parts.append(f"... and {len(issues) - MAX_PROMPT_ISSUES} more")
    return "\n".join(parts)


# Guidance for issues the checker already downgraded (known issues, test files, tool paths).
ADJUSTED_SEVERITY_INSTRUCTIONS = (
    "Some issues carry a reason explaining why their severity was lowered (known issue, test file, "
    "build tooling). Do not push for changes to those unless the code is shipped to users; say so "
    "briefly instead of proposing a rewrite."
)


class AIService:
    """Together.ai-backed fix suggestions."""

    def suggest_fixes(
        self,
        issues: List[IssueOut],
        manifest: Optional[str] = None,
    ) -> Optional[str]:
        """Return AI-generated fix suggestions for the given issues. None if AI unavailable."""
        client = _client()
        if not client:
            return None
        model = get_together_model()
        prompt = (
            "You are a browser extension security reviewer. Below are issues reported by a static "
            "checker for a WebExtension (Manifest V3, Chrome and Firefox).\n\n"
            "Issues:\n"
            f"{_issues_summary(issues)}\n\n"
        )
        if manifest:
            prompt += f"manifest.json:\n```json\n{manifest[:8000]}\n```\n\n"
        prompt += (
            "Provide actionable fix suggestions: either per-issue or overall. Be concise. "
            "Prefer textContent over innerHTML, chrome.storage.session or no storage for secrets, "
            "strict content_security_policy values, and the narrowest permissions that still work. "
            "Use clear bullet points or numbered steps.\n\n"
            f"{ADJUSTED_SEVERITY_INSTRUCTIONS}"
        )
        try:
            r = client.chat.completions.create(
                model=model,
                messages=[{"role": "user", "content": prompt}],
                max_tokens=2048,
            )
            if r.choices and r.choices[0].message.content:
                return r.choices[0].message.content.strip()
        except Exception:
            logger.exception("AI fix suggestion request failed")
        return None
