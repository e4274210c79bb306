"""
Attack signature table

Compact, deduplicated set of URL and User-Agent signatures grouped by
detection intent. Order matters: the first matching signature wins.
"""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Iterable, Optional, Pattern, Tuple


class Severity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"


class SignatureTarget(str, Enum):
    URL = "url"
    USER_AGENT = "user_agent"


@dataclass(frozen=True)
class Signature:
    """Immutable detection rule"""
    pattern: Pattern[str]
    category: str
    severity: Severity
    target: SignatureTarget = SignatureTarget.URL

    def matches(self, url: str, user_agent: str) -> bool:
        text = url if self.target is SignatureTarget.URL else user_agent
        return bool(text) and self.pattern.search(text) is not None


def _sig(pattern: str, category: str, severity: Severity,
         target: SignatureTarget = SignatureTarget.URL) -> Signature:
    return Signature(re.compile(pattern, re.IGNORECASE), category, severity, target)


DEFAULT_SIGNATURES: Tuple[Signature, ...] = (
    # Directory traversal
    _sig(r"\.\.[/\\]", "path_traversal", Severity.HIGH),
    _sig(r"%2e%2e(%2f|%5c|/|\\)", "path_traversal", Severity.HIGH),

    # System file access
    _sig(r"/etc/(passwd|shadow|hosts)\b", "system_file", Severity.HIGH),
    _sig(r"/proc/(self|\d+)/", "system_file", Severity.HIGH),
    _sig(r"\b(win\.ini|boot\.ini)\b", "system_file", Severity.MEDIUM),

    # SQL injection markers
    _sig(r"\bunion\b.*\bselect\b", "sql_injection", Severity.HIGH),
    _sig(r"\bselect\b.*\bfrom\b", "sql_injection", Severity.HIGH),
    _sig(r"\bdrop\b.*\btable\b", "sql_injection", Severity.HIGH),
    _sig(r"'\s*or\s*'?\d*'?\s*=\s*'?\d*", "sql_injection", Severity.MEDIUM),

    # Script injection
    _sig(r"<script", "xss", Severity.HIGH),
    _sig(r"javascript:", "xss", Severity.MEDIUM),
    _sig(r"\bon(load|error|mouseover|focus)\s*=", "xss", Severity.MEDIUM),

    # Command and code injection
    _sig(r"[;|&`]\s*(wget|curl|nc|bash|sh|telnet)\b", "command_injection", Severity.HIGH),
    _sig(r"\$\(|\b(exec|eval|system|shell_exec)\s*\(", "command_injection", Severity.HIGH),

    # Admin, config and repository scans
    _sig(r"/(wp-admin|wp-login\.php|phpmyadmin)\b", "sensitive_path", Severity.MEDIUM),
    _sig(r"/\.(env|git|svn|hg|htaccess|htpasswd|ds_store)\b", "sensitive_path", Severity.MEDIUM),
    _sig(r"\b(config|settings|database)\.(php|ya?ml|ini|bak|old)\b", "sensitive_path", Severity.MEDIUM),
    _sig(r"\b(backup|dump)\w*\.(sql|zip|tar|gz|tgz)\b", "sensitive_path", Severity.MEDIUM),
    _sig(r"/(node_modules|vendor)/|\b(composer\.json|package\.json|requirements\.txt|docker-compose\.ya?ml)\b",
         "sensitive_path", Severity.LOW),

    # Known attack tool user agents
    _sig(r"\b(sqlmap|nikto|nmap|masscan|dirbuster|gobuster|wpscan|nuclei|hydra|acunetix|nessus|zgrab)\b",
         "scanner_user_agent", Severity.HIGH, SignatureTarget.USER_AGENT),
)


# ID-lookup shaped paths throttled against enumeration sweeps
ID_LOOKUP_PATTERNS: Tuple[Pattern[str], ...] = (
    re.compile(r"/api/(users|clients|bookings|services)/\d+$"),
    re.compile(r"/admin/(users|reports)/\d+$"),
)


def is_id_lookup(path: str, patterns: Iterable[Pattern[str]] = ID_LOOKUP_PATTERNS) -> bool:
    return any(p.search(path) for p in patterns)


class SignatureTable:
    """Ordered signature lookup; pure and shareable across requests"""

    def __init__(self, signatures: Iterable[Signature] = DEFAULT_SIGNATURES):
        unique = []
        seen = set()
        for signature in signatures:
            key = (signature.pattern.pattern, signature.pattern.flags, signature.target)
            if key in seen:
                continue
            seen.add(key)
            unique.append(signature)
        self._signatures: Tuple[Signature, ...] = tuple(unique)

    def __len__(self) -> int:
        return len(self._signatures)

    def __iter__(self):
        return iter(self._signatures)

    @property
    def categories(self) -> frozenset:
        return frozenset(s.category for s in self._signatures)

    def classify(self, url: str, user_agent: str = "") -> Optional[Signature]:
        for signature in self._signatures:
            if signature.matches(url or "", user_agent or ""):
                return signature
        return None
