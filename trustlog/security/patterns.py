"""trustlog.security.patterns

The pattern library: five ordered layers of compiled rules.

Compiled once at import, stored as tuples, never mutated. Order inside a
layer matters (specific shapes before generic ones); order across layers is
the pipeline order and is fixed.
"""

from __future__ import annotations

import re
from dataclasses import dataclass
from enum import IntEnum


class Layer(IntEnum):
    NONE = 0
    HARD_BLOCK = 1
    IDENTITY = 2
    SECRETS = 3
    INFRASTRUCTURE = 4
    PII = 5


@dataclass(frozen=True)
class Rule:
    layer: Layer
    label: str
    pattern: re.Pattern[str]
    # None for hard blockers: they stop the message instead of rewriting it.
    replacement: str | None = None

    def matches(self, text: str) -> bool:
        return self.pattern.search(text) is not None

    def apply(self, text: str) -> str:
        if self.replacement is None:
            return text
        return self.pattern.sub(self.replacement, text)


def _rules(layer: Layer, specs: list[tuple[str, str, str | None, int]]) -> tuple[Rule, ...]:
    return tuple(
        Rule(layer=layer, label=label, pattern=re.compile(rx, flags), replacement=repl)
        for label, rx, repl, flags in specs
    )


# ============================================================================
# LAYER 1: HARD BLOCKERS
# ============================================================================

HARD_BLOCKERS = _rules(
    Layer.HARD_BLOCK,
    [
        ("blocker:private", r"\[PRIVATE\]", None, re.I),
        ("blocker:confidential", r"\[CONFIDENTIAL\]", None, re.I),
        ("blocker:do_not_publish", r"\[DO NOT PUBLISH\]", None, re.I),
        ("blocker:off_the_record", r"\[OFF THE RECORD\]", None, re.I),
        ("blocker:redact_all", r"\[REDACT ALL\]", None, re.I),
        ("blocker:internal", r"\[INTERNAL\]", None, re.I),
        ("blocker:admin_only", r"\[ADMIN ONLY\]", None, re.I),
        ("blocker:private_divider", r"---\s*PRIVATE\s*---", None, re.I),
    ],
)

# ============================================================================
# LAYER 2: IDENTITY PROTECTION
# Not configurable. Read by redact() directly; no flag, argument or setting
# reaches this table.
# ============================================================================

PROTECTED_NAME = "Tecto"
SAFE_ALIAS = "splntrb"
IDENTITY_LABEL = "identity:protected"

_APOS = "['’]"

IDENTITY_RULES = _rules(
    Layer.IDENTITY,
    [
        # Direct address keeps the greeting as written.
        (IDENTITY_LABEL, rf"\b(Dear|Hey|Hi|Hello)\s+{PROTECTED_NAME}\b", rf"\1 {SAFE_ALIAS}", re.I),
        # Possessive / contracted
        (IDENTITY_LABEL, rf"\b{PROTECTED_NAME}({_APOS})s\b", rf"{SAFE_ALIAS}\1s", re.I),
        (IDENTITY_LABEL, rf"\b{PROTECTED_NAME}({_APOS})d\b", rf"{SAFE_ALIAS}\1d", re.I),
        (IDENTITY_LABEL, rf"\b{PROTECTED_NAME}\b", SAFE_ALIAS, re.I),
        # Contextual references
        (IDENTITY_LABEL, r"\b(?:my|the)\s+(?:human|boss|creator)\b", SAFE_ALIAS, re.I),
    ],
)

# ============================================================================
# LAYER 3: SECRET DETECTION
# ============================================================================

SECRET_RULES = _rules(
    Layer.SECRETS,
    [
        # Anthropic / OpenAI (most specific prefix first)
        ("credential:anthropic_key", r"\bsk-ant-[a-zA-Z0-9\-_]{20,}", "[REDACTED:anthropic_key]", re.I),
        ("credential:openai_key", r"\bsk-proj-[a-zA-Z0-9\-_]{20,}", "[REDACTED:openai_key]", re.I),
        ("credential:openai_key", r"\bsk-[a-zA-Z0-9]{20,}", "[REDACTED:openai_key]", re.I),
        # AWS
        ("credential:aws_access_key", r"\bAKIA[A-Z0-9]{16}\b", "[REDACTED:aws_access_key]", 0),
        # GitHub
        ("credential:github_token", r"\bgh[pos]_[a-zA-Z0-9]{36}\b", "[REDACTED:github_token]", 0),
        # Stripe
        ("credential:stripe_key", r"\b[sp]k_(?:live|test)_[a-zA-Z0-9]{24,}\b", "[REDACTED:stripe_key]", 0),
        # Telegram bot tokens
        ("credential:telegram_token", r"\b\d{9,10}:[A-Za-z0-9_-]{35}\b", "[REDACTED:telegram_token]", 0),
        # Discord
        (
            "credential:discord_token",
            r"\b[MN][A-Za-z\d]{23,}\.[\w-]{6}\.[\w-]{27}\b",
            "[REDACTED:discord_token]",
            0,
        ),
        # Headers and bare bearer tokens
        (
            "credential:auth_header",
            r"Authorization:\s*(?:Bearer|Basic)\s+[a-zA-Z0-9\-_.~+/=]+",
            "Authorization: [REDACTED]",
            re.I,
        ),
        ("credential:bearer_token", r"\bBearer\s+[a-zA-Z0-9\-_.~+/]{16,}=*", "Bearer [REDACTED:bearer_token]", 0),
        # Connection strings
        (
            "credential:connection_string",
            r"\b(?:postgres(?:ql)?|mysql|mongodb(?:\+srv)?|redis|amqp)://[^:\s/]+:[^@\s]+@\S+",
            "[REDACTED:connection_string]",
            re.I,
        ),
        # Passwords: assignment form and prose form ("my password is hunter2").
        # No leading boundary: prefixed names like DB_PASSWORD or MYSQL_PWD must match.
        (
            "credential:password",
            r"(?:password|passwd|pwd)\s*[:=]\s*['\"]?[^\s'\"]{4,}['\"]?",
            "[REDACTED:password]",
            re.I,
        ),
        (
            "credential:password",
            r"(?<![A-Za-z])(password|passwd|pwd)(\s+(?:is|was)\s+)['\"]?(?!\[REDACTED)[^\s'\"]{4,}['\"]?",
            r"\1\2[REDACTED:password]",
            re.I,
        ),
        # Generic key/value, including prefixed names (access_token, GITHUB_TOKEN)
        (
            "credential:generic",
            r"(?:api[_-]?key|token|secret)\s*[:=]\s*['\"]?[a-zA-Z0-9_\-]{16,}['\"]?",
            "[REDACTED:credential]",
            re.I,
        ),
    ],
)

# ============================================================================
# LAYER 4: INFRASTRUCTURE SCRUBBING
# ============================================================================

# Excludes 127.x.x.x, 0.0.0.0, 192.0.2.x (TEST-NET-1), 198.51.100.x (TEST-NET-2),
# 203.0.113.x (TEST-NET-3). Heuristic; kept exactly as is.
_IPV4 = (
    r"\b(?!127\.\d+\.\d+\.\d+)(?!0\.0\.0\.0)(?!192\.0\.2\.)(?!198\.51\.100\.)(?!203\.0\.113\.)"
    r"(?:(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\.){3}(?:25[0-5]|2[0-4][0-9]|[01]?[0-9][0-9]?)\b"
)

INFRA_RULES = _rules(
    Layer.INFRASTRUCTURE,
    [
        ("infrastructure:ip", _IPV4, "[REDACTED:ip]", 0),
        ("infrastructure:path", r"/root/", "/[REDACTED]/", 0),
        ("infrastructure:path", r"/home/[a-zA-Z0-9_-]+", "/home/[REDACTED]", 0),
        ("infrastructure:path", r"/Users/[a-zA-Z0-9_-]+", "/Users/[REDACTED]", 0),
        ("infrastructure:ssh", r"\bssh\s+\S+@\S+", "ssh [REDACTED]", 0),
        ("infrastructure:server", r"\bsrv\d+\b", "[REDACTED:server]", re.I),
        ("infrastructure:localhost_port", r"\blocalhost:\d+", "localhost:[REDACTED]", 0),
    ],
)

# ============================================================================
# LAYER 5: PII SANITIZATION
# ============================================================================

ALLOWED_EMAIL_DOMAIN = "onelist.my"

PII_RULES = _rules(
    Layer.PII,
    [
        # Only the exact allow-listed domain is kept; onelist.my.evil.com is not.
        (
            "pii:email",
            r"\b[a-zA-Z0-9._%+-]+@(?!onelist\.my(?![\w-]|\.[A-Za-z0-9-]))[a-zA-Z0-9.-]+\.[a-zA-Z]{2,}\b",
            "[REDACTED:email]",
            0,
        ),
        ("pii:card", r"\b(?:\d{4}[-\s]?){3}\d{4}\b", "[REDACTED:card]", 0),
        ("pii:ssn", r"\b\d{3}-\d{2}-\d{4}\b", "[REDACTED:ssn]", 0),
        ("pii:phone", r"\+\d{1,3}[-.\s]?\(?\d{1,4}\)?[-.\s]?\d{1,4}[-.\s]?\d{1,9}", "[REDACTED:phone]", 0),
        ("pii:phone", r"(?<!\w)\(?\d{3}\)?[-.\s]?\d{3}[-.\s]?\d{4}\b", "[REDACTED:phone]", 0),
    ],
)

# Rewriting layers in pipeline order. Layer 1 is checked separately.
REWRITE_LAYERS: tuple[tuple[Layer, tuple[Rule, ...]], ...] = (
    (Layer.IDENTITY, IDENTITY_RULES),
    (Layer.SECRETS, SECRET_RULES),
    (Layer.INFRASTRUCTURE, INFRA_RULES),
    (Layer.PII, PII_RULES),
)

ALL_LAYERS: tuple[tuple[Layer, tuple[Rule, ...]], ...] = ((Layer.HARD_BLOCK, HARD_BLOCKERS), *REWRITE_LAYERS)
