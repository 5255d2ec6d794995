"""trustlog.security.redaction

The redaction engine.

Every piece of text headed for the public feed goes through :func:`redact`
first. Five layers, strict order:

1. hard blockers stop the message outright
2. identity protection (always on, no switch anywhere)
3. secrets become typed markers
4. infrastructure identifiers become placeholders
5. PII becomes typed markers

Layers 2-5 are pure rewrites. They never fail; a rule that does not match is a
no-op. Same input, same output, same audit hash.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Literal

from trustlog.core.models import IncomingMessage
from trustlog.security.patterns import (
    ALL_LAYERS,
    HARD_BLOCKERS,
    IDENTITY_RULES,
    REWRITE_LAYERS,
    Layer,
    Rule,
)


@dataclass(frozen=True)
class Pass:
    content: str
    kind: Literal["pass"] = "pass"
    layer: int = 0
    labels: tuple[str, ...] = ()


@dataclass(frozen=True)
class Rewritten:
    content: str
    layer: int
    labels: tuple[str, ...]
    kind: Literal["rewritten"] = "rewritten"


@dataclass(frozen=True)
class Blocked:
    reason: str
    layer: int = int(Layer.HARD_BLOCK)
    labels: tuple[str, ...] = field(default=())
    kind: Literal["blocked"] = "blocked"


RedactionOutcome = Pass | Rewritten | Blocked


def _first_blocker(text: str) -> Rule | None:
    for rule in HARD_BLOCKERS:
        if rule.matches(text):
            return rule
    return None


def _apply(rules: tuple[Rule, ...], text: str) -> str:
    out = text
    for rule in rules:
        out = rule.apply(out)
    return out


def _protect_identity(text: str) -> str:
    # Not routed through REWRITE_LAYERS on purpose: this call site has no
    # condition around it and takes no parameters that could skip it.
    return _apply(IDENTITY_RULES, text)


def matched_labels(text: str | None) -> list[str]:
    """Labels of every rule that fires against ``text``, in pipeline order, de-duplicated."""

    if not text:
        return []

    out: list[str] = []
    for _layer, rules in ALL_LAYERS:
        for rule in rules:
            if rule.label not in out and rule.matches(text):
                out.append(rule.label)
    return out


def decision_layer(text: str | None) -> int:
    """Lowest layer with any matching rule; 0 when nothing fires."""

    if not text:
        return int(Layer.NONE)

    for layer, rules in ALL_LAYERS:
        if any(rule.matches(text) for rule in rules):
            return int(layer)
    return int(Layer.NONE)


def redact(text: str | None) -> RedactionOutcome:
    """Run ``text`` through all five layers.

    Returns:
        ``Blocked`` if a hard blocker matched (nothing else runs),
        ``Rewritten`` if any later layer changed the text,
        ``Pass`` otherwise. ``None`` and ``""`` yield ``Pass("")``.
    """

    if not text:
        return Pass(content="")

    blocker = _first_blocker(text)
    if blocker is not None:
        return Blocked(reason=blocker.label, labels=tuple(matched_labels(text)))

    out = _protect_identity(text)
    for layer, rules in REWRITE_LAYERS:
        if layer is Layer.IDENTITY:
            continue
        out = _apply(rules, out)

    if out == text:
        return Pass(content=text)

    return Rewritten(content=out, layer=decision_layer(text), labels=tuple(matched_labels(text)))


def redact_message(message: IncomingMessage) -> tuple[IncomingMessage | None, RedactionOutcome]:
    """Redact a message's content. The message comes back as ``None`` when blocked."""

    outcome = redact(message.content)
    if isinstance(outcome, Blocked):
        return None, outcome
    return message.model_copy(update={"content": outcome.content}), outcome
