from __future__ import annotations

import pytest

from trustlog.core.models import IncomingMessage
from trustlog.security.redaction import (
    Blocked,
    Pass,
    Rewritten,
    decision_layer,
    matched_labels,
    redact,
    redact_message,
)


def test_password_and_protected_name_rewritten_at_identity_layer() -> None:
    text = "My password is hunter2, tell Tecto"
    out = redact(text)

    assert isinstance(out, Rewritten)
    assert "hunter2" not in out.content
    assert "Tecto" not in out.content
    assert "splntrb" in out.content
    assert "[REDACTED:password]" in out.content
    assert out.layer == 2
    assert "identity:protected" in out.labels
    assert "credential:password" in out.labels
    assert decision_layer(text) == 2


@pytest.mark.parametrize(
    ("text", "expected"),
    [
        ("Dear Tecto, thanks", "Dear splntrb, thanks"),
        ("hey tecto", "hey splntrb"),
        ("Tecto's plan", "splntrb's plan"),
        ("Tecto’d like that", "splntrb’d like that"),
        ("ask my human first", "ask splntrb first"),
        ("the boss said so", "splntrb said so"),
        ("TECTO wrote it", "splntrb wrote it"),
    ],
)
def test_identity_protection_grammatical_forms(text: str, expected: str) -> None:
    out = redact(text)
    assert isinstance(out, Rewritten)
    assert out.content == expected
    assert out.labels == ("identity:protected",)


def test_identity_protection_respects_word_boundaries() -> None:
    assert isinstance(redact("Tectonic plates moved"), Pass)


@pytest.mark.parametrize(
    ("text", "reason"),
    [
        ("[DO NOT PUBLISH] internal roadmap notes", "blocker:do_not_publish"),
        ("[private] my diary", "blocker:private"),
        ("notes\n--- PRIVATE ---\nsecret stuff", "blocker:private_divider"),
        ("[INTERNAL] ops", "blocker:internal"),
    ],
)
def test_hard_blockers(text: str, reason: str) -> None:
    out = redact(text)
    assert isinstance(out, Blocked)
    assert out.reason == reason
    assert out.layer == 1
    assert not hasattr(out, "content")


def test_blocked_labels_include_later_layers() -> None:
    out = redact("[CONFIDENTIAL] key sk-proj-abcdefghijklmnopqrstuvwx")
    assert isinstance(out, Blocked)
    assert out.labels[0] == "blocker:confidential"
    assert "credential:openai_key" in out.labels


def test_clean_text_passes_unchanged() -> None:
    out = redact("The weather is nice today.")
    assert isinstance(out, Pass)
    assert out.content == "The weather is nice today."
    assert out.layer == 0
    assert out.labels == ()


@pytest.mark.parametrize("text", [None, ""])
def test_empty_input_passes_as_empty_string(text: str | None) -> None:
    out = redact(text)
    assert isinstance(out, Pass)
    assert out.content == ""
    assert matched_labels(text) == []
    assert decision_layer(text) == 0


@pytest.mark.parametrize(
    "text",
    [
        "My password is hunter2, tell Tecto",
        "Email bob@example.com, key sk-proj-abcdefghijklmnopqrstuvwx",
        "ssh deploy@10.1.2.3 then cat /root/notes.txt",
        "Hey Tecto, call (555) 123-4567 from srv7",
    ],
)
def test_redaction_is_idempotent(text: str) -> None:
    once = redact(text)
    twice = redact(once.content)  # type: ignore[union-attr]
    assert twice.content == once.content  # type: ignore[union-attr]


def test_redaction_is_deterministic() -> None:
    text = "Hi Tecto, token=abcdefghijklmnopqrstu on 10.0.0.9"
    assert redact(text) == redact(text)


def test_decision_layer_is_lowest_matching_layer() -> None:
    assert decision_layer("[ADMIN ONLY] Tecto") == 1
    assert decision_layer("password: hunter22 on 10.0.0.5") == 3
    assert decision_layer("go to 10.0.0.5") == 4
    assert decision_layer("call 555-123-4567") == 5
    assert decision_layer("nothing here") == 0


def test_matched_labels_are_ordered_and_unique() -> None:
    labels = matched_labels("Tecto at 10.0.0.1 and 10.0.0.2, mail a@example.com")
    assert labels == ["identity:protected", "infrastructure:ip", "pii:email"]


def test_redact_message_returns_rewritten_copy() -> None:
    msg = IncomingMessage(role="user", content="hi Tecto", message_id="m-1")
    out_msg, outcome = redact_message(msg)
    assert out_msg is not None
    assert out_msg.content == "hi splntrb"
    assert out_msg.message_id == "m-1"
    assert msg.content == "hi Tecto"
    assert isinstance(outcome, Rewritten)


def test_redact_message_drops_blocked_message() -> None:
    msg = IncomingMessage(role="assistant", content="[REDACT ALL] everything", message_id="m-2")
    out_msg, outcome = redact_message(msg)
    assert out_msg is None
    assert isinstance(outcome, Blocked)


def test_ssh_password_scenario() -> None:
    text = "My SSH password is hunter2 — don't tell Tecto"
    out = redact(text)

    assert isinstance(out, Rewritten)
    assert out.content == "My SSH password is [REDACTED:password] — don't tell splntrb"
    assert decision_layer(text) == 2
    labels = matched_labels(text)
    assert "identity:protected" in labels
    assert "credential:password" in labels


@pytest.mark.parametrize(
    "text",
    [
        "DB_PASSWORD=hunter22",
        "export MYSQL_PWD=hunter22",
        "access_token=abcdefghijklmnopqrstuvwxyz12",
        "client_secret: abcdefghijklmnop1234",
        "GITHUB_TOKEN=abcdefghijklmnopqrstuvwxyz12",
    ],
)
def test_env_style_credentials_are_rewritten(text: str) -> None:
    out = redact(text)
    assert isinstance(out, Rewritten)
    assert out.layer == 3
    assert any(label.startswith("credential:") for label in out.labels)
    assert redact(out.content).content == out.content  # type: ignore[union-attr]


def test_lookalike_allowlisted_domain_is_redacted() -> None:
    out = redact("mail x@onelist.my.evil.com")
    assert isinstance(out, Rewritten)
    assert "onelist.my.evil.com" not in out.content
    assert matched_labels("mail x@onelist.my.evil.com") == ["pii:email"]
