from __future__ import annotations

import copy
import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parents[1]
if str(PROJECT_ROOT) not in sys.path:
    sys.path.insert(0, str(PROJECT_ROOT))

from intox_system.discovery.resolver import CandidateIdentity  # noqa: E402
from intox_system.prompts.state_block import STATE_BLOCK_HEADER_LINES, synthesize  # noqa: E402
from intox_system.reconcile import Reconciler  # noqa: E402
from intox_system.state.blob import InMemoryBlobStore  # noqa: E402
from intox_system.state.store import AttributeRecord, ChatBucket, StateStore  # noqa: E402


def _store() -> StateStore:
    return StateStore(InMemoryBlobStore())


def test_reconcile_creates_zero_records_once_per_key() -> None:
    store = _store()
    reconciler = Reconciler(store)

    result = reconciler.reconcile(
        "chat-1",
        [CandidateIdentity("alice", "alice"), CandidateIdentity("bob", "Bob"), CandidateIdentity("alice", "Alice")],
    )

    characters = store.bucket("chat-1").characters
    assert sorted(characters) == ["alice", "bob"]
    assert characters["alice"].name == "Alice"
    assert (characters["bob"].intoxication, characters["bob"].arousal) == (0, 0)
    assert characters["bob"].updated_at > 0
    assert result.created == ["alice", "bob"]


def test_reconcile_never_touches_values_or_prunes_absent_records() -> None:
    store = _store()
    store.bucket("chat-1").characters["alice"] = AttributeRecord(name="Alice", intoxication=70, arousal=10, updated_at=5)
    store.bucket("chat-1").characters["zed"] = AttributeRecord(name="Zed", intoxication=3, arousal=4, updated_at=6)

    result = Reconciler(store).reconcile("chat-1", [CandidateIdentity("alice", "ALICE")])

    characters = store.bucket("chat-1").characters
    assert characters["alice"] == AttributeRecord(name="ALICE", intoxication=70, arousal=10, updated_at=5)
    assert characters["zed"] == AttributeRecord(name="Zed", intoxication=3, arousal=4, updated_at=6)
    assert result.renamed == ["alice"]
    assert result.created == []


def test_reconcile_is_idempotent() -> None:
    store = _store()
    reconciler = Reconciler(store)
    candidates = [CandidateIdentity("alice", "Alice"), CandidateIdentity("bob", "Bob")]

    reconciler.reconcile("chat-1", candidates)
    snapshot = copy.deepcopy(store.to_payload())
    second = reconciler.reconcile("chat-1", candidates)

    assert store.to_payload() == snapshot
    assert second.changed is False


def test_reconcile_keeps_chats_separate() -> None:
    store = _store()
    reconciler = Reconciler(store)

    reconciler.reconcile("chat-a", [CandidateIdentity("alice", "Alice")])
    reconciler.reconcile("chat-b", [CandidateIdentity("bob", "Bob")])

    assert list(store.bucket("chat-a").characters) == ["alice"]
    assert list(store.bucket("chat-b").characters) == ["bob"]


def test_synthesize_empty_bucket_is_header_only() -> None:
    text = synthesize(ChatBucket())

    assert text == "\n".join(STATE_BLOCK_HEADER_LINES)
    assert text.splitlines()[0] == "EXTENSION: Intox-system"
    assert "intoxication=" not in text


def test_synthesize_orders_case_insensitively() -> None:
    # Lines render the stored display name; "Alice" here is what discovery reported.
    bucket = ChatBucket(
        characters={
            "bob": AttributeRecord(name="Bob"),
            "alice": AttributeRecord(name="Alice", intoxication=70, arousal=10),
        }
    )

    lines = synthesize(bucket).splitlines()

    assert lines[-2:] == [
        "Alice: intoxication=70, arousal=10",
        "Bob: intoxication=0, arousal=0",
    ]


def test_synthesize_clamps_values_at_render_time() -> None:
    bucket = ChatBucket(
        characters={
            "a": AttributeRecord(name="A", intoxication=-5, arousal=150),
            "b": AttributeRecord(name="B", intoxication="lots", arousal=None),  # type: ignore[arg-type]
        }
    )

    lines = synthesize(bucket).splitlines()

    assert "A: intoxication=0, arousal=100" in lines
    assert "B: intoxication=0, arousal=0" in lines


def test_synthesize_breaks_name_ties_by_key() -> None:
    bucket = ChatBucket(
        characters={
            "sam-2": AttributeRecord(name="Sam", intoxication=2),
            "sam-1": AttributeRecord(name="sam", intoxication=1),
        }
    )

    lines = synthesize(bucket).splitlines()

    assert lines[-2:] == ["sam: intoxication=1, arousal=0", "Sam: intoxication=2, arousal=0"]


def test_forgotten_character_stays_out_until_rediscovered() -> None:
    store = _store()
    reconciler = Reconciler(store)
    reconciler.reconcile("c", [CandidateIdentity("alice", "Alice"), CandidateIdentity("bob", "Bob")])
    store.set_attribute("c", "bob", "intoxication", 55)

    store.forget_character("c", "bob")
    assert "Bob:" not in synthesize(store.bucket("c"))

    reconciler.reconcile("c", [CandidateIdentity("bob", "Bob")])
    assert "Bob: intoxication=0, arousal=0" in synthesize(store.bucket("c")).splitlines()
