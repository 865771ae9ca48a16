from __future__ import annotations

from gcmsender.message import Message, new_message


def test_new_message_keeps_recipient_order_and_copies_data() -> None:
    data = {"score": "5x1"}
    message = new_message(data, "c", "a", "b")

    data["score"] = "changed"

    assert message.registration_ids == ["c", "a", "b"]
    assert message.data == {"score": "5x1"}


def test_new_message_without_data() -> None:
    message = new_message(None, "a")
    assert message.data == {}
    assert message.to_payload() == {"registration_ids": ["a"]}


def test_payload_includes_only_set_fields() -> None:
    message = Message(
        registration_ids=["a", "b"],
        data={"k": "v"},
        collapse_key="scores",
        delay_while_idle=True,
        time_to_live=0,
        restricted_package_name="com.example.app",
        dry_run=True,
    )

    assert message.to_payload() == {
        "registration_ids": ["a", "b"],
        "collapse_key": "scores",
        "data": {"k": "v"},
        "delay_while_idle": True,
        "time_to_live": 0,
        "restricted_package_name": "com.example.app",
        "dry_run": True,
    }


def test_with_registration_ids_leaves_original_untouched() -> None:
    message = new_message({"k": "v"}, "a", "b", "c")
    original_ids = message.registration_ids

    subset = message.with_registration_ids(["b"])
    subset.data["k"] = "other"

    assert subset.registration_ids == ["b"]
    assert message.registration_ids is original_ids
    assert message.registration_ids == ["a", "b", "c"]
    assert message.data == {"k": "v"}
