"""Multicast message model sent to the GCM server."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace


@dataclass
class Message:
    """One payload addressed to an ordered list of registration ids.

    The position of each id matters: the server answers with one result per
    id, in the same order.
    """

    registration_ids: list[str]
    data: dict[str, str] = field(default_factory=dict)
    collapse_key: str = ""
    delay_while_idle: bool = False
    time_to_live: int | None = None
    restricted_package_name: str = ""
    dry_run: bool = False

    def to_payload(self) -> dict[str, object]:
        payload: dict[str, object] = {"registration_ids": list(self.registration_ids)}
        if self.collapse_key:
            payload["collapse_key"] = self.collapse_key
        if self.data:
            payload["data"] = dict(self.data)
        if self.delay_while_idle:
            payload["delay_while_idle"] = True
        if self.time_to_live is not None:
            payload["time_to_live"] = self.time_to_live
        if self.restricted_package_name:
            payload["restricted_package_name"] = self.restricted_package_name
        if self.dry_run:
            payload["dry_run"] = True
        return payload

    def with_registration_ids(self, registration_ids: Iterable[str]) -> Message:
        return replace(self, registration_ids=list(registration_ids), data=dict(self.data))


def new_message(data: dict[str, str] | None, *registration_ids: str) -> Message:
    return Message(registration_ids=list(registration_ids), data=dict(data or {}))
