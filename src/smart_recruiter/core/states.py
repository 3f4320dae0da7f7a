from __future__ import annotations

from dataclasses import dataclass

TRANSITIONS: dict[str, frozenset[str]] = {
    "processing": frozenset({"pending", "failed"}),
    "pending": frozenset({"sent"}),
    "sent": frozenset(),
    "failed": frozenset(),
}


class InvalidTransition(ValueError):
    pass


@dataclass(slots=True)
class ApplicationStateMachine:
    status: str = "processing"

    def can_move_to(self, target: str) -> bool:
        return target in TRANSITIONS.get(self.status, frozenset())

    def move_to(self, target: str) -> str:
        if not self.can_move_to(target):
            raise InvalidTransition(f"application cannot move from '{self.status}' to '{target}'")
        self.status = target
        return target
