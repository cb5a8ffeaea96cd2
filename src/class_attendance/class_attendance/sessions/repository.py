from __future__ import annotations

from typing import Protocol, Sequence

from .model import SessionConfiguration


class SessionConfigurationRepository(Protocol):
    def list_active(self, *, subject_id: int, class_id: int) -> Sequence[SessionConfiguration]:
        raise NotImplementedError
