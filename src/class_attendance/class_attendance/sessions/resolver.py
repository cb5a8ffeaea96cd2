from __future__ import annotations

import logging

from ..core.constants import DEFAULT_SESSION_NAMES
from ..core.enums import SessionResolutionKind
from .model import SessionResolution
from .repository import SessionConfigurationRepository

logger = logging.getLogger(__name__)


class SessionNameResolver:
    """Decide which session labels a class/subject pair accepts.

    Pairs without any active configuration fall back to the default labels.
    """

    def __init__(self, configurations: SessionConfigurationRepository, *, default_names=DEFAULT_SESSION_NAMES):
        self._configurations = configurations
        self._default_names = tuple(default_names)

    def resolve(self, *, class_id: int, subject_id: int, session: str) -> SessionResolution:
        configs = list(self._configurations.list_active(subject_id=subject_id, class_id=class_id))

        if not configs:
            if session in self._default_names:
                logger.warning(
                    "No session configurations for class=%s subject=%s, accepting default session %r",
                    class_id,
                    subject_id,
                    session,
                )
                return SessionResolution(SessionResolutionKind.DEFAULT, session, self._default_names)
            return SessionResolution(SessionResolutionKind.INVALID, session, self._default_names)

        all_names: list[str] = []
        for config in configs:
            names = config.session_names
            if session in names:
                return SessionResolution(SessionResolutionKind.CONFIGURED, session, tuple(names), config)
            all_names.extend(names)

        return SessionResolution(SessionResolutionKind.INVALID, session, tuple(all_names))

    def valid_session_names(self, *, class_id: int, subject_id: int) -> dict:
        configs = list(self._configurations.list_active(subject_id=subject_id, class_id=class_id))
        if not configs:
            return {"sessions": list(self._default_names), "isDefault": True}
        names: list[str] = []
        for config in configs:
            names.extend(config.session_names)
        return {"sessions": names, "isDefault": False}
