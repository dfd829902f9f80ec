"""권한 / 일시정지 — 엔진 외부 협력자의 최소 구현"""

from __future__ import annotations

import logging
from typing import Iterable

logger = logging.getLogger(__name__)


class AccessControl:
    """소유자 1명 + 관리자 집합. 소유자는 항상 권한을 가진다."""

    def __init__(self, owner: str, admins: Iterable[str] = ()) -> None:
        self._owner = owner
        self._admins: set[str] = set(admins)

    @property
    def owner(self) -> str:
        return self._owner

    def is_authorized(self, caller: str) -> bool:
        return caller == self._owner or caller in self._admins

    def grant(self, caller: str, admin: str) -> bool:
        """소유자만 관리자 추가 가능. 반환: 성공 여부."""
        if caller != self._owner:
            logger.warning("Grant rejected: %s is not the owner", caller)
            return False
        self._admins.add(admin)
        logger.info("Granted admin rights to %s", admin)
        return True

    def revoke(self, caller: str, admin: str) -> bool:
        if caller != self._owner:
            logger.warning("Revoke rejected: %s is not the owner", caller)
            return False
        self._admins.discard(admin)
        logger.info("Revoked admin rights from %s", admin)
        return True


class PauseGate:
    """일시정지 플래그. 게이트 판정은 엔진이 한다."""

    def __init__(self, paused: bool = False) -> None:
        self._paused = paused

    def is_paused(self) -> bool:
        return self._paused

    def set_paused(self, paused: bool) -> None:
        self._paused = paused
