"""난수원 — 주변 엔트로피 + 호출자 + 내부 시드 혼합

주의: 이 방식은 암호학적 예측 불가능성을 보장하지 않는다.
엔트로피 입력은 누구나 관찰할 수 있고, 이를 예측하거나 조작할 수 있는
호출자는 결과도 예측할 수 있다. 관리자의 set_seed로 공격 비용만 올린다.
"""

from __future__ import annotations

import hashlib
import time
from abc import ABC, abstractmethod
from typing import Any, Sequence

from src.core.logging import get_logger

logger = get_logger(__name__)

RANDOM_BITS = 256
RANDOM_MODULUS = 1 << RANDOM_BITS


def _to_word(value: int) -> bytes:
    """정수를 32바이트 big-endian으로 (2**256 모듈러)."""
    return (value % RANDOM_MODULUS).to_bytes(RANDOM_BITS // 8, "big")


def mix(entropy: bytes, caller: str, seed: int) -> int:
    """SHA3-256(entropy | caller | seed) → [0, 2**256)."""
    h = hashlib.sha3_256()
    h.update(entropy)
    h.update(caller.encode("utf-8"))
    h.update(_to_word(seed))
    return int.from_bytes(h.digest(), "big")


# -------- Entropy providers ---------------------------------------------------


class EntropyProvider(ABC):
    """외부에서 공급되는 주변 엔트로피"""

    @abstractmethod
    def current(self) -> bytes:
        ...


class ClockEntropy(EntropyProvider):
    """시간 구간(bucket) 다이제스트. 같은 구간 안에서는 값이 같다."""

    def __init__(self, bucket_seconds: int = 12) -> None:
        if bucket_seconds <= 0:
            raise ValueError("bucket_seconds must be > 0")
        self._bucket_seconds = bucket_seconds

    def current(self) -> bytes:
        bucket = int(time.time()) // self._bucket_seconds
        return hashlib.sha3_256(f"bucket:{bucket}".encode("utf-8")).digest()


class FixedEntropy(EntropyProvider):
    """고정 엔트로피 (테스트/재현용)"""

    def __init__(self, value: bytes = b"\x00" * 32) -> None:
        self._value = value

    def current(self) -> bytes:
        return self._value


# -------- Randomness sources --------------------------------------------------


class RandomnessSource(ABC):
    """엔진이 사용하는 난수원 인터페이스"""

    @abstractmethod
    def next(self, caller: str) -> int:
        """다음 난수 [0, 2**256). 내부 상태를 전진시킨다."""
        ...

    @abstractmethod
    def set_seed(self, value: int) -> None:
        ...

    @abstractmethod
    def snapshot(self) -> Any:
        """배치 롤백용 상태 사본"""
        ...

    @abstractmethod
    def restore(self, state: Any) -> None:
        ...


class HashRandomness(RandomnessSource):
    """seed(t+1) = mix(entropy, caller, seed(t)). 반환값이 곧 새 시드."""

    def __init__(self, entropy: EntropyProvider | None = None, seed: int = 0) -> None:
        self._entropy = entropy or ClockEntropy()
        self._seed = seed % RANDOM_MODULUS

    @property
    def seed(self) -> int:
        return self._seed

    def next(self, caller: str) -> int:
        value = mix(self._entropy.current(), caller, self._seed)
        self._seed = value
        return value

    def set_seed(self, value: int) -> None:
        self._seed = value % RANDOM_MODULUS
        logger.info("Randomness seed replaced")

    def snapshot(self) -> int:
        return self._seed

    def restore(self, state: int) -> None:
        self._seed = state


class SequenceRandomness(RandomnessSource):
    """고정 수열을 순환 재생하는 난수원 (테스트 하네스용).

    set_seed는 재생 위치를 seed % len(values)로 옮긴다.
    """

    def __init__(self, values: Sequence[int]) -> None:
        if not values:
            raise ValueError("SequenceRandomness needs at least one value")
        self._values = [v % RANDOM_MODULUS for v in values]
        self._index = 0
        self.callers: list[str] = []

    def next(self, caller: str) -> int:
        value = self._values[self._index % len(self._values)]
        self._index += 1
        self.callers.append(caller)
        return value

    def set_seed(self, value: int) -> None:
        self._index = value % len(self._values)

    def snapshot(self) -> int:
        return self._index

    def restore(self, state: int) -> None:
        self._index = state
