"""Credit quota bookkeeping that gates generation runs.

Architectural role:
    `QuotaState` is an immutable value with pure transition functions.
    `QuotaStore` applies those transitions and persists both counters through a
    key-value adapter (`multiview.quota.storage`) after every change.

Persisted format:
    Keys `totalCredits` and `usedCredits`, each a base-10 integer string.
    Absent, unparsable or negative values load as the defaults (10 / 0).

Invariants:
    - `used_credits` may exceed `total_credits`; depletion is computed.
    - `remaining` is derived and never stored.
"""

import logging
import re
from dataclasses import dataclass, replace

from multiview.llm.provider_config import DEFAULT_TOTAL_CREDITS, DEFAULT_USED_CREDITS


logger = logging.getLogger(__name__)

TOTAL_CREDITS_KEY = "totalCredits"
USED_CREDITS_KEY = "usedCredits"

_INTEGER_PATTERN = re.compile(r"^[+-]?[0-9]+$")


@dataclass(frozen=True)
class QuotaState:
    """Credit counters.

    Attributes:
        total_credits: Credits granted by the user's last explicit "set".
        used_credits: Runs started since the last set/reset.
    """

    total_credits: int = DEFAULT_TOTAL_CREDITS
    used_credits: int = DEFAULT_USED_CREDITS

    @property
    def remaining(self) -> int:
        return max(0, self.total_credits - self.used_credits)

    @property
    def is_depleted(self) -> bool:
        return self.used_credits >= self.total_credits

    def to_dict(self) -> dict:
        return {
            "total_credits": self.total_credits,
            "used_credits": self.used_credits,
            "remaining": self.remaining,
            "depleted": self.is_depleted,
        }


def set_total(state: QuotaState, total: int) -> QuotaState:
    """Return a state with `total` credits and usage reset; negatives are ignored."""
    if total < 0:
        return state
    return QuotaState(total_credits=total, used_credits=0)


def reset_used(state: QuotaState) -> QuotaState:
    return replace(state, used_credits=0)


def consume_one(state: QuotaState) -> QuotaState:
    return replace(state, used_credits=state.used_credits + 1)


def parse_credit_input(raw) -> int | None:
    """Parse a user-entered credit total; `None` unless a non-negative integer."""
    if isinstance(raw, bool):
        return None
    if isinstance(raw, int):
        return raw if raw >= 0 else None

    text = str(raw).strip()
    if not _INTEGER_PATTERN.match(text):
        return None
    value = int(text, 10)
    return value if value >= 0 else None


def _read_counter(storage, key: str, default: int) -> int:
    raw = storage.get_item(key)
    if raw is None:
        return default

    text = str(raw).strip()
    if not _INTEGER_PATTERN.match(text):
        logger.warning("Ignoring unparsable %s value: %r", key, raw)
        return default

    value = int(text, 10)
    if value < 0:
        logger.warning("Ignoring negative %s value: %r", key, raw)
        return default
    return value


class QuotaStore:
    """Persisted quota counters.

    Every mutating method applies one pure transition and writes both keys
    immediately, so a reload restores the last committed values.
    """

    def __init__(self, storage, state: QuotaState | None = None):
        self.storage = storage
        self._state = state or QuotaState()

    @classmethod
    def load(cls, storage) -> "QuotaStore":
        """Build a store from persisted values, falling back to defaults."""
        state = QuotaState(
            total_credits=_read_counter(storage, TOTAL_CREDITS_KEY, DEFAULT_TOTAL_CREDITS),
            used_credits=_read_counter(storage, USED_CREDITS_KEY, DEFAULT_USED_CREDITS),
        )
        return cls(storage, state)

    @property
    def state(self) -> QuotaState:
        return self._state

    @property
    def total_credits(self) -> int:
        return self._state.total_credits

    @property
    def used_credits(self) -> int:
        return self._state.used_credits

    def remaining(self) -> int:
        return self._state.remaining

    def is_depleted(self) -> bool:
        return self._state.is_depleted

    def set_total(self, total: int) -> bool:
        """Apply an explicit credit total. Returns `False` when rejected."""
        if total < 0:
            return False
        self._commit(set_total(self._state, total))
        return True

    def reset_used(self) -> None:
        self._commit(reset_used(self._state))

    def consume_one(self) -> None:
        self._commit(consume_one(self._state))

    def _commit(self, new_state: QuotaState) -> None:
        self._state = new_state
        self.storage.set_item(TOTAL_CREDITS_KEY, str(new_state.total_credits))
        self.storage.set_item(USED_CREDITS_KEY, str(new_state.used_credits))
        logger.debug(
            "Quota updated: total=%d used=%d",
            new_state.total_credits,
            new_state.used_credits,
        )
