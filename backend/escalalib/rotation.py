"""
Weekend on-call rotation cursor.

The cursor records who last served Saturday and Sunday on-call, plus a
diagnostic counter of rotation cycles. Positions are recomputed from those
ids on every generation (see :func:`starting_index`), so the cursor never
stores an index into the pool.
"""
import fcntl
import logging
import os
import threading
from contextlib import contextmanager
from typing import List, Optional, Sequence

from .models import Employee, RotationState

_logger = logging.getLogger(__name__)

# Serializes generation inside one process; the flock below covers
# multiple worker processes sharing a data directory.
_GENERATION_LOCK = threading.Lock()


@contextmanager
def generation_lock(data_dir: str):
    """At most one cursor read-compute-write cycle at a time."""
    os.makedirs(data_dir, exist_ok=True)
    with _GENERATION_LOCK:
        with open(os.path.join(data_dir, '.generation.lock'), 'a') as f:
            fcntl.flock(f.fileno(), fcntl.LOCK_EX)
            try:
                yield
            finally:
                fcntl.flock(f.fileno(), fcntl.LOCK_UN)


def starting_index(pool: Sequence[Employee], last_id: Optional[int]) -> int:
    """Pool position due next: one past whoever served last, or 0.

    An id that is no longer in the pool (deactivated or removed from the
    rotation) restarts the slot at the head of the pool.
    """
    if not pool or last_id is None:
        return 0
    ids: List[int] = [e.id for e in pool]
    if last_id not in ids:
        return 0
    return (ids.index(last_id) + 1) % len(ids)


def advance_state(
    state: RotationState,
    saturday_id: Optional[int] = None,
    sunday_id: Optional[int] = None,
    cycle_completed: bool = False,
) -> RotationState:
    updated = state.model_copy()
    if saturday_id is not None:
        updated.last_saturday_employee_id = saturday_id
    if sunday_id is not None:
        updated.last_sunday_employee_id = sunday_id
    if cycle_completed:
        updated.week_count = state.week_count + 1
    return updated


class RotationCursor:
    """Persisted rotation position backed by an EscalaDatabase."""

    def __init__(self, db):
        self.db = db

    def read(self) -> RotationState:
        return self.db.get_rotation_state()

    def advance(
        self,
        saturday_id: Optional[int] = None,
        sunday_id: Optional[int] = None,
        cycle_completed: bool = False,
    ) -> RotationState:
        """Merge the given ids into the stored state and persist it.

        ``week_count`` moves only when ``cycle_completed`` is set, which the
        planner does once per generated period.
        """
        state = advance_state(self.read(), saturday_id, sunday_id, cycle_completed)
        self.db.save_rotation_state(state)
        _logger.debug(
            "Rotation cursor advanced: saturday=%s sunday=%s week_count=%d",
            state.last_saturday_employee_id, state.last_sunday_employee_id, state.week_count,
        )
        return state
