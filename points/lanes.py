"""
Per-user execution lanes.

Every user id maps to its own lock, created lazily on first use. Holding a
user's lane means no other mutation of that user runs until it is released;
lanes of different users never contend with each other. The map itself is
guarded by a short-lived lock that is only held while looking up or creating
a lane, never while a lane is held.
"""

import threading
from contextlib import contextmanager
from typing import Iterator


class UserLaneManager:
    def __init__(self):
        self._lanes: dict[int, threading.Lock] = {}
        self._guard = threading.Lock()

    def _lane_for(self, user_id: int) -> threading.Lock:
        with self._guard:
            lane = self._lanes.get(user_id)
            if lane is None:
                lane = threading.Lock()
                self._lanes[user_id] = lane
            return lane

    @contextmanager
    def hold(self, user_id: int) -> Iterator[None]:
        """Run the enclosed block as the only mutation in flight for ``user_id``."""
        lane = self._lane_for(user_id)
        with lane:
            yield

    def is_busy(self, user_id: int) -> bool:
        with self._guard:
            lane = self._lanes.get(user_id)
        return lane is not None and lane.locked()

    def __len__(self) -> int:
        with self._guard:
            return len(self._lanes)
