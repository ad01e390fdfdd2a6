"""Process-wide change notifier for matches.

Observers subscribe to a match and get a bare "something changed" call;
they are expected to re-read the game state themselves. When the push
channel is not available each subscription polls instead, invoking the
same callback on a fixed interval.
"""

import itertools
import logging
import threading
from typing import Callable, Dict, Optional

logger = logging.getLogger(__name__)

PUSH = 'push'
POLL = 'poll'


def _start_thread(target, *args):
    thread = threading.Thread(target=target, args=args, daemon=True)
    thread.start()
    return thread


class Subscription:
    def __init__(self, notifier: 'ChangeNotifier', handle: int, match_id: str,
                 on_change: Callable[[], None], mode: str):
        self.notifier = notifier
        self.handle = handle
        self.match_id = match_id
        self.on_change = on_change
        self.mode = mode
        self.stopped = threading.Event()

    @property
    def active(self) -> bool:
        return not self.stopped.is_set()

    def unsubscribe(self) -> None:
        self.notifier.unsubscribe(self)

    def deliver(self) -> None:
        if self.stopped.is_set():
            return
        try:
            self.on_change()
        except Exception as exc:
            logger.warning(f"[notifier] callback failed match={self.match_id} handle={self.handle}: {exc!r}")


class ChangeNotifier:
    def __init__(self, mode: str = PUSH, poll_interval: float = 5.0,
                 start_background_task: Optional[Callable] = None):
        self.mode = mode
        self.poll_interval = poll_interval
        self._start_background_task = start_background_task or _start_thread
        self._lock = threading.Lock()
        self._handles = itertools.count(1)
        self._subscriptions: Dict[int, Subscription] = {}

    def init_app(self, app, start_background_task: Optional[Callable] = None) -> None:
        self.mode = app.config.get('NOTIFIER_MODE', PUSH)
        self.poll_interval = float(app.config.get('POLL_INTERVAL_SEC', 5))
        if start_background_task is not None:
            self._start_background_task = start_background_task
        app.extensions['match_notifier'] = self

    def fall_back_to_polling(self, reason: str) -> None:
        """Serve every later subscription by polling."""
        logger.warning(f"[notifier] push channel unavailable, polling every {self.poll_interval}s: {reason}")
        self.mode = POLL

    def subscribe(self, match_id: str, on_change: Callable[[], None]) -> Subscription:
        with self._lock:
            sub = Subscription(self, next(self._handles), match_id, on_change, self.mode)
            self._subscriptions[sub.handle] = sub
        if sub.mode == POLL:
            self._start_background_task(self._poll, sub)
        logger.debug(f"[notifier] subscribe match={match_id} handle={sub.handle} mode={sub.mode}")
        return sub

    def unsubscribe(self, subscription) -> None:
        """Stop delivery. Accepts a Subscription or its handle; repeat calls are no-ops."""
        handle = getattr(subscription, 'handle', subscription)
        with self._lock:
            sub = self._subscriptions.pop(handle, None)
        if sub is not None:
            sub.stopped.set()
            logger.debug(f"[notifier] unsubscribe match={sub.match_id} handle={handle}")

    def publish(self, match_id: str) -> int:
        """Signal push subscribers of ``match_id``. Returns how many were called."""
        with self._lock:
            targets = [s for s in self._subscriptions.values() if s.match_id == match_id and s.mode == PUSH]
        for sub in targets:
            sub.deliver()
        return len(targets)

    def subscriber_count(self, match_id: Optional[str] = None) -> int:
        with self._lock:
            return sum(1 for s in self._subscriptions.values() if match_id is None or s.match_id == match_id)

    def close(self) -> None:
        with self._lock:
            subs = list(self._subscriptions.values())
            self._subscriptions.clear()
        for sub in subs:
            sub.stopped.set()

    def _poll(self, sub: Subscription) -> None:
        while not sub.stopped.wait(self.poll_interval):
            sub.deliver()
