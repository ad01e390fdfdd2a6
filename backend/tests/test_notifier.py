import threading
import time

from quizduel.services.matches.notifier import ChangeNotifier


def _wait_for(predicate, timeout=2.0):
    deadline = time.time() + timeout
    while time.time() < deadline:
        if predicate():
            return True
        time.sleep(0.01)
    return predicate()


def test_push_subscription_receives_only_its_match(memory_notifier):
    calls = []
    memory_notifier.subscribe('m1', lambda: calls.append('m1'))
    memory_notifier.subscribe('m2', lambda: calls.append('m2'))
    assert memory_notifier.publish('m1') == 1
    assert calls == ['m1']


def test_unsubscribe_is_idempotent(memory_notifier):
    calls = []
    sub = memory_notifier.subscribe('m1', lambda: calls.append(1))
    sub.unsubscribe()
    sub.unsubscribe()
    memory_notifier.unsubscribe(sub.handle)
    assert memory_notifier.publish('m1') == 0
    assert calls == []
    assert not sub.active


def test_unsubscribe_from_another_thread(memory_notifier):
    sub = memory_notifier.subscribe('m1', lambda: None)
    worker = threading.Thread(target=sub.unsubscribe)
    worker.start()
    worker.join()
    assert memory_notifier.subscriber_count('m1') == 0


def test_failing_callback_does_not_block_others(memory_notifier):
    calls = []

    def broken():
        raise RuntimeError('boom')

    memory_notifier.subscribe('m1', broken)
    memory_notifier.subscribe('m1', lambda: calls.append(1))
    assert memory_notifier.publish('m1') == 2
    assert calls == [1]


def test_poll_mode_invokes_callback_until_unsubscribed():
    notifier = ChangeNotifier(mode='poll', poll_interval=0.02)
    calls = []
    sub = notifier.subscribe('m1', lambda: calls.append(1))
    try:
        assert sub.mode == 'poll'
        assert _wait_for(lambda: len(calls) >= 2)
        # Polling subscriptions are not driven by publish
        assert notifier.publish('m1') == 0
    finally:
        sub.unsubscribe()
    settled = len(calls)
    time.sleep(0.1)
    assert len(calls) <= settled + 1


def test_fall_back_to_polling_applies_to_new_subscriptions(memory_notifier):
    before = memory_notifier.subscribe('m1', lambda: None)
    memory_notifier.poll_interval = 0.02
    memory_notifier.fall_back_to_polling('transport down')
    after = memory_notifier.subscribe('m1', lambda: None)
    assert before.mode == 'push'
    assert after.mode == 'poll'


def test_close_stops_everything():
    notifier = ChangeNotifier(mode='poll', poll_interval=0.02)
    calls = []
    notifier.subscribe('m1', lambda: calls.append(1))
    notifier.close()
    settled = len(calls)
    time.sleep(0.1)
    assert len(calls) <= settled + 1
    assert notifier.subscriber_count() == 0
