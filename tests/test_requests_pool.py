import threading

import pytest

from adaskit.requests_pool import RequestsPool


class FakeRequest:
    def __init__(self):
        self.waits = 0
        self.callback = None

    def set_callback(self, callback):
        self.callback = callback

    def start_async(self):
        pass

    def wait(self):
        self.waits += 1

    def get_tensor(self, name):
        return name


def make_pool(n):
    requests = [FakeRequest() for _ in range(n)]
    return RequestsPool(requests), requests


def test_idle_requests_handed_out_in_order_until_exhausted():
    pool, requests = make_pool(2)
    assert pool.get_idle_request() is requests[0]
    assert pool.get_idle_request() is requests[1]
    assert pool.get_idle_request() is None
    assert pool.in_use_count() == 2
    assert pool.is_idle_request_available() is False


def test_set_request_idle_makes_it_available_again():
    pool, requests = make_pool(2)
    pool.get_idle_request()
    pool.get_idle_request()
    pool.set_request_idle(requests[1])
    assert pool.in_use_count() == 1
    assert pool.is_idle_request_available() is True
    assert pool.get_idle_request() is requests[1]


def test_set_request_idle_rejects_foreign_request():
    pool, _ = make_pool(1)
    pool.get_idle_request()
    with pytest.raises(ValueError):
        pool.set_request_idle(FakeRequest())


def test_set_request_idle_rejects_idle_request():
    pool, requests = make_pool(1)
    with pytest.raises(ValueError):
        pool.set_request_idle(requests[0])
    assert pool.in_use_count() == 0


def test_wait_for_total_completion_waits_only_busy_requests():
    pool, requests = make_pool(3)
    pool.get_idle_request()
    pool.get_idle_request()
    pool.set_request_idle(requests[0])
    pool.wait_for_total_completion()
    assert [r.waits for r in requests] == [0, 1, 0]


def test_infer_requests_lists_all_in_order():
    pool, requests = make_pool(3)
    pool.get_idle_request()
    listed = pool.infer_requests()
    assert len(listed) == len(requests)
    assert all(a is b for a, b in zip(listed, requests))


def test_empty_pool_has_nothing_idle():
    pool = RequestsPool([])
    assert pool.is_idle_request_available() is False
    assert pool.get_idle_request() is None


def test_concurrent_gets_hand_out_distinct_requests():
    pool, requests = make_pool(8)
    taken = []
    taken_lock = threading.Lock()

    def worker():
        request = pool.get_idle_request()
        with taken_lock:
            taken.append(request)

    threads = [threading.Thread(target=worker) for _ in range(8)]
    for t in threads:
        t.start()
    for t in threads:
        t.join()
    assert len({id(r) for r in taken}) == len(requests)
    assert pool.in_use_count() == len(requests)