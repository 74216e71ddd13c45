import threading
import time

import pytest

from gitlab_ai_reviewer.infra.queue.inprocess_queue import InProcessWorkerQueue


def test_inprocess_queue_processes_tasks() -> None:
    done = threading.Event()
    seen: list[int] = []

    def handler(value: int) -> None:
        seen.append(value)
        done.set()

    q = InProcessWorkerQueue[int](
        name="test",
        handler=handler,
        worker_concurrency=1,
        max_pending_jobs_soft_limit=10,
    )

    q.enqueue(1)
    assert done.wait(timeout=2)
    assert seen == [1]


def test_inprocess_queue_worker_survives_handler_exceptions() -> None:
    done = threading.Event()
    count = {"value": 0}

    def handler(value: int) -> None:
        count["value"] += 1
        if value == 1:
            raise RuntimeError("boom")
        done.set()

    q = InProcessWorkerQueue[int](
        name="test-survive",
        handler=handler,
        worker_concurrency=1,
        max_pending_jobs_soft_limit=10,
    )

    q.enqueue(1)
    q.enqueue(2)

    assert done.wait(timeout=2)
    assert count["value"] >= 2

    # allow background queue thread to settle for deterministic behavior
    time.sleep(0.05)


def test_inprocess_queue_join_waits_for_all_tasks() -> None:
    seen: list[int] = []

    q = InProcessWorkerQueue[int](
        name="test-join",
        handler=seen.append,
        worker_concurrency=2,
    )
    for value in range(5):
        q.enqueue(value)

    q.join()
    assert sorted(seen) == [0, 1, 2, 3, 4]


def test_inprocess_queue_rejects_non_positive_concurrency() -> None:
    with pytest.raises(ValueError):
        InProcessWorkerQueue[int](name="bad", handler=lambda _: None, worker_concurrency=0)
