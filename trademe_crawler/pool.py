import logging
import threading
from typing import Callable, TypeVar
from trademe_crawler.channels import Channel

logger = logging.getLogger(__name__)

T = TypeVar("T")
R = TypeVar("R")


def parallel_map(
    workers: int,
    source: Channel[T],
    func: Callable[[T], R | None],
    maxsize: int = 0,
) -> Channel[R]:
    """Apply ``func`` to every item of ``source`` across ``workers`` threads.

    Results that are None are dropped. The output channel closes once every
    worker has drained ``source``.
    """
    if workers < 1:
        raise ValueError(f"workers must be at least 1, got {workers}")
    out: Channel[R] = Channel(maxsize)

    def work():
        for item in source:
            try:
                result = func(item)
            except Exception:
                logger.exception(f"Unexpected failure processing {item!r}")
                continue
            if result is not None:
                out.put(result)

    threads = [
        threading.Thread(target=work, name=f"worker-{i}", daemon=True)
        for i in range(workers)
    ]
    for t in threads:
        t.start()

    def join_then_close():
        for t in threads:
            t.join()
        out.close()

    threading.Thread(target=join_then_close, name="worker-join", daemon=True).start()
    return out
