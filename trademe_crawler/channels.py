import queue
from typing import Generic, Iterator, TypeVar

T = TypeVar("T")

_CLOSED = object()


class Channel(Generic[T]):
    """FIFO between pipeline stages; ``maxsize`` > 0 bounds it for backpressure.

    ``close()`` is called once by the producing stage. Every consumer
    iterating the channel stops after draining it: the close marker is put
    back for the next consumer each time it is seen.
    """

    def __init__(self, maxsize: int = 0):
        self._queue: queue.Queue = queue.Queue(maxsize)

    def put(self, item: T) -> None:
        self._queue.put(item)

    def close(self) -> None:
        self._queue.put(_CLOSED)

    def __iter__(self) -> Iterator[T]:
        while True:
            item = self._queue.get()
            if item is _CLOSED:
                self._queue.put(_CLOSED)
                return
            yield item
