import threading
from trademe_crawler.channels import Channel


def test_channel_drains_then_stops_after_close():
    channel = Channel()
    for i in range(3):
        channel.put(i)
    channel.close()
    assert list(channel) == [0, 1, 2]


def test_close_is_seen_by_every_consumer():
    channel = Channel(maxsize=2)
    results = []
    lock = threading.Lock()

    def consume():
        for item in channel:
            with lock:
                results.append(item)

    consumers = [threading.Thread(target=consume) for _ in range(4)]
    for t in consumers:
        t.start()
    for i in range(10):
        channel.put(i)
    channel.close()
    for t in consumers:
        t.join(timeout=5)

    assert not any(t.is_alive() for t in consumers)
    assert sorted(results) == list(range(10))
