"""
Cache Manager Stress Demo

Exercises a cache manager from two writer threads and reports cache sizes.

This example shows:
- A global entry bound shared by two caches
- A refreshing cache alongside a bounded, non-refreshing one
- Expiry after writers stop, and refresh keeping iterated keys alive

Run with:
    python examples/stress_demo.py
"""

import logging
import random
import threading
import time

from multicache import CacheManager

# Configure logging
logging.basicConfig(level=logging.INFO, format="%(asctime)s - %(name)s - %(levelname)s - %(message)s")
logger = logging.getLogger(__name__)

TTL_SECONDS = 2.0
RUN_SECONDS = 5.0


def pusher(
    manager: CacheManager,
    running: threading.Event,
    key_offset: int,
    pause: float,
) -> None:
    """Keep writing random values into both caches until stopped."""
    one = manager.get_cache("one")
    two = manager.get_cache("two")
    rand = random.Random()
    while running.is_set():
        one.put(rand.randrange(8) + key_offset, rand.getrandbits(32))
        two.put(rand.randrange(3) + key_offset // 8 * 3, rand.getrandbits(32))
        time.sleep(pause)


def report(manager: CacheManager) -> None:
    logger.info(
        "Map 1: %d, Map 2: %d, Total: %d",
        len(manager.get_cache("one")),
        len(manager.get_cache("two")),
        manager.size(),
    )


def main() -> None:
    manager = CacheManager(max_total_entries=15, sweep_window=0.5)
    manager.builder().ttl(TTL_SECONDS).refresh().build("one")
    manager.builder().ttl(TTL_SECONDS).max(5).build("two")

    running = threading.Event()
    running.set()
    pushers = [
        threading.Thread(target=pusher, args=(manager, running, 0, 0.01), name="pusher-a"),
        threading.Thread(target=pusher, args=(manager, running, 8, 0.022), name="pusher-b"),
    ]
    pushers[0].start()
    time.sleep(0.5)
    pushers[1].start()

    stop_at = time.monotonic() + RUN_SECONDS
    while time.monotonic() < stop_at:
        report(manager)
        time.sleep(0.25)

    logger.info("Stopping...")
    running.clear()
    for thread in pushers:
        thread.join()
    stopped = time.monotonic()
    logger.info("Stopped.")
    report(manager)

    logger.info("Waiting for stuff to expire.")
    time.sleep(TTL_SECONDS * 0.6)
    manager.expire()

    logger.info("Touching some keys of map 1")
    one = manager.get_cache("one")
    for count, key in enumerate(one.keys()):
        if count >= 7:
            break
        one.get(key)

    logger.info("Waiting for stuff to expire.")
    time.sleep(max(0.0, stopped + TTL_SECONDS * 1.1 - time.monotonic()))
    manager.expire()
    report(manager)
    logger.info("Manager: %s", manager)

    manager.close()


if __name__ == "__main__":
    main()
