from __future__ import annotations

import argparse
import hashlib
import logging
import random
import shutil
import threading
import time
from collections.abc import Generator
from contextlib import contextmanager
from pathlib import Path

BASE_DIR: Path = Path(__file__).resolve().parent
TEST_DIR: Path = BASE_DIR / "smoketest_cache"
ENTRY_COUNT = 2000
CHANCE_OF_EXPIRED = 0.5  # out of 1.0
CHANCE_OF_INVALID = 0.05  # out of 1.0
MAX_SECONDS_TO_LIVE = 3600

# Time intervals in seconds
WRITE_INTERVAL = 0.01

logger = logging.getLogger(__name__)


def destroy_smoketest_directories() -> None:
    """Delete the directories for the smoketest."""
    logger.debug("Deleting %s", TEST_DIR)
    shutil.rmtree(TEST_DIR, ignore_errors=True)


def _file_content() -> bytes:
    """A cache entry: 10 digit expiration followed by a serialized payload."""
    if random.random() < CHANCE_OF_INVALID:
        return b"not a cache entry"

    now = int(time.time())
    if random.random() < CHANCE_OF_EXPIRED:
        expiration = now - random.randint(0, MAX_SECONDS_TO_LIVE)
    else:
        expiration = now + random.randint(1, MAX_SECONDS_TO_LIVE)

    return str(expiration).encode() + b's:7:"payload";'


def write_cache_entry(key: str) -> Path:
    """Write an entry sharded the way the file cache store does: ab/cd/abcd..."""
    digest = hashlib.sha1(key.encode()).hexdigest()
    directory = TEST_DIR / digest[0:2] / digest[2:4]
    directory.mkdir(parents=True, exist_ok=True)

    filepath = directory / digest
    filepath.write_bytes(_file_content())
    return filepath


def build_smoketest_cache(entry_count: int = ENTRY_COUNT) -> None:
    """Fill the cache directory with entries and a few unrelated files."""
    for index in range(entry_count):
        write_cache_entry(f"smoketest:{index}")

    (TEST_DIR / ".gitignore").write_text("*\n!.gitignore\n")
    (TEST_DIR / "data").mkdir(exist_ok=True)

    logger.info("Wrote %d cache entries to %s", entry_count, TEST_DIR)


def thread_cache_writer(stop_flag: threading.Event) -> None:
    """Keep writing new entries while the cleaner runs."""
    count = 0
    while not stop_flag.is_set():
        write_cache_entry(f"writer:{count}")
        count += 1
        time.sleep(WRITE_INTERVAL)

    logger.info("Writer thread wrote %d entries", count)


@contextmanager
def smoketest_runner(concurrent_writes: bool = False) -> Generator[Path, None, None]:
    """Build a cache directory, optionally written to while in use, then remove it."""
    destroy_smoketest_directories()
    build_smoketest_cache()

    stop_flag = threading.Event()
    writer = threading.Thread(target=thread_cache_writer, args=(stop_flag,))
    if concurrent_writes:
        writer.start()

    try:
        yield TEST_DIR

    finally:
        if concurrent_writes:
            stop_flag.set()
            writer.join()
        destroy_smoketest_directories()


def parse_args() -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Build a sample file cache tree.")
    parser.add_argument(
        "--count",
        type=int,
        default=ENTRY_COUNT,
        help="Number of cache entries to write.",
    )
    return parser.parse_args()


def run() -> int:
    """Build the smoketest cache and leave it in place."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    args = parse_args()

    destroy_smoketest_directories()
    build_smoketest_cache(args.count)

    return 0


if __name__ == "__main__":
    raise SystemExit(run())
