from __future__ import annotations

import logging

from smoketest_cache import smoketest_runner

from cache_cleaner.cleaner import Cleaner
from cache_cleaner.cleanerconfig import CleanerConfig
from cache_cleaner.cleaneremitter import CleanerEmitter


def main() -> int:
    """Run the cleaner against a sample cache, first report only then clean."""
    logging.basicConfig(level=logging.INFO, format="%(asctime)s %(message)s")
    emitter = CleanerEmitter(CleanerConfig())

    with smoketest_runner(concurrent_writes=True) as cache_directory:
        for clean_mode in (False, True, True):
            report = Cleaner(str(cache_directory), clean_mode=clean_mode).run()
            emitter.emit(report)

    return 0


if __name__ == "__main__":
    raise SystemExit(main())
