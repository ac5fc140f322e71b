#
# Copyright 2024 cdeps Project Authors. All rights reserved.
# Use of this source code is governed by a MIT-style
# license that can be found at
#
# https://opensource.org/license/MIT
#
# The above copyright notice and this permission
# notice shall be included in all copies or
# substantial portions of the Software.

"""
Bounded concurrency executor.

Work runs in waves: at most `max_concurrency` tasks are launched together and
the whole wave is joined before the next one starts. Each wave gets its own
thread pool, so a task may itself run a nested batch without starving the
pool it runs in.
"""

from concurrent.futures import ThreadPoolExecutor, as_completed
from typing import Callable, Iterable, List, Optional, TypeVar

from cdeps.manager.errors import CdepsError

DEFAULT_CONCURRENCY = 4

T = TypeVar("T")


class WaveExecutor:
    def __init__(self, max_concurrency: int = DEFAULT_CONCURRENCY):
        self.max_concurrency = max(1, int(max_concurrency or 1))

    @property
    def is_sequential(self) -> bool:
        return self.max_concurrency == 1

    def waves(self, items: Iterable[T]) -> List[List[T]]:
        items = list(items)
        size = self.max_concurrency
        return [items[i:i + size] for i in range(0, len(items), size)]

    def run_batch(self, items: Iterable[T],
                  worker: Callable[[T], object]) -> Optional[CdepsError]:
        """
        Run `worker` on every item.

        A failing item never stops its siblings. The first CdepsError, in
        completion order, is returned once every item ran; other exceptions
        propagate after their wave has drained.

        Returns:
            The first error, or None if every item succeeded
        """
        first_error = None

        if self.is_sequential:
            for item in items:
                try:
                    worker(item)
                except CdepsError as e:
                    if first_error is None:
                        first_error = e
            return first_error

        for wave in self.waves(items):
            # leaving the with-block joins every future of the wave
            with ThreadPoolExecutor(max_workers=len(wave)) as executor:
                futures = [executor.submit(worker, item) for item in wave]
                for future in as_completed(futures):
                    try:
                        future.result()
                    except CdepsError as e:
                        if first_error is None:
                            first_error = e
        return first_error
