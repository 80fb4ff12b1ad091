# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0

Identity generator for nodes and their table rows.

Ids have the form ``{type}-{milliseconds}-{random}`` and serve as both the
node id and the key of the node's table row.
"""

import random
import time
from typing import Callable, Iterable, Optional, Set

from pipeflow.logger import get_logger
log = get_logger("Identity")


class IdGenerator:
    """
    Issues ids that are unique for the lifetime of the generator.

    Every issued id, and every id announced through ``reserve()`` (for
    example the ids of an imported document), is remembered. A candidate
    that collides with a known id is redrawn, so a burst of ids within the
    same millisecond can never repeat one.
    """

    def __init__(
        self,
        random_bound: int = 1000,
        clock: Optional[Callable[[], float]] = None,
        rng: Optional[random.Random] = None,
    ) -> None:
        self.random_bound = max(1, int(random_bound))
        self._clock = clock or time.time
        self._rng = rng or random.Random()
        self._issued: Set[str] = set()

    def new_id(self, type_name: str) -> str:
        millis = int(self._clock() * 1000)
        attempts = 0
        while True:
            candidate = f"{type_name}-{millis}-{self._rng.randrange(self.random_bound)}"
            if candidate not in self._issued:
                self._issued.add(candidate)
                return candidate
            attempts += 1
            # Random space for this millisecond exhausted; move to the next one.
            if attempts >= self.random_bound:
                millis += 1
                attempts = 0
                log.debug("Id space exhausted for %s, advancing timestamp", type_name)

    def reserve(self, ids: Iterable[str]) -> None:
        """Mark ids as taken so they are never issued."""
        self._issued.update(i for i in ids if isinstance(i, str))

    def is_known(self, node_id: str) -> bool:
        return node_id in self._issued

    @property
    def issued_count(self) -> int:
        return len(self._issued)


_default_generator = IdGenerator()


def new_id(type_name: str) -> str:
    """Issue an id from the process-wide generator."""
    return _default_generator.new_id(type_name)
