# -*- coding: utf-8 -*-
"""
PipeFlow: A PySide6 state engine for composing typed analysis
pipelines on a node canvas.
Copyright (c) 2026 opticsWolf

SPDX-License-Identifier: Apache-2.0
"""

import random

import pytest
from PySide6.QtCore import QCoreApplication

from pipeflow.config import EditorConfig
from pipeflow.editor import FlowEditor
from pipeflow.identity import IdGenerator


@pytest.fixture(scope="session", autouse=True)
def qapp():
    app = QCoreApplication.instance() or QCoreApplication([])
    yield app


class FakeClock:
    """Frozen millisecond clock; tests advance it explicitly."""

    def __init__(self, start: float = 1_700_000_000.0) -> None:
        self.now = start

    def __call__(self) -> float:
        return self.now


@pytest.fixture
def clock():
    return FakeClock()


@pytest.fixture
def id_generator(clock):
    return IdGenerator(clock=clock, rng=random.Random(7))


@pytest.fixture
def editor(id_generator):
    return FlowEditor(config=EditorConfig(), id_generator=id_generator)


class SignalRecorder:
    """Collects emissions of a Qt signal as tuples."""

    def __init__(self, signal) -> None:
        self.calls = []
        signal.connect(self._record)

    def _record(self, *args) -> None:
        self.calls.append(args)

    def __len__(self) -> int:
        return len(self.calls)


@pytest.fixture
def record():
    return SignalRecorder
