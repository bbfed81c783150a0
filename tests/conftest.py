"""Pytest configuration and shared fixtures for cadence tests."""

import json
from typing import Any, Dict, Iterable, List, Mapping, Optional

import pytest

from cadence.channel import ComputeChannel, handle_message
from cadence.config import CadenceSettings, get_settings
from cadence.errors import ChannelError, HyphenationError
from cadence.syllables import HeuristicHyphenator, Hyphenation, Hyphenator, LineAnalyzer


def pytest_configure(config):
    """Register custom pytest markers."""
    config.addinivalue_line(
        "markers",
        "threaded: marks tests that start a background channel thread"
    )
    config.addinivalue_line(
        "markers",
        "slow: marks tests as slow (deselect with '-m \"not slow\"')"
    )


@pytest.fixture(autouse=True)
def clean_settings(monkeypatch):
    """Isolate tests from CADENCE_* variables in the calling environment."""
    for field in CadenceSettings.model_fields:
        monkeypatch.delenv(f"CADENCE_{field.upper()}", raising=False)
    get_settings.cache_clear()
    yield
    get_settings.cache_clear()


class FakeHyphenator(Hyphenator):
    """Hyphenator with scripted answers.

    Words in ``table`` return the given positions, words in ``fail`` raise
    HyphenationError, anything else falls through to the heuristic backend.
    """

    language = "fake"

    def __init__(self, table: Optional[Mapping[str, Iterable[int]]] = None, fail: Iterable[str] = ()):
        self.table = dict(table or {})
        self.fail = set(fail)
        self.calls: List[str] = []
        self._fallback = HeuristicHyphenator()

    def hyphenate(self, word: str) -> Hyphenation:
        self.calls.append(word)
        if word in self.fail:
            raise HyphenationError("no pattern")
        if word in self.table:
            return Hyphenation(tuple(self.table[word]))
        return self._fallback.hyphenate(word)


class FakeChannel(ComputeChannel):
    """Channel that records requests and answers only when told to."""

    kind = "fake"

    def __init__(self, analyzer: LineAnalyzer, fail_start: bool = False):
        super().__init__(analyzer)
        self.fail_start = fail_start
        self.sent: List[Dict[str, Any]] = []

    def _start(self) -> None:
        if self.fail_start:
            raise RuntimeError("can't start new thread")

    def post(self, message: Dict[str, Any]) -> None:
        if not self.running:
            raise ChannelError("Fake channel is not running")
        self.sent.append(json.loads(json.dumps(message)))

    def reply(self, index: int = -1) -> None:
        """Answer a recorded request the way a real channel would."""
        self.deliver(handle_message(self.analyzer, self.sent[index]))

    def deliver(self, response: Dict[str, Any]) -> None:
        """Hand an arbitrary response dict to the coordinator."""
        self._receive(json.dumps(response))

    def crash(self, exc: Optional[BaseException] = None) -> None:
        """Simulate an unrecoverable channel error."""
        self._running = False
        self._report_failure(exc or RuntimeError("channel crashed"))


class ChannelRecorder:
    """Channel factory that keeps every FakeChannel it builds.

    The first ``fail_starts`` channels raise from ``start``.
    """

    def __init__(self, fail_starts: int = 0):
        self.created: List[FakeChannel] = []
        self.fail_starts = fail_starts

    def __call__(self, analyzer: LineAnalyzer) -> FakeChannel:
        channel = FakeChannel(analyzer, fail_start=len(self.created) < self.fail_starts)
        self.created.append(channel)
        return channel

    @property
    def current(self) -> FakeChannel:
        return self.created[-1]


@pytest.fixture
def analyzer():
    """Deterministic, dictionary-free line analyzer."""
    return LineAnalyzer(HeuristicHyphenator())


@pytest.fixture
def channels():
    """Recording factory for fake channels."""
    return ChannelRecorder()
