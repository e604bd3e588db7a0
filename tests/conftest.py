import pytest

from card_snapshots.engine import RenderEngine, RenderSession
from card_snapshots.fingerprint import FingerprintBuilder
from card_snapshots.models import Card, RelatedCard
from card_snapshots.storage import MemoryStore

# Minimal valid PNG (1x1 white pixel)
PNG_BYTES = bytes.fromhex(
    "89504e470d0a1a0a0000000d4948445200000001000000010806000000"
    "1f15c4890000000d49444154789c63f8cfc0500f000480017fa68a013d"
    "0000000049454e44ae426082"
)


class FakeSession(RenderSession):
    """In-memory render session that records which stage each call belongs to."""

    def __init__(self, failures=None, console_messages=(), png=PNG_BYTES):
        self.failures = dict(failures or {})
        self.console_messages = list(console_messages)
        self.png = png
        self.calls: list[str] = []
        self.navigated_to = None
        self.navigate_kwargs = None
        self.evaluated = []
        self.waited_ms = None
        self.close_count = 0

    def _enter(self, stage: str) -> None:
        self.calls.append(stage)
        if stage in self.failures:
            raise self.failures[stage]

    def on_console(self, callback):
        for text in self.console_messages:
            callback(text)

    def navigate(self, url, max_inflight=2, quiet_ms=500):
        self.navigated_to = url
        self.navigate_kwargs = {"max_inflight": max_inflight, "quiet_ms": quiet_ms}
        self._enter("navigate")

    def evaluate(self, expression, arg=None):
        self.evaluated.append((expression, arg))
        self._enter("inject")

    def wait_for_function(self, expression):
        if "!== undefined" in expression:
            self._enter("await_injection_hook")
        elif "document.fonts" in expression:
            self._enter("await_fonts")
        else:
            self._enter("await_render")

    def wait(self, ms):
        self.waited_ms = ms
        self._enter("settle")

    def screenshot(self):
        self._enter("capture")
        return self.png

    def close(self):
        self.close_count += 1


class FakeEngine(RenderEngine):
    def __init__(self, session_factory=FakeSession, launch_error=None):
        self.session_factory = session_factory
        self.launch_error = launch_error
        self.sessions: list[FakeSession] = []
        self.viewports: list[tuple[int, int]] = []

    def launch(self, width, height):
        self.viewports.append((width, height))
        if self.launch_error:
            raise self.launch_error
        session = self.session_factory()
        self.sessions.append(session)
        return session


@pytest.fixture
def png_bytes():
    return PNG_BYTES


@pytest.fixture
def card():
    return Card(
        id="c1",
        title="Hello",
        body="World",
        star_count=3,
        images=[],
        published=True,
        slugs=["hello-world"],
        links=["c2", "c3"],
    )


@pytest.fixture
def related_cards():
    return {
        "c2": RelatedCard(published=True),
        "c3": RelatedCard(published=False),
    }


@pytest.fixture
def fingerprints():
    return FingerprintBuilder(deploy_tag="deploy-2024-01-01-00-00", pipeline_version=7)


@pytest.fixture
def memory_store():
    return MemoryStore()


@pytest.fixture
def fake_engine():
    return FakeEngine()
