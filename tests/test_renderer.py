"""Tests for the render orchestrator, against an in-memory engine."""

import logging

import pytest

from card_snapshots.exceptions import InjectionHookMissingError, RenderError, RenderTimeoutError
from card_snapshots.renderer import STAGES, CardRenderer, default_card_url

from conftest import PNG_BYTES, FakeEngine, FakeSession


def _renderer(engine, **kwargs):
    return CardRenderer(engine=engine, card_url=lambda card_id: f"https://cards.test/basic-card/{card_id}", **kwargs)


class TestCardRendererSuccess:
    def test_returns_screenshot(self, fake_engine, card, related_cards):
        png = _renderer(fake_engine).render(card, related_cards)
        assert png == PNG_BYTES

    def test_stages_run_in_order(self, fake_engine, card, related_cards):
        _renderer(fake_engine).render(card, related_cards)
        session = fake_engine.sessions[0]
        # launch happens on the engine, everything else on the session
        assert session.calls == list(STAGES[1:])

    def test_fixed_viewport(self, fake_engine, card, related_cards):
        _renderer(fake_engine).render(card, related_cards)
        assert fake_engine.viewports == [(1330, 768)]

    def test_custom_viewport(self, fake_engine, card, related_cards):
        _renderer(fake_engine, width=800, height=418).render(card, related_cards)
        assert fake_engine.viewports == [(800, 418)]

    def test_navigates_to_host_page_with_loose_idle(self, fake_engine, card, related_cards):
        _renderer(fake_engine).render(card, related_cards)
        session = fake_engine.sessions[0]
        assert session.navigated_to == "https://cards.test/basic-card/c1"
        assert session.navigate_kwargs == {"max_inflight": 2, "quiet_ms": 500}

    def test_injects_card_and_related_cards(self, fake_engine, card, related_cards):
        _renderer(fake_engine).render(card, related_cards)
        expression, arg = fake_engine.sessions[0].evaluated[0]
        assert 'window["injectFetchedCard"]' in expression
        injected_card, injected_related = arg
        assert injected_card["id"] == "c1"
        assert injected_card["title"] == "Hello"
        assert injected_related == {"c2": {"published": True}, "c3": {"published": False}}

    def test_custom_global_names(self, card, related_cards):
        expressions = []

        class RecordingSession(FakeSession):
            def wait_for_function(self, expression):
                expressions.append(expression)
                super().wait_for_function(expression)

        engine = FakeEngine(session_factory=RecordingSession)
        _renderer(engine, inject_function="injectCard", rendered_variable="cardDone").render(card, related_cards)
        assert expressions == [
            'window["injectCard"] !== undefined',
            "document.fonts.status == 'loaded'",
            'window["cardDone"]',
        ]

    def test_settle_delay(self, fake_engine, card, related_cards):
        _renderer(fake_engine, settle_ms=250).render(card, related_cards)
        assert fake_engine.sessions[0].waited_ms == 250

    def test_closes_browser(self, fake_engine, card, related_cards):
        _renderer(fake_engine).render(card, related_cards)
        assert fake_engine.sessions[0].close_count == 1

    def test_each_render_gets_its_own_browser(self, fake_engine, card, related_cards):
        renderer = _renderer(fake_engine)
        renderer.render(card, related_cards)
        renderer.render(card, related_cards)
        assert len(fake_engine.sessions) == 2
        assert fake_engine.sessions[0] is not fake_engine.sessions[1]

    def test_forwards_page_console(self, card, related_cards, caplog):
        engine = FakeEngine(session_factory=lambda: FakeSession(console_messages=["font missing"]))
        with caplog.at_level(logging.INFO, logger="card_snapshots.renderer"):
            _renderer(engine).render(card, related_cards)
        assert "Page logged via console: font missing" in caplog.text


class TestCardRendererFailures:
    @pytest.mark.parametrize("stage", ["navigate", "inject", "await_fonts", "await_render", "settle", "capture"])
    def test_timeout_is_fatal_and_closes_browser(self, card, related_cards, stage):
        session = FakeSession(failures={stage: TimeoutError("too slow")})
        engine = FakeEngine(session_factory=lambda: session)

        with pytest.raises(RenderTimeoutError) as exc_info:
            _renderer(engine).render(card, related_cards)

        assert exc_info.value.stage == stage
        assert isinstance(exc_info.value.original, TimeoutError)
        assert session.close_count == 1
        # Nothing after the failing stage runs
        assert session.calls[-1] == stage

    def test_missing_injection_hook(self, card, related_cards):
        session = FakeSession(failures={"await_injection_hook": TimeoutError("no hook")})
        engine = FakeEngine(session_factory=lambda: session)

        with pytest.raises(InjectionHookMissingError) as exc_info:
            _renderer(engine).render(card, related_cards)

        assert exc_info.value.stage == "await_injection_hook"
        assert session.close_count == 1
        assert "inject" not in session.calls

    def test_engine_error_is_wrapped(self, card, related_cards):
        boom = RuntimeError("net::ERR_CONNECTION_REFUSED")
        session = FakeSession(failures={"navigate": boom})
        engine = FakeEngine(session_factory=lambda: session)

        with pytest.raises(RenderError) as exc_info:
            _renderer(engine).render(card, related_cards)

        assert not isinstance(exc_info.value, RenderTimeoutError)
        assert exc_info.value.stage == "navigate"
        assert exc_info.value.original is boom
        assert exc_info.value.__cause__ is boom
        assert session.close_count == 1

    def test_launch_failure(self, card, related_cards):
        engine = FakeEngine(launch_error=RuntimeError("chromium not installed"))

        with pytest.raises(RenderError) as exc_info:
            _renderer(engine).render(card, related_cards)

        assert exc_info.value.stage == "launch"
        assert engine.sessions == []

    def test_interrupt_still_closes_browser(self, card, related_cards):
        session = FakeSession(failures={"await_render": KeyboardInterrupt()})
        engine = FakeEngine(session_factory=lambda: session)

        with pytest.raises(KeyboardInterrupt):
            _renderer(engine).render(card, related_cards)

        assert session.close_count == 1


class TestTeardown:
    class BrokenCloseSession(FakeSession):
        def close(self):
            super().close()
            raise RuntimeError("Target closed")

    def test_close_failure_keeps_screenshot(self, card, related_cards, caplog):
        caplog.set_level(logging.WARNING)
        session = self.BrokenCloseSession()
        engine = FakeEngine(session_factory=lambda: session)

        assert _renderer(engine).render(card, related_cards) == PNG_BYTES
        assert session.close_count == 1
        assert "Target closed" in caplog.text

    def test_close_failure_keeps_stage_error(self, card, related_cards):
        session = self.BrokenCloseSession(failures={"await_fonts": TimeoutError("fonts")})
        engine = FakeEngine(session_factory=lambda: session)

        with pytest.raises(RenderTimeoutError) as exc_info:
            _renderer(engine).render(card, related_cards)

        assert exc_info.value.stage == "await_fonts"
        assert session.close_count == 1


class TestDefaultCardUrl:
    def test_quotes_card_id(self):
        assert default_card_url("c1") == "http://localhost:8081/basic-card/c1"
        assert default_card_url("a/b c") == "http://localhost:8081/basic-card/a%2Fb%20c"


class TestFromSettings:
    def test_uses_settings(self, fake_engine, card, related_cards):
        from card_snapshots.config import Settings

        settings = Settings(
            screenshot_width=640,
            screenshot_height=480,
            basic_card_url_template="https://host.test/card/{card_id}",
            render_settle_ms=10,
        )
        renderer = CardRenderer.from_settings(settings, engine=fake_engine)
        renderer.render(card, related_cards)

        assert fake_engine.viewports == [(640, 480)]
        assert fake_engine.sessions[0].navigated_to == "https://host.test/card/c1"
        assert fake_engine.sessions[0].waited_ms == 10
