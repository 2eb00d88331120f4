"""Tests for settings, startup checks, events and bootstrap wiring."""

import logging

import pytest

from freight_notify import main as app_main
from freight_notify.events import EventBus, new_event
from freight_notify.integrations.email import SendGridEmailSender
from freight_notify.integrations.messages import DelayMessageGenerator
from freight_notify.integrations.traffic import GoogleMapsTrafficClient
from freight_notify.settings import Settings, get_settings, reset_settings
from freight_notify.startup_checks import check_environment, run_startup_checks
from freight_notify.workflow import build_activities


@pytest.fixture(autouse=True)
def _clean_settings():
    reset_settings()
    yield
    reset_settings()


class TestSettings:
    def test_defaults(self, monkeypatch):
        for name in (
            "DELAY_THRESHOLD_MINUTES",
            "RETRY_MAX_ATTEMPTS",
            "RETRY_INITIAL_INTERVAL_SECONDS",
            "GOOGLE_MAPS_API_KEY",
        ):
            monkeypatch.delenv(name, raising=False)
        settings = Settings.from_env()
        assert settings.workflow.delay_threshold_minutes == 30
        assert settings.retry.max_attempts == 3
        assert settings.retry.initial_interval_seconds == 1.0
        assert settings.retry.max_interval_seconds == 10.0
        assert settings.integrations.google_maps_api_key is None

    def test_reads_environment(self, monkeypatch):
        monkeypatch.setenv("DELAY_THRESHOLD_MINUTES", "5")
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "4")
        monkeypatch.setenv("SENDGRID_FROM_EMAIL", "  ops@example.com ")
        settings = Settings.from_env()
        assert settings.workflow.delay_threshold_minutes == 5
        assert settings.retry.max_attempts == 4
        assert settings.integrations.sendgrid_from_email == "ops@example.com"

    def test_malformed_numbers_fall_back(self, monkeypatch):
        monkeypatch.setenv("RETRY_MAX_ATTEMPTS", "three")
        monkeypatch.setenv("RETRY_BACKOFF_COEFFICIENT", "0.1")
        settings = Settings.from_env()
        assert settings.retry.max_attempts == 3
        assert settings.retry.backoff_coefficient == 1.0

    def test_get_settings_is_cached(self):
        assert get_settings() is get_settings()


class TestStartupChecks:
    def test_check_environment(self, monkeypatch):
        monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "x")
        monkeypatch.setenv("SENDGRID_API_KEY", "  ")
        monkeypatch.delenv("SENDGRID_FROM_EMAIL", raising=False)
        result = check_environment(["GOOGLE_MAPS_API_KEY", "SENDGRID_API_KEY", "SENDGRID_FROM_EMAIL"])
        assert result.checks == {
            "GOOGLE_MAPS_API_KEY": True,
            "SENDGRID_API_KEY": False,
            "SENDGRID_FROM_EMAIL": False,
        }
        assert result.missing == ("SENDGRID_API_KEY", "SENDGRID_FROM_EMAIL")
        assert result.all_set is False

    def test_run_startup_checks_raises(self, monkeypatch):
        monkeypatch.delenv("SKIP_STARTUP_CHECKS", raising=False)
        monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
        with pytest.raises(RuntimeError, match="GOOGLE_MAPS_API_KEY"):
            run_startup_checks("traffic")

    def test_run_startup_checks_passes(self, monkeypatch):
        monkeypatch.delenv("SKIP_STARTUP_CHECKS", raising=False)
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")
        assert run_startup_checks("ai").all_set is True

    def test_skip_flag(self, monkeypatch):
        monkeypatch.setenv("SKIP_STARTUP_CHECKS", "1")
        monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
        assert run_startup_checks("traffic").all_set is True

    def test_unknown_group(self, monkeypatch):
        monkeypatch.delenv("SKIP_STARTUP_CHECKS", raising=False)
        with pytest.raises(ValueError):
            run_startup_checks("sms")


class TestEventBus:
    @pytest.mark.asyncio
    async def test_run_and_global_subscribers(self):
        bus = EventBus()
        per_run, everything = [], []

        async def _per_run(event):
            per_run.append(event)

        async def _all(event):
            everything.append(event)

        unsubscribe = bus.subscribe("r1", _per_run)
        bus.subscribe_all(_all)
        await bus.publish(new_event("workflow.started", "r1", {}))
        await bus.publish(new_event("workflow.started", "r2", {}))
        unsubscribe()
        await bus.publish(new_event("workflow.completed", "r1", {}))

        assert [e.run_id for e in per_run] == ["r1"]
        assert [e.seq for e in everything] == [1, 2, 3]

    @pytest.mark.asyncio
    async def test_failing_subscriber_is_isolated(self):
        bus = EventBus()
        received = []

        async def _broken(event):
            raise RuntimeError("subscriber bug")

        async def _ok(event):
            received.append(event)

        bus.subscribe("r1", _broken)
        bus.subscribe_all(_ok)
        await bus.publish(new_event("workflow.started", "r1", {"a": 1}))
        assert received[0].data == {"a": 1}


class TestBootstrap:
    def test_build_activities_wires_integrations(self):
        activities = build_activities(Settings())
        assert isinstance(activities.check_traffic, GoogleMapsTrafficClient)
        assert isinstance(activities.generate_message, DelayMessageGenerator)
        assert isinstance(activities.send_notification, SendGridEmailSender)

    def test_build_workflow_uses_settings(self):
        from freight_notify.settings import WorkflowSettings

        settings = Settings(workflow=WorkflowSettings(delay_threshold_minutes=12))
        workflow = app_main.build_workflow(settings)
        assert workflow.config.delay_threshold_minutes == 12

    def test_run_id_filter_defaults_to_system(self):
        record = logging.LogRecord("x", logging.INFO, __file__, 1, "msg", None, None)
        assert app_main._RunIdFilter().filter(record) is True
        assert record.run_id == "system"

    def test_bootstrap_fails_fast_on_missing_variables(self, monkeypatch):
        monkeypatch.setattr(app_main, "load_dotenv_if_present", lambda: None)
        monkeypatch.delenv("SKIP_STARTUP_CHECKS", raising=False)
        monkeypatch.delenv("SENDGRID_FROM_EMAIL", raising=False)
        with pytest.raises(RuntimeError, match="SENDGRID_FROM_EMAIL"):
            app_main.bootstrap("email")

    def test_bootstrap_returns_settings_when_configured(self, monkeypatch):
        monkeypatch.setattr(app_main, "load_dotenv_if_present", lambda: None)
        monkeypatch.delenv("SKIP_STARTUP_CHECKS", raising=False)
        monkeypatch.setenv("GOOGLE_MAPS_API_KEY", "maps-key")
        settings = app_main.bootstrap("traffic")
        assert settings.integrations.google_maps_api_key == "maps-key"

    def test_bootstrap_honors_skip_flag(self, monkeypatch):
        monkeypatch.setattr(app_main, "load_dotenv_if_present", lambda: None)
        monkeypatch.setenv("SKIP_STARTUP_CHECKS", "1")
        monkeypatch.delenv("GOOGLE_MAPS_API_KEY", raising=False)
        assert app_main.bootstrap().integrations.google_maps_api_key is None
