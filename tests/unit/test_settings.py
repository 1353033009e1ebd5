"""Testes de Settings e SessionEngineConfig."""

from __future__ import annotations

import pytest

from supplier_relay.config.settings import SessionEngineConfig, Settings, get_settings


class TestDefaults:
    def test_engine_defaults(self) -> None:
        settings = Settings()

        assert settings.session_reply_threshold == 3
        assert settings.session_max_wait_ms == 600_000
        assert settings.session_cleanup_delay_ms == 60_000
        assert settings.llm_available is False

    def test_env_override(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("SESSION_REPLY_THRESHOLD", "5")
        monkeypatch.setenv("OPENAI_ENABLED", "true")
        monkeypatch.setenv("OPENAI_API_KEY", "sk-test")

        settings = Settings()

        assert settings.session_reply_threshold == 5
        assert settings.llm_available is True

    def test_get_settings_is_cached(self) -> None:
        get_settings.cache_clear()
        assert get_settings() is get_settings()
        get_settings.cache_clear()


class TestValidation:
    def test_default_config_is_valid(self) -> None:
        settings = Settings()

        assert settings.validate_session_config() == []
        assert settings.validate_openai_config() == []
        assert settings.validate_llm_service_config() == []
        assert settings.validate_whatsapp_config() == []

    def test_session_config_errors(self) -> None:
        settings = Settings(
            session_reply_threshold=0,
            session_max_wait_ms=1000,
            waiter_safety_net_ms=500,
        )

        errors = settings.validate_session_config()

        assert any("SESSION_REPLY_THRESHOLD" in e for e in errors)
        assert any("WAITER_SAFETY_NET_MS" in e for e in errors)

    def test_openai_enabled_without_key(self) -> None:
        errors = Settings(openai_enabled=True, openai_api_key=None).validate_openai_config()

        assert errors == ["OPENAI_ENABLED=true requer OPENAI_API_KEY configurado"]

    def test_business_api_credentials_come_together(self) -> None:
        errors = Settings(whatsapp_phone_number_id="123").validate_whatsapp_config()

        assert len(errors) == 1

    def test_production_requires_sales_group(self) -> None:
        errors = Settings(environment="production").validate_whatsapp_config()

        assert any("SALES_GROUP_ID" in e for e in errors)


class TestMessagesEndpoint:
    def test_builds_graph_url(self) -> None:
        settings = Settings(whatsapp_phone_number_id="123", whatsapp_access_token="tok")

        assert settings.get_messages_endpoint() == "https://graph.facebook.com/v18.0/123/messages"
        assert settings.whatsapp_business_api_enabled is True

    def test_requires_phone_number_id(self) -> None:
        with pytest.raises(ValueError):
            Settings().get_messages_endpoint()


class TestSessionEngineConfig:
    def test_from_settings(self) -> None:
        settings = Settings(
            session_reply_threshold=2,
            session_max_wait_ms=1000,
            session_cleanup_delay_ms=10,
            waiter_poll_interval_ms=5,
            waiter_safety_net_ms=2000,
        )

        config = SessionEngineConfig.from_settings(settings)

        assert config == SessionEngineConfig(
            reply_threshold=2,
            max_wait_ms=1000,
            cleanup_delay_ms=10,
            waiter_poll_interval_ms=5,
            waiter_safety_net_ms=2000,
        )


class TestLLMServiceSettings:
    def test_service_enabled_without_url(self) -> None:
        errors = Settings(llm_service_enabled=True).validate_llm_service_config()

        assert errors == ["LLM_SERVICE_ENABLED=true requer LLM_SERVICE_URL configurado"]

    def test_env_enables_service(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("LLM_SERVICE_ENABLED", "true")
        monkeypatch.setenv("LLM_SERVICE_URL", "http://llm:3003")

        settings = Settings()

        assert settings.llm_service_available is True
        assert settings.llm_available is True
        assert settings.openai_available is False
        assert settings.validate_llm_service_config() == []
