"""
Tests for environment-driven configuration.
"""
from unittest.mock import patch

from api.config import PLACEHOLDER_API_KEY, Settings, build_pipeline, load_env_file
from weather_cache.provider import DEFAULT_BASE_URL


class TestSettings:
    @patch.dict("os.environ", {}, clear=True)
    def test_defaults(self):
        settings = Settings()

        assert settings.weather_api_key == ""
        assert settings.weather_api_base_url == DEFAULT_BASE_URL
        assert settings.cache_expiration == 43200
        assert settings.upstream_timeout == 10
        assert settings.rate_limit_window_ms == 60000
        assert settings.rate_limit_max_requests == 30
        assert settings.port == 9090
        assert settings.cors_origins == ["*"]

    @patch.dict(
        "os.environ",
        {
            "WEATHER_API_KEY": " real-key ",
            "WEATHER_API_BASE_URL": "https://example.test/timeline",
            "CACHE_EXPIRATION": "3600",
            "RATE_LIMIT_MAX_REQUESTS": "5",
            "PORT": "8080",
        },
        clear=True,
    )
    def test_environment_overrides(self):
        settings = Settings()

        assert settings.weather_api_key == "real-key"
        assert settings.weather_api_base_url == "https://example.test/timeline"
        assert settings.cache_expiration == 3600
        assert settings.rate_limit_max_requests == 5
        assert settings.port == 8080

    @patch.dict("os.environ", {"CACHE_EXPIRATION": "soon"}, clear=True)
    def test_invalid_integer_falls_back_to_default(self):
        assert Settings().cache_expiration == 43200

    @patch.dict("os.environ", {"CACHE_EXPIRATION": "-10"}, clear=True)
    def test_non_positive_integer_falls_back_to_default(self):
        assert Settings().cache_expiration == 43200

    @patch.dict("os.environ", {}, clear=True)
    def test_validate_missing_key(self):
        assert Settings().validate() == ["WEATHER_API_KEY is not configured"]

    @patch.dict("os.environ", {"WEATHER_API_KEY": PLACEHOLDER_API_KEY}, clear=True)
    def test_validate_placeholder_key(self):
        assert Settings().validate() == ["WEATHER_API_KEY is still the placeholder value"]

    @patch.dict("os.environ", {"WEATHER_API_KEY": "real-key"}, clear=True)
    def test_validate_ok(self):
        assert Settings().validate() == []


class TestEnvFile:
    def test_missing_env_file(self, tmp_path):
        assert load_env_file(tmp_path / ".env") is False

    @patch.dict("os.environ", {}, clear=True)
    def test_env_file_loaded(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("WEATHER_API_KEY=from-file\nCACHE_EXPIRATION=120\n")

        assert load_env_file(env_file) is True

        settings = Settings()
        assert settings.weather_api_key == "from-file"
        assert settings.cache_expiration == 120

    @patch.dict("os.environ", {"WEATHER_API_KEY": "from-env"}, clear=True)
    def test_environment_wins_over_env_file(self, tmp_path):
        env_file = tmp_path / ".env"
        env_file.write_text("WEATHER_API_KEY=from-file\n")

        load_env_file(env_file)

        assert Settings().weather_api_key == "from-env"


class TestBuildPipeline:
    @patch.dict(
        "os.environ",
        {"WEATHER_API_KEY": "real-key", "CACHE_EXPIRATION": "900", "UPSTREAM_TIMEOUT": "3"},
        clear=True,
    )
    def test_pipeline_from_settings(self):
        pipeline = build_pipeline(Settings(), check_period=0)
        try:
            assert pipeline.api_key == "real-key"
            assert pipeline.cache_ttl == 900
            assert pipeline.cache.default_ttl == 900
            assert pipeline.provider.timeout == 3
        finally:
            pipeline.cache.close()
