"""
Tests for the interactive weather console.
"""
import io
from unittest.mock import patch

import pytest

from console import weather_cli
from tests.helpers import StubProvider, make_response, sample_record
from weather_cache.cache import CacheStore
from weather_cache.pipeline import WeatherPipeline


def scripted_input(*answers):
    """input() replacement that replays answers, then signals end of input."""
    remaining = list(answers)

    def _input(prompt=""):
        if not remaining:
            raise EOFError
        return remaining.pop(0)

    return _input


class TestFormatting:
    def setup_method(self):
        self.record = sample_record(days=10, temp=12)

    def test_format_current(self):
        text = weather_cli.format_current(self.record)

        assert "===== Current Weather =====" in text
        assert "Location: London, England, United Kingdom" in text
        assert "Temperature: 12°C" in text
        assert "Wind: 14.8 km/h 240.0°" in text

    def test_format_forecast_defaults_to_five_days(self):
        text = weather_cli.format_forecast(self.record)

        assert text.count("Date: ") == 5
        assert "Date: 2025-10-20" in text
        assert "Date: 2025-10-25" not in text

    def test_render_forecast_days(self):
        assert weather_cli.render(self.record, "forecast", 2).count("Date: ") == 2


class TestInteractiveLoop:
    def setup_method(self):
        self.cache = CacheStore(default_ttl=600, check_period=0)
        self.out = io.StringIO()

    def teardown_method(self):
        self.cache.close()

    def make_pipeline(self, *outcomes):
        self.provider = StubProvider(*outcomes)
        return WeatherPipeline(self.cache, self.provider, "test-key")

    def test_current_then_exit(self):
        pipeline = self.make_pipeline(make_response(payload=sample_record()))

        weather_cli.run_interactive(pipeline, scripted_input("London", "1", "exit"), self.out)

        output = self.out.getvalue()
        assert "Welcome to the Weather CLI App" in output
        assert "===== Current Weather =====" in output
        assert "Goodbye!" in output

    def test_forecast_choice(self):
        pipeline = self.make_pipeline(make_response(payload=sample_record()))

        weather_cli.run_interactive(pipeline, scripted_input("London", "2", "exit"), self.out)

        assert self.out.getvalue().count("Date: ") == 5

    def test_invalid_choice_defaults_to_current(self):
        pipeline = self.make_pipeline(make_response(payload=sample_record()))

        weather_cli.run_interactive(pipeline, scripted_input("London", "9", "exit"), self.out)

        output = self.out.getvalue()
        assert "Invalid choice. Showing current weather by default." in output
        assert "===== Current Weather =====" in output

    def test_repeat_lookup_uses_cache(self):
        pipeline = self.make_pipeline(make_response(payload=sample_record()))

        weather_cli.run_interactive(
            pipeline, scripted_input("London", "1", "London", "2", "exit"), self.out
        )

        assert self.provider.call_count == 1

    def test_error_printed_and_loop_continues(self):
        pipeline = self.make_pipeline(
            make_response(404), make_response(payload=sample_record())
        )

        weather_cli.run_interactive(
            pipeline, scripted_input("Atlantis", "London", "1", "exit"), self.out
        )

        output = self.out.getvalue()
        assert "Error: Location not found: Atlantis" in output
        assert "===== Current Weather =====" in output

    def test_end_of_input_stops_loop(self):
        pipeline = self.make_pipeline(make_response(payload=sample_record()))

        weather_cli.run_interactive(pipeline, scripted_input(), self.out)

        assert self.provider.call_count == 0


class TestMain:
    def setup_method(self):
        self.logging_patcher = patch("console.weather_cli.setup_logging")
        self.mock_setup_logging = self.logging_patcher.start()

    def teardown_method(self):
        self.logging_patcher.stop()

    @patch.dict("os.environ", {"WEATHER_API_KEY": ""}, clear=True)
    @patch("console.weather_cli.load_env_file")
    def test_structured_logging_configured(self, mock_load):
        weather_cli.main([])

        self.mock_setup_logging.assert_called_once_with("WARNING")

    @patch.dict("os.environ", {"WEATHER_API_KEY": ""}, clear=True)
    @patch("console.weather_cli.load_env_file")
    def test_missing_key_exits_with_error(self, mock_load, capsys):
        assert weather_cli.main([]) == 1
        assert "API key not properly configured" in capsys.readouterr().err

    @patch.dict("os.environ", {"WEATHER_API_KEY": "ABC123XYZ456"}, clear=True)
    @patch("console.weather_cli.load_env_file")
    def test_placeholder_key_exits_with_error(self, mock_load):
        assert weather_cli.main([]) == 1

    @patch.dict("os.environ", {"WEATHER_API_KEY": "real-key"}, clear=True)
    @patch("console.weather_cli.load_env_file")
    @patch("requests.get")
    def test_one_shot_forecast(self, mock_get, mock_load, capsys):
        mock_get.return_value = make_response(payload=sample_record())

        code = weather_cli.main(["--location", "London", "--view", "forecast", "--days", "3"])

        assert code == 0
        assert capsys.readouterr().out.count("Date: ") == 3
        assert mock_get.call_args.kwargs["params"]["unitGroup"] == "metric"

    @patch.dict("os.environ", {"WEATHER_API_KEY": "real-key"}, clear=True)
    @patch("console.weather_cli.load_env_file")
    @patch("requests.get")
    def test_one_shot_error(self, mock_get, mock_load, capsys):
        mock_get.return_value = make_response(429)

        assert weather_cli.main(["--location", "London"]) == 1
        assert "API rate limit exceeded" in capsys.readouterr().err

    def test_invalid_view_rejected(self):
        with pytest.raises(SystemExit):
            weather_cli.main(["--view", "radar"])
