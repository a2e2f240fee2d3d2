"""Tests for configuration parsing, pricing and test-case loading."""

import json
from pathlib import Path

import pytest
from pydantic import ValidationError

from extractbench.config import DEFAULT_CONFIGURATIONS, Settings
from extractbench.models import ModelConfiguration, ModelPricing
from extractbench.pricing import calculate_cost
from extractbench.schema import UserProfile
from extractbench.template import default_template, load_template
from extractbench.testcases import DEFAULT_TEST_CASES, load_test_cases


class TestModelConfiguration:
    def test_parse_with_provider(self) -> None:
        configuration = ModelConfiguration.from_spec("openai/gpt-oss-20b@groq")
        assert configuration.model == "openai/gpt-oss-20b"
        assert configuration.provider == "groq"
        assert configuration.display_provider == "groq"

    def test_parse_without_provider(self) -> None:
        configuration = ModelConfiguration.from_spec("openai/gpt-5-nano")
        assert configuration.provider is None
        assert configuration.display_provider == "Default"

    def test_parse_rejects_empty_model(self) -> None:
        with pytest.raises(ValueError):
            ModelConfiguration.from_spec("@groq")

    def test_is_immutable(self) -> None:
        configuration = ModelConfiguration(model="m")
        with pytest.raises(ValidationError):
            configuration.model = "other"

    def test_default_table(self) -> None:
        assert len(DEFAULT_CONFIGURATIONS) == 11
        assert DEFAULT_CONFIGURATIONS[0].pricing == ModelPricing(input=0.20, output=1.10)
        assert all(c.pricing is not None for c in DEFAULT_CONFIGURATIONS)


class TestSettings:
    def test_defaults_from_env(self, monkeypatch: pytest.MonkeyPatch, tmp_path: Path) -> None:
        monkeypatch.chdir(tmp_path)
        monkeypatch.setenv("EXTRACTBENCH_OPENROUTER_API_KEY", "sk-env")
        monkeypatch.setenv("EXTRACTBENCH_MAX_RETRIES", "5")
        settings = Settings()
        assert settings.openrouter_api_key == "sk-env"
        assert settings.max_retries == 5
        assert settings.max_concurrency == 1
        assert settings.timeout_seconds == 30.0
        assert settings.repair_retries == 3


class TestCalculateCost:
    def test_example_cost(self) -> None:
        cost = calculate_cost(ModelPricing(input=0.20, output=1.10), 500_000, 100_000)
        assert cost == pytest.approx(0.21)

    def test_no_pricing(self) -> None:
        assert calculate_cost(None, 1_000_000, 1_000_000) == 0.0


class TestTemplate:
    def test_default_template(self) -> None:
        assert default_template("abc").endswith('Text: "abc"')

    def test_format_template(self, tmp_path: Path) -> None:
        path = tmp_path / "prompt.txt"
        path.write_text("Extract: {content}")
        assert load_template(path)("hello") == "Extract: hello"

    def test_jinja_template(self, tmp_path: Path) -> None:
        path = tmp_path / "prompt.j2"
        path.write_text("Extract: {{ content | upper }}")
        assert load_template(path)("hello") == "Extract: HELLO"

    def test_format_template_without_placeholder(self, tmp_path: Path) -> None:
        path = tmp_path / "prompt.txt"
        path.write_text("Extract the user profile.")
        with pytest.raises(ValueError, match="placeholder"):
            load_template(path)

    def test_jinja_template_without_content(self, tmp_path: Path) -> None:
        path = tmp_path / "prompt.j2"
        path.write_text("Extract: {{ text }}")
        with pytest.raises(ValueError, match="'content'"):
            load_template(path)


class TestTestCases:
    def test_default_suite_is_well_formed(self) -> None:
        assert len(DEFAULT_TEST_CASES) >= 5
        assert len({tc.description for tc in DEFAULT_TEST_CASES}) == len(DEFAULT_TEST_CASES)
        assert any(tc.validator is None for tc in DEFAULT_TEST_CASES)

    def test_default_validators_accept_empty_profile_without_error(self) -> None:
        empty = UserProfile()
        for tc in DEFAULT_TEST_CASES:
            if tc.validator is not None:
                assert tc.validator(empty) in (True, False)

    def test_load_with_expected(self, tmp_path: Path) -> None:
        path = tmp_path / "cases.json"
        path.write_text(
            json.dumps(
                [
                    {"description": "John", "content": "Meet John, 29yo", "expected": {"age": 29}},
                    {"content": "Berlin resident", "expected": {"address": {"city": "Berlin"}}},
                    {"description": "schema only", "content": "anything"},
                ]
            )
        )
        cases = load_test_cases(path)

        assert [c.description for c in cases] == ["John", "Case 2", "schema only"]
        assert cases[0].validator(UserProfile(age=29))
        assert not cases[0].validator(UserProfile(age=30))
        assert cases[1].validator(UserProfile.model_validate({"address": {"city": "Berlin"}}))
        assert not cases[1].validator(UserProfile())
        assert cases[2].validator is None

    def test_load_rejects_non_list(self, tmp_path: Path) -> None:
        path = tmp_path / "cases.json"
        path.write_text('{"content": "x"}')
        with pytest.raises(ValueError):
            load_test_cases(path)

    def test_load_rejects_missing_content(self, tmp_path: Path) -> None:
        path = tmp_path / "cases.json"
        path.write_text('[{"description": "x"}]')
        with pytest.raises(ValueError, match="content"):
            load_test_cases(path)
