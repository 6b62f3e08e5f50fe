"""
Unit tests for evidence_mapper/config.py, errors.py and result.py
"""

import pytest

from evidence_mapper.config import load_settings
from evidence_mapper.errors import ConfigurationError, ModelServiceError, NotFoundError
from evidence_mapper.result import Err, Ok

from conftest import ENV_DEFAULTS


class TestLoadSettings:
    def test_values_parsed(self, settings):
        assert settings.ollama_model == "deepseek-r1"
        assert settings.chunk_size == 1000
        assert settings.chunk_overlap == 200
        assert settings.policy_match_threshold == 0.25
        assert settings.chat_match_threshold == 0.5

    def test_defaults_for_unset_keys(self):
        s = load_settings({"OLLAMA_MODEL": "llama3"})
        assert s.min_extracted_length == 20
        assert s.policy_match_count == 5
        assert s.chat_match_count == 4
        assert s.jira_domain is None

    def test_vision_model_falls_back_to_chat_model(self):
        assert load_settings({"OLLAMA_MODEL": "llama3"}).vision_model == "llama3"
        assert load_settings(dict(ENV_DEFAULTS)).vision_model == "llava"

    def test_missing_model_is_configuration_error(self):
        with pytest.raises(ConfigurationError):
            load_settings({})

    def test_overlap_must_be_below_size(self):
        with pytest.raises(ConfigurationError):
            load_settings({**ENV_DEFAULTS, "CHUNK_SIZE": "200", "CHUNK_OVERLAP": "200"})

    def test_non_numeric_value(self):
        with pytest.raises(ConfigurationError):
            load_settings({**ENV_DEFAULTS, "CHUNK_SIZE": "big"})

    def test_reads_process_environment(self, monkeypatch):
        monkeypatch.setenv("OLLAMA_MODEL", "mistral")
        assert load_settings().ollama_model == "mistral"

    def test_cors_origin_list(self):
        s = load_settings({**ENV_DEFAULTS, "CORS_ORIGINS": "http://a.test, http://b.test,"})
        assert s.cors_origin_list == ["http://a.test", "http://b.test"]


class TestErrors:
    def test_not_found_message(self):
        e = NotFoundError("Control", "c-1")
        assert str(e) == "Control not found: c-1"
        assert e.status_code == 404

    def test_service_error_status(self):
        assert ModelServiceError("x").status_code == 502


class TestResult:
    def test_ok(self):
        r = Ok(2)
        assert r.is_ok() and not r.is_err()
        assert r.map(lambda v: v * 3).unwrap() == 6
        assert r.unwrap_or(0) == 2

    def test_err_reraises(self):
        r = Err(ModelServiceError("boom"))
        assert r.is_err()
        assert r.unwrap_or("fallback") == "fallback"
        assert r.map(lambda v: v * 3) is r
        with pytest.raises(ModelServiceError):
            r.unwrap()
