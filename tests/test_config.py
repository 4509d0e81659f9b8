import pytest

import config
from config import ConfigError, load_config, validate_config

PREFERENCES = """
rules:
  block_terms: [security clearance, "  ", us only]
  remote_indicators: [remote]
  contract_indicators: [b2b]
  domain_terms: [java]
profile:
  target_technologies: [spring boot]
  locations: [brazil]
  tech_stack_weights:
    Kafka: 4
scoring:
  threshold: 80
  weights:
    java_in_title: 25
scanner:
  retention_days: 14
  scoring_workers: 2
ai:
  provider: Groq
  max_jobs: 20
sources:
  greenhouse: [nubank, gitlab]
  workable:
    companies: [blip]
    concurrency: 2
    dispatch_delay_ms: 500
"""


def write(tmp_path, text):
    path = tmp_path / "preferences.yaml"
    path.write_text(text, encoding="utf-8")
    return path


def test_load_config(tmp_path):
    cfg = load_config(write(tmp_path, PREFERENCES))

    assert cfg.rules.block_terms == ["security clearance", "us only"]
    assert cfg.rules.primary_domain_term == "java"
    assert cfg.rules.target_technologies == ["spring boot"]
    assert cfg.scoring.threshold == 80
    assert cfg.scoring.weights == {"java_in_title": 25}
    assert cfg.scoring.region_terms == ["brazil"]
    assert cfg.scoring.tech_stack_weights == {"kafka": 4}
    assert cfg.scanner.retention_days == 14
    assert cfg.scanner.scoring_workers == 2
    assert cfg.ai.provider == "groq"
    assert cfg.ai.max_jobs == 20
    assert cfg.sources["greenhouse"].companies == ["nubank", "gitlab"]
    assert cfg.sources["workable"].concurrency == 2
    assert cfg.sources["workable"].dispatch_delay == 0.5
    assert cfg.total_companies() == 3


def test_edits_are_picked_up_on_next_load(tmp_path):
    path = write(tmp_path, PREFERENCES)
    assert load_config(path).scoring.threshold == 80

    path.write_text(PREFERENCES.replace("threshold: 80", "threshold: 60"), encoding="utf-8")
    assert load_config(path).scoring.threshold == 60


def test_empty_file_gives_defaults(tmp_path):
    cfg = load_config(write(tmp_path, ""))
    assert cfg.sources == {}
    assert cfg.scoring.threshold is None
    assert cfg.scanner.retention_days == 30
    assert cfg.ai.provider == "none"


def test_missing_file(tmp_path):
    with pytest.raises(ConfigError):
        load_config(tmp_path / "nope.yaml")


def test_invalid_yaml(tmp_path):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, "rules: [unclosed"))


def test_top_level_must_be_mapping(tmp_path):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, "- just\n- a list\n"))


def test_validate_config_warnings(tmp_path, monkeypatch):
    monkeypatch.setattr(config, "GMAIL_ADDRESS", "")
    monkeypatch.setattr(config, "GROQ_API_KEY", "")
    cfg = load_config(write(tmp_path, PREFERENCES + "  myspace: [x]\n"))

    warnings = validate_config(cfg)

    assert any("GMAIL_ADDRESS" in w for w in warnings)
    assert any("groq" in w for w in warnings)
    assert any("myspace" in w for w in warnings)


def test_validate_config_no_companies(tmp_path):
    warnings = validate_config(load_config(write(tmp_path, "")))
    assert any("No companies" in w for w in warnings)


def test_numeric_strings_are_cast(tmp_path):
    cfg = load_config(write(tmp_path, """
scoring:
  threshold: "75"
sources:
  lever:
    companies: [acme]
    concurrency: '5'
    dispatch_delay_ms: "250"
"""))
    assert cfg.scoring.threshold == 75
    assert cfg.sources["lever"].concurrency == 5
    assert cfg.sources["lever"].dispatch_delay == 0.25


@pytest.mark.parametrize("text", [
    "scoring:\n  weights:\n    java_in_title: abc\n",
    "scoring:\n  weights: [java_in_title]\n",
    "scoring:\n  threshold: high\n",
    "profile:\n  tech_stack_weights:\n    kafka: lots\n",
    "scanner:\n  retention_days: forever\n",
    "ai:\n  max_jobs: [1, 2]\n",
    "sources:\n  lever:\n    companies: [acme]\n    concurrency: five\n",
    "sources:\n  lever:\n    companies: [acme]\n    dispatch_delay_ms: slow\n",
    "sources:\n  lever: acme\n",
    "sources: [lever]\n",
])
def test_malformed_values_raise_config_error(tmp_path, text):
    with pytest.raises(ConfigError):
        load_config(write(tmp_path, text))
