"""
config.py — Loads preferences.yaml and environment variables.
Provides typed access to all configuration.
"""

import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional

import yaml
from dotenv import load_dotenv

# Load .env file
load_dotenv()

# Project root directory
PROJECT_ROOT = Path(__file__).parent

# preferences.yaml holds rules, weights and company lists; re-read on every load_config()
PREFERENCES_PATH = Path(os.getenv("PREFERENCES_PATH", str(PROJECT_ROOT / "preferences.yaml")))

# --- API Keys & Secrets (from .env) ---
GMAIL_ADDRESS = os.getenv("GMAIL_ADDRESS", "")
GMAIL_APP_PASSWORD = os.getenv("GMAIL_APP_PASSWORD", "")
EMAIL_TO = os.getenv("EMAIL_TO", GMAIL_ADDRESS)
SMTP_HOST = os.getenv("SMTP_HOST", "smtp.gmail.com")
SMTP_PORT = int(os.getenv("SMTP_PORT", "465"))
ANTHROPIC_API_KEY = os.getenv("ANTHROPIC_API_KEY", "")
GROQ_API_KEY = os.getenv("GROQ_API_KEY", "")
OPENROUTER_API_KEY = os.getenv("OPENROUTER_API_KEY", "")
GEMINI_API_KEY = os.getenv("GEMINI_API_KEY", "")
METRICS_PUSHGATEWAY = os.getenv("METRICS_PUSHGATEWAY", "")
DRY_RUN = os.getenv("DRY_RUN", "false").lower() in ("1", "true", "yes")

# --- Database ---
DB_PATH = Path(os.getenv("DB_PATH", str(PROJECT_ROOT / "data" / "jobs.db")))

# --- Logging ---
LOG_DIR = PROJECT_ROOT / "logs"
LOG_FILE = LOG_DIR / "job_scanner.log"

SOURCE_KEYS = [
    "greenhouse", "lever", "ashby", "workable", "smartrecruiters",
    "recruitee", "teamtailor", "bamboohr", "comeet", "homerun",
]


class ConfigError(Exception):
    """Raised when preferences cannot be loaded. Fatal before the pipeline starts."""


@dataclass
class RulesConfig:
    block_terms: list[str] = field(default_factory=list)
    remote_indicators: list[str] = field(default_factory=list)
    contract_indicators: list[str] = field(default_factory=list)
    domain_terms: list[str] = field(default_factory=list)
    primary_domain_term: str = "java"
    target_technologies: list[str] = field(default_factory=list)


@dataclass
class ScoringConfig:
    """Scoring overrides. Anything left empty falls back to the defaults in scorer.py."""
    threshold: Optional[int] = None
    weights: dict[str, int] = field(default_factory=dict)
    seniority_terms: list[str] = field(default_factory=list)
    region_terms: list[str] = field(default_factory=list)
    tech_stack_weights: dict[str, int] = field(default_factory=dict)


@dataclass
class SourceSettings:
    companies: list[str] = field(default_factory=list)
    concurrency: Optional[int] = None
    dispatch_delay: Optional[float] = None


@dataclass
class ScannerConfig:
    dry_run: bool = False
    retention_days: int = 30
    scoring_workers: int = 4
    source_parallelism: int = 4


@dataclass
class AIConfig:
    provider: str = "none"
    model: str = ""
    max_jobs: int = 0
    batch_size: int = 10


@dataclass
class AppConfig:
    rules: RulesConfig = field(default_factory=RulesConfig)
    scoring: ScoringConfig = field(default_factory=ScoringConfig)
    sources: dict[str, SourceSettings] = field(default_factory=dict)
    scanner: ScannerConfig = field(default_factory=ScannerConfig)
    ai: AIConfig = field(default_factory=AIConfig)

    def total_companies(self) -> int:
        return sum(len(s.companies) for s in self.sources.values())


def _str_list(values) -> list[str]:
    return [str(v).strip() for v in (values or []) if v is not None and str(v).strip()]


def _number(value, name: str, cast=int, default=None):
    if value is None:
        return default
    try:
        return cast(value)
    except (TypeError, ValueError):
        raise ConfigError(f"{name} must be a number, got {value!r}")


def _int_map(values, name: str) -> dict[str, int]:
    if not values:
        return {}
    if not isinstance(values, dict):
        raise ConfigError(f"{name} must be a mapping of name: number")
    return {str(k).lower(): _number(v, f"{name}.{k}") for k, v in values.items() if v is not None}


def _load_yaml(path: Path) -> dict:
    try:
        with open(path, "r", encoding="utf-8") as f:
            data = yaml.safe_load(f)
    except FileNotFoundError:
        raise ConfigError(f"Preferences file not found: {path}")
    except yaml.YAMLError as e:
        raise ConfigError(f"Preferences file {path} is not valid YAML: {e}")
    if data is None:
        return {}
    if not isinstance(data, dict):
        raise ConfigError(f"Preferences file {path} must contain a mapping at the top level")
    return data


def load_config(path: Optional[Path] = None) -> AppConfig:
    """
    Read preferences.yaml from disk and build typed configuration.
    Called once per run so edits take effect on the next run.
    """
    prefs = _load_yaml(Path(path) if path else PREFERENCES_PATH)

    rules = prefs.get("rules") or {}
    profile = prefs.get("profile") or {}
    scoring = prefs.get("scoring") or {}
    scanner = prefs.get("scanner") or {}
    ai = prefs.get("ai") or {}

    source_prefs = prefs.get("sources") or {}
    if not isinstance(source_prefs, dict):
        raise ConfigError("sources must be a mapping of ATS key to companies")

    sources: dict[str, SourceSettings] = {}
    for key, raw in source_prefs.items():
        key = str(key).lower()
        if isinstance(raw, list):
            raw = {"companies": raw}
        raw = raw or {}
        if not isinstance(raw, dict):
            raise ConfigError(f"sources.{key} must be a list of companies or a mapping")
        delay_ms = _number(raw.get("dispatch_delay_ms"), f"sources.{key}.dispatch_delay_ms", float)
        sources[key] = SourceSettings(
            companies=_str_list(raw.get("companies")),
            concurrency=_number(raw.get("concurrency"), f"sources.{key}.concurrency"),
            dispatch_delay=delay_ms / 1000.0 if delay_ms is not None else None,
        )

    return AppConfig(
        rules=RulesConfig(
            block_terms=_str_list(rules.get("block_terms")),
            remote_indicators=_str_list(rules.get("remote_indicators")),
            contract_indicators=_str_list(rules.get("contract_indicators")),
            domain_terms=_str_list(rules.get("domain_terms")),
            primary_domain_term=str(rules.get("primary_domain_term") or "java").strip(),
            target_technologies=_str_list(profile.get("target_technologies")),
        ),
        scoring=ScoringConfig(
            threshold=_number(scoring.get("threshold"), "scoring.threshold"),
            weights=_int_map(scoring.get("weights"), "scoring.weights"),
            seniority_terms=_str_list(profile.get("seniority_terms")),
            region_terms=_str_list(profile.get("locations")),
            tech_stack_weights=_int_map(profile.get("tech_stack_weights"), "profile.tech_stack_weights"),
        ),
        sources=sources,
        scanner=ScannerConfig(
            dry_run=bool(scanner.get("dry_run", False)) or DRY_RUN,
            retention_days=_number(scanner.get("retention_days"), "scanner.retention_days", default=30),
            scoring_workers=_number(scanner.get("scoring_workers"), "scanner.scoring_workers", default=4),
            source_parallelism=_number(scanner.get("source_parallelism"), "scanner.source_parallelism", default=4),
        ),
        ai=AIConfig(
            provider=str(ai.get("provider") or "none").lower(),
            model=str(ai.get("model") or ""),
            max_jobs=_number(ai.get("max_jobs"), "ai.max_jobs", default=0),
            batch_size=_number(ai.get("batch_size") or None, "ai.batch_size", default=10),
        ),
    )


def get_ai_api_key(provider: str) -> str:
    return {
        "claude": ANTHROPIC_API_KEY,
        "groq": GROQ_API_KEY,
        "openrouter": OPENROUTER_API_KEY,
        "gemini": GEMINI_API_KEY,
    }.get(provider, "")


def validate_config(config: AppConfig) -> list[str]:
    """Check that critical configuration is present."""
    warnings = []

    if config.total_companies() == 0:
        warnings.append("No companies configured under 'sources' — nothing will be fetched")
    unknown = [k for k in config.sources if k not in SOURCE_KEYS]
    if unknown:
        warnings.append(f"Unknown source keys ignored: {', '.join(unknown)}")
    if not config.rules.domain_terms and not config.rules.target_technologies:
        warnings.append("No domain_terms or target_technologies — only the primary term decides relevance")
    if not config.scanner.dry_run and (not GMAIL_ADDRESS or not GMAIL_APP_PASSWORD):
        warnings.append("GMAIL_ADDRESS / GMAIL_APP_PASSWORD not set — email digest will fail")
    if config.ai.provider not in ("none", "") and not get_ai_api_key(config.ai.provider):
        warnings.append(f"AI provider '{config.ai.provider}' selected but its API key is not set")

    return warnings
