"""Configuration management for Legitly."""

import logging
import os
from dataclasses import dataclass, field
from pathlib import Path
from typing import Optional, Set

import yaml
from dotenv import load_dotenv

from .analyzer.ensemble import DEFAULT_WEIGHTS, EnsembleWeights
from .analyzer.tables import DEFAULT_TABLES, HeuristicTables
from .predictors.pool import PREDICTOR_NAMES
from .trust.pool import TRUST_SOURCE_NAMES
from .utils.allowlist import read_allowlist

logger = logging.getLogger(__name__)

DEFAULT_TRUST_SOURCES: list[str] = ["google_safe_browsing", "virustotal", "domain_reputation"]

# Sources that cannot produce a verdict without a credential
CREDENTIAL_FIELDS: dict[str, str] = {
    "google_safe_browsing": "google_safe_browsing_api_key",
    "virustotal": "virustotal_api_key",
}


@dataclass
class Config:
    """Application configuration loaded from environment."""

    enabled: bool = True
    risk_threshold: int = 70

    # Sources
    models_enabled: bool = True
    trust_sources_enabled: bool = True
    models: Optional[list[str]] = None  # None = every predictor
    trust_sources: Optional[list[str]] = field(default_factory=lambda: list(DEFAULT_TRUST_SOURCES))

    # Trust source credentials
    google_safe_browsing_api_key: str = ""
    virustotal_api_key: str = ""  # Free tier: 4 req/min, 500/day
    phishtank_api_key: str = ""  # Optional, raises PhishTank's limits

    # Daily budgets
    safe_browsing_daily_quota: int = 10000
    virustotal_daily_quota: int = 500
    phishtank_daily_quota: int = 1000
    virustotal_submit_unknown: bool = False

    # Operational limits
    timeout_ms: int = 10000
    max_concurrent_checks: int = 3

    # Cache
    cache_expiry_minutes: int = 60
    cache_max_entries: int = 1000

    # Alerts
    show_notifications: bool = True
    auto_block: bool = False

    # Paths
    data_dir: Path = field(default_factory=lambda: Path("./data"))
    config_dir: Path = field(default_factory=lambda: Path("./config"))
    model_weights_file: Optional[Path] = None

    # Loaded lists
    allowlist: Set[str] = field(default_factory=set)

    # Heuristics (override via config/heuristics.yaml)
    suspicious_tlds: Optional[Set[str]] = None
    model_weights: dict[str, float] = field(default_factory=dict)
    trust_weights: dict[str, float] = field(default_factory=dict)
    models_weight: Optional[float] = None
    trust_weight: Optional[float] = None

    def __post_init__(self):
        """Normalize paths and load the allowlist."""
        self.data_dir = Path(self.data_dir)
        self.config_dir = Path(self.config_dir)
        if self.model_weights_file is not None:
            self.model_weights_file = Path(self.model_weights_file)
        self._load_lists()

    def _load_lists(self):
        """Extend the allowlist from config/allowlist.txt."""
        allowlist_path = self.config_dir / "allowlist.txt"
        if allowlist_path.exists():
            self.allowlist = set(self.allowlist) | read_allowlist(allowlist_path)

    @property
    def cache_dir(self) -> Path:
        return self.data_dir / "cache"

    @property
    def timeout_seconds(self) -> float:
        return self.timeout_ms / 1000

    def enabled_models(self) -> set[str]:
        """Predictors that take part in an analysis."""
        if not (self.enabled and self.models_enabled):
            return set()
        if self.models is None:
            return set(PREDICTOR_NAMES)
        return {m for m in self.models if m in PREDICTOR_NAMES}

    def enabled_trust_sources(self) -> set[str]:
        """Trust sources that take part in an analysis."""
        if not (self.enabled and self.trust_sources_enabled):
            return set()
        if self.trust_sources is None:
            return set(TRUST_SOURCE_NAMES)
        return {s for s in self.trust_sources if s in TRUST_SOURCE_NAMES}

    def ensemble_weights(self) -> EnsembleWeights:
        return DEFAULT_WEIGHTS.with_overrides(
            model_weights=self.model_weights,
            trust_weights=self.trust_weights,
            models_weight=self.models_weight,
            trust_weight=self.trust_weight,
        )

    def tables(self) -> HeuristicTables:
        return DEFAULT_TABLES.with_overrides(
            extra_trusted=self.allowlist,
            suspicious_tlds=self.suspicious_tlds,
        )


def _env_bool(name: str, default: str) -> bool:
    return os.getenv(name, default).strip().lower() in {"1", "true", "yes", "on"}


def _parse_names(value: str) -> Optional[list[str]]:
    """Comma-separated names; ``all``/``*`` means every source (None)."""
    raw = value.strip().lower()
    if raw in {"all", "*"}:
        return None
    return [p.strip() for p in raw.split(",") if p.strip()]


def _coerce_weights(raw) -> dict[str, float]:
    weights: dict[str, float] = {}
    if not isinstance(raw, dict):
        return weights
    for name, value in raw.items():
        try:
            weight = float(value)
        except (TypeError, ValueError):
            logger.warning(f"Ignoring non-numeric weight for {name}: {value!r}")
            continue
        if weight < 0:
            logger.warning(f"Ignoring negative weight for {name}: {weight}")
            continue
        weights[str(name)] = weight
    return weights


def _coerce_float(raw) -> Optional[float]:
    if raw is None:
        return None
    try:
        return float(raw)
    except (TypeError, ValueError):
        logger.warning(f"Ignoring non-numeric pool weight: {raw!r}")
        return None


def _load_heuristics(config_dir: Path) -> dict:
    """Load heuristic overrides from config/heuristics.yaml (optional)."""
    path = Path(config_dir or ".") / "heuristics.yaml"
    if not path.exists():
        return {}

    try:
        data = yaml.safe_load(path.read_text()) or {}
    except (OSError, yaml.YAMLError) as exc:
        logger.warning(f"Failed to parse heuristics.yaml: {exc}")
        return {}
    if not isinstance(data, dict):
        logger.warning("Ignoring heuristics.yaml: top level is not a mapping")
        return {}

    domain_cfg = data.get("domain") or {}
    ensemble_cfg = data.get("ensemble") or {}
    if not isinstance(domain_cfg, dict):
        domain_cfg = {}
    if not isinstance(ensemble_cfg, dict):
        ensemble_cfg = {}

    tlds = domain_cfg.get("suspicious_tlds")
    return {
        "suspicious_tlds": {str(t).lower().lstrip(".") for t in tlds} if isinstance(tlds, list) and tlds else None,
        "model_weights": _coerce_weights(ensemble_cfg.get("model_weights")),
        "trust_weights": _coerce_weights(ensemble_cfg.get("trust_weights")),
        "models_weight": _coerce_float(ensemble_cfg.get("models_weight")),
        "trust_weight": _coerce_float(ensemble_cfg.get("trust_weight")),
    }


def load_config() -> Config:
    """Load configuration from environment variables."""
    load_dotenv()

    config_dir = Path(os.getenv("CONFIG_DIR", "./config"))
    heuristics = _load_heuristics(config_dir)

    risk_threshold = int(os.getenv("RISK_THRESHOLD", "70"))
    if not 0 <= risk_threshold <= 100:
        logger.warning(f"RISK_THRESHOLD={risk_threshold} out of range; clamping to 0..100")
        risk_threshold = max(0, min(100, risk_threshold))

    cache_expiry = int(os.getenv("CACHE_EXPIRY_MINUTES", "60"))
    if cache_expiry < 1:
        logger.warning(f"CACHE_EXPIRY_MINUTES={cache_expiry} below 1; using 1")
        cache_expiry = 1

    weights_file = os.getenv("MODEL_WEIGHTS_FILE", "").strip()

    return Config(
        enabled=_env_bool("LEGITLY_ENABLED", "true"),
        risk_threshold=risk_threshold,
        models_enabled=_env_bool("MODELS_ENABLED", "true"),
        trust_sources_enabled=_env_bool("TRUST_SOURCES_ENABLED", "true"),
        models=_parse_names(os.getenv("MODELS", "all")),
        trust_sources=_parse_names(os.getenv("TRUST_SOURCES", ",".join(DEFAULT_TRUST_SOURCES))),
        google_safe_browsing_api_key=os.getenv("GOOGLE_SAFE_BROWSING_API_KEY", ""),
        virustotal_api_key=os.getenv("VIRUSTOTAL_API_KEY", ""),
        phishtank_api_key=os.getenv("PHISHTANK_API_KEY", ""),
        safe_browsing_daily_quota=int(os.getenv("SAFE_BROWSING_DAILY_QUOTA", "10000")),
        virustotal_daily_quota=int(os.getenv("VIRUSTOTAL_DAILY_QUOTA", "500")),
        phishtank_daily_quota=int(os.getenv("PHISHTANK_DAILY_QUOTA", "1000")),
        virustotal_submit_unknown=_env_bool("VIRUSTOTAL_SUBMIT_UNKNOWN", "false"),
        timeout_ms=int(os.getenv("ANALYSIS_TIMEOUT_MS", "10000")),
        max_concurrent_checks=int(os.getenv("MAX_CONCURRENT_CHECKS", "3")),
        cache_expiry_minutes=cache_expiry,
        cache_max_entries=int(os.getenv("CACHE_MAX_ENTRIES", "1000")),
        show_notifications=_env_bool("SHOW_NOTIFICATIONS", "true"),
        auto_block=_env_bool("AUTO_BLOCK", "false"),
        data_dir=Path(os.getenv("DATA_DIR", "./data")),
        config_dir=config_dir,
        model_weights_file=Path(weights_file) if weights_file else None,
        suspicious_tlds=heuristics.get("suspicious_tlds"),
        model_weights=heuristics.get("model_weights", {}),
        trust_weights=heuristics.get("trust_weights", {}),
        models_weight=heuristics.get("models_weight"),
        trust_weight=heuristics.get("trust_weight"),
    )


def validate_config(config: Config) -> list[str]:
    """Validate configuration and return list of error messages."""
    errors: list[str] = []

    if not 0 <= config.risk_threshold <= 100:
        errors.append(f"RISK_THRESHOLD must be between 0 and 100 (got {config.risk_threshold})")
    if config.timeout_ms <= 0:
        errors.append("ANALYSIS_TIMEOUT_MS must be positive")
    if config.max_concurrent_checks < 1:
        errors.append("MAX_CONCURRENT_CHECKS must be at least 1")
    if config.cache_expiry_minutes < 1:
        errors.append("CACHE_EXPIRY_MINUTES must be at least 1")
    if config.cache_max_entries < 1:
        errors.append("CACHE_MAX_ENTRIES must be at least 1")

    for name in config.models or []:
        if name not in PREDICTOR_NAMES:
            errors.append(f"Unknown model in MODELS: {name}")
    for name in config.trust_sources or []:
        if name not in TRUST_SOURCE_NAMES:
            errors.append(f"Unknown trust source in TRUST_SOURCES: {name}")

    for name in sorted(config.enabled_trust_sources()):
        key_field = CREDENTIAL_FIELDS.get(name)
        if key_field and not getattr(config, key_field):
            # Not an error: the source reports itself unavailable at lookup time.
            logger.info(f"Trust source {name} enabled but no API key configured; it will be skipped")

    return errors
