"""TOML configuration loader for the extraction pipeline."""

from __future__ import annotations

import os
import sys
from dataclasses import dataclass, field
from pathlib import Path

if sys.version_info >= (3, 11):
    import tomllib
else:
    import tomli as tomllib

from .errors import ConfigurationError

PROVIDERS = ("heuristic", "vision")
VISION_BACKENDS = ("claude", "gemini", "ollama")


@dataclass
class OrchestratorConfig:
    concurrency: int = 5
    job_timeout: float = 60.0
    max_attempts: int = 3
    backoff_base: float = 2.0
    poll_interval: float = 1.0
    lease_seconds: float = 120.0
    stalled_check_interval: float = 30.0
    retry_validation_errors: bool = True


@dataclass
class ExtractionConfig:
    store_search_lines: int = 10
    fuzzy_threshold: float = 0.8
    reconcile_tolerance: float = 0.05
    default_currency: str = "USD"
    catalog_path: str = ""


@dataclass
class ClaudeVisionConfig:
    api_key: str = ""
    model: str = "claude-sonnet-4-5-20250929"
    max_tokens: int = 2000


@dataclass
class GeminiVisionConfig:
    api_key: str = ""
    model: str = "gemini-2.0-flash"


@dataclass
class OllamaVisionConfig:
    base_url: str = "http://localhost:11434"
    model: str = "llava"
    temperature: float = 0.1


@dataclass
class VisionConfig:
    backend: str = "claude"
    request_timeout: float = 30.0
    claude: ClaudeVisionConfig = field(default_factory=ClaudeVisionConfig)
    gemini: GeminiVisionConfig = field(default_factory=GeminiVisionConfig)
    ollama: OllamaVisionConfig = field(default_factory=OllamaVisionConfig)


@dataclass
class OCRConfig:
    language: str = "eng"
    max_width: int = 2000


@dataclass
class StorageConfig:
    image_dir: str = "~/.local/share/pricey/images"


@dataclass
class DatabaseConfig:
    path: str = "~/.local/share/pricey/receipts.db"


@dataclass
class LoggingConfig:
    level: str = "INFO"
    json: bool = False


@dataclass
class PipelineConfig:
    provider: str = "heuristic"
    orchestrator: OrchestratorConfig = field(default_factory=OrchestratorConfig)
    extraction: ExtractionConfig = field(default_factory=ExtractionConfig)
    vision: VisionConfig = field(default_factory=VisionConfig)
    ocr: OCRConfig = field(default_factory=OCRConfig)
    storage: StorageConfig = field(default_factory=StorageConfig)
    database: DatabaseConfig = field(default_factory=DatabaseConfig)
    logging: LoggingConfig = field(default_factory=LoggingConfig)


def load_config(path: str | Path | None = None) -> PipelineConfig:
    """Load configuration from a TOML file.

    Falls back to defaults if no path is given or the file doesn't exist.
    API keys and the Ollama URL can be supplied via environment variables.
    """
    raw: dict = {}

    if path is not None:
        p = Path(path).expanduser()
        if p.exists():
            with open(p, "rb") as f:
                raw = tomllib.load(f)

    pip = raw.get("pipeline", {})
    orc = raw.get("orchestrator", {})
    ext = raw.get("extraction", {})
    vis = raw.get("vision", {})
    ocr = raw.get("ocr", {})
    sto = raw.get("storage", {})
    dbs = raw.get("database", {})
    log = raw.get("logging", {})

    claude_cfg = vis.get("claude", {})
    gemini_cfg = vis.get("gemini", {})
    ollama_cfg = vis.get("ollama", {})

    # Resolve secrets: config file → environment variable
    claude_api_key = claude_cfg.get("api_key", "") or os.environ.get(
        "ANTHROPIC_API_KEY", ""
    )
    gemini_api_key = gemini_cfg.get("api_key", "") or os.environ.get(
        "GEMINI_API_KEY", ""
    )
    ollama_url = ollama_cfg.get("base_url", "") or os.environ.get(
        "OLLAMA_BASE_URL", "http://localhost:11434"
    )

    defaults = OrchestratorConfig()

    return PipelineConfig(
        provider=pip.get("provider", "heuristic"),
        orchestrator=OrchestratorConfig(
            concurrency=orc.get("concurrency", defaults.concurrency),
            job_timeout=float(orc.get("job_timeout", defaults.job_timeout)),
            max_attempts=orc.get("max_attempts", defaults.max_attempts),
            backoff_base=float(orc.get("backoff_base", defaults.backoff_base)),
            poll_interval=float(orc.get("poll_interval", defaults.poll_interval)),
            lease_seconds=float(orc.get("lease_seconds", defaults.lease_seconds)),
            stalled_check_interval=float(
                orc.get("stalled_check_interval", defaults.stalled_check_interval)
            ),
            retry_validation_errors=orc.get(
                "retry_validation_errors", defaults.retry_validation_errors
            ),
        ),
        extraction=ExtractionConfig(
            store_search_lines=ext.get("store_search_lines", 10),
            fuzzy_threshold=float(ext.get("fuzzy_threshold", 0.8)),
            reconcile_tolerance=float(ext.get("reconcile_tolerance", 0.05)),
            default_currency=ext.get("default_currency", "USD"),
            catalog_path=ext.get("catalog_path", ""),
        ),
        vision=VisionConfig(
            backend=vis.get("backend", "claude"),
            request_timeout=float(vis.get("request_timeout", 30.0)),
            claude=ClaudeVisionConfig(
                api_key=claude_api_key,
                model=claude_cfg.get("model", "claude-sonnet-4-5-20250929"),
                max_tokens=claude_cfg.get("max_tokens", 2000),
            ),
            gemini=GeminiVisionConfig(
                api_key=gemini_api_key,
                model=gemini_cfg.get("model", "gemini-2.0-flash"),
            ),
            ollama=OllamaVisionConfig(
                base_url=ollama_url,
                model=ollama_cfg.get("model", "llava"),
                temperature=float(ollama_cfg.get("temperature", 0.1)),
            ),
        ),
        ocr=OCRConfig(
            language=ocr.get("language", "eng"),
            max_width=ocr.get("max_width", 2000),
        ),
        storage=StorageConfig(
            image_dir=sto.get("image_dir", "~/.local/share/pricey/images"),
        ),
        database=DatabaseConfig(
            path=dbs.get("path", "~/.local/share/pricey/receipts.db"),
        ),
        logging=LoggingConfig(
            level=log.get("level", "INFO"),
            json=log.get("json", False),
        ),
    )


def validate_config(config: PipelineConfig) -> None:
    """Reject settings the pipeline cannot run with.

    Raises:
        ConfigurationError: On the first invalid setting.
    """
    if config.provider not in PROVIDERS:
        raise ConfigurationError(
            f"Unknown extraction provider: {config.provider!r} "
            f"(choose from {', '.join(PROVIDERS)})"
        )
    orc = config.orchestrator
    if orc.concurrency < 1:
        raise ConfigurationError("orchestrator.concurrency must be at least 1")
    if orc.max_attempts < 1:
        raise ConfigurationError("orchestrator.max_attempts must be at least 1")
    if orc.job_timeout <= 0:
        raise ConfigurationError("orchestrator.job_timeout must be positive")
    if orc.backoff_base < 0:
        raise ConfigurationError("orchestrator.backoff_base must not be negative")
    if orc.lease_seconds <= orc.job_timeout:
        # otherwise recover_stalled can re-queue a job that is still running
        raise ConfigurationError(
            "orchestrator.lease_seconds must be longer than orchestrator.job_timeout"
        )
    if config.provider == "vision":
        if config.vision.backend not in VISION_BACKENDS:
            raise ConfigurationError(
                f"Unknown vision backend: {config.vision.backend!r} "
                f"(choose from {', '.join(VISION_BACKENDS)})"
            )
        if config.vision.request_timeout >= orc.job_timeout:
            raise ConfigurationError(
                "vision.request_timeout must be shorter than orchestrator.job_timeout"
            )
