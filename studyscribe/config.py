"""
StudyScribe Configuration Module
Centralized configuration for the study pipeline.

Module-level constants are the defaults. Deployments can override the
pipeline tunables through config/pipeline_config.yaml (see
load_pipeline_config()).
"""

import os
from dataclasses import dataclass, fields
from pathlib import Path

import yaml

# Debug Mode Configuration
DEBUG_MODE = os.environ.get('DEBUG', 'false').lower() == 'true'

# Application Paths
APP_NAME = "StudyScribe"
APPDATA_DIR = Path(os.environ.get('APPDATA', os.path.expanduser('~/.config'))) / APP_NAME
LOGS_DIR = APPDATA_DIR / "logs"
DATA_DIR = APPDATA_DIR / "data"
CONFIG_DIR = APPDATA_DIR / "config"

# Ensure directories exist (read-only homes are tolerated; file logging is skipped)
for directory in [APPDATA_DIR, LOGS_DIR, DATA_DIR, CONFIG_DIR]:
    try:
        directory.mkdir(parents=True, exist_ok=True)
    except OSError:
        pass

# Persistent key-value store (timing history, cached results)
STORE_FILE = DATA_DIR / "store.json"

# Logging Configuration
LOG_FILE = LOGS_DIR / "processing.log"
DEBUG_LOG_FILE = LOGS_DIR / "debug_flow.txt"
LOG_FORMAT = "[%(levelname)s %(asctime)s] %(message)s"
LOG_DATE_FORMAT = "%H:%M:%S"

# Pipeline override file
PIPELINE_CONFIG_FILE = Path(__file__).parent.parent / "config" / "pipeline_config.yaml"

# ============================================================================
# Extraction
# ============================================================================

# Selections shorter than this fall back to page extraction
MIN_SELECTION_CHARS = 10
# A content container must hold more than this many characters to be used
MIN_MAIN_CONTENT_CHARS = 100
# Anything shorter is rejected before reaching the model
MIN_CONTENT_CHARS = 50
# Average word length above this suggests garbled extraction
MAX_AVERAGE_WORD_LENGTH = 20
# Token estimate above this triggers a "huge page" warning
LARGE_CONTENT_TOKEN_WARNING = 50000
# Rough rule of thumb: 1 token ~ 4 characters
CHARS_PER_TOKEN = 4

# ============================================================================
# Chunking
# ============================================================================

CHUNK_MAX_SIZE = 10000
CHUNK_MIN_SIZE = 500
CHUNK_OVERLAP = 200

# Summaries force chunking earlier than the generic chunker default
SUMMARY_MAX_CHUNK_SIZE = 8000
# Flashcards work better with smaller chunks
FLASHCARD_MAX_CHUNK_SIZE = 6000

# ============================================================================
# Orchestration
# ============================================================================

# Combined chunk summaries under this token estimate get a summary-of-summaries pass
SUMMARY_OF_SUMMARIES_TOKEN_LIMIT = 8000
# Report sources above this token estimate are pre-summarized
REPORT_SOURCE_TOKEN_LIMIT = 4000
# Context string handed to the summarizer with every request
SUMMARIZER_CONTEXT = "This article is intended for a general web audience."
# Language model sampling
LANGUAGE_MODEL_TEMPERATURE = 0.7
LANGUAGE_MODEL_TOP_K = 40

# ============================================================================
# Tasks & Timing
# ============================================================================

# Terminal tasks are evicted after this many seconds
TASK_RETENTION_SECONDS = 5 * 60
# How often the registry sweeper runs
TASK_SWEEP_INTERVAL_SECONDS = 60

# Timing history
TIMING_STORAGE_KEY = "studyscribe.timing_data"
TIMING_MAX_RECORDS_PER_TYPE = 50
TIMING_RECENT_WINDOW = 10
TIMING_MIN_RECORDS_FOR_LEARNING = 3
TIMING_RETENTION_DAYS = 30
TIMING_MIN_ESTIMATE_SECONDS = 2

# Baseline estimates (seconds) used until enough history exists
BASELINE_TIMES = {
    'summarize': {'per_unit': 5, 'overhead': 2},
    'flashcards': {'per_unit': 8, 'overhead': 3},
    'report': {'per_unit': 10, 'overhead': 5},
}
DEFAULT_BASELINE = {'per_unit': 5, 'overhead': 2}

# ============================================================================
# Result cache
# ============================================================================

RESULT_CACHE_PREFIX = "studyscribe.cache."
RESULT_CACHE_EXPIRATION_HOURS = 24


@dataclass
class PipelineConfig:
    """
    Tunables used by the orchestrator and its collaborators.

    Defaults mirror the module constants; YAML overrides replace individual
    fields by name.
    """
    chunk_max_size: int = CHUNK_MAX_SIZE
    chunk_min_size: int = CHUNK_MIN_SIZE
    chunk_overlap: int = CHUNK_OVERLAP
    summary_max_chunk_size: int = SUMMARY_MAX_CHUNK_SIZE
    flashcard_max_chunk_size: int = FLASHCARD_MAX_CHUNK_SIZE
    summary_of_summaries_token_limit: int = SUMMARY_OF_SUMMARIES_TOKEN_LIMIT
    report_source_token_limit: int = REPORT_SOURCE_TOKEN_LIMIT
    summarizer_context: str = SUMMARIZER_CONTEXT
    language_model_temperature: float = LANGUAGE_MODEL_TEMPERATURE
    language_model_top_k: int = LANGUAGE_MODEL_TOP_K
    task_retention_seconds: float = TASK_RETENTION_SECONDS
    task_sweep_interval_seconds: float = TASK_SWEEP_INTERVAL_SECONDS


def load_pipeline_config(config_path: Path = None) -> PipelineConfig:
    """
    Load pipeline tunables from YAML, falling back to defaults.

    The file is expected to hold a top-level 'pipeline' mapping. Unknown
    keys are ignored with a debug message.

    Args:
        config_path: Path to the YAML file. Defaults to PIPELINE_CONFIG_FILE.

    Returns:
        PipelineConfig with overrides applied.
    """
    from studyscribe.logging_config import debug_log, error

    if config_path is None:
        config_path = PIPELINE_CONFIG_FILE

    try:
        with open(config_path, encoding='utf-8') as f:
            data = yaml.safe_load(f) or {}
    except FileNotFoundError:
        debug_log(f"[Config] Pipeline config not found at {config_path}. Using defaults.")
        return PipelineConfig()
    except (OSError, yaml.YAMLError) as e:
        error(f"[Config] Failed to load or parse pipeline config: {e}")
        return PipelineConfig()

    overrides = data.get('pipeline', {}) if isinstance(data, dict) else {}
    known = {f.name for f in fields(PipelineConfig)}
    accepted = {}
    for key, value in overrides.items():
        if key in known:
            accepted[key] = value
        else:
            debug_log(f"[Config] Ignoring unknown pipeline setting '{key}'")

    debug_log(f"[Config] Loaded {len(accepted)} pipeline overrides from {config_path}")
    return PipelineConfig(**accepted)
