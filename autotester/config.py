"""
Autotester configuration.
=========================
Centralizes file names, limits, delays and the runtime dataclasses
consumed by the generator, engine, learning store, orchestrator and daemon.
"""
import json
import os
from dataclasses import dataclass, field, fields
from typing import Any, Dict, Optional


class FileNames:
    """Standard file names for persisted state."""
    STATE_DIR = ".autotester"
    CHECKPOINT = "checkpoint.json"
    LEARNINGS = "learnings.json"
    DAEMON_STATE = "daemon_state.json"
    PID = "daemon.pid"
    DAEMON_LOG = "daemon.log"
    LOG_DIR = "logs"
    REPORT_DIR = "reports"
    KNOWLEDGE_DIR = "knowledge"
    SCREENSHOT_DIR = "screenshots"


class Limits:
    """Bounds and thresholds shared across components."""
    MIN_COMMANDS = 50
    MAX_COMMANDS = 100
    FORM_STEPS = 9
    DEFAULT_COMMAND_TIMEOUT_MS = 5000
    DEFAULT_COMMAND_RETRIES = 1
    MAX_COMMAND_RETRIES = 5
    QUALITY_THRESHOLD = 7.5
    ACTIVATION_THRESHOLD = 0.6
    ISSUE_THRESHOLD = 6.0
    HISTORY_LIMIT = 50
    MAX_CONSECUTIVE_ERRORS = 5
    MAX_LOG_FILES = 100
    TREND_WINDOW = 10
    TOP_LEARNINGS = 5


@dataclass
class SessionConfig:
    """Options recognized by a test session."""
    website_count: int = 10
    use_real_images: bool = False
    random_industries: bool = True
    max_retries: int = 3
    timeout_per_website: float = 300.0  # seconds
    headless: bool = True
    save_screenshots: bool = True
    quality_threshold: float = Limits.QUALITY_THRESHOLD
    base_url: str = "http://localhost:5173"

    # camelCase names accepted in config files
    _ALIASES = {
        "websiteCount": "website_count",
        "useRealImages": "use_real_images",
        "randomIndustries": "random_industries",
        "maxRetries": "max_retries",
        "timeoutPerWebsite": "timeout_per_website",
        "saveScreenshots": "save_screenshots",
        "qualityThreshold": "quality_threshold",
        "baseUrl": "base_url",
    }

    @staticmethod
    def from_dict(d: Dict[str, Any]) -> "SessionConfig":
        known = {f.name for f in fields(SessionConfig)}
        kwargs = {}
        for key, value in d.items():
            name = SessionConfig._ALIASES.get(key, key)
            if name in known:
                kwargs[name] = value
        return SessionConfig(**kwargs)

    def to_dict(self) -> Dict[str, Any]:
        return {f.name: getattr(self, f.name) for f in fields(self)}


@dataclass
class GeneratorConfig:
    """Command list sizing policy."""
    min_commands: int = Limits.MIN_COMMANDS
    max_commands: int = Limits.MAX_COMMANDS
    form_steps: int = Limits.FORM_STEPS
    default_timeout_ms: int = Limits.DEFAULT_COMMAND_TIMEOUT_MS
    default_retries: int = Limits.DEFAULT_COMMAND_RETRIES
    truncate_blocks: bool = False


@dataclass
class ExecutorConfig:
    """Delays (milliseconds) applied by the execution engine."""
    inter_command_delay_ms: int = 100
    retry_delay_ms: int = 1000
    wait_after_navigation_ms: int = 2000
    wait_after_click_ms: int = 500
    wait_after_form_fill_ms: int = 300
    wait_after_hover_ms: int = 300
    wait_after_scroll_ms: int = 500
    wait_after_key_ms: int = 100
    slow_typing_per_char_ms: int = 50
    max_retries: int = 3
    save_screenshots: bool = True


@dataclass
class LearningConfig:
    """Reflexion loop thresholds."""
    context: str = "autotester"
    activation_threshold: float = Limits.ACTIVATION_THRESHOLD
    quality_threshold: float = Limits.QUALITY_THRESHOLD
    max_retries_cap: int = Limits.MAX_COMMAND_RETRIES


@dataclass
class DaemonConfig:
    """Background service limits."""
    max_consecutive_errors: int = Limits.MAX_CONSECUTIVE_ERRORS
    max_memory_mb: float = 4096
    health_check_interval_s: float = 60.0
    history_limit: int = Limits.HISTORY_LIMIT
    session_interval_s: Optional[float] = None


@dataclass
class AutotesterPaths:
    """Filesystem layout for persisted state."""
    root: str
    state_dir: str = ""
    checkpoint: str = ""
    learnings: str = ""
    daemon_state: str = ""
    pid_file: str = ""
    daemon_log: str = ""
    log_dir: str = ""
    report_dir: str = ""
    knowledge_dir: str = ""
    screenshot_dir: str = ""

    def __post_init__(self):
        self.root = os.path.abspath(self.root)
        self.state_dir = self.state_dir or os.path.join(self.root, FileNames.STATE_DIR)
        self.checkpoint = self.checkpoint or os.path.join(self.state_dir, FileNames.CHECKPOINT)
        self.learnings = self.learnings or os.path.join(self.state_dir, FileNames.LEARNINGS)
        self.daemon_state = self.daemon_state or os.path.join(self.state_dir, FileNames.DAEMON_STATE)
        self.pid_file = self.pid_file or os.path.join(self.state_dir, FileNames.PID)
        self.daemon_log = self.daemon_log or os.path.join(self.state_dir, FileNames.DAEMON_LOG)
        self.log_dir = self.log_dir or os.path.join(self.state_dir, FileNames.LOG_DIR)
        self.report_dir = self.report_dir or os.path.join(self.state_dir, FileNames.REPORT_DIR)
        self.knowledge_dir = self.knowledge_dir or os.path.join(self.state_dir, FileNames.KNOWLEDGE_DIR)
        self.screenshot_dir = self.screenshot_dir or os.path.join(self.state_dir, FileNames.SCREENSHOT_DIR)

    def ensure(self):
        """Creates every directory in the layout."""
        for path in (self.state_dir, self.log_dir, self.report_dir,
                     self.knowledge_dir, self.screenshot_dir):
            os.makedirs(path, exist_ok=True)


def build_paths(root: Optional[str] = None) -> AutotesterPaths:
    """Construct the default layout under *root* (cwd when omitted)."""
    return AutotesterPaths(root=root or os.getcwd())


def load_session_config(path: Optional[str]) -> SessionConfig:
    """
    Load a SessionConfig from a JSON file.

    Missing keys fall back to the dataclass defaults; unknown keys are ignored.
    """
    if path is None:
        return SessionConfig()
    with open(os.path.expanduser(path), "r", encoding="utf-8") as f:
        data = json.load(f)
    return SessionConfig.from_dict(data)
