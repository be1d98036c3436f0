from dataclasses import dataclass, field
from datetime import datetime, timezone
from enum import Enum
from typing import Any, Dict, List, Optional, Tuple


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def _iso(value: Optional[datetime]) -> Optional[str]:
    return value.isoformat() if value else None


def _parse_dt(value: Any) -> Optional[datetime]:
    if not value:
        return None
    if isinstance(value, datetime):
        return value
    try:
        return datetime.fromisoformat(str(value))
    except ValueError:
        return None


class CommandCategory(str, Enum):
    """Closed set of command categories."""
    NAVIGATION = "navigation"
    FORM_FILL = "form_fill"
    VERIFICATION = "verification"
    INTERACTION = "interaction"
    QUALITY_CHECK = "quality_check"


class ExecutionStatus(str, Enum):
    SUCCESS = "success"
    FAILED = "failed"
    SKIPPED = "skipped"


class SessionStatus(str, Enum):
    PENDING = "pending"
    RUNNING = "running"
    COMPLETED = "completed"
    FAILED = "failed"
    PAUSED = "paused"


class LearningType(str, Enum):
    SUCCESS_PATTERN = "success_pattern"
    FAILURE_PATTERN = "failure_pattern"
    IMPROVEMENT = "improvement"
    COMMAND_OPTIMIZATION = "command_optimization"


# Quality categories, in report order
QUALITY_CATEGORIES: Tuple[str, ...] = (
    "visual_design",
    "ux_structure",
    "content_quality",
    "conversion_trust",
    "seo",
    "creativity",
)


# =============================================================================
# Catalog records
# =============================================================================

@dataclass
class Industry:
    """A business vertical the wizard can build for."""
    id: str
    name: str


@dataclass
class Template:
    """A visual template offered by the wizard."""
    id: str
    name: str
    industry: str = "all"


@dataclass
class BusinessProfile:
    """The synthetic business typed into the intake wizard."""
    name: str
    industry: Industry
    template: Template
    email: str = ""
    phone: str = ""
    address: str = ""
    description: str = ""
    services: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {
            "name": self.name,
            "industry_id": self.industry.id,
            "template_id": self.template.id,
            "email": self.email,
            "phone": self.phone,
            "address": self.address,
            "description": self.description,
            "services": self.services,
        }


# =============================================================================
# Commands and execution records
# =============================================================================

@dataclass
class Command:
    """One atomic UI operation."""
    id: str
    category: str  # CommandCategory value; unknown strings dispatch as unsupported
    action: str
    target: Optional[str] = None
    value: Optional[str] = None
    timeout: float = 5000  # milliseconds
    retries: int = 1

    @staticmethod
    def from_dict(d):
        return Command(
            id=d["id"],
            category=d["category"],
            action=d["action"],
            target=d.get("target"),
            value=d.get("value"),
            timeout=d.get("timeout", 5000),
            retries=d.get("retries", 1),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "category": self.category,
            "action": self.action,
            "target": self.target,
            "value": self.value,
            "timeout": self.timeout,
            "retries": self.retries,
        }


@dataclass
class AutomationIntent:
    """An intent record handed to the automation transport."""
    operation: str
    parameters: Dict[str, Any] = field(default_factory=dict)


@dataclass
class IntentResult:
    """Outcome of a single intent as reported by the transport."""
    success: bool
    data: Any = None
    error: Optional[str] = None


@dataclass
class ExecutionLogEntry:
    """Append-only record of one executed command."""
    session_id: str
    website_id: str
    command_id: str
    action: str
    status: str  # ExecutionStatus value
    duration_ms: float
    error: Optional[str] = None
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self):
        return {
            "_type": "execution",
            "session_id": self.session_id,
            "website_id": self.website_id,
            "command_id": self.command_id,
            "action": self.action,
            "status": self.status,
            "duration_ms": self.duration_ms,
            "error": self.error,
            "timestamp": _iso(self.timestamp),
        }


# =============================================================================
# Failure contexts (closed set plus a catch-all)
# =============================================================================

@dataclass
class CommandFailureContext:
    command_id: str
    target: Optional[str] = None
    value: Optional[str] = None
    kind: str = field(default="command", init=False)

    def to_dict(self):
        return {"kind": self.kind, "command_id": self.command_id, "target": self.target, "value": self.value}


@dataclass
class UnsupportedCommandContext:
    command_id: str
    category: str
    action: str
    reason: str
    kind: str = field(default="unsupported", init=False)

    def to_dict(self):
        return {
            "kind": self.kind,
            "command_id": self.command_id,
            "category": self.category,
            "action": self.action,
            "reason": self.reason,
        }


@dataclass
class IterationFailureContext:
    attempt_index: int
    industry_id: str = ""
    template_id: str = ""
    kind: str = field(default="iteration", init=False)

    def to_dict(self):
        return {
            "kind": self.kind,
            "attempt_index": self.attempt_index,
            "industry_id": self.industry_id,
            "template_id": self.template_id,
        }


@dataclass
class OtherContext:
    data: Dict[str, Any] = field(default_factory=dict)
    kind: str = field(default="other", init=False)

    def to_dict(self):
        return {"kind": self.kind, **self.data}


def failure_context_from_dict(d: Optional[Dict[str, Any]]):
    """Rebuilds a typed failure context; unrecognized shapes become OtherContext."""
    d = dict(d or {})
    kind = d.pop("kind", "other")
    try:
        if kind == "command":
            return CommandFailureContext(**d)
        if kind == "unsupported":
            return UnsupportedCommandContext(**d)
        if kind == "iteration":
            return IterationFailureContext(**d)
    except TypeError:
        pass
    return OtherContext(data=d)


@dataclass
class FailureEntry:
    """A failure observed while testing one website."""
    id: str
    website_id: str
    step: str  # "<category>/<action>" or "attempt"
    error_type: str
    error_message: str
    context: Any = field(default_factory=OtherContext)
    recovery_attempts: int = 0
    resolved: bool = False
    occurred_at: datetime = field(default_factory=utc_now)

    @staticmethod
    def from_dict(d):
        return FailureEntry(
            id=d.get("id", ""),
            website_id=d.get("website_id", ""),
            step=d.get("step", ""),
            error_type=d.get("error_type", ""),
            error_message=d.get("error_message", ""),
            context=failure_context_from_dict(d.get("context")),
            recovery_attempts=d.get("recovery_attempts", 0),
            resolved=d.get("resolved", False),
            occurred_at=_parse_dt(d.get("occurred_at")) or utc_now(),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "website_id": self.website_id,
            "step": self.step,
            "error_type": self.error_type,
            "error_message": self.error_message,
            "context": self.context.to_dict(),
            "recovery_attempts": self.recovery_attempts,
            "resolved": self.resolved,
            "occurred_at": _iso(self.occurred_at),
        }


@dataclass
class ExecutionResult:
    """Aggregated outcome of one command list."""
    success: bool
    logs: List[ExecutionLogEntry]
    failures: List[FailureEntry]
    screenshots: List[str]
    total_commands: int
    successful_commands: int
    failed_commands: int
    total_time_ms: float
    intents: List[AutomationIntent] = field(default_factory=list)

    @property
    def success_rate(self) -> float:
        if self.total_commands == 0:
            return 0.0
        return self.successful_commands / self.total_commands


# =============================================================================
# Quality
# =============================================================================

@dataclass
class QualityIssue:
    category: str
    severity: str  # "critical" | "high" | "medium"
    message: str
    suggestion: str = ""

    @staticmethod
    def from_dict(d):
        return QualityIssue(**d)

    def to_dict(self):
        return self.__dict__.copy()


@dataclass
class QualityScore:
    """Six-category score for one website."""
    website_id: str
    categories: Dict[str, float]
    overall_score: float
    verdict: str
    meets_threshold: bool
    issues: List[QualityIssue] = field(default_factory=list)
    industry_id: str = ""
    template_id: str = ""
    business_name: str = ""
    evaluated_at: datetime = field(default_factory=utc_now)

    @staticmethod
    def from_dict(d):
        return QualityScore(
            website_id=d["website_id"],
            categories=dict(d.get("categories", {})),
            overall_score=d.get("overall_score", 0.0),
            verdict=d.get("verdict", ""),
            meets_threshold=d.get("meets_threshold", False),
            issues=[QualityIssue.from_dict(i) for i in d.get("issues", [])],
            industry_id=d.get("industry_id", ""),
            template_id=d.get("template_id", ""),
            business_name=d.get("business_name", ""),
            evaluated_at=_parse_dt(d.get("evaluated_at")) or utc_now(),
        )

    def to_dict(self):
        return {
            "website_id": self.website_id,
            "industry_id": self.industry_id,
            "template_id": self.template_id,
            "business_name": self.business_name,
            "categories": dict(self.categories),
            "overall_score": self.overall_score,
            "verdict": self.verdict,
            "meets_threshold": self.meets_threshold,
            "issues": [i.to_dict() for i in self.issues],
            "evaluated_at": _iso(self.evaluated_at),
        }


# =============================================================================
# Learning
# =============================================================================

@dataclass
class Learning:
    """A stored insight with a running effectiveness score."""
    id: str
    type: str  # LearningType value
    context: str
    insight: str
    applied_count: int = 0
    effectiveness_score: float = 0.0
    created_at: datetime = field(default_factory=utc_now)
    related_website_ids: List[str] = field(default_factory=list)

    @staticmethod
    def from_dict(d):
        return Learning(
            id=d["id"],
            type=d["type"],
            context=d.get("context", ""),
            insight=d.get("insight", ""),
            applied_count=int(d.get("applied_count", 0) or 0),
            effectiveness_score=float(d.get("effectiveness_score", 0.0) or 0.0),
            created_at=_parse_dt(d.get("created_at")) or utc_now(),
            related_website_ids=list(d.get("related_website_ids", []) or []),
        )

    def to_dict(self):
        return {
            "id": self.id,
            "type": self.type,
            "context": self.context,
            "insight": self.insight,
            "applied_count": self.applied_count,
            "effectiveness_score": self.effectiveness_score,
            "created_at": _iso(self.created_at),
            "related_website_ids": list(self.related_website_ids),
        }


@dataclass
class ImprovementSuggestion:
    area: str  # "commands" | "timing" | "templates" | "industries" | "form_filling"
    current: str
    suggested: str
    expected_impact: float
    confidence: float


@dataclass
class LearningPattern:
    type: str  # "success" | "failure"
    context: str
    frequency: int
    actions: List[str]
    outcome: str  # "positive" | "needs_improvement"


@dataclass
class ReflectionResult:
    insights: List[str] = field(default_factory=list)
    patterns: List[LearningPattern] = field(default_factory=list)
    improvements: List[ImprovementSuggestion] = field(default_factory=list)


@dataclass
class KnowledgeEntity:
    """An entity staged for export to an external knowledge store."""
    name: str
    entity_type: str
    observations: List[str] = field(default_factory=list)

    def to_dict(self):
        return {"name": self.name, "entityType": self.entity_type, "observations": list(self.observations)}


@dataclass
class KnowledgeRelation:
    """A relation staged for export to an external knowledge store."""
    from_name: str
    to_name: str
    relation_type: str

    def to_dict(self):
        return {"from": self.from_name, "to": self.to_name, "relationType": self.relation_type}


# =============================================================================
# Session and reports
# =============================================================================

@dataclass
class WebsiteResult:
    """Outcome of one attempt."""
    success: bool
    website_id: str
    industry_id: str = ""
    template_id: str = ""
    business_name: str = ""
    generation_time_ms: float = 0.0
    commands_executed: int = 0
    commands_failed: int = 0
    errors: List[str] = field(default_factory=list)


@dataclass
class WebsiteReport:
    """Per-attempt entry accumulated by the reporter."""
    website_id: str
    business_name: str
    industry_id: str
    template_id: str
    quality_score: Optional[QualityScore]
    status: str  # "success" | "failed" | "partial"
    commands_executed: int
    commands_failed: int
    failures: List[FailureEntry] = field(default_factory=list)
    generation_time_ms: float = 0.0
    timestamp: datetime = field(default_factory=utc_now)

    def to_dict(self):
        return {
            "_type": "website",
            "website_id": self.website_id,
            "business_name": self.business_name,
            "industry_id": self.industry_id,
            "template_id": self.template_id,
            "quality_score": self.quality_score.to_dict() if self.quality_score else None,
            "status": self.status,
            "commands_executed": self.commands_executed,
            "commands_failed": self.commands_failed,
            "failures": [f.to_dict() for f in self.failures],
            "generation_time_ms": self.generation_time_ms,
            "timestamp": _iso(self.timestamp),
        }


@dataclass
class Session:
    """One end-to-end run of `target_count` website attempts."""
    id: str
    target_count: int
    current_index: int = 0
    website_count: int = 0
    status: str = SessionStatus.PENDING.value
    started_at: datetime = field(default_factory=utc_now)
    completed_at: Optional[datetime] = None
    learnings: List[Learning] = field(default_factory=list)
    quality_scores: List[QualityScore] = field(default_factory=list)
    failure_log: List[FailureEntry] = field(default_factory=list)

    @staticmethod
    def from_dict(d):
        return Session(
            id=d["id"],
            target_count=d.get("target_count", 0),
            current_index=d.get("current_index", 0),
            website_count=d.get("website_count", 0),
            status=d.get("status", SessionStatus.PENDING.value),
            started_at=_parse_dt(d.get("started_at")) or utc_now(),
            completed_at=_parse_dt(d.get("completed_at")),
            learnings=[Learning.from_dict(l) for l in d.get("learnings", [])],
            quality_scores=[QualityScore.from_dict(q) for q in d.get("quality_scores", [])],
            failure_log=[FailureEntry.from_dict(f) for f in d.get("failure_log", [])],
        )

    def to_dict(self):
        return {
            "id": self.id,
            "target_count": self.target_count,
            "current_index": self.current_index,
            "website_count": self.website_count,
            "status": self.status,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "learnings": [l.to_dict() for l in self.learnings],
            "quality_scores": [q.to_dict() for q in self.quality_scores],
            "failure_log": [f.to_dict() for f in self.failure_log],
        }


@dataclass(frozen=True)
class SessionReport:
    """Derived summary of a finished session. Never mutated after creation."""
    session_id: str
    started_at: datetime
    completed_at: datetime
    total_websites: int
    successful_websites: int
    failed_websites: int
    average_score: float
    best_score: float
    worst_score: float
    total_commands: int
    command_success_rate: float
    top_learnings: Tuple[Learning, ...] = ()
    recommendations: Tuple[str, ...] = ()
    improvement_from_previous: float = 0.0

    def to_dict(self):
        return {
            "session_id": self.session_id,
            "started_at": _iso(self.started_at),
            "completed_at": _iso(self.completed_at),
            "total_websites": self.total_websites,
            "successful_websites": self.successful_websites,
            "failed_websites": self.failed_websites,
            "average_score": self.average_score,
            "best_score": self.best_score,
            "worst_score": self.worst_score,
            "total_commands": self.total_commands,
            "command_success_rate": self.command_success_rate,
            "top_learnings": [l.to_dict() for l in self.top_learnings],
            "recommendations": list(self.recommendations),
            "improvement_from_previous": self.improvement_from_previous,
        }


@dataclass
class SessionSummary:
    session_id: str
    total_websites: int
    successful_websites: int
    failed_websites: int
    average_score: float
    score_distribution: Dict[str, int]
    top_issues: List[Tuple[str, int]]
    learnings_generated: int = 0
    improvement_from_previous: float = 0.0


@dataclass
class TrendAnalysis:
    sessions: List[str]
    scores: List[float]
    trend: str  # "improving" | "stable" | "declining"
    average_improvement: float
    predictions: List[str]
