"""Pydantic schemas for scan results, local records and API request/response validation."""

from datetime import datetime, timezone
from enum import Enum
from typing import Annotated, Any, Literal, Union
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator, model_validator


class Badge(str, Enum):
    """Trust class assigned to a scan result."""

    VERIFIED = "VERIFIED"
    UNVERIFIED = "UNVERIFIED"
    HIGH_RISK = "HIGH_RISK"


class Platform(str, Enum):
    """Content platform detected from a scanned link."""

    TIKTOK = "tiktok"
    INSTAGRAM = "instagram"
    FACEBOOK = "facebook"
    YOUTUBE = "youtube"
    NEWS = "news"
    SHOP = "shop"
    OTHER = "other"


class EntityType(str, Enum):
    """Kind of entity an alert or watch item refers to."""

    DOMAIN = "domain"
    VENDOR = "vendor"
    CREATOR = "creator"
    LINK = "link"


class FilterType(str, Enum):
    """History list filter."""

    ALL = "all"
    VERIFIED = "verified"
    UNVERIFIED = "unverified"
    HIGH_RISK = "high_risk"

    @property
    def badge(self) -> Badge | None:
        if self is FilterType.ALL:
            return None
        return Badge(self.value.upper())


# ============================================================================
# Reasons
# ============================================================================

REASON_CATEGORIES: dict[str, str] = {
    "A": "Media Integrity",
    "B": "Duplicate / Re-used Media",
    "C": "Claims vs Public Signals",
    "D": "Account Signals",
    "E": "Link Safety",
    "F": "Patterns / Reports",
}


class ReasonDetail(BaseModel):
    """Findings for one analysis category."""

    title: str
    summary: str
    details: list[str] = []
    suggestion: str | None = None


def placeholder_reason(category: str) -> ReasonDetail:
    """Default shown for a category the analysis source did not supply."""
    return ReasonDetail(
        title=REASON_CATEGORIES.get(category, category),
        summary="No data available",
        details=[],
    )


class ScanReasons(BaseModel):
    """The six fixed analysis categories, A through F.

    Categories missing from the input are filled with a placeholder so a
    result never has an absent category.
    """

    A: ReasonDetail = Field(default_factory=lambda: placeholder_reason("A"))
    B: ReasonDetail = Field(default_factory=lambda: placeholder_reason("B"))
    C: ReasonDetail = Field(default_factory=lambda: placeholder_reason("C"))
    D: ReasonDetail = Field(default_factory=lambda: placeholder_reason("D"))
    E: ReasonDetail = Field(default_factory=lambda: placeholder_reason("E"))
    F: ReasonDetail = Field(default_factory=lambda: placeholder_reason("F"))

    @model_validator(mode="before")
    @classmethod
    def _drop_unusable_categories(cls, data: Any) -> Any:
        if isinstance(data, cls):
            return data
        if not isinstance(data, dict):
            return {}
        return {
            key: value
            for key, value in data.items()
            if key in REASON_CATEGORIES and isinstance(value, (dict, ReasonDetail))
        }

    def top(self, keys: list[str]) -> list["TopReason"]:
        """Summaries for the given category keys, in order."""
        return [TopReason(key=key, summary=getattr(self, key).summary) for key in keys]


class TopReason(BaseModel):
    """Single category summary carried by an alert."""

    key: str
    summary: str


# ============================================================================
# Scan results
# ============================================================================


class ScanResult(BaseModel):
    """Canonical analysis outcome.

    At most one of ``url`` and ``media_reference`` identifies what was scanned;
    fresh results always carry one, privacy-redacted cached copies carry none.
    Badge and score are carried as produced by the source.
    """

    model_config = ConfigDict(frozen=True)

    id: str
    url: str | None = None
    media_reference: str | None = None
    domain: str
    platform: Platform = Platform.OTHER
    badge: Badge
    score: int = Field(..., ge=0, le=100)
    reasons: ScanReasons = Field(default_factory=ScanReasons)
    timestamp: int
    title: str | None = None
    thumbnail: str | None = None

    @model_validator(mode="after")
    def _single_origin(self) -> "ScanResult":
        if self.url and self.media_reference:
            raise ValueError("url and media_reference are mutually exclusive")
        return self

    @property
    def is_media(self) -> bool:
        return bool(self.media_reference)


def clamp_score(value: float | int | str | None) -> int:
    """Coerce a source score to an integer in 0..100 (unusable values become 0)."""
    try:
        number = float(value)
    except (TypeError, ValueError):
        return 0
    if number != number:  # NaN
        return 0
    return max(0, min(100, round(number)))


class HistoryEntry(BaseModel):
    """A possibly redacted projection of a scan result for list display."""

    scan_id: str | None = None
    badge: Badge = Badge.UNVERIFIED
    score: int = Field(0, ge=0, le=100)
    domain: str = "unknown"
    title: str | None = None
    url: str | None = None
    created_at: str = Field(default_factory=lambda: datetime.now(timezone.utc).isoformat())
    reasons: ScanReasons | None = None

    @field_validator("score", mode="before")
    @classmethod
    def _clamp_score(cls, value: Any) -> int:
        return clamp_score(value)

    def redacted(self) -> "HistoryEntry":
        """Copy without url, title and reasons."""
        return self.model_copy(update={"url": None, "title": None, "reasons": None})


class ScanOrigin(BaseModel):
    """What a scan request points at: a link or a piece of user media."""

    url: str | None = None
    media_reference: str | None = None

    @property
    def is_media(self) -> bool:
        return not self.url and bool(self.media_reference)

    @property
    def is_empty(self) -> bool:
        return not self.url and not self.media_reference


# ============================================================================
# Raw analysis source responses
# ============================================================================


class EngineAnalysis(BaseModel):
    """Structured output of the AI analysis engine."""

    source: Literal["engine"] = "engine"
    badge: str | None = None
    score: float = 0
    reasons: ScanReasons = Field(default_factory=ScanReasons)
    domain: str | None = None
    title: str | None = None

    @classmethod
    def engine_schema(cls) -> dict[str, Any]:
        """JSON schema the engine is asked to conform to."""
        schema = cls.model_json_schema()
        properties = schema.setdefault("properties", {})
        properties.pop("source", None)
        properties["badge"] = {"type": "string", "enum": [badge.value for badge in Badge]}
        properties["score"] = {"type": "number", "minimum": 0, "maximum": 100}
        schema["required"] = ["badge", "score", "reasons", "domain", "title"]
        return schema


class RemoteScanResponse(BaseModel):
    """Response of the remote scan API (``/scan/url``, ``/scan/media``, ``/scan/result``)."""

    model_config = ConfigDict(populate_by_name=True)

    source: Literal["remote"] = "remote"
    id: str
    badge: str | None = None
    score: float = 0
    domain: str | None = None
    title: str | None = None
    url: str | None = None
    reasons: ScanReasons = Field(default_factory=ScanReasons)
    timestamp: int | None = None
    disclaimer_key: str | None = Field(None, alias="disclaimerKey")


class MockScanResponse(BaseModel):
    """Locally synthesized analysis."""

    source: Literal["mock"] = "mock"
    id: str
    badge: Badge
    score: int
    reasons: ScanReasons
    timestamp: int
    title: str | None = None


RawScanResponse = Annotated[
    Union[EngineAnalysis, RemoteScanResponse, MockScanResponse],
    Field(discriminator="source"),
]


# ============================================================================
# Alerts and watchlist
# ============================================================================


class Alert(BaseModel):
    """Notification about a watched entity."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    created_at: str = Field(..., alias="createdAt")
    entity_type: EntityType = Field(..., alias="entityType")
    entity_key: str = Field(..., alias="entityKey")
    scan_id: str | None = Field(None, alias="scanId")
    badge: Badge
    score: int = Field(..., ge=0, le=100)
    message: str
    top_reasons: list[TopReason] | None = Field(None, alias="topReasons")
    read_at: str | None = Field(None, alias="readAt")

    @property
    def is_read(self) -> bool:
        return self.read_at is not None


class AlertCreate(BaseModel):
    """Fields supplied when recording a new alert."""

    entity_type: EntityType
    entity_key: str
    scan_id: str | None = None
    badge: Badge
    score: int = Field(..., ge=0, le=100)
    message: str
    top_reasons: list[TopReason] | None = None


class WatchItem(BaseModel):
    """Entity the user asked to be alerted about."""

    model_config = ConfigDict(populate_by_name=True)

    id: str
    entity_type: EntityType = Field(..., alias="entityType")
    entity_key: str = Field(..., alias="entityKey")
    alerts_enabled: bool = Field(True, alias="alertsEnabled")
    created_at: str = Field(..., alias="createdAt")


class WatchCreate(BaseModel):
    entity_type: EntityType
    entity_key: str = Field(..., min_length=1)


class WatchToggle(BaseModel):
    enabled: bool


# ============================================================================
# User settings
# ============================================================================


class UserSettings(BaseModel):
    """Per-device preferences."""

    language: Literal["en", "es"] = "en"
    privacy_mode: bool = True
    save_history: bool = True
    auto_delete: Literal["never", "7", "30"] = "never"
    advanced_scan: bool = False

    @property
    def retention_days(self) -> int | None:
        if self.auto_delete == "never":
            return None
        return int(self.auto_delete)


class UserSettingsUpdate(BaseModel):
    language: Literal["en", "es"] | None = None
    privacy_mode: bool | None = None
    save_history: bool | None = None
    auto_delete: Literal["never", "7", "30"] | None = None
    advanced_scan: bool | None = None


# ============================================================================
# Routing
# ============================================================================


class RouteIntent(BaseModel):
    """Navigation decision produced from an incoming link or shared text."""

    type: Literal["result", "scan", "home"]
    scan_id: str | None = None
    url: str | None = None

    def to_app_path(self) -> str:
        """Screen path the intent navigates to."""
        if self.type == "result" and self.scan_id:
            return f"/result?scanId={quote(self.scan_id, safe='')}"
        if self.type == "scan" and self.url:
            return f"/scanning?url={quote(self.url, safe='')}"
        return "/"


# ============================================================================
# HTTP API
# ============================================================================


class ScanUrlRequest(BaseModel):
    url: str
    advanced_scan: bool | None = None


class ScanMediaRequest(BaseModel):
    media_reference: str
    advanced_scan: bool | None = None


class ScanResponse(BaseModel):
    """Scan result plus hints for the caller."""

    result: ScanResult
    request_review: bool = False
    scans_remaining: int | None = None


class ReportCreate(BaseModel):
    category: str
    reason: str | None = None
    notes: str | None = None


class ResolveRequest(BaseModel):
    raw: str = ""


class ResolveResponse(BaseModel):
    intent: RouteIntent
    app_path: str
