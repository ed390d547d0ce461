"""
Core data models and types for the LiteQA flow engine.
"""

from datetime import datetime
from enum import Enum
from typing import Annotated, Any, Dict, List, Literal, Optional, Union

from pydantic import (
    BaseModel,
    ConfigDict,
    Discriminator,
    Field,
    Tag,
    TypeAdapter,
    computed_field,
    field_validator,
)


class RunnerType(str, Enum):
    """Kind of live target a flow is executed against."""

    WEB = "web"
    API = "api"
    DESKTOP = "desktop"
    MOBILE = "mobile"
    PERFORMANCE = "performance"


class StepStatus(str, Enum):
    """Status of a step, flow or suite execution."""

    PASSED = "passed"
    FAILED = "failed"
    SKIPPED = "skipped"
    PENDING = "pending"


class HealingStrategy(str, Enum):
    """Fallback strategy that produced a healed selector."""

    DATA_TESTID_FUZZY = "data-testid-fuzzy"
    TEXT_SIMILARITY = "text-similarity"
    ROLE_NAME = "role-name"
    CSS_CONTAINS = "css-contains"


# ============================================================================
# Steps
# ============================================================================


class BaseStep(BaseModel):
    """Fields shared by every step variant."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    id: Optional[str] = None
    description: Optional[str] = None
    timeout: Optional[int] = Field(None, ge=0, description="Timeout in milliseconds")
    continue_on_error: bool = Field(False, alias="continueOnError")

    def label(self) -> str:
        """Human-readable summary used in progress logs."""
        return self.description or self._default_label()

    def _default_label(self) -> str:
        return getattr(self, "selector", None) or ""


class GotoStep(BaseStep):
    action: Literal["goto"] = "goto"
    url: str
    wait_until: Literal["load", "domcontentloaded", "networkidle"] = Field(
        "load", alias="waitUntil"
    )

    def _default_label(self) -> str:
        return self.url


class ClickStep(BaseStep):
    action: Literal["click"] = "click"
    selector: str
    button: Literal["left", "right", "middle"] = "left"


class FillStep(BaseStep):
    action: Literal["fill"] = "fill"
    selector: str
    value: str


class TypeStep(BaseStep):
    action: Literal["type"] = "type"
    selector: str
    text: str
    delay: Optional[int] = None


class ExpectTextStep(BaseStep):
    action: Literal["expectText"] = "expectText"
    selector: str
    text: str
    exact: bool = False


class ExpectVisibleStep(BaseStep):
    action: Literal["expectVisible"] = "expectVisible"
    selector: str


class WaitForSelectorStep(BaseStep):
    action: Literal["waitForSelector"] = "waitForSelector"
    selector: str
    state: Literal["attached", "detached", "visible", "hidden"] = "visible"


class WaitForLoadStateStep(BaseStep):
    action: Literal["waitForLoadState"] = "waitForLoadState"
    state: Literal["load", "domcontentloaded", "networkidle"]

    def _default_label(self) -> str:
        return self.state


class ScreenshotStep(BaseStep):
    action: Literal["screenshot"] = "screenshot"
    name: Optional[str] = None
    full_page: bool = Field(False, alias="fullPage")

    def _default_label(self) -> str:
        return self.name or "screenshot"


class SelectStep(BaseStep):
    action: Literal["select"] = "select"
    selector: str
    value: str


class HoverStep(BaseStep):
    action: Literal["hover"] = "hover"
    selector: str


class PressStep(BaseStep):
    action: Literal["press"] = "press"
    key: str
    selector: Optional[str] = None

    def _default_label(self) -> str:
        return self.key


class WaitStep(BaseStep):
    action: Literal["wait"] = "wait"
    duration: int = Field(..., ge=0, description="Duration in milliseconds")

    def _default_label(self) -> str:
        return f"{self.duration}ms"


class RequestStep(BaseStep):
    action: Literal["request"] = "request"
    method: Literal["GET", "POST", "PUT", "PATCH", "DELETE"]
    url: str
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    save_response: Optional[str] = Field(None, alias="saveResponse")

    def _default_label(self) -> str:
        return f"{self.method} {self.url}"


class ExpectStatusStep(BaseStep):
    action: Literal["expectStatus"] = "expectStatus"
    status: int

    def _default_label(self) -> str:
        return f"status = {self.status}"


class ExpectJsonPathStep(BaseStep):
    action: Literal["expectJsonPath"] = "expectJsonPath"
    path: str
    value: Optional[Any] = None
    contains: Optional[str] = None

    def _default_label(self) -> str:
        return self.path


class DesktopLaunchStep(BaseStep):
    action: Literal["desktopLaunch"] = "desktopLaunch"
    app: str
    args: List[str] = Field(default_factory=list)

    def _default_label(self) -> str:
        return self.app


class DesktopClickStep(BaseStep):
    action: Literal["desktopClick"] = "desktopClick"
    selector: str
    control_type: str = Field("Button", alias="controlType")


class DesktopTypeStep(BaseStep):
    action: Literal["desktopType"] = "desktopType"
    selector: str
    text: str


class DesktopCloseStep(BaseStep):
    action: Literal["desktopClose"] = "desktopClose"


class MobileTapStep(BaseStep):
    action: Literal["mobileTap"] = "mobileTap"
    selector: str


class MobileTypeStep(BaseStep):
    action: Literal["mobileType"] = "mobileType"
    selector: str
    text: str


class MobileWaitForTextStep(BaseStep):
    action: Literal["mobileWaitForText"] = "mobileWaitForText"
    text: str

    def _default_label(self) -> str:
        return f'"{self.text}"'


class MobileSwipeStep(BaseStep):
    action: Literal["mobileSwipe"] = "mobileSwipe"
    direction: Literal["up", "down", "left", "right"]

    def _default_label(self) -> str:
        return self.direction


class ApiPerformanceThresholds(BaseModel):
    """Upper bounds checked after an API performance run."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    avg_response_time: Optional[float] = Field(None, alias="avgResponseTime")
    p95: Optional[float] = None
    p99: Optional[float] = None
    error_rate: Optional[float] = Field(
        None, alias="errorRate", description="Percentage (0-100)"
    )


class ApiPerformanceStep(BaseStep):
    action: Literal["apiPerformance"] = "apiPerformance"
    url: str
    method: Literal["GET", "POST", "PUT", "DELETE"] = "GET"
    headers: Dict[str, str] = Field(default_factory=dict)
    body: Optional[Any] = None
    iterations: int = Field(..., ge=1)
    thresholds: Optional[ApiPerformanceThresholds] = None

    def _default_label(self) -> str:
        return f"Measure API performance: {self.url}"


class UnknownStep(BaseStep):
    """A step whose action tag no runner recognizes.

    Kept as data so the failure surfaces when the step is dispatched rather
    than when the flow is loaded.
    """

    model_config = ConfigDict(frozen=True, populate_by_name=True, extra="allow")

    action: str


_STEP_VARIANTS = (
    GotoStep,
    ClickStep,
    FillStep,
    TypeStep,
    ExpectTextStep,
    ExpectVisibleStep,
    WaitForSelectorStep,
    WaitForLoadStateStep,
    ScreenshotStep,
    SelectStep,
    HoverStep,
    PressStep,
    WaitStep,
    RequestStep,
    ExpectStatusStep,
    ExpectJsonPathStep,
    DesktopLaunchStep,
    DesktopClickStep,
    DesktopTypeStep,
    DesktopCloseStep,
    MobileTapStep,
    MobileTypeStep,
    MobileWaitForTextStep,
    MobileSwipeStep,
    ApiPerformanceStep,
)

KNOWN_ACTIONS = frozenset(
    variant.model_fields["action"].default for variant in _STEP_VARIANTS
)


def _step_tag(value: Any) -> str:
    if isinstance(value, dict):
        action = value.get("action")
    else:
        action = getattr(value, "action", None)
    return action if action in KNOWN_ACTIONS else "unknown"


Step = Annotated[
    Union[
        Annotated[GotoStep, Tag("goto")],
        Annotated[ClickStep, Tag("click")],
        Annotated[FillStep, Tag("fill")],
        Annotated[TypeStep, Tag("type")],
        Annotated[ExpectTextStep, Tag("expectText")],
        Annotated[ExpectVisibleStep, Tag("expectVisible")],
        Annotated[WaitForSelectorStep, Tag("waitForSelector")],
        Annotated[WaitForLoadStateStep, Tag("waitForLoadState")],
        Annotated[ScreenshotStep, Tag("screenshot")],
        Annotated[SelectStep, Tag("select")],
        Annotated[HoverStep, Tag("hover")],
        Annotated[PressStep, Tag("press")],
        Annotated[WaitStep, Tag("wait")],
        Annotated[RequestStep, Tag("request")],
        Annotated[ExpectStatusStep, Tag("expectStatus")],
        Annotated[ExpectJsonPathStep, Tag("expectJsonPath")],
        Annotated[DesktopLaunchStep, Tag("desktopLaunch")],
        Annotated[DesktopClickStep, Tag("desktopClick")],
        Annotated[DesktopTypeStep, Tag("desktopType")],
        Annotated[DesktopCloseStep, Tag("desktopClose")],
        Annotated[MobileTapStep, Tag("mobileTap")],
        Annotated[MobileTypeStep, Tag("mobileType")],
        Annotated[MobileWaitForTextStep, Tag("mobileWaitForText")],
        Annotated[MobileSwipeStep, Tag("mobileSwipe")],
        Annotated[ApiPerformanceStep, Tag("apiPerformance")],
        Annotated[UnknownStep, Tag("unknown")],
    ],
    Discriminator(_step_tag),
]

_step_adapter: TypeAdapter = TypeAdapter(Step)


def parse_step(data: Dict[str, Any]) -> BaseStep:
    """Validate a raw step mapping into its typed variant."""
    return _step_adapter.validate_python(data)


# ============================================================================
# Flows & Suites
# ============================================================================


class Flow(BaseModel):
    """An ordered, named sequence of steps targeting one runner type."""

    model_config = ConfigDict(frozen=True, populate_by_name=True)

    name: str
    description: Optional[str] = None
    runner: RunnerType
    base_url: Optional[str] = Field(None, alias="baseUrl")
    tags: List[str] = Field(default_factory=list)
    setup: Optional[List[Step]] = None
    steps: List[Step]
    teardown: Optional[List[Step]] = None

    @field_validator("steps")
    @classmethod
    def validate_steps(cls, value: List[Any]) -> List[Any]:
        if not value:
            raise ValueError("A flow must declare at least one step")
        return value

    @field_validator("setup", "teardown")
    @classmethod
    def validate_optional_phase(cls, value: Optional[List[Any]]) -> Optional[List[Any]]:
        if value is not None and not value:
            raise ValueError("setup/teardown must be omitted or contain at least one step")
        return value

    @property
    def total_steps(self) -> int:
        return len(self.setup or []) + len(self.steps) + len(self.teardown or [])


class Suite(BaseModel):
    """A named, ordered collection of already-loaded flows."""

    model_config = ConfigDict(frozen=True)

    name: str
    description: Optional[str] = None
    flows: List[Flow]


# ============================================================================
# Execution Results
# ============================================================================


class HealedSelector(BaseModel):
    """Record of a selector substituted by the self-healing cascade."""

    model_config = ConfigDict(frozen=True)

    original: str
    healed: str
    strategy: HealingStrategy
    confidence: float = Field(..., ge=0.0, le=1.0)
    suggestion: str


class StepResult(BaseModel):
    """Result of executing a single step."""

    model_config = ConfigDict(frozen=True)

    step: Step
    status: StepStatus
    duration: int = Field(..., ge=0, description="Elapsed time in milliseconds")
    error: Optional[str] = None
    screenshot: Optional[str] = Field(None, description="Path to failure screenshot")
    healed_selector: Optional[HealedSelector] = None
    metrics: Optional[Dict[str, float]] = None


class FlowResult(BaseModel):
    """Result of executing one flow; status is derived from its steps."""

    name: str
    duration: int = Field(..., ge=0, description="Elapsed time in milliseconds")
    start_time: datetime
    end_time: datetime
    steps: List[StepResult] = Field(default_factory=list)
    error: Optional[str] = None
    healed_selectors: List[HealedSelector] = Field(default_factory=list)

    @computed_field
    @property
    def status(self) -> StepStatus:
        if self.error or any(step.status == StepStatus.FAILED for step in self.steps):
            return StepStatus.FAILED
        return StepStatus.PASSED


class SuiteSummary(BaseModel):
    """Flow status counts for a suite run."""

    total: int
    passed: int
    failed: int
    skipped: int


class SuiteResult(BaseModel):
    """Result of executing flows sequentially as a suite."""

    name: str
    duration: int = Field(..., ge=0, description="Elapsed time in milliseconds")
    start_time: datetime
    end_time: datetime
    flows: List[FlowResult] = Field(default_factory=list)

    @computed_field
    @property
    def summary(self) -> SuiteSummary:
        statuses = [flow.status for flow in self.flows]
        return SuiteSummary(
            total=len(statuses),
            passed=statuses.count(StepStatus.PASSED),
            failed=statuses.count(StepStatus.FAILED),
            skipped=statuses.count(StepStatus.SKIPPED),
        )

    @computed_field
    @property
    def status(self) -> StepStatus:
        return StepStatus.FAILED if self.summary.failed else StepStatus.PASSED
