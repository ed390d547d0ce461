"""
Core data model and capability interfaces for the LiteQA flow engine.
"""

from .interfaces import CommandBridge, ElementHandle, ElementQuery
from .types import (
    KNOWN_ACTIONS,
    ApiPerformanceStep,
    ApiPerformanceThresholds,
    BaseStep,
    ClickStep,
    DesktopClickStep,
    DesktopCloseStep,
    DesktopLaunchStep,
    DesktopTypeStep,
    ExpectJsonPathStep,
    ExpectStatusStep,
    ExpectTextStep,
    ExpectVisibleStep,
    FillStep,
    Flow,
    FlowResult,
    GotoStep,
    HealedSelector,
    HealingStrategy,
    HoverStep,
    MobileSwipeStep,
    MobileTapStep,
    MobileTypeStep,
    MobileWaitForTextStep,
    PressStep,
    RequestStep,
    RunnerType,
    ScreenshotStep,
    SelectStep,
    Step,
    StepResult,
    StepStatus,
    Suite,
    SuiteResult,
    SuiteSummary,
    TypeStep,
    UnknownStep,
    WaitForLoadStateStep,
    WaitForSelectorStep,
    WaitStep,
    parse_step,
)

__all__ = [
    "CommandBridge",
    "ElementHandle",
    "ElementQuery",
    "KNOWN_ACTIONS",
    "ApiPerformanceStep",
    "ApiPerformanceThresholds",
    "BaseStep",
    "ClickStep",
    "DesktopClickStep",
    "DesktopCloseStep",
    "DesktopLaunchStep",
    "DesktopTypeStep",
    "ExpectJsonPathStep",
    "ExpectStatusStep",
    "ExpectTextStep",
    "ExpectVisibleStep",
    "FillStep",
    "Flow",
    "FlowResult",
    "GotoStep",
    "HealedSelector",
    "HealingStrategy",
    "HoverStep",
    "MobileSwipeStep",
    "MobileTapStep",
    "MobileTypeStep",
    "MobileWaitForTextStep",
    "PressStep",
    "RequestStep",
    "RunnerType",
    "ScreenshotStep",
    "SelectStep",
    "Step",
    "StepResult",
    "StepStatus",
    "Suite",
    "SuiteResult",
    "SuiteSummary",
    "TypeStep",
    "UnknownStep",
    "WaitForLoadStateStep",
    "WaitForSelectorStep",
    "WaitStep",
    "parse_step",
]
