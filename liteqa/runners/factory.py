"""
Runner selection by flow runner type.
"""

from typing import Dict, Optional, Type

from liteqa.config.settings import RunConfig
from liteqa.core.types import RunnerType
from liteqa.error_handling.exceptions import RunnerInitializationError
from liteqa.runners.api import ApiRunner
from liteqa.runners.base import BaseRunner
from liteqa.runners.desktop import DesktopRunner
from liteqa.runners.mobile import MobileRunner
from liteqa.runners.performance import PerformanceRunner
from liteqa.runners.web import WebRunner


RUNNER_CLASSES: Dict[RunnerType, Type[BaseRunner]] = {
    RunnerType.WEB: WebRunner,
    RunnerType.API: ApiRunner,
    RunnerType.DESKTOP: DesktopRunner,
    RunnerType.MOBILE: MobileRunner,
    RunnerType.PERFORMANCE: PerformanceRunner,
}


def create_runner(
    runner_type: RunnerType,
    config: RunConfig,
    flow_name: str = "",
    base_url: Optional[str] = None,
) -> BaseRunner:
    """
    Create a fresh runner for one flow run.

    Raises:
        RunnerInitializationError: If no runner handles the type
    """
    runner_class = RUNNER_CLASSES.get(RunnerType(runner_type))
    if runner_class is None:
        raise RunnerInitializationError(
            f"No runner registered for type: {runner_type}", runner_type=str(runner_type)
        )
    return runner_class(config, flow_name=flow_name, base_url=base_url)
