"""
Shared fixtures for LiteQA tests.
"""

import pytest

from liteqa.config.settings import RunConfig

from tests.fakes import FakePage


@pytest.fixture
def run_config(tmp_path) -> RunConfig:
    """Run configuration writing artifacts under a temporary directory."""
    return RunConfig(
        artifacts_dir=tmp_path / "artifacts",
        screenshots_dir=tmp_path / "artifacts" / "screenshots",
    )


@pytest.fixture
def login_page() -> FakePage:
    """Page with <button data-testid="login">Sign In</button> and no #login-btn."""
    return FakePage(
        counts={
            '[data-testid="login"]': 1,
            'text="Sign In"': 1,
            'role=button[name="Sign In"s]': 1,
            'button:has-text("Sign In")': 1,
        },
        texts=["Sign In"],
    )
