"""
Browser configuration for Playwright-backed pages.

This module provides a validated Pydantic configuration model for the
browser used by the dynamic and SPA strategies, and pre-configured
instances for common use cases.
"""
import random
from typing import Dict, List, Literal, Optional

from pydantic import BaseModel, Field


# User agent pool for rotation
USER_AGENTS = [
    "Mozilla/5.0 (Windows NT 10.0; Win64; x64) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/537.36 (KHTML, like Gecko) Chrome/124.0.0.0 Safari/537.36",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10.15; rv:125.0) Gecko/20100101 Firefox/125.0",
    "Mozilla/5.0 (Macintosh; Intel Mac OS X 10_15_7) AppleWebKit/605.1.15 (KHTML, like Gecko) Version/17.4 Safari/605.1.15",
]


def get_random_user_agent() -> str:
    """Get a random user agent from the pool."""
    return random.choice(USER_AGENTS)


class BrowserConfig(BaseModel):
    """
    Configuration for BrowserSession.

    All fields are validated by Pydantic to ensure type safety and valid values.
    """

    headless: bool = Field(
        default=True,
        description="Run browser in headless mode (no visible UI)"
    )

    browser_type: Literal["chromium", "firefox", "webkit"] = Field(
        default="chromium",
        description="Browser engine to use"
    )

    timeout: int = Field(
        default=10000,
        description="Default page timeout in milliseconds",
        ge=1000,
        le=300000
    )

    wait_until: Literal["load", "domcontentloaded", "networkidle", "commit"] = Field(
        default="domcontentloaded",
        description="When to consider navigation complete"
    )

    viewport: Dict[str, int] = Field(
        default_factory=lambda: {"width": 1366, "height": 768},
        description="Viewport size for new pages"
    )

    block_resources: List[str] = Field(
        default_factory=list,
        description="Resource types to block (e.g., 'image', 'font', 'stylesheet')"
    )

    launch_args: List[str] = Field(
        default_factory=list,
        description="Additional browser launch arguments (e.g., '--disable-http2')"
    )

    user_agent: Optional[str] = Field(
        default=None,
        description="Custom user agent. If None and rotate_user_agent=True, a random one is used."
    )

    rotate_user_agent: bool = Field(
        default=True,
        description="Pick a random user agent for each new context"
    )

    class Config:
        """Pydantic model configuration."""
        frozen = False
        validate_assignment = True

    def get_user_agent(self) -> str:
        """Get the user agent to use for this config."""
        if self.user_agent:
            return self.user_agent
        if self.rotate_user_agent:
            return get_random_user_agent()
        return USER_AGENTS[0]


# --- Pre-configured Instances for Common Use Cases ---

FAST_CONFIG = BrowserConfig(
    wait_until="domcontentloaded",
    timeout=10000,
    block_resources=["image", "font", "stylesheet", "media"],
)
"""
Link discovery configuration.
Blocks heavy resources; only the DOM is needed to read anchors.
"""

SPA_CONFIG = BrowserConfig(
    wait_until="networkidle",
    timeout=30000,
    block_resources=["image", "media"],
)
"""
Configuration for client-rendered sites.
Waits for the network to settle so routes have rendered their links.
"""
