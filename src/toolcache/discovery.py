"""External tool discovery and network reachability.

``ToolDiscovery`` answers "is this tool installed, and which version?" by
looking the executable up on ``PATH`` and running its version command.
``OfflineDetector`` decides whether package registries are reachable, in
which case bootstrap tools that download templates are worth trying.
"""

from __future__ import annotations

import asyncio
import os
import shutil
import sys
from dataclasses import dataclass, field
from typing import Optional, Protocol, runtime_checkable

import httpx

from src.utils import CommandTimeoutError, run_command

VERSION_TIMEOUT = 10.0


@runtime_checkable
class ToolProbe(Protocol):
    """Anything that can report tool availability and version."""

    async def is_available(self, name: str) -> bool: ...

    async def get_version(self, name: str) -> str: ...


@dataclass(frozen=True)
class ToolMetadata:
    """Static description of a known bootstrap tool."""

    name: str
    command: str
    version_flag: str
    component_types: tuple[str, ...]
    fallback_available: bool = False
    install_docs: dict[str, str] = field(default_factory=dict)


TOOL_REGISTRY: dict[str, ToolMetadata] = {
    "npx": ToolMetadata(
        name="npx",
        command="npx",
        version_flag="--version",
        component_types=("nextjs",),
        install_docs={
            "linux": "https://nodejs.org/en/download/package-manager",
            "darwin": "https://nodejs.org/en/download/package-manager",
            "win32": "https://nodejs.org/en/download",
        },
    ),
    "go": ToolMetadata(
        name="go",
        command="go",
        version_flag="version",
        component_types=("go-backend",),
        install_docs={
            "linux": "https://go.dev/doc/install",
            "darwin": "https://go.dev/doc/install",
            "win32": "https://go.dev/doc/install",
        },
    ),
    "gradle": ToolMetadata(
        name="gradle",
        command="gradle",
        version_flag="--version",
        component_types=("android",),
        fallback_available=True,
        install_docs={
            "linux": "https://gradle.org/install/",
            "darwin": "https://gradle.org/install/",
            "win32": "https://gradle.org/install/",
        },
    ),
    "xcodebuild": ToolMetadata(
        name="xcodebuild",
        command="xcodebuild",
        version_flag="-version",
        component_types=("ios",),
        fallback_available=True,
        install_docs={"darwin": "https://developer.apple.com/xcode/"},
    ),
    "docker": ToolMetadata(
        name="docker",
        command="docker",
        version_flag="--version",
        component_types=("docker",),
        install_docs={
            "linux": "https://docs.docker.com/engine/install/",
            "darwin": "https://docs.docker.com/desktop/install/mac-install/",
            "win32": "https://docs.docker.com/desktop/install/windows-install/",
        },
    ),
    "terraform": ToolMetadata(
        name="terraform",
        command="terraform",
        version_flag="version",
        component_types=("terraform",),
        install_docs={
            "linux": "https://developer.hashicorp.com/terraform/install",
            "darwin": "https://developer.hashicorp.com/terraform/install",
            "win32": "https://developer.hashicorp.com/terraform/install",
        },
    ),
}


def tools_for_component(component_type: str) -> list[str]:
    """Return the names of the tools a component type needs, sorted."""
    return sorted(
        name for name, meta in TOOL_REGISTRY.items() if component_type in meta.component_types
    )


def install_instructions(tool: str, platform: str = sys.platform) -> str:
    """Return a short, platform-specific installation hint for *tool*."""
    meta = TOOL_REGISTRY.get(tool)
    if meta is None:
        return f"Tool '{tool}' is not registered. Please check the tool name."
    url = meta.install_docs.get(platform)
    if url is None:
        if tool == "xcodebuild":
            return "xcodebuild is only available on macOS. Install Xcode from the App Store."
        return f"Installation instructions for '{tool}' on '{platform}' are not available."
    text = f"Install {tool}: {url}"
    if meta.fallback_available:
        text += " (a fallback generator is available if you skip this)"
    return text


class ToolDiscovery:
    """Probes the local machine for bootstrap tools.

    Implements the ``ToolProbe`` protocol.  Results are not cached here; the
    ``CacheManager`` decides when a probe is needed.
    """

    def __init__(
        self,
        registry: dict[str, ToolMetadata] | None = None,
        version_timeout: float = VERSION_TIMEOUT,
    ) -> None:
        self.registry = registry if registry is not None else TOOL_REGISTRY
        self.version_timeout = version_timeout

    def _command(self, name: str) -> str:
        meta = self.registry.get(name)
        return meta.command if meta else name

    async def is_available(self, name: str) -> bool:
        return shutil.which(self._command(name)) is not None

    async def get_version(self, name: str) -> str:
        """Run the tool's version command and return its first output line.

        Returns an empty string when the tool is missing or the command fails.
        """
        if not await self.is_available(name):
            return ""
        meta = self.registry.get(name)
        flag = meta.version_flag if meta else "--version"
        try:
            rc, stdout, stderr = await run_command(
                [self._command(name), flag], timeout=self.version_timeout
            )
        except (CommandTimeoutError, OSError):
            return ""
        if rc != 0:
            return ""
        output = stdout or stderr
        return output.splitlines()[0].strip() if output else ""

    async def check(self, names: list[str]) -> dict[str, tuple[bool, str]]:
        """Probe *names* concurrently, returning ``name -> (available, version)``."""

        async def _one(name: str) -> tuple[bool, str]:
            available = await self.is_available(name)
            version = await self.get_version(name) if available else ""
            return available, version

        results = await asyncio.gather(*(_one(n) for n in names))
        return dict(zip(names, results))


# ---------------------------------------------------------------------------
# Offline detection
# ---------------------------------------------------------------------------

DEFAULT_REGISTRY_URLS = (
    "https://registry.npmjs.org",
    "https://proxy.golang.org",
)


class OfflineDetector:
    """Decides once per run whether network-dependent tools are usable.

    ``SF_OFFLINE=true`` in the environment or ``force_offline()`` short-cut
    the network check.
    """

    def __init__(
        self,
        urls: tuple[str, ...] = DEFAULT_REGISTRY_URLS,
        timeout: float = 3.0,
    ) -> None:
        self.urls = urls
        self.timeout = timeout
        self._forced: Optional[bool] = None
        self._detected: Optional[bool] = None

    def force_offline(self, offline: bool = True) -> None:
        self._forced = offline

    def reset(self) -> None:
        self._forced = None
        self._detected = None

    async def is_offline(self) -> bool:
        if self._forced is not None:
            return self._forced
        if os.environ.get("SF_OFFLINE", "").strip().lower() == "true":
            return True
        if self._detected is None:
            self._detected = not await self._any_reachable()
        return self._detected

    async def _any_reachable(self) -> bool:
        async with httpx.AsyncClient(timeout=httpx.Timeout(self.timeout, connect=self.timeout)) as client:
            for url in self.urls:
                try:
                    response = await client.head(url)
                except httpx.HTTPError:
                    continue
                if response.status_code < 500:
                    return True
        return False
