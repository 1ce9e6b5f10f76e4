"""Bootstrap executors: produce components with installed platform tools.

Executors:
    NextJSExecutor  - ``npx create-next-app``
    GoExecutor      - ``go mod init`` / ``go get`` / ``go mod tidy`` + server files
    AndroidExecutor - ``gradle init``
    IOSExecutor     - ``swift package init`` (requires Xcode command-line tools)
"""

from __future__ import annotations

import re
from typing import Optional

from src.errors import validation_error
from src.models import (
    AndroidConfig,
    ComponentSpec,
    ComponentType,
    GoBackendConfig,
    IOSConfig,
    NextJSConfig,
)

from .base import BaseExecutor, ExecutionSpec, ExecutorRegistry, OutputSink
from .templates import TemplateRenderer, pascal_case


class NextJSExecutor(BaseExecutor):
    tool = "npx"
    component_types = (ComponentType.NEXTJS,)

    def default_flags(self, component_type: str) -> list[str]:
        if not self.supports_component(component_type):
            return []
        return ["--ts", "--tailwind", "--app", "--eslint", "--use-npm", "--no-git"]

    def check_config(self, component: ComponentSpec) -> None:
        config = component.config
        assert isinstance(config, NextJSConfig)
        if not re.fullmatch(r"[^\s/]+/\*", config.import_alias):
            raise validation_error(
                f"import alias must look like '@/*', got {config.import_alias!r}",
                component=component.name,
                field="import_alias",
            )

    def flags(self, config: NextJSConfig) -> list[str]:
        flags = [
            "--ts" if config.typescript else "--js",
            "--tailwind" if config.tailwind else "--no-tailwind",
            "--app" if config.app_router else "--no-app",
            "--src-dir" if config.src_dir else "--no-src-dir",
            "--import-alias",
            config.import_alias,
            "--eslint",
            "--use-npm",
            "--no-git",
        ]
        return flags

    def manual_steps(self, spec: ExecutionSpec) -> list[str]:
        return [
            "Navigate to the App directory",
            "Run 'npm run dev' to start the development server",
        ]

    async def run(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> str:
        config = spec.component.config
        assert isinstance(config, NextJSConfig)
        spec.target_dir.mkdir(parents=True, exist_ok=True)
        args = ["--yes", "create-next-app@latest", spec.dir_name, *self.flags(config)]
        return await self.invoke(args, spec, cwd=spec.target_dir, sink=sink)


GO_PACKAGES = {
    "gin": ["github.com/gin-gonic/gin@v1.11.0", "github.com/gin-contrib/cors@v1.7.6"],
    "echo": ["github.com/labstack/echo/v4@v4.13.4"],
    "fiber": ["github.com/gofiber/fiber/v2@v2.52.9"],
}


class GoExecutor(BaseExecutor):
    """Initialises a Go module, installs the web framework and writes a server."""

    tool = "go"
    component_types = (ComponentType.GO_BACKEND,)

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def default_flags(self, component_type: str) -> list[str]:
        if not self.supports_component(component_type):
            return []
        return ["mod", "init"]

    @staticmethod
    def module_path(spec: ExecutionSpec) -> str:
        config = spec.component.config
        assert isinstance(config, GoBackendConfig)
        return config.module or spec.dir_name

    def manual_steps(self, spec: ExecutionSpec) -> list[str]:
        config = spec.component.config
        assert isinstance(config, GoBackendConfig)
        return [
            "Navigate to the project directory",
            "Run 'go run main.go' to start the server",
            f"The server will be available at http://localhost:{config.port}",
            f"Test the health endpoint: curl http://localhost:{config.port}/health",
        ]

    async def run(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> str:
        config = spec.component.config
        assert isinstance(config, GoBackendConfig)
        project_dir = self.output_dir(spec)
        project_dir.mkdir(parents=True, exist_ok=True)
        module = self.module_path(spec)

        await self.invoke(["mod", "init", module], spec, cwd=project_dir, sink=sink)
        for package in GO_PACKAGES[config.framework]:
            await self.invoke(["get", package], spec, cwd=project_dir, sink=sink)

        context = {
            "module": module,
            "framework": config.framework,
            "port": config.port,
            "name": spec.component.name,
        }
        await self.renderer.render_files(
            {
                "main.go": f"go/main_{config.framework}.go.j2",
                ".gitignore": "go/gitignore.j2",
                "README.md": "go/README.md.j2",
            },
            project_dir,
            context,
        )

        await self.invoke(["mod", "tidy"], spec, cwd=project_dir, sink=sink)
        return f"Successfully created Go backend project at {project_dir}"


class AndroidExecutor(BaseExecutor):
    tool = "gradle"
    component_types = (ComponentType.ANDROID,)

    def default_flags(self, component_type: str) -> list[str]:
        if not self.supports_component(component_type):
            return []
        return ["init", "--type", "kotlin-application", "--dsl", "kotlin"]

    def check_config(self, component: ComponentSpec) -> None:
        config = component.config
        assert isinstance(config, AndroidConfig)
        if config.target_sdk < config.min_sdk:
            raise validation_error(
                f"target_sdk ({config.target_sdk}) must not be lower than min_sdk ({config.min_sdk})",
                component=component.name,
                field="target_sdk",
            )

    async def run(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> str:
        config = spec.component.config
        assert isinstance(config, AndroidConfig)
        project_dir = self.output_dir(spec)
        project_dir.mkdir(parents=True, exist_ok=True)
        args = [
            *self.default_flags(ComponentType.ANDROID.value),
            "--project-name",
            spec.dir_name,
            "--package",
            config.package_name,
            "--no-split-project",
            "--use-defaults",
        ]
        return await self.invoke(args, spec, cwd=project_dir, sink=sink)


class IOSExecutor(BaseExecutor):
    """Creates a Swift package; availability is gated on ``xcodebuild``."""

    tool = "xcodebuild"
    command = "swift"
    component_types = (ComponentType.IOS,)

    def default_flags(self, component_type: str) -> list[str]:
        if not self.supports_component(component_type):
            return []
        return ["package", "init", "--type", "executable"]

    def check_config(self, component: ComponentSpec) -> None:
        config = component.config
        assert isinstance(config, IOSConfig)
        if not re.fullmatch(r"[A-Za-z0-9-]+(\.[A-Za-z0-9-]+)+", config.bundle_id):
            raise validation_error(
                f"invalid bundle identifier: {config.bundle_id!r}",
                component=component.name,
                field="bundle_id",
            )

    def manual_steps(self, spec: ExecutionSpec) -> list[str]:
        return ["Open Package.swift in Xcode to add an iOS app target"]

    async def run(self, spec: ExecutionSpec, sink: Optional[OutputSink]) -> str:
        config = spec.component.config
        assert isinstance(config, IOSConfig)
        project_dir = self.output_dir(spec)
        project_dir.mkdir(parents=True, exist_ok=True)
        name = config.app_name or pascal_case(spec.component.name)
        args = [*self.default_flags(ComponentType.IOS.value), "--name", name]
        return await self.invoke(args, spec, cwd=project_dir, sink=sink)


def default_executor_registry(renderer: TemplateRenderer | None = None) -> ExecutorRegistry:
    """Registry with one executor per supported component type."""
    registry = ExecutorRegistry()
    registry.register(NextJSExecutor())
    registry.register(GoExecutor(renderer))
    registry.register(AndroidExecutor())
    registry.register(IOSExecutor())
    return registry
