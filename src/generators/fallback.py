"""Fallback generators: write embedded boilerplate when no tool is usable.

Only mobile platforms have a fallback; a web or backend component without its
bootstrap tool cannot be produced.  Generated projects are minimal but
structurally valid, and always come with manual follow-up steps.
"""

from __future__ import annotations

import time
from pathlib import Path

from src.models import AndroidConfig, ComponentSpec, ComponentType, IOSConfig

from .base import ExecutionSpec, FallbackOutcome, FallbackRegistry
from .templates import TemplateRenderer, pascal_case

EMBEDDED_TOOL = "embedded-templates"


class TemplateFallbackGenerator:
    """Renders a fixed ``output path -> template`` map for one component type."""

    component_type: ComponentType
    warnings: tuple[str, ...] = ()
    steps: tuple[str, ...] = ()

    def __init__(self, renderer: TemplateRenderer | None = None) -> None:
        self.renderer = renderer or TemplateRenderer()

    def supports(self, component_type: str) -> bool:
        return component_type == self.component_type.value

    def manual_steps(self, component_type: str) -> list[str]:
        return list(self.steps) if self.supports(component_type) else []

    def file_map(self, component: ComponentSpec) -> dict[str, str]:
        raise NotImplementedError

    def context(self, component: ComponentSpec) -> dict[str, object]:
        raise NotImplementedError

    def expected_files(self, component: ComponentSpec) -> list[str]:
        return sorted(self.file_map(component))

    def output_dir(self, spec: ExecutionSpec) -> Path:
        return spec.target_dir / spec.dir_name

    async def generate(self, spec: ExecutionSpec) -> FallbackOutcome:
        """Render every file of the component under ``target_dir/<name>``.

        Raises:
            OSError: If a directory or file cannot be written.
        """
        start = time.monotonic()
        component = spec.component
        out_dir = self.output_dir(spec)
        out_dir.mkdir(parents=True, exist_ok=True)
        for rel in self.extra_dirs(component):
            (out_dir / rel).mkdir(parents=True, exist_ok=True)

        context = {
            **self.context(component),
            "manual_steps": self.manual_steps(component.type.value),
        }
        written = await self.renderer.render_files(self.file_map(component), out_dir, context)
        return FallbackOutcome(
            output_path=str(out_dir),
            manual_steps=self.manual_steps(component.type.value),
            warnings=list(self.warnings),
            files=[str(p.relative_to(out_dir)) for p in written],
            duration=time.monotonic() - start,
        )

    def extra_dirs(self, component: ComponentSpec) -> list[str]:
        """Directories that must exist even though no template writes into them."""
        return []


def _app_name(component: ComponentSpec, configured: str) -> str:
    return configured or pascal_case(component.name) or "MyApp"


class AndroidFallbackGenerator(TemplateFallbackGenerator):
    component_type = ComponentType.ANDROID
    warnings = (
        "This is a minimal Android project structure",
        "Android Studio and Gradle setup required",
        "Dependencies need to be synced manually",
    )
    steps = (
        "Install Android Studio from https://developer.android.com/studio",
        "Open the project in Android Studio",
        "Wait for Gradle sync to complete",
        "Configure Android SDK if not already installed",
        "Update dependencies in build.gradle files as needed",
        "Run the app on an emulator or physical device",
    )

    def _config(self, component: ComponentSpec) -> AndroidConfig:
        config = component.config
        assert isinstance(config, AndroidConfig)
        return config

    def context(self, component: ComponentSpec) -> dict[str, object]:
        config = self._config(component)
        app_name = _app_name(component, config.app_name)
        return {
            "app_name": app_name,
            "theme_name": pascal_case(app_name),
            "package_name": config.package_name,
            "min_sdk": config.min_sdk,
            "target_sdk": config.target_sdk,
        }

    def file_map(self, component: ComponentSpec) -> dict[str, str]:
        package_path = self._config(component).package_name.replace(".", "/")
        return {
            "settings.gradle": "android/settings.gradle.j2",
            "build.gradle": "android/build.gradle.j2",
            "gradle.properties": "android/gradle.properties.j2",
            "app/build.gradle": "android/app_build.gradle.j2",
            "app/proguard-rules.pro": "android/proguard-rules.pro.j2",
            "app/src/main/AndroidManifest.xml": "android/AndroidManifest.xml.j2",
            f"app/src/main/java/{package_path}/MainActivity.kt": "android/MainActivity.kt.j2",
            "app/src/main/res/layout/activity_main.xml": "android/activity_main.xml.j2",
            "app/src/main/res/values/strings.xml": "android/strings.xml.j2",
            "app/src/main/res/values/colors.xml": "android/colors.xml.j2",
            "app/src/main/res/values/themes.xml": "android/themes.xml.j2",
            "gradle/wrapper/gradle-wrapper.properties": "android/gradle-wrapper.properties.j2",
            ".gitignore": "android/gitignore.j2",
            "README.md": "android/README.md.j2",
        }

    def extra_dirs(self, component: ComponentSpec) -> list[str]:
        package_path = self._config(component).package_name.replace(".", "/")
        return [
            "app/src/main/res/drawable",
            f"app/src/test/java/{package_path}",
            f"app/src/androidTest/java/{package_path}",
        ]


class IOSFallbackGenerator(TemplateFallbackGenerator):
    component_type = ComponentType.IOS
    warnings = (
        "This is a minimal iOS project structure",
        "Xcode is required to build and run the project",
        "Code signing configuration needed",
    )
    steps = (
        "Install Xcode from the Mac App Store",
        "Open the .xcodeproj file in Xcode",
        "Configure code signing in Xcode project settings",
        "Select a development team in the Signing & Capabilities tab",
        "Choose a simulator or connect a physical iOS device",
        "Build and run the project using Cmd+R",
    )

    def _config(self, component: ComponentSpec) -> IOSConfig:
        config = component.config
        assert isinstance(config, IOSConfig)
        return config

    def context(self, component: ComponentSpec) -> dict[str, object]:
        config = self._config(component)
        return {
            "app_name": pascal_case(_app_name(component, config.app_name)),
            "bundle_id": config.bundle_id,
            "organization": config.organization,
            "deployment_target": config.deployment_target,
        }

    def file_map(self, component: ComponentSpec) -> dict[str, str]:
        app = self.context(component)["app_name"]
        assets = f"{app}/Assets.xcassets"
        return {
            f"{app}.xcodeproj/project.pbxproj": "ios/project.pbxproj.j2",
            f"{app}/{app}App.swift": "ios/App.swift.j2",
            f"{app}/ContentView.swift": "ios/ContentView.swift.j2",
            f"{assets}/Contents.json": "ios/AssetsContents.json.j2",
            f"{assets}/AppIcon.appiconset/Contents.json": "ios/AppIconContents.json.j2",
            f"{assets}/AccentColor.colorset/Contents.json": "ios/AccentColorContents.json.j2",
            f"{app}/Preview Content/Preview Assets.xcassets/Contents.json": "ios/AssetsContents.json.j2",
            f"{app}/Info.plist": "ios/Info.plist.j2",
            f"{app}Tests/{app}Tests.swift": "ios/Tests.swift.j2",
            f"{app}UITests/{app}UITests.swift": "ios/UITests.swift.j2",
            f"{app}UITests/{app}UITestsLaunchTests.swift": "ios/UITestsLaunchTests.swift.j2",
            ".gitignore": "ios/gitignore.j2",
            "README.md": "ios/README.md.j2",
        }


def default_fallback_registry(renderer: TemplateRenderer | None = None) -> FallbackRegistry:
    """Registry with the Android and iOS fallback generators."""
    registry = FallbackRegistry()
    registry.register(AndroidFallbackGenerator(renderer))
    registry.register(IOSFallbackGenerator(renderer))
    return registry
