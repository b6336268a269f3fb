"""
Lifecycle Coordinator - runs module and application hooks on providers
and controllers.

Startup order:
1. ``on_module_init()`` per module, in load order (imports first)
2. ``on_application_bootstrap()`` on every instance

Shutdown order:
1. ``on_module_destroy()`` per module, in reverse load order
2. ``on_application_shutdown(signal)`` on every instance
3. shutdown listeners added with ``add_shutdown_listener``

Hooks may be sync or async. A failing startup hook rolls back (runs the
shutdown sequence) and raises ``LifecycleError``; failing shutdown hooks
are logged and cleanup continues.
"""

from __future__ import annotations

import inspect
import logging
from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Callable, Dict, List, Optional


logger = logging.getLogger("heron.lifecycle")


class LifecyclePhase(Enum):
    INIT = "init"
    STARTING = "starting"
    READY = "ready"
    STOPPING = "stopping"
    STOPPED = "stopped"
    ERROR = "error"


class LifecycleError(Exception):
    """Raised when a startup hook fails."""
    pass


ON_MODULE_INIT = "on_module_init"
ON_APPLICATION_BOOTSTRAP = "on_application_bootstrap"
ON_MODULE_DESTROY = "on_module_destroy"
ON_APPLICATION_SHUTDOWN = "on_application_shutdown"


@dataclass
class ModuleInstances:
    module_class: type
    instances: List[Any] = field(default_factory=list)

    @property
    def name(self) -> str:
        return self.module_class.__name__


def has_hook(instance: Any, hook: str) -> bool:
    return instance is not None and callable(getattr(instance, hook, None))


async def _call(instance: Any, hook: str, *args: Any) -> None:
    result = getattr(instance, hook)(*args)
    if inspect.isawaitable(result):
        await result


class LifecycleCoordinator:
    """
    Tracks the instances each module owns and drives their hooks.

    An instance shared by several modules (an imported provider) receives
    each application-level hook once.
    """

    def __init__(self):
        self.phase = LifecyclePhase.INIT
        self._modules: List[ModuleInstances] = []
        self._shutdown_listeners: List[Callable[[], Any]] = []
        self.logger = logger

    def register_module(self, module_class: type, instances: List[Any]) -> None:
        self._modules.append(ModuleInstances(module_class, list(instances)))

    def add_shutdown_listener(self, listener: Callable[[], Any]) -> None:
        self._shutdown_listeners.append(listener)

    def instances(self) -> List[Any]:
        """Every registered instance once, in registration order."""
        seen: Dict[int, Any] = {}
        for entry in self._modules:
            for instance in entry.instances:
                seen.setdefault(id(instance), instance)
        return list(seen.values())

    # ------------------------------------------------------------------
    # Startup
    # ------------------------------------------------------------------

    async def startup(self) -> None:
        if self.phase is not LifecyclePhase.INIT:
            raise LifecycleError(
                f"Cannot start from phase {self.phase.value}. Must be in INIT phase."
            )

        self.phase = LifecyclePhase.STARTING
        self.logger.info("Starting application lifecycle...")

        try:
            initialized: set = set()
            for entry in self._modules:
                self.logger.debug("Initializing module %s", entry.name)
                for instance in entry.instances:
                    if id(instance) in initialized:
                        continue
                    initialized.add(id(instance))
                    await self._run_startup_hook(instance, ON_MODULE_INIT)

            for instance in self.instances():
                await self._run_startup_hook(instance, ON_APPLICATION_BOOTSTRAP)

        except LifecycleError as exc:
            self.phase = LifecyclePhase.ERROR
            self.logger.error("Startup failed: %s", exc)
            self.logger.info("Rolling back started modules...")
            await self.shutdown("STARTUP_FAILED")
            raise

        self.phase = LifecyclePhase.READY
        self.logger.info("Application started (%d modules)", len(self._modules))

    async def _run_startup_hook(self, instance: Any, hook: str) -> None:
        if not has_hook(instance, hook):
            return
        name = type(instance).__name__
        try:
            await _call(instance, hook)
        except Exception as exc:
            raise LifecycleError(f"{name}.{hook} failed: {exc}") from exc
        self.logger.debug("%s.%s done", name, hook)

    # ------------------------------------------------------------------
    # Shutdown
    # ------------------------------------------------------------------

    async def shutdown(self, signal: Optional[str] = None) -> None:
        """Run shutdown hooks. Never raises."""
        if self.phase is LifecyclePhase.STOPPED:
            self.logger.debug("Already stopped")
            return

        self.phase = LifecyclePhase.STOPPING
        self.logger.info("Stopping application (signal: %s)", signal or "UNKNOWN")

        destroyed: set = set()
        for entry in reversed(self._modules):
            self.logger.debug("Destroying module %s", entry.name)
            for instance in entry.instances:
                if id(instance) in destroyed:
                    continue
                destroyed.add(id(instance))
                await self._run_shutdown_hook(instance, ON_MODULE_DESTROY)

        for instance in self.instances():
            await self._run_shutdown_hook(instance, ON_APPLICATION_SHUTDOWN, signal)

        for listener in self._shutdown_listeners:
            try:
                result = listener()
                if inspect.isawaitable(result):
                    await result
            except Exception:
                self.logger.error("Shutdown listener %r failed", listener, exc_info=True)

        self.phase = LifecyclePhase.STOPPED
        self.logger.info("Application stopped")

    async def _run_shutdown_hook(self, instance: Any, hook: str, *args: Any) -> None:
        if not has_hook(instance, hook):
            return
        try:
            await _call(instance, hook, *args)
        except Exception:
            self.logger.error("%s.%s failed", type(instance).__name__, hook, exc_info=True)

    def get_status(self) -> Dict[str, Any]:
        return {
            "phase": self.phase.value,
            "modules": [entry.name for entry in self._modules],
        }
