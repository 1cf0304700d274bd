"""The action dispatcher.

ActionDispatcher is the single entry point for action requests. Each
dispatch runs the same pipeline:

1. structural validation of the request,
2. the handler's own parameter validation (when enabled),
3. context validation (core fields plus the handler's declared fields),
4. method lookup and the unsafe-handler gate,
5. admission against the in-flight ceiling,
6. execution raced against the timeout,
7. metrics and event notification.

Every failure along the way is turned into a failed ActionResponse; a
dispatch never raises to its caller.

Example:
    >>> services = ActionServices.create()
    >>> dispatcher = ActionDispatcher(build_default_registry(services))
    >>> response = asyncio.run(dispatcher.dispatch(
    ...     {"id": "r1", "method": "roll", "params": {"expression": "1d20"}},
    ...     {"sessionId": "s", "participantId": "hero", "turn": 1, "round": 1},
    ... ))
    >>> response.success
    True
"""

from __future__ import annotations

import asyncio
import threading
import time
from collections.abc import Mapping
from datetime import UTC, datetime
from functools import partial
from typing import Any

from pydantic import BaseModel, ValidationError

from rpg_engine.core.config import DispatchConfig, get_settings
from rpg_engine.core.constants import EVENT_SOURCE, REQUIRED_CONTEXT_FIELDS
from rpg_engine.core.exceptions import (
    ActionTimeoutError,
    ConcurrencyExceededError,
    DispatchError,
    DispatcherDisabledError,
    HandlerFailureError,
    InvalidParametersError,
    MalformedRequestError,
    MissingContextError,
    RestrictedMethodError,
    UnknownMethodError,
)
from rpg_engine.core.logging import get_logger, log_context
from rpg_engine.dispatch.events import EventBus, Listener
from rpg_engine.dispatch.handlers import ActionHandler
from rpg_engine.dispatch.registry import HandlerRegistry
from rpg_engine.models.enums import DispatcherState, EventType
from rpg_engine.models.protocol import (
    ActionContext,
    ActionEvent,
    ActionRequest,
    ActionResponse,
    DispatcherStats,
    DispatchMetrics,
    FunctionSpec,
)


logger = get_logger(__name__)


def _peek(request: Any, field: str) -> str:
    """Best-effort read of a request field for error reporting."""
    value = request.get(field) if isinstance(request, Mapping) else getattr(request, field, None)
    return value if isinstance(value, str) else ""


class ActionDispatcher:
    """Validate, admit, run and account for action requests.

    The dispatcher holds an immutable DispatchConfig snapshot; each
    dispatch reads the snapshot once, and reconfiguration replaces it.
    The in-flight set and the metrics are guarded by a lock.

    Attributes:
        registry: The frozen handler registry.
    """

    def __init__(
        self,
        registry: HandlerRegistry,
        *,
        config: DispatchConfig | None = None,
    ) -> None:
        """Initialize the dispatcher.

        Args:
            registry: Handlers to dispatch to.
            config: Configuration snapshot; built from settings if omitted.
        """
        self.registry = registry
        self._config = config if config is not None else DispatchConfig.from_settings(
            get_settings().dispatch
        )
        self._events = EventBus()
        self._lock = threading.Lock()
        self._active: dict[str, object] = {}
        self._abandoned: set[asyncio.Task[Any]] = set()
        self._metrics = DispatchMetrics()
        self._enabled = True
        self._last_failed = False

        self._log("info", "Action dispatcher initialized", handlers=len(registry))

    # -------------------------------------------------------------------------
    # Introspection
    # -------------------------------------------------------------------------

    @property
    def config(self) -> DispatchConfig:
        return self._config

    @property
    def metrics(self) -> DispatchMetrics:
        """A snapshot of the running metrics."""
        with self._lock:
            return self._metrics.model_copy(deep=True)

    @property
    def active_requests(self) -> list[str]:
        """IDs of the admitted, not yet completed requests."""
        with self._lock:
            return list(self._active)

    @property
    def state(self) -> DispatcherState:
        if not self._enabled:
            return DispatcherState.DISABLED
        with self._lock:
            if self._active:
                return DispatcherState.PROCESSING
        if self._last_failed:
            return DispatcherState.ERROR
        return DispatcherState.IDLE

    @property
    def enabled(self) -> bool:
        return self._enabled

    def available_functions(self) -> list[FunctionSpec]:
        """Catalog of the functions callers may invoke under the current config."""
        return self.registry.catalog(include_unsafe=self._config.allow_unsafe_functions)

    def detailed_stats(self) -> DispatcherStats:
        return DispatcherStats(
            state=self.state,
            metrics=self.metrics,
            active_requests=self.active_requests,
            registered_functions=self.registry.names(),
            listener_count=self._events.listener_count,
            config=self._config,
        )

    # -------------------------------------------------------------------------
    # Control
    # -------------------------------------------------------------------------

    def configure(self, **changes: Any) -> DispatchConfig:
        """Replace the configuration snapshot.

        Args:
            **changes: Options to override (snake_case or camelCase).

        Returns:
            The new snapshot.

        Raises:
            ConfigurationError: If the resulting configuration is invalid.
        """
        self._config = self._config.merged(**changes)
        self._log("info", "Dispatcher reconfigured", changes=changes)
        self._emit(EventType.SYSTEM, {"event": "configured", "changes": changes})
        return self._config

    def disable(self) -> None:
        """Reject new requests, drop the in-flight bookkeeping and all listeners.

        Handlers already running are not interrupted.
        """
        self._enabled = False
        with self._lock:
            self._active.clear()
        self._events.clear()
        self._log("warning", "Dispatcher disabled")

    def enable(self) -> None:
        self._enabled = True
        self._log("info", "Dispatcher enabled")
        self._emit(EventType.SYSTEM, {"event": "enabled"})

    def cancel(self, request_id: str) -> bool:
        """Forget an in-flight request.

        The handler keeps running; only the bookkeeping is removed, which
        frees its admission slot.

        Returns:
            True if the request was in flight.
        """
        with self._lock:
            removed = self._active.pop(request_id, None) is not None
        if removed:
            self._log("info", "Request cancelled", request_id=request_id)
            self._emit(EventType.SYSTEM, {"event": "cancelled", "requestId": request_id})
        return removed

    def reset_metrics(self) -> None:
        with self._lock:
            self._metrics = DispatchMetrics()

    def add_listener(self, event_type: EventType | str, listener: Listener) -> None:
        self._events.subscribe(event_type, listener)

    def remove_listener(self, event_type: EventType | str, listener: Listener) -> bool:
        return self._events.unsubscribe(event_type, listener)

    def cleanup(self) -> None:
        """Tear down: clear listeners, bookkeeping and metrics, cancel abandoned tasks."""
        self._events.clear()
        with self._lock:
            self._active.clear()
            self._metrics = DispatchMetrics()
        for task in list(self._abandoned):
            task.cancel()
        self._abandoned.clear()
        self._last_failed = False
        self._log("info", "Dispatcher cleaned up")

    # -------------------------------------------------------------------------
    # Dispatch
    # -------------------------------------------------------------------------

    async def dispatch(
        self,
        request: ActionRequest | Mapping[str, Any],
        context: ActionContext | Mapping[str, Any] | None = None,
    ) -> ActionResponse:
        """Dispatch a request to its handler.

        Args:
            request: An ActionRequest or its wire form.
            context: An ActionContext or its wire form.

        Returns:
            The response. Failures are reported in ``error`` and
            ``error_kind``; this method does not raise.
        """
        config = self._config
        started = time.perf_counter()
        request_id = _peek(request, "id")
        method = _peek(request, "method")
        token: object | None = None

        try:
            if not self._enabled:
                raise DispatcherDisabledError(
                    "Dispatcher is disabled", request_id=request_id, method=method
                )

            parsed = self._parse_request(request)
            handler = self.registry.get(parsed.method)

            if handler is not None and config.validate_params:
                self._validate(handler, parsed)

            action_context = self._parse_context(context, parsed, handler)

            if handler is None:
                raise UnknownMethodError(
                    f"Unknown method: {parsed.method}", request_id=parsed.id, method=parsed.method
                )
            if handler.unsafe and not config.allow_unsafe_functions:
                raise RestrictedMethodError(
                    f"Method is restricted: {parsed.method}",
                    request_id=parsed.id,
                    method=parsed.method,
                )

            token = self._admit(parsed, config)
            self._log(
                "info",
                "Action dispatched",
                config=config,
                request_id=parsed.id,
                method=parsed.method,
                participant_id=action_context.participant_id,
            )
            result = await self._run(handler, parsed, action_context, config)
            payload = self._serialize(result, parsed)

        except DispatchError as exc:
            elapsed_ms = (time.perf_counter() - started) * 1000
            self._record(method, success=False, elapsed_ms=elapsed_ms)
            self._log(
                "warning",
                "Action failed",
                config=config,
                request_id=request_id,
                method=method,
                error_kind=exc.kind,
                error=exc.message,
            )
            self._emit(
                EventType.ERROR,
                {
                    "requestId": request_id,
                    "method": method,
                    "error": exc.message,
                    "errorKind": exc.kind.value,
                    "durationMs": elapsed_ms,
                },
            )
            return ActionResponse.failed(request_id, exc.message, exc.kind)

        finally:
            if token is not None:
                self._release(request_id, token)

        elapsed_ms = (time.perf_counter() - started) * 1000
        self._record(parsed.method, success=True, elapsed_ms=elapsed_ms)
        self._log(
            "info",
            "Action completed",
            config=config,
            request_id=parsed.id,
            method=parsed.method,
            duration_ms=round(elapsed_ms, 3),
        )
        self._emit(
            EventType.ACTION,
            {
                "requestId": parsed.id,
                "method": parsed.method,
                "participantId": action_context.participant_id,
                "success": True,
                "durationMs": elapsed_ms,
            },
        )
        return ActionResponse.ok(parsed.id, payload)

    # -------------------------------------------------------------------------
    # Pipeline steps
    # -------------------------------------------------------------------------

    @staticmethod
    def _parse_request(request: ActionRequest | Mapping[str, Any]) -> ActionRequest:
        if isinstance(request, ActionRequest):
            return request
        if not isinstance(request, Mapping):
            raise MalformedRequestError("Request must be an object")

        problems = []
        if not isinstance(request.get("id"), str) or not request.get("id"):
            problems.append("id")
        if not isinstance(request.get("method"), str) or not request.get("method"):
            problems.append("method")
        if not isinstance(request.get("params"), Mapping):
            problems.append("params")
        if problems:
            raise MalformedRequestError(
                f"Malformed request: missing or invalid {', '.join(problems)}",
                request_id=_peek(request, "id"),
                method=_peek(request, "method"),
            )

        try:
            return ActionRequest.model_validate(request)
        except ValidationError as exc:
            raise MalformedRequestError(
                f"Malformed request: {exc.error_count()} validation error(s)",
                request_id=_peek(request, "id"),
                method=_peek(request, "method"),
            ) from exc

    @staticmethod
    def _validate(handler: ActionHandler, request: ActionRequest) -> None:
        """Run the handler's validator; a validator that raises rejects the params."""
        try:
            validation = handler.validate(request.params)
        except Exception as exc:
            raise InvalidParametersError(
                [f"validation failed: {exc}"],
                request_id=request.id,
                method=request.method,
            ) from exc
        if not validation.valid:
            raise InvalidParametersError(
                validation.errors, request_id=request.id, method=request.method
            )

    @staticmethod
    def _parse_context(
        context: ActionContext | Mapping[str, Any] | None,
        request: ActionRequest,
        handler: ActionHandler | None,
    ) -> ActionContext:
        if context is None:
            context = ActionContext()
        elif not isinstance(context, ActionContext):
            try:
                context = ActionContext.model_validate(context)
            except ValidationError as exc:
                raise MalformedRequestError(
                    "Invalid action context",
                    request_id=request.id,
                    method=request.method,
                    details={"errors": exc.error_count()},
                ) from exc

        required = REQUIRED_CONTEXT_FIELDS
        if handler is not None:
            required = (*required, *handler.required_context)
        for field in required:
            if not context.has_field(field):
                raise MissingContextError(field, request_id=request.id, method=request.method)
        return context

    def _admit(self, request: ActionRequest, config: DispatchConfig) -> object:
        with self._lock:
            if request.id in self._active:
                raise MalformedRequestError(
                    f"Request already in flight: {request.id}",
                    request_id=request.id,
                    method=request.method,
                )
            if len(self._active) >= config.max_concurrent_actions:
                raise ConcurrencyExceededError(
                    f"Too many concurrent actions (max {config.max_concurrent_actions})",
                    request_id=request.id,
                    method=request.method,
                )
            token = object()
            self._active[request.id] = token
            return token

    def _release(self, request_id: str, token: object) -> None:
        with self._lock:
            if self._active.get(request_id) is token:
                del self._active[request_id]

    async def _run(
        self,
        handler: ActionHandler,
        request: ActionRequest,
        context: ActionContext,
        config: DispatchConfig,
    ) -> Any:
        with log_context(request_id=request.id, method=request.method):
            task = asyncio.create_task(
                handler.execute(request.params, context),
                name=f"action:{request.method}:{request.id}",
            )
        try:
            done, _ = await asyncio.wait({task}, timeout=config.timeout_seconds)
        except asyncio.CancelledError:
            self._abandon(task, request)
            raise

        if task not in done:
            self._abandon(task, request)
            raise ActionTimeoutError(
                f"Action timed out after {config.timeout_ms}ms",
                request_id=request.id,
                method=request.method,
            )

        error = task.exception()
        if isinstance(error, DispatchError):
            raise error
        if error is not None:
            raise HandlerFailureError(
                str(error),
                request_id=request.id,
                method=request.method,
            ) from error
        return task.result()

    def _abandon(self, task: asyncio.Task[Any], request: ActionRequest) -> None:
        """Keep a timed-out task referenced until it settles."""
        self._abandoned.add(task)
        task.add_done_callback(partial(self._on_abandoned_done, request.id, request.method))

    def _on_abandoned_done(self, request_id: str, method: str, task: asyncio.Task[Any]) -> None:
        self._abandoned.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.warning(
                "Abandoned action failed",
                request_id=request_id,
                method=method,
                error=str(error),
            )
        else:
            logger.debug("Abandoned action settled", request_id=request_id, method=method)

    def _record(self, method: str, *, success: bool, elapsed_ms: float) -> None:
        """Apply one completion to the metrics atomically."""
        with self._lock:
            metrics = self._metrics
            metrics.total_requests += 1
            if success:
                metrics.successful_requests += 1
                metrics.average_response_time += (
                    elapsed_ms - metrics.average_response_time
                ) / metrics.successful_requests
                metrics.functions_used[method] = metrics.functions_used.get(method, 0) + 1
            else:
                metrics.failed_requests += 1
            metrics.last_activity = datetime.now(UTC)
        self._last_failed = not success

    def _emit(self, event_type: EventType, data: dict[str, Any]) -> None:
        self._events.emit(ActionEvent(type=event_type, source=EVENT_SOURCE, data=data))

    def _log(
        self,
        level: str,
        event: str,
        *,
        config: DispatchConfig | None = None,
        **fields: Any,
    ) -> None:
        if (config or self._config).enable_logging:
            getattr(logger, level)(event, **fields)

    @staticmethod
    def _serialize(result: Any, request: ActionRequest) -> Any:
        try:
            if hasattr(result, "to_wire"):
                return result.to_wire()
            if isinstance(result, BaseModel):
                return result.model_dump(mode="json", by_alias=True)
        except Exception as exc:
            raise HandlerFailureError(
                f"Handler result could not be serialized: {exc}",
                request_id=request.id,
                method=request.method,
            ) from exc
        return result


__all__ = ["ActionDispatcher"]
