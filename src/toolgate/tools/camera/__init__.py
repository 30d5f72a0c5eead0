"""
camera - Photos, short clips and screen recordings from remote nodes

Responsibilities:
- Require a node id on every action; refuse nodes outside ``allowed_nodes``
- Range-check capture options before reaching the node
- Cap clip and screen-record duration (ERR_LIMIT_REACHED)
- Surface node failures with their node sentinels, so an offline node
  reads as retryable and a missing capability as permanent
"""

from __future__ import annotations

import logging
from enum import Enum
from typing import Iterable

from pydantic import BaseModel

from toolgate.core.action_dispatch import ActionMap, dispatch
from toolgate.core.field_validation import require_field, validate_positive, validate_range
from toolgate.core.request_scope import RequestScope
from toolgate.core.tool_executor import HandlerOutput, Structured, execute
from toolgate.exceptions import ERR_LIMIT_REACHED, ERR_NODE_NOT_ALLOWED, DomainError, InvalidInputError
from toolgate.schemas import ToolResult, ToolSchema
from toolgate.tools.base import BaseTool, call_backend, load_parameters
from toolgate.tools.camera.backend import (
    CameraBackend,
    ClipRequest,
    NodeCameraBackend,
    ScreenRecordRequest,
    SnapRequest,
)

logger = logging.getLogger(__name__)

_SUBSYSTEM = "camera"

MAX_DELAY_MS = 10_000
MAX_QUALITY = 100
MAX_WIDTH = 4096
MAX_SCREEN_FPS = 30
DEFAULT_MAX_CLIP_SECONDS = 60.0

FACINGS = ("front", "back", "both")


class CameraAction(str, Enum):
    SNAP = "snap"
    CLIP = "clip"
    LIST_DEVICES = "list_devices"
    SCREEN_RECORD = "screen_record"


class CameraParams(BaseModel):
    action: str
    node_id: str = ""
    facing: str = ""
    max_width: int = 0
    quality: int = 0
    delay_ms: int = 0
    device_id: str = ""
    duration_ms: int = 0
    include_audio: bool | None = None
    fps: int = 0
    screen_index: int = 0


def validate_facing(facing: str, allow_both: bool) -> None:
    if not facing:
        return
    if facing not in FACINGS:
        raise InvalidInputError(f"invalid facing {facing!r}", field="facing")
    if facing == "both" and not allow_both:
        raise InvalidInputError(
            f"facing {facing!r} not supported for this action (want: front, back)", field="facing"
        )


class CameraTool(BaseTool):
    """Capture on remote nodes behind a pluggable backend."""

    def __init__(
        self,
        backend: CameraBackend | None = None,
        timeout: float = 30.0,
        max_clip_seconds: float = DEFAULT_MAX_CLIP_SECONDS,
        allowed_nodes: Iterable[str] = (),
    ):
        self._backend = backend or NodeCameraBackend()
        self._timeout = timeout
        self._max_clip_ms = int((max_clip_seconds if max_clip_seconds > 0 else DEFAULT_MAX_CLIP_SECONDS) * 1000)
        self._allowed_nodes = frozenset(allowed_nodes)
        self._schema = ToolSchema(
            name="camera",
            description=(
                "Capture photos, record short video clips, record screen, and list cameras on remote nodes. "
                "Pass the target node_id to every action."
            ),
            parameters=load_parameters(__file__),
        )
        self._handler = dispatch(
            lambda p: p.action,
            ActionMap.for_enum(
                CameraAction,
                {
                    CameraAction.SNAP: self._snap,
                    CameraAction.CLIP: self._clip,
                    CameraAction.LIST_DEVICES: self._list_devices,
                    CameraAction.SCREEN_RECORD: self._screen_record,
                },
            ),
        )

    @property
    def schema(self) -> ToolSchema:
        return self._schema

    async def execute(self, params: bytes | str, scope: RequestScope | None = None) -> ToolResult:
        return await execute(scope or RequestScope(), "tool.camera", params, CameraParams, self._handler, logger)

    async def _call(self, scope: RequestScope, awaitable, op: str):
        return await call_backend(scope, awaitable, op=op, timeout=self._timeout, subsystem=_SUBSYSTEM)

    def _check_node(self, op: str, p: CameraParams) -> None:
        require_field("node_id", p.node_id)
        if self._allowed_nodes and p.node_id not in self._allowed_nodes:
            raise DomainError(op, ERR_NODE_NOT_ALLOWED, p.node_id, subsystem=_SUBSYSTEM)

    def _check_duration(self, op: str, duration_ms: int) -> None:
        validate_positive("duration_ms", duration_ms)
        if duration_ms > self._max_clip_ms:
            raise DomainError(
                op, ERR_LIMIT_REACHED,
                f"{duration_ms} ms (max {self._max_clip_ms})",
                subsystem=_SUBSYSTEM,
            )

    async def _snap(self, scope: RequestScope, p: CameraParams) -> HandlerOutput:
        self._check_node("snap", p)
        validate_facing(p.facing, allow_both=True)
        validate_range("quality", p.quality, 0, MAX_QUALITY)
        validate_range("max_width", p.max_width, 0, MAX_WIDTH)
        validate_range("delay_ms", p.delay_ms, 0, MAX_DELAY_MS)

        req = SnapRequest(
            node_id=p.node_id,
            facing=p.facing,
            max_width=p.max_width,
            quality=p.quality,
            delay_ms=p.delay_ms,
            device_id=p.device_id,
        )
        capture = await self._call(scope, self._backend.snap(req), "snap")
        logger.info("camera snap on %s: %s, %d bytes", p.node_id, capture.format, capture.size_bytes)
        return Structured(capture)

    async def _clip(self, scope: RequestScope, p: CameraParams) -> HandlerOutput:
        self._check_node("clip", p)
        self._check_duration("clip", p.duration_ms)
        validate_facing(p.facing, allow_both=False)

        req = ClipRequest(
            node_id=p.node_id,
            duration_ms=p.duration_ms,
            facing=p.facing,
            include_audio=True if p.include_audio is None else p.include_audio,
            device_id=p.device_id,
        )
        capture = await self._call(scope, self._backend.clip(req), "clip")
        logger.info("camera clip on %s: %d ms, %d bytes", p.node_id, capture.duration_ms, capture.size_bytes)
        return Structured(capture)

    async def _list_devices(self, scope: RequestScope, p: CameraParams) -> HandlerOutput:
        self._check_node("list_devices", p)
        devices = await self._call(scope, self._backend.list_devices(p.node_id), "list_devices")
        return Structured({"node_id": p.node_id, "devices": devices, "count": len(devices)})

    async def _screen_record(self, scope: RequestScope, p: CameraParams) -> HandlerOutput:
        self._check_node("screen_record", p)
        self._check_duration("screen_record", p.duration_ms)
        validate_range("fps", p.fps, 0, MAX_SCREEN_FPS)
        if p.screen_index < 0:
            raise InvalidInputError("screen_index must be >= 0", field="screen_index")

        req = ScreenRecordRequest(
            node_id=p.node_id,
            duration_ms=p.duration_ms,
            fps=p.fps,
            screen_index=p.screen_index,
            include_audio=True if p.include_audio is None else p.include_audio,
        )
        capture = await self._call(scope, self._backend.screen_record(req), "screen_record")
        logger.info("screen recording on %s: %d ms, %d bytes", p.node_id, capture.duration_ms, capture.size_bytes)
        return Structured(capture)


__all__ = ["CameraAction", "CameraParams", "CameraTool", "validate_facing"]
