"""
Camera backend interface and the node-backed implementation.

Captured media is base64 in the node response; it is decoded and written to
a temporary file whose path is returned. Callers own those files.
"""

from __future__ import annotations

import base64
import binascii
import tempfile
from abc import ABC, abstractmethod
from typing import Any

from pydantic import BaseModel, TypeAdapter, ValidationError

from toolgate.exceptions import ERR_LIMIT_REACHED, ERR_NODE_INVOKE, DomainError
from toolgate.tools.camera.nodes import MockNodeManager, NodeInvoker

_SUBSYSTEM = "camera"

DEFAULT_MAX_PAYLOAD_BYTES = 5 * 1024 * 1024

_EXTENSIONS = {"jpg": ".jpg", "jpeg": ".jpg", "png": ".png", "mp4": ".mp4", "webm": ".webm"}


class SnapRequest(BaseModel):
    node_id: str
    facing: str = ""
    max_width: int = 0
    quality: int = 0
    delay_ms: int = 0
    device_id: str = ""


class ClipRequest(BaseModel):
    node_id: str
    duration_ms: int
    facing: str = ""
    include_audio: bool = True
    device_id: str = ""


class ScreenRecordRequest(BaseModel):
    node_id: str
    duration_ms: int
    fps: int = 0
    screen_index: int = 0
    include_audio: bool = True


class CameraDevice(BaseModel):
    device_id: str
    label: str = ""
    facing: str = ""


class MediaCapture(BaseModel):
    file_path: str
    format: str
    size_bytes: int
    width: int = 0
    height: int = 0
    duration_ms: int = 0


class _NodeMedia(BaseModel):
    data: str
    format: str = ""
    width: int = 0
    height: int = 0
    duration_ms: int = 0


_DEVICES = TypeAdapter(list[CameraDevice])


class CameraBackend(ABC):
    """Camera and screen capture on remote nodes."""

    name: str = "abstract"

    @abstractmethod
    async def snap(self, req: SnapRequest) -> MediaCapture: ...

    @abstractmethod
    async def clip(self, req: ClipRequest) -> MediaCapture: ...

    @abstractmethod
    async def list_devices(self, node_id: str) -> list[CameraDevice]: ...

    @abstractmethod
    async def screen_record(self, req: ScreenRecordRequest) -> MediaCapture: ...


def _options(req: BaseModel) -> dict[str, Any]:
    """Request fields for the node, unset (zero/empty) optionals dropped."""
    return {
        key: value
        for key, value in req.model_dump(exclude={"node_id"}).items()
        if isinstance(value, bool) or value
    }


class NodeCameraBackend(CameraBackend):
    """Delegates each capture to a node capability (``camera_snap``, ...)."""

    name = "node"

    def __init__(
        self,
        nodes: NodeInvoker | None = None,
        max_payload_bytes: int = DEFAULT_MAX_PAYLOAD_BYTES,
        media_dir: str | None = None,
    ):
        self._nodes = nodes or MockNodeManager()
        self._max_payload_bytes = max_payload_bytes if max_payload_bytes > 0 else DEFAULT_MAX_PAYLOAD_BYTES
        self._media_dir = media_dir

    async def snap(self, req: SnapRequest) -> MediaCapture:
        return await self._capture("camera_snap", req)

    async def clip(self, req: ClipRequest) -> MediaCapture:
        return await self._capture("camera_clip", req)

    async def screen_record(self, req: ScreenRecordRequest) -> MediaCapture:
        return await self._capture("screen_record", req)

    async def list_devices(self, node_id: str) -> list[CameraDevice]:
        raw = await self._nodes.invoke(node_id, "camera_list", {})
        try:
            return _DEVICES.validate_python(raw)
        except ValidationError as exc:
            raise DomainError(
                "camera_list", ERR_NODE_INVOKE, "malformed device list", subsystem=_SUBSYSTEM
            ) from exc

    async def _capture(self, capability: str, req: SnapRequest | ClipRequest | ScreenRecordRequest) -> MediaCapture:
        raw = await self._nodes.invoke(req.node_id, capability, _options(req))
        try:
            media = _NodeMedia.model_validate(raw)
        except ValidationError as exc:
            raise DomainError(capability, ERR_NODE_INVOKE, "malformed media response", subsystem=_SUBSYSTEM) from exc

        path, size = self._write_media(capability, media)
        return MediaCapture(
            file_path=path,
            format=media.format,
            size_bytes=size,
            width=media.width,
            height=media.height,
            duration_ms=media.duration_ms,
        )

    def _write_media(self, capability: str, media: _NodeMedia) -> tuple[str, int]:
        if not media.data:
            raise DomainError(capability, ERR_NODE_INVOKE, "empty media payload", subsystem=_SUBSYSTEM)
        if len(media.data) > self._max_payload_bytes:
            raise DomainError(
                capability, ERR_LIMIT_REACHED,
                f"payload too large: {len(media.data)} bytes (max {self._max_payload_bytes})",
                subsystem=_SUBSYSTEM,
            )
        try:
            decoded = base64.b64decode(media.data, validate=True)
        except binascii.Error as exc:
            raise DomainError(capability, ERR_NODE_INVOKE, "media is not valid base64", subsystem=_SUBSYSTEM) from exc

        suffix = _EXTENSIONS.get(media.format.lower(), ".bin")
        with tempfile.NamedTemporaryFile(
            prefix=f"toolgate-{capability.replace('_', '-')}-",
            suffix=suffix,
            dir=self._media_dir,
            delete=False,
        ) as f:
            f.write(decoded)
        return f.name, len(decoded)


__all__ = [
    "CameraBackend",
    "CameraDevice",
    "ClipRequest",
    "MediaCapture",
    "NodeCameraBackend",
    "ScreenRecordRequest",
    "SnapRequest",
]
