"""Binary glTF (.glb) container packing and reading.

Layout, all integers little-endian uint32::

    header  magic 0x46546C67 | version 2 | total length
    chunk   length | type 0x4E4F534A (JSON) | UTF-8 JSON, space padded
    chunk   length | type 0x004E4942 (BIN)  | buffer bytes, zero padded

Every chunk body is padded to a multiple of 4 bytes. When a multi-file
.gltf is packed, the external .bin followed by every image is placed in the
single BIN chunk, each segment starting on a 4 byte boundary.
"""

from __future__ import annotations

import copy
import json
import struct
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from ..core.diagnostics import fail

GLB_MAGIC = 0x46546C67
GLB_VERSION = 2
CHUNK_JSON = 0x4E4F534A
CHUNK_BIN = 0x004E4942

HEADER_SIZE = 12
CHUNK_HEADER_SIZE = 8
ALIGNMENT = 4


def aligned_length(length: int) -> int:
    remainder = length % ALIGNMENT
    if remainder == 0:
        return length
    return length + (ALIGNMENT - remainder)


@dataclass(frozen=True)
class GlbContainer:
    version: int
    length: int
    json: Dict[str, Any]
    bin: Optional[bytes]
    json_chunk_length: int
    bin_chunk_length: Optional[int]

    def to_dict(self) -> dict:
        return {
            "version": self.version,
            "length": self.length,
            "json_chunk_length": self.json_chunk_length,
            "bin_chunk_length": self.bin_chunk_length,
        }


def pack_glb(
    gltf_json: Dict[str, Any],
    bin_data: bytes,
    images: Sequence[Tuple[str, bytes]] = (),
) -> bytes:
    """Pack a .gltf document, its single .bin buffer and image files into .glb bytes.

    Images are matched to ``images[].uri`` by name; a matching image entry has
    its ``uri`` replaced by the index of a new buffer view. The input document
    is left untouched.
    """
    document = copy.deepcopy(gltf_json)
    images = list(images)
    buffers = document.get("buffers") or []
    if len(buffers) != 1:
        raise fail(
            "E-GLB-BUFFERS",
            f"The gltf should have one buffer and it has {len(buffers)}",
            hints=["Merge buffers into a single .bin before packing"],
        )

    view_by_uri: Dict[str, int] = {}
    body_length = aligned_length(len(bin_data))
    for uri, payload in images:
        buffer_views = document.setdefault("bufferViews", [])
        view_by_uri[uri] = len(buffer_views)
        buffer_views.append({"buffer": 0, "byteOffset": body_length, "byteLength": len(payload)})
        body_length += aligned_length(len(payload))

    buffers[0]["byteLength"] = body_length
    buffers[0].pop("uri", None)

    for image in document.get("images") or []:
        # base64 data uris never match a file name
        view = view_by_uri.get(image.get("uri"))
        if view is not None:
            del image["uri"]
            image["bufferView"] = view

    json_bytes = json.dumps(document, separators=(",", ":")).encode("utf-8")
    json_body = json_bytes + b" " * (aligned_length(len(json_bytes)) - len(json_bytes))

    bin_body = bytearray()
    for segment in [bin_data, *(payload for _, payload in images)]:
        bin_body += segment
        bin_body += b"\x00" * (aligned_length(len(segment)) - len(segment))

    total = HEADER_SIZE + CHUNK_HEADER_SIZE + len(json_body) + CHUNK_HEADER_SIZE + len(bin_body)
    parts = [
        struct.pack("<III", GLB_MAGIC, GLB_VERSION, total),
        struct.pack("<II", len(json_body), CHUNK_JSON),
        json_body,
        struct.pack("<II", len(bin_body), CHUNK_BIN),
        bytes(bin_body),
    ]
    return b"".join(parts)


def pack_gltf_files(paths: Sequence[Path]) -> bytes:
    gltf_path: Optional[Path] = None
    bin_path: Optional[Path] = None
    image_paths: List[Path] = []
    for raw in paths:
        path = Path(raw)
        if path.suffix == ".gltf":
            gltf_path = path
        elif path.suffix == ".bin":
            bin_path = path
        else:
            image_paths.append(path)

    if bin_path is None:
        raise fail(
            "E-GLB-MISSING-BIN",
            "No .bin file provided",
            location=None if gltf_path is None else str(gltf_path),
        )
    if gltf_path is None:
        raise fail("E-GLB-MISSING-GLTF", "No .gltf file provided", location=str(bin_path))

    with gltf_path.open("r", encoding="utf-8") as handle:
        document = json.load(handle)
    # Images are matched by file name, so all files are assumed to share one directory
    images = [(path.name, path.read_bytes()) for path in image_paths]
    return pack_glb(document, bin_path.read_bytes(), images)


def read_glb(data: bytes) -> GlbContainer:
    if len(data) < HEADER_SIZE:
        raise fail("E-GLB-HEADER", f"File is {len(data)} bytes, too short for a glb header")
    magic, version, length = struct.unpack_from("<III", data, 0)
    if magic != GLB_MAGIC:
        raise fail("E-GLB-HEADER", f"Bad glb magic 0x{magic:08X}")
    if version != GLB_VERSION:
        raise fail("E-GLB-HEADER", f"Unsupported glb version {version}")
    if length != len(data):
        raise fail("E-GLB-HEADER", f"Header length {length} does not match file size {len(data)}")

    chunks: List[Tuple[int, bytes]] = []
    offset = HEADER_SIZE
    while offset < length:
        if offset + CHUNK_HEADER_SIZE > length:
            raise fail("E-GLB-CHUNK", f"Truncated chunk header at byte {offset}")
        chunk_length, chunk_type = struct.unpack_from("<II", data, offset)
        start = offset + CHUNK_HEADER_SIZE
        end = start + chunk_length
        if end > length:
            raise fail("E-GLB-CHUNK", f"Chunk at byte {offset} runs past the end of the file")
        chunks.append((chunk_type, data[start:end]))
        offset = end

    if not chunks or chunks[0][0] != CHUNK_JSON:
        raise fail("E-GLB-CHUNK", "The first chunk must be JSON")
    json_body = chunks[0][1]
    try:
        document = json.loads(json_body.decode("utf-8"))
    except (UnicodeDecodeError, json.JSONDecodeError) as exc:
        raise fail("E-GLB-CHUNK", f"JSON chunk is not valid JSON: {exc}") from exc

    bin_body: Optional[bytes] = None
    if len(chunks) > 1:
        if chunks[1][0] != CHUNK_BIN:
            raise fail("E-GLB-CHUNK", f"Unexpected chunk type 0x{chunks[1][0]:08X}")
        bin_body = chunks[1][1]

    return GlbContainer(
        version=version,
        length=length,
        json=document,
        bin=bin_body,
        json_chunk_length=len(json_body),
        bin_chunk_length=None if bin_body is None else len(bin_body),
    )


def load_glb(path: Path) -> GlbContainer:
    path = Path(path)
    if path.suffix != ".glb":
        raise fail(
            "E-GLB-SUFFIX",
            "When only a single file is provided, it must be a .glb",
            location=str(path),
        )
    return read_glb(path.read_bytes())


def load_container(paths: Sequence[Path]) -> GlbContainer:
    """Load a single .glb, or pack .gltf + .bin + images first."""
    if len(paths) == 1:
        return load_glb(paths[0])
    return read_glb(pack_gltf_files(paths))
