"""RFC 6902 JSON Patch generation between resource bodies."""

from __future__ import annotations

import copy
import json
from typing import Any, Iterable

import jsonpatch
from rich.text import Text

from manifest_audit.models.kubernetes import ExtendedPatch, PatchOperation
from manifest_audit.utils.errors import PatchGenerationError


def _unescape(segment: str) -> str:
    return segment.replace("~1", "/").replace("~0", "~")


def get_value_from_path(body: Any, path: str) -> Any:
    """Walk a body along a JSON Pointer.

    Maps are indexed by key and lists by integer index. Returns None for a
    missing key, an out-of-range index or a non-container on the way.
    """
    current = body
    for raw in path.lstrip("/").split("/"):
        segment = _unescape(raw)
        if isinstance(current, dict):
            current = current.get(segment)
        elif isinstance(current, list):
            if not segment.isdigit():
                return None
            index = int(segment)
            if index >= len(current):
                return None
            current = current[index]
        else:
            return None
    return current


def pointer_to_dot_notation(path: str) -> str:
    """Convert ``/spec/replicas`` to ``spec.replicas``."""
    return path.lstrip("/").replace("/", ".")


def format_value(value: Any) -> str:
    """Render a patch value for one-line summaries."""
    if value is None:
        return "null"
    if isinstance(value, bool):
        return "true" if value else "false"
    if isinstance(value, str):
        return value
    if isinstance(value, int):
        return str(value)
    if isinstance(value, float):
        return str(int(value)) if value.is_integer() else str(value)
    try:
        return json.dumps(value, separators=(",", ":"), sort_keys=True)
    except (TypeError, ValueError):
        return str(value)


class JSONPatches(list):
    """A list of ExtendedPatch with report helpers."""

    def __init__(self, patches: Iterable[ExtendedPatch] = ()) -> None:
        super().__init__(patches)

    def field_paths(self) -> list[str]:
        """Dot-notation path of every patch, in patch order."""
        return [pointer_to_dot_notation(p.path) for p in self]

    def pretty(self) -> Text:
        """One-line summary such as ``spec.replicas 2 → 3, metadata.labels.tier = web``."""
        if not self:
            return Text("No changes", style="dim")

        parts = []
        for patch in self:
            path = pointer_to_dot_notation(patch.path)
            if patch.op == PatchOperation.ADD:
                parts.append(f"{path} = {format_value(patch.value)}")
            elif patch.op == PatchOperation.REMOVE:
                parts.append(f"{path} {format_value(patch.old_value)} removed")
            elif patch.op == PatchOperation.REPLACE:
                parts.append(
                    f"{path} {format_value(patch.old_value)} → {format_value(patch.value)}"
                )
        return Text(", ".join(parts))


def _json_roundtrip(body: dict[str, Any] | None, side: str) -> dict[str, Any]:
    try:
        return json.loads(json.dumps(body or {}, default=str))
    except (TypeError, ValueError) as e:
        raise PatchGenerationError(f"failed to marshal {side} JSON: {e}") from e


def generate_json_patches(
    before: dict[str, Any] | None, after: dict[str, Any] | None
) -> JSONPatches:
    """Diff two resource bodies into add/remove/replace operations.

    ``move`` and ``copy`` operations from the diff are expanded into the
    equivalent remove and add steps. Replace and remove operations carry
    the value found at their path just before they apply.

    Raises:
        PatchGenerationError: If a body cannot be represented as JSON
    """
    src = _json_roundtrip(before, "before")
    dst = _json_roundtrip(after, "after")

    try:
        ops = jsonpatch.make_patch(src, dst).patch
    except jsonpatch.JsonPatchException as e:
        raise PatchGenerationError(f"failed to create JSON patch: {e}") from e

    # Operation paths address the document as patched so far, not the before body
    working = copy.deepcopy(src)
    patches = JSONPatches()
    for op in ops:
        name = op["op"]
        if name in ("move", "copy"):
            moved = get_value_from_path(working, op["from"])
            if name == "move":
                patches.append(ExtendedPatch(op=PatchOperation.REMOVE, path=op["from"], old_value=moved))
            patches.append(ExtendedPatch(op=PatchOperation.ADD, path=op["path"], value=moved))
        elif name in ("add", "remove", "replace"):
            operation = PatchOperation(name)
            old_value = None
            if operation != PatchOperation.ADD:
                old_value = get_value_from_path(working, op["path"])
            patches.append(
                ExtendedPatch(op=operation, path=op["path"], value=op.get("value"), old_value=old_value)
            )
        working = jsonpatch.apply_patch(working, [op])

    return patches
