from typing import Any, Dict, Iterable
from app.schemas.account import PatchOperation


class JsonPatchError(ValueError):
    """Operation could not be applied to the document"""

    def __init__(self, path: str, message: str):
        super().__init__(f"{path}: {message}")
        self.path = path
        self.message = message


def _resolve_path(document: Dict[str, Any], path: str | None) -> str:
    """
    Map a JSON pointer onto a top-level key of a flat document.

    Member names are matched case-insensitively, so "/FirstName" and
    "/firstname" both address "firstName".
    """
    if not path or not path.startswith("/"):
        raise JsonPatchError(str(path), "Path must be a JSON pointer to a field")

    segments = path[1:].split("/")
    if len(segments) != 1 or not segments[0]:
        raise JsonPatchError(path, "Only top-level fields can be patched")

    # JSON pointer escapes: ~1 is "/", ~0 is "~" (order matters)
    name = segments[0].replace("~1", "/").replace("~0", "~")
    for key in document:
        if key.lower() == name.lower():
            return key
    raise JsonPatchError(path, f"The target location '{name}' does not exist")


def apply_patch(
    document: Dict[str, Any],
    operations: Iterable[PatchOperation],
    protected: Iterable[str] = (),
) -> Dict[str, Any]:
    """
    Apply RFC 6902 operations, in order, to a copy of a flat document.

    The document's key set is fixed: "add" on a known field behaves like
    "replace", and "remove" clears the field to None rather than deleting it,
    so required-field checks run on the result.

    Protected fields can be overwritten but never read: "copy", "move" and
    "test" may not name them as source or target.
    """
    result = dict(document)
    protected = set(protected)

    for operation in operations:
        target = _resolve_path(result, operation.path)
        source = None
        if operation.op in ("move", "copy"):
            source = _resolve_path(result, operation.from_)

        if operation.op in ("move", "copy", "test") and protected & {target, source}:
            raise JsonPatchError(
                operation.path, f"'{operation.op}' cannot be used on protected fields")

        if operation.op in ("add", "replace", "test"):
            if "value" not in operation.model_fields_set:
                raise JsonPatchError(operation.path, f"'{operation.op}' requires a value")

        if operation.op in ("add", "replace"):
            result[target] = operation.value
        elif operation.op == "remove":
            result[target] = None
        elif operation.op == "move":
            value = result[source]
            result[source] = None
            result[target] = value
        elif operation.op == "copy":
            result[target] = result[source]
        elif operation.op == "test":
            if result[target] != operation.value:
                raise JsonPatchError(operation.path, "Test operation failed")

    return result
