"""Render a CDP accessibility tree as a YAML-like aria snapshot.

Each element line looks like ``- button "Submit" [disabled] [ref=e12]``.
Refs map back to backend DOM node ids so tools can act on snapshot elements.
"""

from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any

LARGE_TEXT_CHARS = 200
_MAX_DEPTH = 200

# Structural wrappers rendered through (their children move up a level).
_TRANSPARENT_ROLES = {"RootWebArea", "WebArea", "generic", "none", "presentation", "GenericContainer", "Section"}
_SKIPPED_ROLES = {"InlineTextBox", "LineBreak", "ListMarker"}
_TEXT_ROLES = {"StaticText", "text"}
_VALUE_ROLES = {"textbox", "searchbox", "combobox", "spinbutton", "slider", "TextField"}
_FLAG_PROPERTIES = ("checked", "disabled", "expanded", "pressed", "selected")


@dataclass
class SnapshotFilter:
    max_elements: int | None = None
    element_types: set[str] | None = None
    skip_large_texts: bool = False

    @classmethod
    def from_params(cls, params: dict[str, Any]) -> SnapshotFilter:
        max_elements = params.get("maxElements")
        types = params.get("elementTypes")
        return cls(
            max_elements=int(max_elements) if isinstance(max_elements, int) and max_elements > 0 else None,
            element_types={str(t).lower() for t in types} if isinstance(types, list) and types else None,
            skip_large_texts=bool(params.get("skipLargeTexts", False)),
        )


@dataclass
class AriaSnapshot:
    text: str
    refs: dict[str, int] = field(default_factory=dict)
    omitted: int = 0


def _value(obj: Any) -> Any:
    if isinstance(obj, dict):
        return obj.get("value")
    return None


def _properties(node: dict[str, Any]) -> dict[str, Any]:
    out: dict[str, Any] = {}
    props = node.get("properties")
    if isinstance(props, list):
        for prop in props:
            if isinstance(prop, dict) and isinstance(prop.get("name"), str):
                out[prop["name"]] = _value(prop.get("value"))
    return out


def _quote(text: str) -> str:
    return json.dumps(text, ensure_ascii=False)


class _Renderer:
    def __init__(self, nodes: list[dict[str, Any]], flt: SnapshotFilter) -> None:
        self.by_id: dict[str, dict[str, Any]] = {}
        for node in nodes:
            if isinstance(node, dict) and node.get("nodeId") is not None:
                self.by_id[str(node["nodeId"])] = node
        self.flt = flt
        self.refs: dict[str, int] = {}
        self.rendered = 0
        self.omitted = 0
        self._next_ref = 1

    def roots(self) -> list[dict[str, Any]]:
        return [n for n in self.by_id.values() if not n.get("parentId") or str(n["parentId"]) not in self.by_id]

    def _over_cap(self) -> bool:
        cap = self.flt.max_elements
        return cap is not None and self.rendered >= cap

    def _children(self, node: dict[str, Any]) -> list[dict[str, Any]]:
        ids = node.get("childIds")
        if not isinstance(ids, list):
            return []
        return [self.by_id[str(i)] for i in ids if str(i) in self.by_id]

    def _name(self, raw: Any) -> str:
        name = " ".join(str(raw or "").split())
        if self.flt.skip_large_texts and len(name) > LARGE_TEXT_CHARS:
            name = name[:LARGE_TEXT_CHARS] + "…"
        return name

    def render(self, node: dict[str, Any], depth: int) -> list[str]:
        if depth > _MAX_DEPTH:
            return []
        role = str(_value(node.get("role")) or "")
        if role in _SKIPPED_ROLES:
            return []

        if node.get("ignored") or role in _TRANSPARENT_ROLES:
            return self._render_children(node, depth)

        if role in _TEXT_ROLES:
            return self._render_text(node, depth)

        wanted = self.flt.element_types is None or role.lower() in self.flt.element_types
        if not wanted:
            return self._render_children(node, depth)

        if self._over_cap():
            self.omitted += 1
            return []
        self.rendered += 1

        indent = "  " * depth
        parts = [f"{indent}- {role}"]
        name = self._name(_value(node.get("name")))
        if name:
            parts.append(_quote(name))
        props = _properties(node)
        for flag in _FLAG_PROPERTIES:
            val = props.get(flag)
            if val in (True, "true"):
                parts.append(f"[{flag}]")
            elif val == "mixed":
                parts.append(f"[{flag}=mixed]")
        level = props.get("level")
        if isinstance(level, int):
            parts.append(f"[level={level}]")
        backend_id = node.get("backendDOMNodeId")
        if isinstance(backend_id, int):
            ref = f"e{self._next_ref}"
            self._next_ref += 1
            self.refs[ref] = backend_id
            parts.append(f"[ref={ref}]")
        line = " ".join(parts)

        # Value-bearing controls print their value inline and drop their subtree.
        value = _value(node.get("value"))
        if role in _VALUE_ROLES and value not in (None, ""):
            return [f"{line}: {_quote(self._name(value))}"]

        children = self._render_children(node, depth + 1)
        if children:
            return [line + ":", *children]
        return [line]

    def _render_children(self, node: dict[str, Any], depth: int) -> list[str]:
        lines: list[str] = []
        for child in self._children(node):
            lines.extend(self.render(child, depth))
        return lines

    def _render_text(self, node: dict[str, Any], depth: int) -> list[str]:
        if self.flt.element_types is not None and "text" not in self.flt.element_types:
            return []
        text = " ".join(str(_value(node.get("name")) or "").split())
        if not text:
            return []
        if self.flt.skip_large_texts and len(text) > LARGE_TEXT_CHARS:
            self.omitted += 1
            return []
        if self._over_cap():
            self.omitted += 1
            return []
        self.rendered += 1
        return [f"{'  ' * depth}- text: {_quote(text)}"]


def render_aria_snapshot(nodes: list[dict[str, Any]], flt: SnapshotFilter | None = None) -> AriaSnapshot:
    """Render ``Accessibility.getFullAXTree`` nodes into snapshot text plus ref map."""
    renderer = _Renderer(nodes or [], flt or SnapshotFilter())
    lines: list[str] = []
    for root in renderer.roots():
        lines.extend(renderer.render(root, 0))
    if renderer.omitted:
        lines.append(f"- note: {renderer.omitted} more elements omitted by snapshot filters")
    return AriaSnapshot(text="\n".join(lines), refs=renderer.refs, omitted=renderer.omitted)


__all__ = ["LARGE_TEXT_CHARS", "AriaSnapshot", "SnapshotFilter", "render_aria_snapshot"]
