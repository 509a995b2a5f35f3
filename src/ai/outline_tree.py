"""
Outline tree -- arena-style storage of section nodes.

Nodes live in a flat ``id -> SectionNode`` mapping; parents and children are
referenced by id, so edits are targeted lookups rather than whole-tree copies.
The tree round-trips through a nested JSON snapshot, which is what gets
persisted on reports and canvases.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Dict, Iterator, List, Optional

from src.ai.types import Reference, new_token

ROOT_TITLE = "Root"


class OutlineError(ValueError):
    """Raised when a node would break the tree's parent/level invariants."""


@dataclass
class SectionNode:
    """One entry in the outline."""
    id: str
    title: str
    level: int
    parent_id: Optional[str] = None
    children: List[str] = field(default_factory=list)
    references: List[Reference] = field(default_factory=list)
    content: Optional[str] = None

    @property
    def is_root(self) -> bool:
        return self.level == 0

    @property
    def is_expanded(self) -> bool:
        return self.content is not None


class OutlineTree:
    """A rooted outline whose nodes are addressed by id."""

    def __init__(self, root_id: Optional[str] = None):
        root = SectionNode(id=root_id or new_token(), title=ROOT_TITLE, level=0)
        self.root_id = root.id
        self.nodes: Dict[str, SectionNode] = {root.id: root}

    @property
    def root(self) -> SectionNode:
        return self.nodes[self.root_id]

    def __len__(self) -> int:
        return len(self.nodes)

    def __contains__(self, node_id: str) -> bool:
        return node_id in self.nodes

    def get(self, node_id: str) -> SectionNode:
        try:
            return self.nodes[node_id]
        except KeyError:
            raise KeyError(f"Unknown outline node: {node_id}") from None

    def add_child(
        self,
        parent_id: str,
        title: str,
        node_id: Optional[str] = None,
        level: Optional[int] = None,
    ) -> SectionNode:
        """Append a child under ``parent_id`` and return it.

        ``level`` may be passed for validation; it must equal the parent's
        level plus one.
        """
        if parent_id not in self.nodes:
            raise OutlineError(f"Parent {parent_id} is not in this outline")
        parent = self.nodes[parent_id]
        expected = parent.level + 1
        if level is not None and level != expected:
            raise OutlineError(
                f"Node '{title}' has level {level}, expected {expected} under '{parent.title}'"
            )
        node_id = node_id or new_token()
        if node_id in self.nodes:
            raise OutlineError(f"Duplicate outline node id: {node_id}")

        node = SectionNode(id=node_id, title=title, level=expected, parent_id=parent_id)
        self.nodes[node_id] = node
        parent.children.append(node_id)
        return node

    def children_of(self, node_id: str) -> List[SectionNode]:
        return [self.nodes[c] for c in self.get(node_id).children]

    def parent_of(self, node_id: str) -> Optional[SectionNode]:
        parent_id = self.get(node_id).parent_id
        return self.nodes.get(parent_id) if parent_id else None

    def walk(self, include_root: bool = False) -> Iterator[SectionNode]:
        """Depth-first, document order, children in insertion order."""
        stack = [self.root_id]
        while stack:
            node = self.nodes[stack.pop()]
            if include_root or not node.is_root:
                yield node
            stack.extend(reversed(node.children))

    def set_content(self, node_id: str, content: str, references: List[Reference]) -> SectionNode:
        node = self.get(node_id)
        if node.is_root:
            raise OutlineError("The root node never carries content")
        node.content = content
        node.references = list(references)
        return node

    # ── Snapshots ────────────────────────────────────────────────────

    def to_snapshot(self) -> Dict[str, Any]:
        return self._node_snapshot(self.root)

    def _node_snapshot(self, node: SectionNode) -> Dict[str, Any]:
        data: Dict[str, Any] = {
            "id": node.id,
            "title": node.title,
            "level": node.level,
            "parent_id": node.parent_id,
            "references": [r.to_dict() for r in node.references],
            "children": [self._node_snapshot(self.nodes[c]) for c in node.children],
        }
        if node.content is not None:
            data["content"] = node.content
        return data

    @classmethod
    def from_snapshot(cls, snapshot: Any) -> "OutlineTree":
        """Rebuild a tree from ``to_snapshot`` output.

        A bare list is accepted as the root's children, which is the shape
        clients send when they post a mind map.
        """
        if isinstance(snapshot, list):
            snapshot = {"children": snapshot}
        if not isinstance(snapshot, dict):
            raise OutlineError("Outline snapshot must be an object or a list of nodes")

        tree = cls(root_id=snapshot.get("id") or None)
        for child in snapshot.get("children") or []:
            tree._load_node(tree.root_id, child)
        return tree

    def _load_node(self, parent_id: str, data: Dict[str, Any]) -> None:
        if not isinstance(data, dict):
            raise OutlineError("Every outline node must be an object")
        for key in ("id", "title", "level"):
            if data.get(key) in (None, ""):
                raise OutlineError(f"Outline node is missing '{key}'")
        try:
            level = int(data["level"])
        except (TypeError, ValueError):
            raise OutlineError(f"Outline node '{data['title']}' has a non-numeric level") from None

        node = self.add_child(parent_id, str(data["title"]), node_id=str(data["id"]), level=level)
        if data.get("content") is not None:
            node.content = str(data["content"])
        node.references = [Reference.from_dict(r) for r in data.get("references") or []]
        for child in data.get("children") or []:
            self._load_node(node.id, child)
