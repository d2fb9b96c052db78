"""Nest a flat tracked-path list into a tree for display."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field

from tracksync.pathset import ROOT_MARKER, SEP, is_prefix_of, normalize


@dataclass(slots=True)
class TreeNode:
    name: str
    path: str
    is_dir: bool
    children: dict[str, "TreeNode"] = field(default_factory=dict)

    def sorted_children(self) -> list["TreeNode"]:
        return sorted(self.children.values(), key=lambda node: (not node.is_dir, node.name))

    def count(self) -> int:
        return sum(1 + child.count() for child in self.children.values())


def build_tree(paths: Iterable[str]) -> TreeNode:
    root = TreeNode(name="", path=ROOT_MARKER, is_dir=True)
    for raw in paths:
        path = normalize(raw)
        if path == ROOT_MARKER:
            continue
        parts = path.split(SEP)
        cursor = root
        for depth, part in enumerate(parts):
            is_leaf = depth == len(parts) - 1
            child = cursor.children.get(part)
            if child is None:
                child = TreeNode(name=part, path=SEP.join(parts[: depth + 1]), is_dir=not is_leaf)
                cursor.children[part] = child
            elif not is_leaf:
                child.is_dir = True
            cursor = child
    return root


def direct_children(paths: Iterable[str], rel_dir: str) -> list[str]:
    """Names of the tracked entries directly below ``rel_dir``."""
    directory = normalize(rel_dir)
    names: set[str] = set()
    for raw in paths:
        path = normalize(raw)
        if directory == ROOT_MARKER:
            remainder = path
        elif is_prefix_of(directory, path) and path != directory:
            remainder = path[len(directory) + 1 :]
        else:
            continue
        names.add(remainder.split(SEP, 1)[0])
    return sorted(names)


def render_lines(tree: TreeNode, *, indent: str = "  ") -> list[str]:
    lines: list[str] = []

    def walk(node: TreeNode, depth: int) -> None:
        for child in node.sorted_children():
            suffix = "/" if child.is_dir else ""
            lines.append(f"{indent * depth}{child.name}{suffix}")
            if child.is_dir:
                walk(child, depth + 1)

    walk(tree, 0)
    return lines
