"""Tree panel that shows only git-tracked paths."""

from __future__ import annotations

from pathlib import Path
from typing import Any

from textual.app import ComposeResult
from textual.containers import Vertical
from textual.widgets import Tree

from tracksync.errors import SourceUnavailable
from tracksync.git.source import GitTrackedSource
from tracksync.runtime_logging import get_runtime_logger
from tracksync.tree_model import TreeNode, build_tree

FOLDER = "folder"
ENTRY = "entry"


class TrackedTreePanel(Vertical):
    DEFAULT_CSS = """
    TrackedTreePanel {
        height: 1fr;
    }

    TrackedTreePanel Tree {
        height: 1fr;
        border: round $surface-lighten-2;
    }
    """

    def __init__(
        self,
        roots: list[Path],
        source: GitTrackedSource,
        *,
        max_entries: int = 5000,
        id: str | None = None,
    ) -> None:
        self.roots = roots
        self.source = source
        self.max_entries = max_entries
        self.logger = get_runtime_logger()
        self._worker_group = "tracked-tree"
        super().__init__(id=id)

    def compose(self) -> ComposeResult:
        yield Tree(self._root_label(), id="tree")

    def on_mount(self) -> None:
        self.refresh_tree()

    def refresh_tree(self) -> None:
        self.logger.debug("tracked_tree.refresh.requested", roots=[str(root) for root in self.roots])
        self.run_worker(self._load_and_render(), group=self._worker_group, exclusive=True)

    async def _load_and_render(self) -> None:
        if len(self.roots) == 1:
            root = self.roots[0]
            sections = [(root, await self._tracked(root))]
        else:
            sections = []
            for root in self.roots:
                if await self.source.has_repo(root):
                    sections.append((root, await self._tracked(root)))

        tree = self.query_one(Tree)
        expanded = self._collect_expanded(tree.root)
        tree.clear()
        tree.root.set_label(self._root_label())
        tree.root.data = {"kind": FOLDER, "root": None, "path": ".", "is_dir": True}

        models = [(root, build_tree(paths)) for root, paths in sections]
        total = sum(model.count() for _, model in models)
        budget = self.max_entries
        if len(self.roots) == 1:
            root, model = models[0]
            budget = self._add_children(tree.root, root, model, budget)
        else:
            for root, model in models:
                folder = tree.root.add(
                    root.name or str(root),
                    data={"kind": FOLDER, "root": str(root), "path": ".", "is_dir": True},
                    expand=False,
                )
                budget = self._add_children(folder, root, model, budget)

        self._restore_expanded(tree.root, expanded)
        tree.root.expand()
        if total > self.max_entries:
            self.notify(f"Showing {self.max_entries} of {total} tracked entries", severity="warning")
        self.logger.debug(
            "tracked_tree.refresh.rendered",
            roots=[str(root) for root, _ in sections],
            entry_count=total,
            truncated=total > self.max_entries,
        )

    async def _tracked(self, root: Path) -> list[str]:
        try:
            return await self.source.list_tracked(root)
        except SourceUnavailable as exc:
            self.logger.warning("tracked_tree.source.unavailable", root=str(root), reason=exc.reason)
            return []

    def _add_children(self, parent: Any, root: Path, node: TreeNode, budget: int) -> int:
        for child in node.sorted_children():
            if budget <= 0:
                return budget
            budget -= 1
            data = {"kind": ENTRY, "root": str(root), "path": child.path, "is_dir": child.is_dir}
            if child.is_dir:
                branch = parent.add(f"{child.name}/", data=data, expand=False)
                budget = self._add_children(branch, root, child, budget)
            else:
                parent.add_leaf(child.name, data=data)
        return budget

    def _root_label(self) -> str:
        if len(self.roots) == 1:
            return f"{self.roots[0].name}/"
        return "workspace"

    def _collect_expanded(self, node: Any) -> set[tuple[str | None, str]]:
        expanded: set[tuple[str | None, str]] = set()
        data = node.data if isinstance(getattr(node, "data", None), dict) else {}
        if node.is_expanded and data:
            expanded.add((data.get("root"), str(data.get("path", "."))))
        for child in node.children:
            expanded.update(self._collect_expanded(child))
        return expanded

    def _restore_expanded(self, node: Any, expanded: set[tuple[str | None, str]]) -> None:
        for child in node.children:
            data = child.data if isinstance(child.data, dict) else {}
            if (data.get("root"), str(data.get("path", "."))) in expanded:
                child.expand()
            self._restore_expanded(child, expanded)
