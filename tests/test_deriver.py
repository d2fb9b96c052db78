from __future__ import annotations

import tempfile
import unittest
from pathlib import Path

from fakes import listing

from tracksync.core.deriver import canonical_exclusions, derive_exclusions, same_exclusions

UNIVERSAL = {"**/.git": True, "**/.DS_Store": True}


class DeriveScenarioTests(unittest.TestCase):
    def test_project_with_untracked_dependencies(self) -> None:
        root = Path("/proj")
        read_dir = listing(
            {
                root: [("src", True), ("README.md", False), ("node_modules", True), (".git", True)],
                root / "src": [("a.ts", False), ("b.ts", False), ("c.ts", False)],
            }
        )

        result = derive_exclusions(root, ["src/a.ts", "src/b.ts", "README.md"], read_dir=read_dir)

        self.assertEqual(
            result,
            {"**/.git": True, "**/.DS_Store": True, "node_modules": True, "src/c.ts": True},
        )

    def test_ancestors_of_tracked_paths_stay_visible(self) -> None:
        root = Path("/r")
        read_dir = listing(
            {
                root: [("a", True), ("d.txt", False), ("d", True)],
                root / "a": [("b", True), ("x.txt", False)],
                root / "a" / "b": [("c.txt", False)],
            }
        )

        result = derive_exclusions(root, ["a/b/c.txt"], read_dir=read_dir)

        self.assertEqual(result, {**UNIVERSAL, "a/x.txt": True, "d.txt": True, "d": True})
        for visible in ("a", "a/b", "a/b/c.txt"):
            self.assertNotIn(visible, result)

    def test_untracked_directories_are_not_descended(self) -> None:
        root = Path("/r")
        visited: list[Path] = []
        base = listing(
            {
                root: [("build", True), ("main.py", False)],
                root / "build": [("out.o", False)],
            }
        )

        def read_dir(path: Path):  # noqa: ANN202
            visited.append(path)
            return base(path)

        result = derive_exclusions(root, ["main.py"], read_dir=read_dir)

        self.assertEqual(visited, [root])
        self.assertEqual(result, {**UNIVERSAL, "build": True})


class DeriveEdgeCaseTests(unittest.TestCase):
    def test_empty_tracked_list_hides_every_root_entry(self) -> None:
        root = Path("/empty")
        read_dir = listing({root: [("docs", True), ("setup.cfg", False), (".git", True)]})

        result = derive_exclusions(root, [], read_dir=read_dir)

        self.assertEqual(result, {**UNIVERSAL, "docs": True, "setup.cfg": True})

    def test_reserved_directory_at_root_is_never_hidden(self) -> None:
        root = Path("/r")
        read_dir = listing(
            {
                root: [(".vscode", True), ("lib", True), ("main.py", False)],
                root / "lib": [(".vscode", True), ("util.py", False)],
            }
        )

        result = derive_exclusions(root, ["lib/util.py"], read_dir=read_dir)

        self.assertNotIn(".vscode", result)
        self.assertIn("lib/.vscode", result)
        self.assertIn("main.py", result)

    def test_reserved_directory_can_be_disabled(self) -> None:
        root = Path("/r")
        read_dir = listing({root: [(".vscode", True)]})

        result = derive_exclusions(root, [], read_dir=read_dir, reserved_dir=None)

        self.assertIn(".vscode", result)

    def test_vanished_directory_is_skipped(self) -> None:
        root = Path("/r")
        read_dir = listing({root: [("keep.txt", False), ("tmp.txt", False)]})

        result = derive_exclusions(root, ["keep.txt", "gone/inner.txt"], read_dir=read_dir)

        self.assertEqual(result, {**UNIVERSAL, "tmp.txt": True})

    def test_entries_covered_by_universal_patterns_are_not_repeated(self) -> None:
        root = Path("/r")
        read_dir = listing(
            {
                root: [(".DS_Store", False), ("pkg", True)],
                root / "pkg": [(".DS_Store", False), ("mod.py", False)],
            }
        )

        result = derive_exclusions(root, ["pkg/mod.py"], read_dir=read_dir)

        self.assertEqual(result, UNIVERSAL)

    def test_custom_universal_patterns(self) -> None:
        root = Path("/r")
        read_dir = listing({root: [("a.txt", False), ("Thumbs.db", False)]})

        result = derive_exclusions(root, ["a.txt"], read_dir=read_dir, universal_patterns=["**/Thumbs.db"])

        self.assertEqual(result, {"**/Thumbs.db": True})

    def test_real_directory_tree(self) -> None:
        with tempfile.TemporaryDirectory() as tmp:
            root = Path(tmp)
            (root / "src" / "pkg").mkdir(parents=True)
            (root / "src" / "pkg" / "core.py").write_text("x", encoding="utf-8")
            (root / "src" / "pkg" / "scratch.py").write_text("x", encoding="utf-8")
            (root / "src" / "notes.md").write_text("x", encoding="utf-8")
            (root / ".venv" / "lib").mkdir(parents=True)
            (root / ".git").mkdir()
            (root / "pyproject.toml").write_text("x", encoding="utf-8")

            result = derive_exclusions(root, ["src/pkg/core.py", "pyproject.toml"])

        self.assertEqual(
            result,
            {**UNIVERSAL, ".venv": True, "src/notes.md": True, "src/pkg/scratch.py": True},
        )


class CanonicalTests(unittest.TestCase):
    def test_insertion_order_does_not_matter(self) -> None:
        left = {"b": True, "a": True, "**/.git": True}
        right = {"**/.git": True, "a": True, "b": True}
        self.assertEqual(canonical_exclusions(left), canonical_exclusions(right))
        self.assertTrue(same_exclusions(left, right))

    def test_absent_differs_from_empty(self) -> None:
        self.assertEqual(canonical_exclusions(None), "")
        self.assertFalse(same_exclusions(None, {}))
        self.assertFalse(same_exclusions({"a": True}, {"a": True, "b": True}))


if __name__ == "__main__":
    unittest.main()
