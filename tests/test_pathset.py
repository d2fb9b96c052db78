from __future__ import annotations

import unittest

from tracksync.pathset import TrackedIndex, dirname_chain, is_prefix_of, join_relative, normalize


class NormalizeTests(unittest.TestCase):
    def test_strips_trailing_slash_and_dot_segments(self) -> None:
        self.assertEqual(normalize("src/"), "src")
        self.assertEqual(normalize("./src/./a.ts"), "src/a.ts")
        self.assertEqual(normalize("src//lib///a.ts"), "src/lib/a.ts")

    def test_empty_and_root_marker(self) -> None:
        self.assertEqual(normalize(""), ".")
        self.assertEqual(normalize("."), ".")
        self.assertEqual(normalize("./"), ".")

    def test_plain_paths_are_unchanged(self) -> None:
        self.assertEqual(normalize("README.md"), "README.md")
        self.assertEqual(normalize("a/b/c.txt"), "a/b/c.txt")


class DirnameChainTests(unittest.TestCase):
    def test_yields_ancestors_nearest_first(self) -> None:
        self.assertEqual(list(dirname_chain("a/b/c.txt")), ["a/b", "a"])

    def test_top_level_file_has_no_ancestors(self) -> None:
        self.assertEqual(list(dirname_chain("README.md")), [])
        self.assertEqual(list(dirname_chain(".")), [])

    def test_is_restartable(self) -> None:
        chain = dirname_chain("x/y/z/file")
        self.assertEqual(list(chain), ["x/y/z", "x/y", "x"])
        self.assertEqual(list(chain), ["x/y/z", "x/y", "x"])

    def test_is_lazy(self) -> None:
        iterator = iter(dirname_chain("a/b/c/d"))
        self.assertEqual(next(iterator), "a/b/c")
        self.assertEqual(next(iterator), "a/b")


class PrefixTests(unittest.TestCase):
    def test_equal_paths(self) -> None:
        self.assertTrue(is_prefix_of("src", "src"))

    def test_descendant(self) -> None:
        self.assertTrue(is_prefix_of("src", "src/a.ts"))
        self.assertTrue(is_prefix_of("a/b", "a/b/c/d.txt"))

    def test_sibling_with_shared_name_prefix_is_not_descendant(self) -> None:
        self.assertFalse(is_prefix_of("src", "src2/a.ts"))
        self.assertFalse(is_prefix_of("src", "srcfile"))

    def test_unrelated(self) -> None:
        self.assertFalse(is_prefix_of("a/b", "a"))


class JoinRelativeTests(unittest.TestCase):
    def test_root_marker_is_dropped(self) -> None:
        self.assertEqual(join_relative(".", "name"), "name")
        self.assertEqual(join_relative("a/b", "name"), "a/b/name")


class TrackedIndexTests(unittest.TestCase):
    def test_ancestor_closure_includes_root(self) -> None:
        index = TrackedIndex.build(["a/b/c.txt", "d/e.txt", "top.txt"])
        self.assertEqual(index.directories, frozenset({".", "a", "a/b", "d"}))
        self.assertEqual(index.files, frozenset({"a/b/c.txt", "d/e.txt", "top.txt"}))

    def test_contains_tracked_files_and_their_ancestors(self) -> None:
        index = TrackedIndex.build(["a/b/c.txt"])
        self.assertTrue(index.contains("a"))
        self.assertTrue(index.contains("a/b"))
        self.assertTrue(index.contains("a/b/"))
        self.assertTrue(index.contains("a/b/c.txt"))
        self.assertFalse(index.contains("a/x.txt"))
        self.assertFalse(index.contains("a/b/c"))
        self.assertFalse(index.contains("ab"))

    def test_paths_are_normalized_on_build(self) -> None:
        index = TrackedIndex.build(["./src//a.ts"])
        self.assertTrue(index.contains("src/a.ts"))
        self.assertTrue(index.contains("src"))

    def test_empty_list(self) -> None:
        index = TrackedIndex.build([])
        self.assertEqual(index.files, frozenset())
        self.assertEqual(index.directories, frozenset({"."}))


if __name__ == "__main__":
    unittest.main()
