from __future__ import annotations

import unittest

from tracksync.fs.filtering import ExclusionFilter, to_gitignore_line


class ExclusionFilterTests(unittest.TestCase):
    def test_root_relative_keys_are_anchored(self) -> None:
        self.assertEqual(to_gitignore_line("node_modules"), "/node_modules")
        self.assertEqual(to_gitignore_line("src/c.ts"), "/src/c.ts")
        self.assertEqual(to_gitignore_line("**/.git"), "**/.git")

    def test_published_filter_hides_only_untracked_entries(self) -> None:
        exclusions = {"**/.git": True, "**/.DS_Store": True, "node_modules": True, "src/c.ts": True}
        path_filter = ExclusionFilter.from_exclusions(exclusions)

        self.assertTrue(path_filter.is_hidden("node_modules"))
        self.assertTrue(path_filter.is_hidden("node_modules/left-pad/index.js"))
        self.assertTrue(path_filter.is_hidden("src/c.ts"))
        self.assertTrue(path_filter.is_hidden(".git/index"))
        self.assertTrue(path_filter.is_hidden("src/.DS_Store"))

        self.assertFalse(path_filter.is_hidden("src"))
        self.assertFalse(path_filter.is_hidden("src/a.ts"))
        self.assertFalse(path_filter.is_hidden("README.md"))

    def test_anchored_key_does_not_match_nested_namesake(self) -> None:
        path_filter = ExclusionFilter(["node_modules"])
        self.assertFalse(path_filter.is_hidden("packages/app/node_modules"))

    def test_false_entries_are_ignored(self) -> None:
        path_filter = ExclusionFilter.from_exclusions({"build": False, "dist": True})
        self.assertFalse(path_filter.is_hidden("build"))
        self.assertTrue(path_filter.is_hidden("dist"))

    def test_root_is_never_hidden(self) -> None:
        path_filter = ExclusionFilter(["**/.git"])
        self.assertFalse(path_filter.is_hidden("."))
        self.assertFalse(path_filter.is_hidden(""))

    def test_absent_filter_hides_nothing(self) -> None:
        self.assertFalse(ExclusionFilter.from_exclusions(None).is_hidden("anything"))


if __name__ == "__main__":
    unittest.main()
