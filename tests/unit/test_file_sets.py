"""Tests for file_sets module."""

import unittest
from pathlib import Path
from tempfile import TemporaryDirectory
from unittest.mock import patch

from helpers.files import write_file
from buildtree.file_sets import FileSet, FileSetError, FileSets, FileSetSpec, resolve_paths


def make_tree(root: Path) -> None:
    for name in [
        "build/build.py",
        "build/util/dependency_analysis.py",
        "build/vendor/lib/thing.py",
        "src/app/main.py",
        "src/app/package.json",
        "src/app/style.css",
        "tests/test_main.py",
    ]:
        write_file(root / name, name)


class TestFileSet(unittest.TestCase):
    def test_include_and_exclude(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)

            file_set = FileSet("lint", root, ["build/**/*.py"], ["build/vendor/**/*"])

            self.assertEqual(
                file_set.files(),
                (root / "build/build.py", root / "build/util/dependency_analysis.py"),
            )

    def test_results_are_sorted_absolute_files_without_directories(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)

            files = FileSet("all", root, ["src/**/*"]).files()

            self.assertEqual(list(files), sorted(files))
            self.assertTrue(all(f.is_absolute() and f.is_file() for f in files))
            self.assertNotIn(root / "src" / "app", files)

    def test_resolution_is_memoized(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            file_set = FileSet("py", root, ["src/**/*.py"])

            first = file_set.files()
            write_file(root / "src" / "app" / "late.py")

            self.assertIs(file_set.files(), first)
            self.assertNotIn(root / "src" / "app" / "late.py", file_set.files())

    def test_globs_only_once(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            file_set = FileSet("py", root, ["src/**/*.py"])

            with patch("buildtree.file_sets._glob", return_value=set()) as glob:
                file_set.files()
                file_set.files()
                len(file_set)

            self.assertEqual(glob.call_count, 2)  # include and exclude, once each

    def test_no_matches_is_empty(self):
        with TemporaryDirectory() as tmpdir:
            self.assertEqual(FileSet("none", Path(tmpdir), ["*.nothing"]).files(), ())


class TestFileSets(unittest.TestCase):
    def test_union_minus_exclusions(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            sets = FileSets(root)
            sets.define("build_code", include=["build/**/*.py"], exclude=["build/vendor/**/*"])
            sets.define("compile_dependencies", include=["src/**/package.json", "src/**/*.py"])
            test_deps = sets.define(
                "test_dependencies",
                include=["tests/**/*.py"],
                exclude=["build/util/dependency_analysis.py"],
                union=["build_code", "compile_dependencies"],
            )

            self.assertEqual(
                test_deps.files(),
                (
                    root / "build/build.py",
                    root / "src/app/main.py",
                    root / "src/app/package.json",
                    root / "tests/test_main.py",
                ),
            )

    def test_union_shares_resolution_with_member(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            sets = FileSets(root)
            member = sets.define("py", include=["src/**/*.py"])
            sets.define("all", union=["py"])

            sets.get("all").files()

            self.assertIs(sets.get("py"), member)
            self.assertIsNotNone(member._files)

    def test_duplicate_and_unknown_names(self):
        with TemporaryDirectory() as tmpdir:
            sets = FileSets(Path(tmpdir))
            sets.define("a", include=["*.py"])

            with self.assertRaises(FileSetError):
                sets.define("a")
            with self.assertRaises(FileSetError):
                sets.get("b")
            with self.assertRaises(FileSetError):
                sets.define("c", union=["b"])

    def test_from_config_orders_definitions(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            specs = {
                "everything": FileSetSpec(union=["py", "css"]),
                "py": FileSetSpec(include=["src/**/*.py"]),
                "css": FileSetSpec(include=["src/**/*.css"]),
            }

            sets = FileSets.from_config(root, specs)

            self.assertEqual(
                sets.get("everything").files(),
                (root / "src/app/main.py", root / "src/app/style.css"),
            )
            self.assertEqual(sorted(sets.names()), ["css", "everything", "py"])

    def test_from_config_rejects_cycles(self):
        with TemporaryDirectory() as tmpdir:
            specs = {"a": FileSetSpec(union=["b"]), "b": FileSetSpec(union=["a"])}

            with self.assertRaises(FileSetError) as ctx:
                FileSets.from_config(Path(tmpdir), specs)
            self.assertIn("cycle", str(ctx.exception))

    def test_from_config_rejects_unknown_members(self):
        with TemporaryDirectory() as tmpdir:
            with self.assertRaises(FileSetError):
                FileSets.from_config(Path(tmpdir), {"a": FileSetSpec(union=["missing"])})


class TestResolvePaths(unittest.TestCase):
    def test_plain_paths_are_kept_even_if_missing(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()

            self.assertEqual(
                resolve_paths(root, ["package.json", root / "abs.txt"]),
                (root / "package.json", root / "abs.txt"),
            )

    def test_patterns_are_expanded(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)

            self.assertEqual(
                resolve_paths(root, ["src/app/*.py", "tests/test_main.py"]),
                (root / "src/app/main.py", root / "tests/test_main.py"),
            )

    def test_file_set_passes_through(self):
        with TemporaryDirectory() as tmpdir:
            root = Path(tmpdir).resolve()
            make_tree(root)
            file_set = FileSet("py", root, ["src/**/*.py"])

            self.assertEqual(resolve_paths(root, file_set), file_set.files())


if __name__ == "__main__":
    unittest.main()
