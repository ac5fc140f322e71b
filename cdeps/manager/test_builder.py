#!/usr/bin/env python3
"""
Tests for the build driver.

make itself is never run: `exec_commands` is patched and records the
directories it was asked to build.

Run with: python3 -m pytest cdeps/manager/test_builder.py
"""

import io
import json
import os
import tempfile
import threading
import unittest
from unittest.mock import Mock, patch

from cdeps.manager.builder import Builder
from cdeps.manager.errors import BuildCommandFailure, PackageNotFound
from cdeps.utils.context.context import RunContext, RunOptions
from cdeps.utils.logger import Logger


class FakeMake:
    """Stands in for `exec_commands`; fails for the named directories."""

    def __init__(self, failing=(), code=2):
        self.failing = set(failing)
        self.code = code
        self.lock = threading.Lock()
        self.calls = []

    def __call__(self, commands):
        directory = os.path.basename(commands[-1].cwd)
        with self.lock:
            self.calls.append(commands)
        if directory in self.failing:
            return self.code, "cc: error: no such file\n"
        return 0, ""

    @property
    def built(self):
        return sorted(os.path.basename(c[-1].cwd) for c in self.calls)


class BuilderTestCase(unittest.TestCase):

    def setUp(self):
        self.tmp = tempfile.TemporaryDirectory()
        self.root = os.path.realpath(self.tmp.name)
        self.project = os.path.join(self.root, "project")
        self.out = os.path.join(self.project, "deps")
        os.makedirs(self.out)
        self.resolver = Mock()
        self.resolver.resolve_from_slug.side_effect = PackageNotFound("not found")

    def tearDown(self):
        self.tmp.cleanup()

    def write_manifest(self, directory, **document):
        os.makedirs(directory, exist_ok=True)
        with open(os.path.join(directory, "clib.json"), "w") as f:
            json.dump(document, f)

    def write_dep(self, name, makefile=None, deps=None):
        document = {"name": name, "version": "1.0.0", "repo": f"test/{name}"}
        if makefile:
            document["makefile"] = makefile
        if deps:
            document["dependencies"] = deps
        self.write_manifest(os.path.join(self.out, name), **document)

    def make_builder(self, verbose=False, **option_overrides):
        options = RunOptions(out_dir=self.out, verbose=verbose, **option_overrides)
        context = RunContext(options, resolver=self.resolver,
                             logger=Logger(verbose=verbose),
                             home_path=os.path.join(self.root, "home"))
        return Builder(context, working_dir=self.project)


class TestBuildScenarios(BuilderTestCase):

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_no_manifest(self, mock_stdout):
        with patch("cdeps.manager.builder.exec_commands", FakeMake()):
            code = self.make_builder(verbose=True).run([])
        self.assertNotEqual(code, 0)
        self.assertIn("built 0 packages", mock_stdout.getvalue())

    @patch("sys.stdout", new_callable=io.StringIO)
    def test_only_makefile_packages_are_counted(self, mock_stdout):
        self.write_manifest(self.project, name="app", makefile="Makefile",
                            dependencies={"test/a": "*", "test/b": "*"})
        self.write_dep("a")
        self.write_dep("b")
        make = FakeMake()

        with patch("cdeps.manager.builder.exec_commands", make):
            builder = self.make_builder(verbose=True)
            self.assertEqual(builder.run([]), 0)

        self.assertEqual(make.built, ["project"])
        self.assertEqual(builder.context.registry.processed_count(), 3)
        self.assertIn("built 1 package\n", mock_stdout.getvalue())

    def test_failed_build_stops_its_dependencies(self):
        self.write_manifest(self.project, name="app", makefile="Makefile",
                            dependencies={"test/a": "*"})
        self.write_dep("a", makefile="Makefile")
        make = FakeMake(failing={"project"}, code=2)

        with patch("cdeps.manager.builder.exec_commands", make):
            builder = self.make_builder()
            self.assertEqual(builder.run([]), 2)

        self.assertEqual(make.built, ["project"])
        self.assertEqual(builder.context.registry.built_count(), 0)

    def test_failed_dependency_does_not_stop_siblings(self):
        self.write_manifest(self.project, name="app",
                            dependencies={"test/a": "*", "test/b": "*", "test/c": "*"})
        for name in ("a", "b", "c"):
            self.write_dep(name, makefile="Makefile")
        make = FakeMake(failing={"b"}, code=3)

        with patch("cdeps.manager.builder.exec_commands", make):
            builder = self.make_builder(concurrency=3)
            self.assertEqual(builder.run([]), 3)

        self.assertEqual(make.built, ["a", "b", "c"])
        self.assertEqual(builder.context.registry.built_count(), 2)

    def test_diamond_builds_shared_once(self):
        self.write_manifest(self.project, name="app",
                            dependencies={"test/left": "*", "test/right": "*"})
        self.write_dep("left", makefile="Makefile", deps={"test/shared": "*"})
        self.write_dep("right", makefile="Makefile", deps={"test/shared": "*"})
        self.write_dep("shared", makefile="Makefile")

        for concurrency in (1, 4):
            with self.subTest(concurrency=concurrency):
                make = FakeMake()
                with patch("cdeps.manager.builder.exec_commands", make):
                    builder = self.make_builder(concurrency=concurrency)
                    self.assertEqual(builder.run([]), 0)
                self.assertEqual(make.built, ["left", "right", "shared"])
                self.assertEqual(builder.context.registry.built_count(), 3)

    def test_named_argument_under_out_dir(self):
        self.write_dep("a", makefile="Makefile")
        make = FakeMake()
        with patch("cdeps.manager.builder.exec_commands", make):
            self.assertEqual(self.make_builder().run(["a"]), 0)
        self.assertEqual(make.built, ["a"])

    def test_missing_dependency_is_an_error(self):
        self.write_manifest(self.project, name="app", makefile="Makefile",
                            dependencies={"test/missing": "*"})
        make = FakeMake()
        with patch("cdeps.manager.builder.exec_commands", make):
            builder = self.make_builder()
            self.assertEqual(builder.run([]), 1)
        self.assertEqual(builder.context.registry.built_count(), 1)

    def test_dependency_dir_from_resolved_name(self):
        self.write_manifest(self.project, name="app",
                            dependencies={"test/lib.c": "*"})
        self.write_dep("lib", makefile="Makefile")
        resolved = Mock()
        resolved.name = "lib"
        self.resolver.resolve_from_slug.side_effect = None
        self.resolver.resolve_from_slug.return_value = resolved
        make = FakeMake()

        with patch("cdeps.manager.builder.exec_commands", make):
            self.assertEqual(self.make_builder().run([]), 0)
        self.assertEqual(make.built, ["lib"])
        self.resolver.resolve_from_slug.assert_called_once_with("test/lib.c@master")


    def test_resolved_name_outside_out_dir_is_an_error(self):
        self.write_manifest(self.project, name="app",
                            dependencies={"test/lib": "*"})
        self.write_manifest(os.path.join(self.project, "victim"),
                            name="victim", makefile="Makefile")
        resolved = Mock()
        resolved.name = "../victim"
        self.resolver.resolve_from_slug.side_effect = None
        self.resolver.resolve_from_slug.return_value = resolved
        make = FakeMake()

        with patch("cdeps.manager.builder.exec_commands", make):
            self.assertEqual(self.make_builder().run([]), 1)
        self.assertEqual(make.calls, [])


class TestBuildCommands(BuilderTestCase):

    def test_phases_and_prefix(self):
        prefix = os.path.join(self.root, "usr")
        self.write_manifest(self.project, name="app", makefile="Makefile.cdeps")
        make = FakeMake()
        with patch("cdeps.manager.builder.exec_commands", make):
            builder = self.make_builder(clean="clean", test="test",
                                        force=True, prefix=prefix)
            builder.run([])

        clean, main = make.calls[0]
        self.assertEqual(clean.argv, ["make", "-f", "Makefile.cdeps", "clean"])
        self.assertEqual(main.argv, ["make", "-f", "Makefile.cdeps", "-B", "test"])
        self.assertEqual(main.cwd, self.project)
        self.assertEqual(main.env, {"PREFIX": prefix})

    def test_package_prefix_used_without_flag(self):
        self.write_manifest(self.project, name="app", makefile="Makefile",
                            prefix="/opt/app")
        make = FakeMake()
        with patch("cdeps.manager.builder.exec_commands", make):
            self.make_builder().run([])
        self.assertEqual(make.calls[0][-1].env, {"PREFIX": "/opt/app"})

    @patch("sys.stderr", new_callable=io.StringIO)
    def test_failure_output_is_reported(self, mock_stderr):
        self.write_manifest(self.project, name="app", makefile="Makefile")
        with patch("cdeps.manager.builder.exec_commands", FakeMake(failing={"project"})):
            self.make_builder().run([])
        self.assertIn("cc: error: no such file", mock_stderr.getvalue())

    def test_build_package_raises_build_failure(self):
        self.write_manifest(self.project, name="app", makefile="Makefile")
        with patch("cdeps.manager.builder.exec_commands", FakeMake(failing={"project"})):
            with self.assertRaises(BuildCommandFailure) as ctx:
                self.make_builder().build_package(self.project)
        self.assertEqual(ctx.exception.exit_code, 2)


if __name__ == '__main__':
    unittest.main()
