"""Tests for doodle_digger/main.py — argument parsing and exit codes.

The browser layer is patched out; no Chrome is started.
"""

from __future__ import annotations

import io
import os
import tempfile
import unittest
from pathlib import Path
from unittest.mock import patch

from rich.console import Console

from doodle_digger import main as cli
from doodle_digger import selectors as sel
from doodle_digger.acquirer import ImageAcquirer
from doodle_digger.config import Settings
from doodle_digger.errors import AcquisitionError, NavigationError
from doodle_digger.filters import FilterApplier
from doodle_digger.navigator import Depth, NavigationController, NavigationPath, TraversalSummary

from fakes import FakePicker, FakeSession, simple_menu


class TestParseArgs(unittest.TestCase):

    def test_run_options(self):
        args = cli.parse_args(["--profile", "prof", "run", "--output", "out", "--headless"])
        self.assertEqual(args.command, "run")
        self.assertEqual(args.profile, "prof")
        self.assertEqual(args.output, "out")
        self.assertTrue(args.headless)

    def test_headless_unset_is_none(self):
        self.assertIsNone(cli.parse_args(["run"]).headless)

    def test_shared_options_after_subcommand(self):
        args = cli.parse_args(["run", "--verbose", "--profile", "prof"])
        self.assertTrue(args.verbose)
        self.assertEqual(args.profile, "prof")

        args = cli.parse_args(["setup", "-v"])
        self.assertTrue(args.verbose)
        self.assertIsNone(args.profile)

    def test_option_before_subcommand_survives(self):
        args = cli.parse_args(["--profile", "prof", "-v", "setup"])
        self.assertEqual(args.profile, "prof")
        self.assertTrue(args.verbose)

    def test_shared_option_defaults(self):
        args = cli.parse_args(["run"])
        self.assertIsNone(args.profile)
        self.assertFalse(args.verbose)

    def test_command_required(self):
        with self.assertRaises(SystemExit):
            cli.parse_args([])


@patch("doodle_digger.config.load_dotenv")
class TestRun(unittest.TestCase):

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        self.profile = self.tmp / "profile"
        self._env = patch.dict(os.environ, {}, clear=True)
        self._env.start()

    def tearDown(self):
        self._env.stop()
        self._tmp.cleanup()

    def argv(self):
        return ["--profile", str(self.profile), "run", "--output", str(self.tmp / "images")]

    @patch("doodle_digger.main.create_driver")
    def test_missing_session_exits_2(self, create_driver, _dotenv):
        self.assertEqual(cli.main(self.argv()), cli.EXIT_NO_SESSION)
        create_driver.assert_not_called()

    @patch("doodle_digger.main.NavigationController")
    @patch("doodle_digger.main.open_picker")
    @patch("doodle_digger.main.SeleniumMenuDom")
    @patch("doodle_digger.main.create_driver")
    def test_success_exits_0(self, create_driver, dom_cls, open_picker, controller_cls, _dotenv):
        self.profile.mkdir()
        driver = create_driver.return_value
        controller_cls.return_value.run.return_value = TraversalSummary(collections=1, presets=2)

        self.assertEqual(cli.main(self.argv()), cli.EXIT_OK)

        settings = create_driver.call_args[0][0]
        self.assertEqual(settings.output_dir, self.tmp / "images")
        open_picker.assert_called_once_with(dom_cls.return_value, settings)
        driver.quit.assert_called_once_with()

    @patch("doodle_digger.main.NavigationController")
    @patch("doodle_digger.main.open_picker")
    @patch("doodle_digger.main.SeleniumMenuDom")
    @patch("doodle_digger.main.create_driver")
    def test_navigation_error_exits_1_and_closes_browser(
        self, create_driver, _dom_cls, _open_picker, controller_cls, _dotenv
    ):
        self.profile.mkdir()
        controller_cls.return_value.run.side_effect = NavigationError(
            "enter PICTURE: element not ready",
            path=NavigationPath("c1", "k1"),
            depth=Depth.CLASS,
        )

        self.assertEqual(cli.main(self.argv()), cli.EXIT_FAILED)
        create_driver.return_value.quit.assert_called_once_with()

    @patch("doodle_digger.main.NavigationController")
    @patch("doodle_digger.main.open_picker")
    @patch("doodle_digger.main.SeleniumMenuDom")
    @patch("doodle_digger.main.create_driver")
    def test_other_failure_exits_1(self, create_driver, _dom_cls, _open_picker, controller_cls, _dotenv):
        self.profile.mkdir()
        controller_cls.return_value.run.side_effect = AcquisitionError("https://x/y", "404")
        self.assertEqual(cli.main(self.argv()), cli.EXIT_FAILED)
        create_driver.return_value.quit.assert_called_once_with()

    def test_invalid_configuration_exits_1(self, _dotenv):
        with patch.dict(os.environ, {"DOODLE_MAX_RESOLUTION": "-1"}):
            self.assertEqual(cli.main(self.argv()), cli.EXIT_FAILED)


@patch("doodle_digger.config.load_dotenv")
class TestSetup(unittest.TestCase):

    @patch("doodle_digger.main.run_setup")
    def test_setup_exits_0(self, run_setup, _dotenv):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(cli.main(["--profile", "p", "setup"]), cli.EXIT_OK)
        self.assertEqual(run_setup.call_args[0][0].profile_dir, Path("p"))

    @patch("doodle_digger.main.run_setup", side_effect=OSError("no display"))
    def test_setup_failure_exits_1(self, _run_setup, _dotenv):
        with patch.dict(os.environ, {}, clear=True):
            self.assertEqual(cli.main(["setup"]), cli.EXIT_FAILED)


class _DeniedAcquirer:
    def acquire(self, layer_ref, filter_expr=None, workdir=None):
        raise PermissionError(13, "Permission denied", str(workdir))


@patch("doodle_digger.main.open_picker")
@patch("doodle_digger.main.create_driver")
@patch("doodle_digger.config.load_dotenv")
class TestFailureReport(unittest.TestCase):
    """A real controller walks FakePicker; the CLI has to say where it stopped."""

    def setUp(self):
        self._tmp = tempfile.TemporaryDirectory()
        self.tmp = Path(self._tmp.name)
        (self.tmp / "profile").mkdir()
        self.picker = FakePicker(simple_menu(collections=("c1",), presets=("r1",)))
        self.out = io.StringIO()
        self._patches = [
            patch.dict(os.environ, {}, clear=True),
            patch("doodle_digger.main.SeleniumMenuDom", return_value=self.picker),
            patch("doodle_digger.main.console", Console(file=self.out, width=300)),
        ]
        for p in self._patches:
            p.start()

    def tearDown(self):
        for p in reversed(self._patches):
            p.stop()
        self._tmp.cleanup()

    def run_with(self, acquirer):
        def build(dom, settings):
            return NavigationController(dom, settings, acquirer=acquirer)

        argv = ["run", "--profile", str(self.tmp / "profile"), "--output", str(self.tmp / "images")]
        with patch("doodle_digger.main.NavigationController", side_effect=build):
            return cli.main(argv)

    def test_download_failure_reports_path_and_depth(self, _dotenv, create_driver, _open_picker):
        acquirer = ImageAcquirer(FilterApplier(self.picker), session=FakeSession(status=404))

        self.assertEqual(self.run_with(acquirer), cli.EXIT_FAILED)

        report = self.out.getvalue()
        self.assertIn("Download failed for https://lh3.googleusercontent.com/base=s4096-c", report)
        self.assertIn("[depth=PRESET_VIEW, path=c1/k1/p1]", report)
        self.assertEqual(self.picker.visits, [("c1", "k1", "p1", "r1")])
        create_driver.return_value.quit.assert_called_once_with()

    def test_filesystem_error_is_reported_not_raised(self, _dotenv, create_driver, _open_picker):
        self.assertEqual(self.run_with(_DeniedAcquirer()), cli.EXIT_FAILED)

        report = self.out.getvalue()
        self.assertIn("Error during extraction", report)
        self.assertIn("Permission denied", report)
        self.assertIn("path=c1/k1/p1", report)
        create_driver.return_value.quit.assert_called_once_with()

    def test_navigation_error_keeps_its_own_context(self, _dotenv, create_driver, _open_picker):
        self.picker.stalled.add(sel.PRESETS_HEADING)

        self.assertEqual(self.run_with(_DeniedAcquirer()), cli.EXIT_FAILED)

        self.assertIn("[depth=CLASS, path=c1/k1]", self.out.getvalue())
        create_driver.return_value.quit.assert_called_once_with()


class TestFailureContext(unittest.TestCase):

    def test_before_traversal(self):
        self.assertEqual(cli.failure_context(None), "")

    def test_at_collection_level(self):
        controller = NavigationController(FakePicker([]), Settings())
        self.assertEqual(cli.failure_context(controller), " [depth=COLLECTION]")


if __name__ == "__main__":
    unittest.main()
