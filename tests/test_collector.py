"""Tests for the status collector and the drush client queries behind it."""

import pytest

from drupal_updater.collector import StatusCollector
from drupal_updater.errors import MalformedResponse
from drupal_updater.models import UpdateStatus

from fakes import script_updates, status_record


class TestStatusCollector:
    """Tests for StatusCollector."""

    def test_merges_module_metadata(self, runner, drush):
        """Module list data fills in names and install status."""
        script_updates(
            runner,
            {"views": status_record("views", "7.x-3.20", "7.x-3.24", 4)},
            {"views": {"name": "Views (views)", "package": "Views", "type": "module", "status": "Enabled"}},
        )
        result = StatusCollector(drush).collect()

        views = result["views"]
        assert views.human_name == "Views"
        assert views.install_status == "Enabled"
        assert views.package == "Views"
        assert views.is_enabled

    def test_core_keeps_display_name(self, runner, drush):
        """Core is always shown as Drupal core, whatever pm-list calls it."""
        script_updates(
            runner,
            {"drupal": status_record("drupal", "7.97", "7.98", 1)},
            {"drupal": {"name": "System (system)", "status": "Enabled"}},
        )
        result = StatusCollector(drush).collect()
        assert result["drupal"].human_name == "Drupal core"
        assert result["drupal"].install_status == "Enabled"

    def test_records_without_module_info(self, runner, drush):
        script_updates(runner, {"views": status_record("views", "1", "2", 4)})
        result = StatusCollector(drush).collect()
        assert result["views"].install_status == ""

    def test_pipe_format(self, runner, drush):
        """The legacy format reads --pipe text and the column table."""
        runner.on("pm-update", "--cache", "--pipe", "-n", stdout="views 7.x-3.20 7.x-3.24 Update-available\n")
        runner.on("pm-list", stdout=" Views  Views (views)  Module  Enabled  7.x-3.20\n")
        result = StatusCollector(drush, status_format="pipe").collect()

        assert result["views"].status_code == UpdateStatus.NOT_CURRENT
        assert result["views"].status_from_text
        assert result["views"].is_enabled

        [pm_list] = runner.commands("pm-list")
        assert pm_list == ["drush", "pm-list"]
        env = runner.envs[runner.calls.index(pm_list)]
        assert env["COLUMNS"] == "1000"
        assert "PATH" in env

    def test_drush_failure_is_fatal(self, runner, drush):
        runner.on("pm-updatestatus", returncode=1, stderr="Drush command terminated abnormally")
        with pytest.raises(MalformedResponse):
            StatusCollector(drush).collect()

    def test_empty_status(self, runner, drush):
        script_updates(runner, {})
        assert StatusCollector(drush).collect() == {}


class TestDrushStatus:
    """Tests for DrushClient site queries."""

    def test_status_keys_normalized(self, runner, drush):
        runner.on("status", "--format=json", stdout='{"drupal-version": "7.98", "drush-version": "8.4.12", "root": "/var/www"}')
        assert drush.is_drupal()
        assert drush.drush_major_version() == 8
        assert drush.drupal_root() == "/var/www"

    def test_status_cached(self, runner, drush):
        runner.on("status", "--format=json", stdout='{"drush-version": "8.4.12"}')
        drush.status()
        drush.status()
        assert len(runner.commands("status")) == 1

    def test_not_drupal(self, runner, drush):
        runner.on("status", "--format=json", stdout='{"drush-version": "8.4.12"}')
        assert not drush.is_drupal()

    def test_status_failure(self, runner, drush):
        runner.on("status", returncode=1)
        assert not drush.is_drupal()

    def test_module_path(self, runner, drush):
        runner.on("pm-info", "views", stdout='{"views": {"path": "sites/all/modules/views"}}')
        assert drush.module_path("views") == "sites/all/modules/views"

    def test_module_path_failure(self, runner, drush):
        runner.on("pm-info", returncode=1)
        assert drush.module_path("views") is None

    def test_update_command(self, drush):
        assert drush.update_command("views") == ["drush", "pm-updatecode", "-y", "--cache", "views"]
