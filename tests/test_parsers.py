"""Tests for the drush output parsers."""

import json

import pytest

from drupal_updater.collector import (
    parse_module_list_json,
    parse_module_list_table,
    parse_status_json,
    parse_status_pipe,
)
from drupal_updater.errors import MalformedResponse
from drupal_updater.models import UpdateStatus


class TestParseStatusJson:
    """Tests for pm-updatestatus JSON parsing."""

    def test_basic_records(self):
        text = json.dumps(
            {
                "views": {
                    "name": "views",
                    "label": "Views (views)",
                    "existing_version": "7.x-3.20",
                    "candidate_version": "7.x-3.24",
                    "status": 1,
                    "status_msg": "SECURITY UPDATE available",
                    "path": "sites/all/modules/views",
                },
                "drupal": {
                    "name": "drupal",
                    "existing_version": "7.97",
                    "candidate_version": "7.98",
                    "status": 4,
                },
            }
        )
        result = parse_status_json(text)

        assert set(result) == {"views", "drupal"}
        views = result["views"]
        assert views.status_code == UpdateStatus.NOT_SECURE
        assert views.current_version == "7.x-3.20"
        assert views.new_version == "7.x-3.24"
        assert views.path == "sites/all/modules/views"
        assert not views.status_from_text
        assert result["drupal"].human_name == "Drupal core"
        assert result["drupal"].status_message == "Update available"

    def test_locked_records_skipped(self):
        """drush's own lock flag removes the record."""
        text = json.dumps(
            {
                "views": {"existing_version": "1", "candidate_version": "2", "status": 4, "locked": True},
                "ctools": {"existing_version": "1", "candidate_version": "2", "status": 4},
            }
        )
        assert list(parse_status_json(text)) == ["ctools"]

    def test_recommended_fallback(self):
        text = json.dumps({"views": {"existing_version": "1", "recommended": "3", "status": 4}})
        assert parse_status_json(text)["views"].new_version == "3"

    def test_unknown_status_code(self):
        text = json.dumps({"views": {"existing_version": "1", "candidate_version": "2", "status": 42}})
        assert parse_status_json(text)["views"].status_code == UpdateStatus.UNKNOWN

    def test_empty(self):
        assert parse_status_json("") == {}
        assert parse_status_json("[]") == {}

    def test_invalid_json(self):
        with pytest.raises(MalformedResponse):
            parse_status_json("{not json")

    def test_missing_version(self):
        with pytest.raises(MalformedResponse):
            parse_status_json(json.dumps({"views": {"status": 4}}))

    def test_non_numeric_status(self):
        with pytest.raises(MalformedResponse):
            parse_status_json(json.dumps({"views": {"existing_version": "1", "status": "bad"}}))


class TestParseStatusPipe:
    """Tests for legacy pm-update --pipe parsing."""

    OUTPUT = "\n".join(
        [
            "PHP Warning:  something went wrong in foo.php",
            "",
            "drupal 7.97 7.98 SECURITY-UPDATE-available",
            "views 7.x-3.20 7.x-3.24 Update-available",
            "ctools 7.x-1.19 7.x-1.20 Update-available Locked",
            "token 7.x-1.7 7.x-1.9 Installed-version-not-supported",
        ]
    )

    def test_skips_noise_and_locked(self):
        """PHP notices, blanks and locked (six column) lines are dropped."""
        result = parse_status_pipe(self.OUTPUT)
        assert set(result) == {"drupal", "views", "token"}

    def test_dashes_become_spaces(self):
        result = parse_status_pipe(self.OUTPUT)
        assert result["drupal"].status_message == "SECURITY UPDATE available"
        assert result["token"].status_message == "Installed version not supported"

    def test_status_codes_from_text(self):
        result = parse_status_pipe(self.OUTPUT)
        assert result["drupal"].status_code == UpdateStatus.NOT_SECURE
        assert result["token"].status_code == UpdateStatus.NOT_SUPPORTED
        assert all(c.status_from_text for c in result.values())

    def test_short_lines_ignored(self):
        assert parse_status_pipe("views 7.x-3.20\n") == {}


class TestParseModuleList:
    """Tests for pm-list parsing."""

    def test_json(self):
        text = json.dumps(
            {
                "views": {
                    "package": "Views",
                    "name": "Views (views)",
                    "type": "module",
                    "status": "Enabled",
                    "version": "7.x-3.20",
                },
                "bartik": {"package": "Core", "name": "Bartik (bartik)", "type": "theme", "status": "Disabled"},
            }
        )
        result = parse_module_list_json(text)
        assert result["views"].human_name == "Views"
        assert result["views"].install_status == "Enabled"
        assert result["bartik"].project_type == "theme"

    def test_table(self):
        text = "\n".join(
            [
                " Package          Name                     Type    Status    Version",
                " Chaos tool suite  Chaos tools (ctools)    Module  Enabled   7.x-1.19",
                " Views            Views UI (views_ui)      Module  Disabled  7.x-3.20",
                " Other            Not a module line",
            ]
        )
        result = parse_module_list_table(text)
        assert set(result) == {"ctools", "views_ui"}
        assert result["ctools"].human_name == "Chaos tools"
        assert result["ctools"].package == "Chaos tool suite"
        assert result["views_ui"].install_status == "Disabled"
        assert result["views_ui"].version == "7.x-3.20"
