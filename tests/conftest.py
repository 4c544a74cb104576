"""Shared fixtures: a scripted command runner in place of drush and git."""

from __future__ import annotations

import io

import pytest
from rich.console import Console

from drupal_updater.config.settings import Settings
from drupal_updater.tools.drush import DrushClient
from drupal_updater.tools.git import GitClient

from fakes import FakeRunner


@pytest.fixture
def runner():
    return FakeRunner()


@pytest.fixture
def drush(runner):
    return DrushClient("drush", runner)


@pytest.fixture
def git(runner):
    return GitClient("git", runner)


@pytest.fixture
def site_root(tmp_path):
    root = tmp_path / "site"
    root.mkdir()
    return root


@pytest.fixture
def settings(tmp_path):
    return Settings(_env_file=None, log_dir=tmp_path / "logs")


@pytest.fixture
def console():
    return Console(file=io.StringIO(), record=True, width=200)
