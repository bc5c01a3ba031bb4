from __future__ import annotations

import allure
from click.testing import CliRunner

from catalog_find import __version__
from catalog_find.errors import EXIT_CATALOG, EXIT_CONFIG
from catalog_find.main import catalog_find

pytestmark = [
    allure.epic("Command Line"),
    allure.feature("find"),
]


def test_version_option() -> None:
    result = CliRunner().invoke(catalog_find, ["--version"])

    assert result.exit_code == 0
    assert __version__ in result.output


def test_find_test_mode_prints_commands_and_summary(catalog_url, seed_catalog) -> None:
    seed_catalog({"/zone/dir1": [("fileA", 10)], "/zone/dir2": [("fileB", 20)]})

    result = CliRunner().invoke(
        catalog_find,
        [
            "find",
            "--connect",
            catalog_url,
            "--command",
            "cp %s %s.bak",
            "--sort",
            "1",
            "--test",
            "--summary",
            "/zone",
        ],
    )

    assert result.exit_code == 0, result.output
    assert "cp /zone/dir1/fileA /zone/dir1/fileA.bak" in result.output
    assert "cp /zone/dir2/fileB /zone/dir2/fileB.bak" in result.output
    assert f"{30:>24} bytes grand total" in result.output


def test_find_without_command_lists_paths(catalog_url, seed_catalog) -> None:
    seed_catalog({"/zone/dir1": [("fileA", 10)]})

    result = CliRunner().invoke(catalog_find, ["find", "-C", catalog_url, "/zone"])

    assert result.exit_code == 0, result.output
    assert "/zone/dir1/fileA" in result.output


def test_find_rejects_relative_root_with_config_exit_code(catalog_url) -> None:
    result = CliRunner().invoke(catalog_find, ["find", "-C", catalog_url, "zone/dir1"])

    assert result.exit_code == EXIT_CONFIG
    assert "absolute pathname" in result.output


def test_find_rejects_bad_retry_option(catalog_url) -> None:
    result = CliRunner().invoke(
        catalog_find,
        ["find", "-C", catalog_url, "-c", "ls", "-R", "3,59", "/zone"],
    )

    assert result.exit_code == EXIT_CONFIG
    assert "Wrong specification for retries" in result.output


def test_find_rejects_too_many_tasks(catalog_url) -> None:
    result = CliRunner().invoke(
        catalog_find,
        ["find", "-C", catalog_url, "-c", "ls", "-n", "65", "/zone"],
    )

    assert result.exit_code == 2


def test_find_rejects_malformed_environment_value(catalog_url) -> None:
    result = CliRunner().invoke(
        catalog_find,
        ["find", "-C", catalog_url, "/zone"],
        env={"CATALOG_FIND_PAGE_SIZE": "lots"},
    )

    assert result.exit_code == EXIT_CONFIG
    assert "Invalid integer value for CATALOG_FIND_PAGE_SIZE" in result.output


def test_find_unreachable_catalog_has_own_exit_code(tmp_path) -> None:
    url = f"sqlite:///{tmp_path / 'missing' / 'icat.db'}"

    result = CliRunner().invoke(catalog_find, ["find", "-C", url, "-c", "ls", "/zone"])

    assert result.exit_code == EXIT_CATALOG
    assert result.exit_code != 2
    assert "Cannot connect to catalog database" in result.output
    assert result.output.count("Last path was: 'none'") == 1
