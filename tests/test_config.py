from __future__ import annotations

import allure
import pytest

from catalog_find.config import (
    CatalogSettings,
    DispatchSettings,
    RetrySettings,
    Settings,
    TraversalSettings,
    parse_retry_option,
    validate_root,
)
from catalog_find.errors import ConfigError

pytestmark = [
    allure.epic("Configuration"),
    allure.feature("Settings Validation"),
]


def test_from_env_reads_catalog_and_dispatch_overrides(monkeypatch) -> None:
    monkeypatch.setenv("CATALOG_FIND_DB_URL", "sqlite:///tmp/icat.db")
    monkeypatch.setenv("CATALOG_FIND_PAGE_SIZE", "50")
    monkeypatch.setenv("CATALOG_FIND_TASKS", "4")
    monkeypatch.setenv("CATALOG_FIND_SUMMARY", "yes")

    settings = Settings.from_env()

    assert settings.catalog.url == "sqlite:///tmp/icat.db"
    assert settings.catalog.page_size == 50
    assert settings.dispatch.tasks == 4
    assert settings.output.summary is True
    assert settings.task_capacity == 50


def test_from_env_rejects_invalid_boolean(monkeypatch) -> None:
    monkeypatch.setenv("CATALOG_FIND_SUMMARY", "maybe")

    with pytest.raises(ConfigError, match="Invalid boolean value for CATALOG_FIND_SUMMARY"):
        Settings.from_env()


@pytest.mark.parametrize(
    ("name", "value", "message"),
    [
        ("CATALOG_FIND_PAGE_SIZE", "lots", "Invalid integer value for CATALOG_FIND_PAGE_SIZE"),
        ("CATALOG_FIND_TASKS", "4.5", "Invalid integer value for CATALOG_FIND_TASKS"),
        (
            "CATALOG_FIND_RETRY_DELAY_SECONDS",
            "soon",
            "Invalid number value for CATALOG_FIND_RETRY_DELAY_SECONDS",
        ),
    ],
)
def test_from_env_rejects_malformed_numbers(
    monkeypatch,
    name: str,
    value: str,
    message: str,
) -> None:
    monkeypatch.setenv(name, value)

    with pytest.raises(ConfigError, match=message):
        Settings.from_env()


def test_default_settings_are_valid() -> None:
    Settings().validate()


def test_task_capacity_override_wins_over_page_size() -> None:
    settings = Settings(dispatch=DispatchSettings(command="ls", tasks=2, task_capacity=7))

    assert settings.task_capacity == 7


@pytest.mark.parametrize(
    ("settings", "message"),
    [
        (Settings(catalog=CatalogSettings(page_size=0)), "batch size"),
        (Settings(catalog=CatalogSettings(sort_order=5)), "Wrong sort option"),
        (Settings(catalog=CatalogSettings(replica="first")), "replica"),
        (Settings(dispatch=DispatchSettings(command="ls", tasks=65)), "Wrong number of tasks"),
        (Settings(dispatch=DispatchSettings(tasks=2)), "no command was specified"),
        (Settings(dispatch=DispatchSettings(command="  ")), "empty string"),
        (
            Settings(dispatch=DispatchSettings(statement="DELETE FROM x")),
            "does not have :id",
        ),
        (
            Settings(
                dispatch=DispatchSettings(command="ls", force=True),
                retry=RetrySettings(enabled=True),
            ),
            "both force and retry",
        ),
        (
            Settings(retry=RetrySettings(enabled=True, max_failures=0)),
            "Wrong specification for retries",
        ),
        (Settings(traversal=TraversalSettings(substitute="x")), "regexp with a substitution"),
        (
            Settings(traversal=TraversalSettings(regexp="a", check_length=5)),
            "both regexp and length check",
        ),
        (Settings(traversal=TraversalSettings(regexp="(")), "Wrong regular expression"),
        (Settings(traversal=TraversalSettings(encoding="no-such-codec")), "Invalid encoding"),
        (Settings(traversal=TraversalSettings(max_path_length=0)), "Length limits"),
        (Settings(retry=RetrySettings(max_failures=0)), "Maximum number of command retries"),
    ],
)
def test_validate_rejects_inconsistent_settings(settings: Settings, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        settings.validate()


def test_validate_accepts_statement_with_id_parameter() -> None:
    Settings(dispatch=DispatchSettings(statement="DELETE FROM x WHERE id = :id")).validate()


@pytest.mark.parametrize(
    ("root", "message"),
    [
        ("", "empty"),
        ("zone/home", "absolute pathname"),
        ("/zone/home/", "trailing slash"),
    ],
)
def test_validate_root_rejects_bad_roots(root: str, message: str) -> None:
    with pytest.raises(ConfigError, match=message):
        validate_root(root)


def test_validate_root_accepts_slash_and_absolute_paths() -> None:
    assert validate_root("/") == "/"
    assert validate_root("/zone/home") == "/zone/home"


def test_parse_retry_option() -> None:
    assert parse_retry_option("3, 59, 100") == (3, 59.0, 100)


@pytest.mark.parametrize("value", ["3,59", "a,b,c", "0,1,1", "1,1,-1"])
def test_parse_retry_option_rejects_bad_values(value: str) -> None:
    with pytest.raises(ConfigError, match="Wrong specification for retries"):
        parse_retry_option(value)
