"""Runtime configuration for catalog traversal and command dispatch."""

from __future__ import annotations

import os
import re
from dataclasses import dataclass, field

from catalog_find.errors import ConfigError

MAX_TASKS = 64
PATHNAME_LENGTH = 65_536
COMMAND_LENGTH = 65_536
SORT_ORDERS = (0, 1, 2, 3, 4)
_ID_PARAMETER = re.compile(r":id\b")


@dataclass(slots=True)
class CatalogSettings:
    """Catalog connection and query settings."""

    url: str = "postgresql+psycopg://irods@localhost/ICAT"
    page_size: int = 1024
    sort_order: int = 0
    resource: str | None = None
    replica: str | None = None


@dataclass(slots=True)
class TraversalSettings:
    """What the walker visits and how paths are checked."""

    dirs_only: bool = False
    max_path_length: int = PATHNAME_LENGTH
    encoding: str | None = None
    regexp: str | None = None
    substitute: str | None = None
    check_length: int = 0


@dataclass(slots=True)
class DispatchSettings:
    """Per-leaf command and statement dispatch."""

    command: str | None = None
    statement: str | None = None
    tasks: int = 0
    task_capacity: int | None = None
    force: bool = False
    test: bool = False
    max_command_length: int = COMMAND_LENGTH


@dataclass(slots=True)
class RetrySettings:
    """Bounded retry of failing commands."""

    enabled: bool = False
    max_retries: int = 3
    delay_seconds: float = 59.0
    max_failures: int = 32_768


@dataclass(slots=True)
class OutputSettings:
    """Operator-facing output switches."""

    verbose: bool = False
    quiet: bool = False
    print_ids: bool = False
    progress: int = 0
    summary: bool = False
    debug: int = 0


@dataclass(slots=True)
class Settings:
    """Application settings grouped by concern."""

    catalog: CatalogSettings = field(default_factory=CatalogSettings)
    traversal: TraversalSettings = field(default_factory=TraversalSettings)
    dispatch: DispatchSettings = field(default_factory=DispatchSettings)
    retry: RetrySettings = field(default_factory=RetrySettings)
    output: OutputSettings = field(default_factory=OutputSettings)

    @classmethod
    def from_env(cls) -> Settings:
        """Load defaults from ``CATALOG_FIND_*`` environment variables."""

        return cls(
            catalog=CatalogSettings(
                url=os.getenv(
                    "CATALOG_FIND_DB_URL",
                    "postgresql+psycopg://irods@localhost/ICAT",
                ),
                page_size=_env_int("CATALOG_FIND_PAGE_SIZE", 1024),
                sort_order=_env_int("CATALOG_FIND_SORT_ORDER", 0),
                resource=os.getenv("CATALOG_FIND_RESOURCE") or None,
                replica=os.getenv("CATALOG_FIND_REPLICA") or None,
            ),
            traversal=TraversalSettings(
                max_path_length=_env_int("CATALOG_FIND_MAX_PATH_LENGTH", PATHNAME_LENGTH),
            ),
            dispatch=DispatchSettings(
                tasks=_env_int("CATALOG_FIND_TASKS", 0),
                max_command_length=_env_int("CATALOG_FIND_MAX_COMMAND_LENGTH", COMMAND_LENGTH),
            ),
            retry=RetrySettings(
                max_retries=_env_int("CATALOG_FIND_RETRY_COUNT", 3),
                delay_seconds=_env_float("CATALOG_FIND_RETRY_DELAY_SECONDS", 59.0),
                max_failures=_env_int("CATALOG_FIND_RETRY_MAX_FAILURES", 32_768),
            ),
            output=OutputSettings(
                summary=_env_bool("CATALOG_FIND_SUMMARY", default=False),
            ),
        )

    @property
    def task_capacity(self) -> int:
        """Commands per task; defaults to the page size."""

        return self.dispatch.task_capacity or self.catalog.page_size

    def validate(self) -> None:  # noqa: C901, PLR0912
        """Raise ``ConfigError`` for inconsistent settings."""

        if self.catalog.page_size <= 0:
            raise ConfigError("Wrong number for batch size, must be > 0.")
        if self.catalog.sort_order not in SORT_ORDERS:
            raise ConfigError(f"Wrong sort option {self.catalog.sort_order}")
        if self.catalog.replica is not None:
            if not self.catalog.replica.isdigit():
                raise ConfigError(f"Wrong number for replica: {self.catalog.replica!r}")
        if not 0 <= self.dispatch.tasks <= MAX_TASKS:
            raise ConfigError(
                f"Wrong number of tasks ({self.dispatch.tasks}), "
                f"should be 0 <= n <= {MAX_TASKS}",
            )
        if self.dispatch.task_capacity is not None and self.dispatch.task_capacity <= 0:
            raise ConfigError("Task capacity must be > 0.")
        if self.dispatch.tasks > 0 and self.dispatch.command is None:
            raise ConfigError("Cannot multitask when no command was specified")
        if self.dispatch.command is not None and not self.dispatch.command.strip():
            raise ConfigError("Wrong argument for command, empty string")
        if self.dispatch.statement is not None and not _ID_PARAMETER.search(
            self.dispatch.statement,
        ):
            raise ConfigError("SQL statement string does not have :id for the object id")
        if self.dispatch.force and self.retry.enabled:
            raise ConfigError("Do not specify both force and retry")
        if self.retry.enabled and (
            self.retry.max_retries <= 0
            or self.retry.delay_seconds <= 0
            or self.retry.max_failures <= 0
        ):
            raise ConfigError("Wrong specification for retries")
        if self.retry.max_failures <= 0:
            raise ConfigError("Maximum number of command retries must be > 0.")
        if self.traversal.substitute is not None and self.traversal.regexp is None:
            raise ConfigError("Need to specify a regexp with a substitution")
        if self.traversal.check_length > 0 and self.traversal.regexp is not None:
            raise ConfigError("Cannot specify both regexp and length check")
        if self.traversal.regexp is not None:
            try:
                re.compile(self.traversal.regexp)
            except re.error as error:
                raise ConfigError(
                    f"Wrong regular expression {self.traversal.regexp!r}: {error}",
                ) from error
        if self.traversal.encoding is not None:
            try:
                "".encode(self.traversal.encoding)
            except LookupError as error:
                raise ConfigError(
                    f"Invalid encoding name {self.traversal.encoding}",
                ) from error
        if self.traversal.max_path_length <= 0 or self.dispatch.max_command_length <= 0:
            raise ConfigError("Length limits must be > 0.")


def validate_root(root: str) -> str:
    """Check the traversal root: absolute, no trailing slash."""

    if not root:
        raise ConfigError("Directory string empty")
    if not root.startswith("/"):
        raise ConfigError("Directory name should be an absolute pathname")
    if root != "/" and root.endswith("/"):
        raise ConfigError("Directory name should not have trailing slash")
    return root


def parse_retry_option(value: str) -> tuple[int, float, int]:
    """Parse ``n,w,m``: retries per command, delay seconds, total retries allowed."""

    parts = [part.strip() for part in value.split(",")]
    if len(parts) != 3:
        raise ConfigError(f"Wrong specification for retries: {value!r}, expected n,w,m")
    try:
        retries = int(parts[0])
        delay = float(parts[1])
        max_failures = int(parts[2])
    except ValueError as error:
        raise ConfigError(f"Wrong specification for retries: {value!r}") from error
    if retries <= 0 or delay <= 0 or max_failures <= 0:
        raise ConfigError(f"Wrong specification for retries: {value!r}")
    return retries, delay, max_failures


def _env_bool(name: str, default: bool) -> bool:
    value = os.getenv(name)
    if value is None:
        return default
    normalized = value.strip().lower()
    if normalized in {"1", "true", "yes", "on"}:
        return True
    if normalized in {"0", "false", "no", "off"}:
        return False
    raise ConfigError(f"Invalid boolean value for {name}: {value!r}")


def _env_int(name: str, default: int) -> int:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return int(value)
    except ValueError as error:
        raise ConfigError(f"Invalid integer value for {name}: {value!r}") from error


def _env_float(name: str, default: float) -> float:
    value = os.getenv(name)
    if value is None or not value.strip():
        return default
    try:
        return float(value)
    except ValueError as error:
        raise ConfigError(f"Invalid number value for {name}: {value!r}") from error
