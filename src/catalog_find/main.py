"""CLI entrypoint for catalog-find."""

from __future__ import annotations

import logging
from dataclasses import replace

import rich_click as click

from catalog_find import __version__
from catalog_find.config import MAX_TASKS, RetrySettings, Settings, parse_retry_option
from catalog_find.controllers import FindCliController, FindCommand
from catalog_find.errors import CatalogFindError

click.rich_click.USE_MARKDOWN = True
FIND_CONTROLLER = FindCliController()


class FindFailed(click.ClickException):
    """Fatal traversal error mapped onto its distinct exit code."""

    def __init__(self, error: CatalogFindError) -> None:
        super().__init__(str(error))
        self.exit_code = error.exit_code


@click.group()
@click.version_option(version=__version__, prog_name="catalog-find")
def catalog_find() -> None:
    """Run a command for every file or collection of an iRODS catalog tree."""


@catalog_find.command("find")
@click.argument("collection")
@click.option(
    "-C",
    "--connect",
    "db_url",
    default=None,
    help="SQLAlchemy URL of the catalog database. Defaults to CATALOG_FIND_DB_URL.",
)
@click.option("-D", "--dirs-only", is_flag=True, help="Visit collections only, not files.")
@click.option("-E", "--resource", default=None, help="Restrict files to this resource.")
@click.option("-I", "--print-ids", is_flag=True, help="Also print object ids.")
@click.option(
    "-Q",
    "--statement",
    default=None,
    help="SQL statement executed for every object, with `:id` bound to its id.",
)
@click.option(
    "-R",
    "--retry",
    "retry_option",
    default=None,
    metavar="N,W,M",
    help="Retry a failed command N times after waiting W seconds, M retries all in all.",
)
@click.option("-S", "--summary", is_flag=True, help="Print a summary.")
@click.option("-X", "--regexp", default=None, help="Only dispatch paths matching this regexp.")
@click.option(
    "-Y",
    "--substitute",
    default=None,
    help="Replace the first regexp match with this text.",
)
@click.option(
    "-b",
    "--batch-size",
    type=click.IntRange(min=1),
    default=None,
    help="Rows fetched per cursor page. Defaults to CATALOG_FIND_PAGE_SIZE or 1024.",
)
@click.option(
    "-c",
    "--command",
    "command_template",
    default=None,
    help="Command for every path; `%s` marks up to 4 path sites, none appends the quoted path.",
)
@click.option(
    "-d",
    "--debug",
    type=click.IntRange(min=0),
    default=0,
    show_default=True,
    help="Debug level, greater for more details.",
)
@click.option("-f", "--force", is_flag=True, help="Continue when a command fails.")
@click.option(
    "-l",
    "--check-length",
    type=click.IntRange(min=1),
    default=None,
    help="Print paths longer than this.",
)
@click.option(
    "-n",
    "--tasks",
    type=click.IntRange(min=1, max=MAX_TASKS),
    default=None,
    help="Number of parallel worker tasks.",
)
@click.option(
    "--task-capacity",
    type=click.IntRange(min=1),
    default=None,
    help="Commands queued per task before a batch runs. Defaults to the batch size.",
)
@click.option(
    "-p",
    "--progress",
    type=click.IntRange(min=1),
    default=None,
    help="Print a progress dot every N fetches.",
)
@click.option("-q", "--quiet", is_flag=True, help="Suppress informational output.")
@click.option("-r", "--replica", default=None, help="Replica number. Default is all replicas.")
@click.option(
    "-s",
    "--sort",
    "sort_order",
    type=click.IntRange(min=0, max=4),
    default=None,
    help="0 no sort, 1 ascending, 2 descending, 3 ascending unique, 4 descending unique.",
)
@click.option("-t", "--test", is_flag=True, help="Print command strings instead of running them.")
@click.option(
    "-u",
    "--encoding",
    default=None,
    help="Report paths that cannot be encoded with this codec, and run the command on them.",
)
@click.option("-v", "--verbose", is_flag=True, help="Print every visited path.")
def find(  # noqa: PLR0913
    collection: str,
    db_url: str | None,
    dirs_only: bool,
    resource: str | None,
    print_ids: bool,
    statement: str | None,
    retry_option: str | None,
    summary: bool,
    regexp: str | None,
    substitute: str | None,
    batch_size: int | None,
    command_template: str | None,
    debug: int,
    force: bool,
    check_length: int | None,
    tasks: int | None,
    task_capacity: int | None,
    progress: int | None,
    quiet: bool,
    replica: str | None,
    sort_order: int | None,
    test: bool,
    encoding: str | None,
    verbose: bool,
) -> None:
    """Walk COLLECTION and run a command for every file or collection."""

    _configure_logging(debug=debug, verbose=verbose)
    try:
        settings = Settings.from_env()
        settings = replace(
            settings,
            catalog=replace(
                settings.catalog,
                url=db_url or settings.catalog.url,
                page_size=batch_size or settings.catalog.page_size,
                sort_order=settings.catalog.sort_order if sort_order is None else sort_order,
                resource=resource or settings.catalog.resource,
                replica=replica or settings.catalog.replica,
            ),
            traversal=replace(
                settings.traversal,
                dirs_only=dirs_only,
                encoding=encoding,
                regexp=regexp,
                substitute=substitute,
                check_length=check_length or 0,
            ),
            dispatch=replace(
                settings.dispatch,
                command=command_template,
                statement=statement,
                tasks=settings.dispatch.tasks if tasks is None else tasks,
                task_capacity=task_capacity,
                force=force,
                test=test,
            ),
            retry=_retry_settings(settings, retry_option),
            output=replace(
                settings.output,
                verbose=verbose,
                quiet=quiet,
                print_ids=print_ids,
                progress=progress or 0,
                summary=summary or settings.output.summary,
                debug=debug,
            ),
        )
        result = FIND_CONTROLLER.run(FindCommand(root=collection, settings=settings))
    except CatalogFindError as error:
        raise FindFailed(error) from error

    if settings.output.progress:
        click.echo()
    _emit_lines(result.error_lines, err=True)
    _emit_lines(result.lines)
    if result.error is not None:
        raise FindFailed(result.error)


def _retry_settings(settings: Settings, retry_option: str | None) -> RetrySettings:
    if retry_option is None:
        return settings.retry
    retries, delay, max_failures = parse_retry_option(retry_option)
    return replace(
        settings.retry,
        enabled=True,
        max_retries=retries,
        delay_seconds=delay,
        max_failures=max_failures,
    )


def _configure_logging(*, debug: int, verbose: bool) -> None:
    if debug > 0:
        level = logging.DEBUG
    elif verbose:
        level = logging.INFO
    else:
        level = logging.WARNING
    logging.basicConfig(level=level, format="%(levelname)s %(name)s: %(message)s", force=True)


def _emit_lines(lines: list[str], *, err: bool = False) -> None:
    for line in lines:
        click.echo(line, err=err)


if __name__ == "__main__":  # pragma: no cover
    catalog_find()
