"""CLI entry point for the audiobook chapterizer."""

import sys
from pathlib import Path

import click
from loguru import logger

from . import __version__
from .config import ChapterizerConfig
from .errors import ChapterizerError, ExitCode, UsageError
from .ffmpeg import check_tools
from .ffprobe import hms
from .models import BookMetadata, RunSummary
from .runner import ChapterizerRunner

log = logger.bind(stage="cli")


def _default_name(source: Path) -> str:
    """Directory name used as default author and title."""
    source = source.resolve()
    return source.name if source.is_dir() else source.parent.name


def _resolve_book(
    source: Path,
    author: str | None,
    title: str | None,
    narrator: str | None,
    assume_yes: bool,
) -> BookMetadata:
    """Fill in author/title/narrator from options, prompts, or the directory name."""
    base = _default_name(source)
    if author is None:
        author = base if assume_yes else click.prompt("Author/Artist name", default=base)
    if title is None:
        title = base if assume_yes else click.prompt("Title", default=base)
    if narrator is None:
        narrator = (
            ""
            if assume_yes
            else click.prompt("Narrator (optional)", default="", show_default=False)
        )
    return BookMetadata(author=author.strip() or base, title=title.strip() or base, narrator=narrator.strip())


def _print_summary(summary: RunSummary) -> None:
    if not summary.results:
        return
    click.echo("")
    click.echo("Summary:")
    for result in summary.results:
        status = "skipped" if result.skipped else f"{result.chapters} chapters"
        click.echo(
            f"  Part {result.part.index}  {hms(result.part.duration)}  "
            f"{status}  {result.output.name}"
        )
    click.echo(
        f"Total: {len(summary.tracks)} files, {len(summary.parts)} parts, "
        f"{hms(summary.total_duration)} @ {summary.output_format}"
    )
    click.echo(f"Done. Outputs in {summary.output_dir}")


@click.command(context_settings={"help_option_names": ["-h", "--help"]})
@click.argument("source", required=False, type=click.Path(path_type=Path))
@click.option(
    "-n", "--dry-run", is_flag=True, help="Plan and report without creating files."
)
@click.option(
    "--validate",
    "validate_only",
    is_flag=True,
    help="Probe and validate inputs, then exit before planning.",
)
@click.option(
    "--self-test", is_flag=True, help="Check ffmpeg/ffprobe availability and exit."
)
@click.option(
    "-y",
    "--yes",
    "assume_yes",
    is_flag=True,
    help="Use the directory name as author/title and skip prompts.",
)
@click.option("--author", default=None, help="Author/artist tag.")
@click.option("--title", default=None, help="Album/book title tag.")
@click.option("--narrator", default=None, help="Narrator (written as composer tag).")
@click.option(
    "--max-duration",
    type=click.IntRange(min=1),
    default=None,
    help="Maximum part duration in seconds (default 43200 = 12h).",
)
@click.option(
    "--start-part",
    type=click.IntRange(min=1),
    default=None,
    help="Resume: skip parts numbered below N.",
)
@click.option(
    "--extended", "extended_formats", is_flag=True, help="Also accept .m4a and .opus inputs."
)
@click.option("--verbose", is_flag=True, help="Enable debug logging.")
@click.option("--quiet", is_flag=True, help="Only print warnings, errors and the summary.")
@click.option(
    "-c",
    "--config",
    "config_file",
    type=click.Path(exists=True, dir_okay=False, path_type=Path),
    default=None,
    help="Path to .env file.",
)
@click.version_option(__version__, "-v", "--version", prog_name="ab")
@click.pass_context
def cli(
    ctx: click.Context,
    source: Path | None,
    dry_run: bool,
    validate_only: bool,
    self_test: bool,
    assume_yes: bool,
    author: str | None,
    title: str | None,
    narrator: str | None,
    max_duration: int | None,
    start_part: int | None,
    extended_formats: bool,
    verbose: bool,
    quiet: bool,
    config_file: Path | None,
) -> None:
    """Concatenate audio files into chapterized .m4b audiobooks.

    SOURCE is a directory of audio files (mp3, wav, flac) or a playlist
    file listing them in order. Output is split into parts of at most 12
    hours and written to SOURCE/output/.
    """
    if verbose and quiet:
        raise click.UsageError("--verbose and --quiet are mutually exclusive.")

    # Pass CLI flags as kwargs to avoid env pollution; unset options defer to env
    config_kwargs: dict = {
        "dry_run": dry_run,
        "validate_only": validate_only,
        "assume_yes": assume_yes,
        "verbose": verbose,
        "quiet": quiet,
    }
    if extended_formats:
        config_kwargs["extended_formats"] = True
    if max_duration is not None:
        config_kwargs["max_duration"] = max_duration
    if start_part is not None:
        config_kwargs["start_part"] = start_part
    if config_file is not None:
        config_kwargs["_env_file"] = config_file

    config = ChapterizerConfig(**config_kwargs)
    config.setup_logging()

    try:
        if self_test:
            found = check_tools(config.ffmpeg_bin, config.ffprobe_bin)
            for name, value in found.items():
                click.echo(f"  {name}: {value}")
            click.echo("All deps present")
            return

        if source is None:
            raise click.UsageError("Missing argument 'SOURCE'.")
        if not source.exists():
            raise UsageError(f"'{source}' not found")

        check_tools(config.ffmpeg_bin, config.ffprobe_bin)
        book = _resolve_book(source, author, title, narrator, config.assume_yes)

        log.info(
            f"Starting: source={source} dry_run={config.dry_run} "
            f"validate={config.validate_only} max_duration={config.max_duration}"
        )
        summary = ChapterizerRunner(config=config).run(source, book)
    except ChapterizerError as e:
        click.echo(f"Error: {e}", err=True)
        ctx.exit(int(e.exit_code))
    except KeyboardInterrupt:
        click.echo("Interrupted.", err=True)
        ctx.exit(int(ExitCode.INTERRUPTED))

    _print_summary(summary)


def main(argv: list[str] | None = None) -> None:
    """Console script entry point.

    Runs the click command outside standalone mode so click's usage errors
    exit with code 1 like every other usage error.
    """
    try:
        rv = cli.main(args=argv, prog_name="ab", standalone_mode=False)
    except click.exceptions.Abort:
        click.echo("Aborted!", err=True)
        sys.exit(int(ExitCode.INTERRUPTED))
    except click.UsageError as e:
        e.show()
        sys.exit(int(ExitCode.USAGE))
    except click.ClickException as e:
        e.show()
        sys.exit(e.exit_code)
    sys.exit(rv if isinstance(rv, int) else 0)
