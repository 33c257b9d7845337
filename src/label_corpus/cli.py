"""CLI entry point for the label corpus downloader."""

import asyncio
import logging
import sys
from pathlib import Path
from typing import Optional

import typer

from label_corpus.adapters.github import GitHubGraphQLConnection, GitHubRestClient, GitHubSession
from label_corpus.config import Settings, get_settings
from label_corpus.core import BulkPaginator, MissingItemResolver, RepositoryRef, build_label_filter
from label_corpus.use_cases import CorpusDownloadService, validate_output_path


class TokenFilter(logging.Filter):
    """Redact the access token from log records."""

    def __init__(self, secret: Optional[str]) -> None:
        super().__init__()
        self.secret = secret

    def filter(self, record: logging.LogRecord) -> bool:
        if self.secret:
            record.msg = record.getMessage().replace(self.secret, "[REDACTED_TOKEN]")
            record.args = ()
        return True


def configure_logging(log_file: Optional[Path], token: Optional[str], debug: bool = False) -> None:
    """Send log records to the console and, if given, to a log file."""
    formatter = logging.Formatter("%(asctime)s %(levelname)s %(name)s: %(message)s")
    handlers: list[logging.Handler] = [logging.StreamHandler(sys.stdout)]
    if log_file is not None:
        handlers.append(logging.FileHandler(log_file, encoding="utf-8"))

    root = logging.getLogger()
    root.setLevel(logging.DEBUG if debug else logging.INFO)
    for handler in handlers:
        handler.setFormatter(formatter)
        handler.addFilter(TokenFilter(token))
        root.addHandler(handler)

    # Keep request-level chatter out of the trace.
    logging.getLogger("httpx").setLevel(logging.WARNING)


def default_output_path(settings: Settings, repository: RepositoryRef) -> Path:
    return settings.output_dir / f"{repository.owner}-{repository.name}-input.tsv"


def main(
    repositories: list[str] = typer.Argument(..., help="Repositories as owner/name"),
    output: Optional[Path] = typer.Option(None, "--output", "-o", help="Corpus file to write"),
    seed: Optional[Path] = typer.Option(None, "--seed", help="Existing corpus file to start from"),
    config: Path = typer.Option(Path("config.yaml"), "--config", help="YAML configuration file"),
    debug: bool = False,
) -> None:
    """Download labeled issues and pull requests into a training corpus."""
    completed = asyncio.run(async_run(repositories, output, seed, config, debug))
    if not completed:
        raise typer.Exit(code=1)


def app() -> None:
    """CLI entry point."""
    typer.run(main)


async def async_run(
    repositories: list[str],
    output: Optional[Path],
    seed: Optional[Path],
    config: Path,
    debug: bool,
) -> bool:
    """Async implementation of the download command."""
    settings = get_settings(config)
    configure_logging(settings.log_file, settings.github_token, debug)

    if not settings.github_token:
        print("\nThe GitHub access token must be set in the GITHUB_TOKEN environment variable.\n")
        return False

    try:
        refs = [RepositoryRef.parse(value) for value in repositories]
        if output is None:
            settings.output_dir.mkdir(parents=True, exist_ok=True)
            output = default_output_path(settings, refs[0])
        validate_output_path(output)
        label_filter = build_label_filter(
            mode=settings.labels.mode,
            service_color=settings.labels.service_color,
            category_color=settings.labels.category_color,
        )
    except ValueError as e:
        print(f"\n{e}\n")
        return False

    if seed is not None and not seed.exists():
        print(f"\nSeed corpus {seed} does not exist.\n")
        return False

    print("\n" + "=" * 70)
    print("LABEL CORPUS - issues and pull requests")
    print("=" * 70)
    print(f"  • Repositories: {', '.join(str(ref) for ref in refs)}")
    print(f"  • Output: {output}")
    if seed is not None:
        print(f"  • Seed: {seed}")
    print(f"  • Label filter: {settings.labels.mode} of service #{settings.labels.service_color}, "
          f"category #{settings.labels.category_color}")

    async with GitHubSession(
        token=settings.github_token,
        api_url=settings.github.api_url,
        graphql_url=settings.github.graphql_url,
        user_agent=settings.github.user_agent,
        timeout=settings.github.timeout,
    ) as session:
        connection = GitHubGraphQLConnection(session)
        client = GitHubRestClient(session)

        service = CorpusDownloadService(
            connection=connection,
            client=client,
            label_filter=label_filter,
            paginator=BulkPaginator(
                connection,
                page_size=settings.page_size,
                max_retries=settings.retry.max_retries,
                retry_delay=settings.retry.retry_delay,
            ),
            resolver=MissingItemResolver(
                client,
                label_filter,
                rate_limit_buffer=settings.rate_limit_buffer,
                max_retries=settings.retry.max_retries,
                retry_delay=settings.retry.retry_delay,
                progress_interval=settings.resolver.progress_interval,
                page_size=settings.page_size,
            ),
        )

        completed = await service.build(refs, output, seed)

    print("\n" + "=" * 70)
    if completed:
        print(f"✅ DONE: corpus saved to {output}")
    else:
        print(f"❌ The data needed for training was unable to be fully downloaded; partial corpus saved to {output}")
    print("=" * 70 + "\n")
    return completed


if __name__ == "__main__":
    app()
