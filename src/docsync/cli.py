"""CLI commands for generating and applying documentation patch suggestions."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

import typer

from .config import (
    DEFAULT_DOCS_MAP,
    DEFAULT_OUT_DIR,
    SYNTHESIS_MODES,
    RunConfig,
    load_env_file,
)
from .diff_index import parse_diff_files
from .mapping import ConfigError, DocsMap, load_docs_map, resolve_targets
from .models import ChatCompletionsClient, OfflineGenerator, TextGenerator
from .pipeline import DocSyncPipeline, RunResult
from .publish import PublishError, post_pull_request_comment
from .report import render_summary, write_run_artifacts
from .sources import DocumentSource, GitHubDocumentSource, LocalDocumentSource
from .tools.oracle import GitApplyOracle, run_git

APP_HELP = "Turn code diffs into validated, git-applicable documentation patches."
LOG_FORMAT = "%(asctime)s %(levelname)s %(name)s: %(message)s"

app = typer.Typer(help=APP_HELP)


def _configure_logging(verbose: bool) -> None:
    level = logging.DEBUG if verbose else logging.WARNING
    logging.basicConfig(level=level, format=LOG_FORMAT)
    logging.getLogger("docsync").setLevel(level)


def _read_diff(diff: Optional[Path]) -> str:
    if diff is None:
        typer.echo("diff is required; pass --diff path")
        raise typer.Exit(code=1)
    if not diff.is_file():
        typer.echo(f"Diff file not found: {diff}")
        raise typer.Exit(code=1)
    return diff.read_text(encoding="utf-8", errors="replace")


def _load_map(path: Path) -> DocsMap:
    try:
        return load_docs_map(path)
    except ConfigError as error:
        typer.echo(f"Configuration error: {error}")
        raise typer.Exit(code=1) from error


def _build_source(config: RunConfig) -> DocumentSource:
    if config.docs_dir is not None:
        if not config.docs_dir.is_dir():
            typer.echo(f"Docs directory not found: {config.docs_dir}")
            raise typer.Exit(code=1)
        return LocalDocumentSource(config.docs_dir)
    if not config.docs_repo:
        typer.echo("docs repo is required (--docs-repo, DOCS_REPO env, or --docs-dir)")
        raise typer.Exit(code=1)
    try:
        return GitHubDocumentSource(config.docs_repo, token=config.github_token)
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _build_generator(config: RunConfig) -> TextGenerator:
    """Return the generator for this run, exiting when credentials are missing."""
    if config.mock:
        typer.echo("Using offline mock generator.")
        return OfflineGenerator()
    try:
        if config.azure:
            if not config.azure_endpoint:
                raise ValueError("AZURE_OPENAI_ENDPOINT is required for Azure usage")
            if not config.azure_api_key:
                raise ValueError("AZURE_OPENAI_API_KEY is required for Azure usage")
            return ChatCompletionsClient.for_azure(
                endpoint=config.azure_endpoint,
                deployment=config.azure_deployment or config.model,
                api_version=config.azure_api_version,
                api_key=config.azure_api_key,
            )
        if not config.api_key:
            raise ValueError(
                "Missing LLM credentials: set AZURE_OPENAI_API_KEY (or OPENAI_API_KEY fallback), or use --mock"
            )
        return ChatCompletionsClient(api_key=config.api_key, base_url=config.openai_base_url, model=config.model)
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error


def _report(result: RunResult, config: RunConfig) -> None:
    for outcome in result.outcomes:
        marker = "+" if outcome.patch is not None else "-"
        detail = f" ({outcome.reason})" if outcome.reason else ""
        typer.echo(f"{marker} {outcome.target.doc_path}: {outcome.status.value}{detail}")
    typer.echo(result.summary())
    if result.generated:
        typer.echo(f"Suggestions written to {config.out_dir}")


@app.command()
def suggest(
    diff: Optional[Path] = typer.Option(None, "--diff", help="Unified diff of the code change."),
    docs_map: Path = typer.Option(Path(DEFAULT_DOCS_MAP), "--docs-map", help="Docs-map YAML file."),
    docs_repo: Optional[str] = typer.Option(None, "--docs-repo", help="Docs repository as owner/name (or DOCS_REPO)."),
    docs_dir: Optional[Path] = typer.Option(None, "--docs-dir", help="Read docs from a local checkout instead of GitHub."),
    docs_branch: Optional[str] = typer.Option(None, "--docs-branch", help="Docs branch or ref (default: main)."),
    out_dir: Path = typer.Option(Path(DEFAULT_OUT_DIR), "--out-dir", help="Directory for patches and reports."),
    style_guide: Optional[str] = typer.Option(None, "--style-guide", help="Style guide path inside the docs source."),
    comment_pr: Optional[int] = typer.Option(None, "--comment-pr", help="Pull request number to comment on."),
    code_repo: Optional[str] = typer.Option(None, "--code-repo", help="Code repository as owner/name for comments."),
    model: Optional[str] = typer.Option(None, "--model", help="Model name (or OPENAI_MODEL)."),
    openai_base_url: Optional[str] = typer.Option(None, "--openai-base-url", help="OpenAI-compatible base URL."),
    azure: Optional[bool] = typer.Option(
        None, "--azure/--no-azure", help="Use an Azure OpenAI deployment (default: on when AZURE_OPENAI_ENDPOINT is set)."
    ),
    azure_endpoint: Optional[str] = typer.Option(None, "--azure-endpoint", help="Azure OpenAI endpoint."),
    azure_deployment: Optional[str] = typer.Option(None, "--azure-deployment", help="Azure OpenAI deployment."),
    azure_api_version: Optional[str] = typer.Option(None, "--azure-api-version", help="Azure OpenAI API version."),
    user: Optional[str] = typer.Option(None, "--user", help="Value for the chat request 'user' field."),
    mode: str = typer.Option("content", "--mode", help=f"Synthesis mode: {' or '.join(SYNTHESIS_MODES)}."),
    llm_only: bool = typer.Option(False, "--llm-only", help="Disable replace-all and deterministic fallbacks."),
    mock: bool = typer.Option(False, "--mock", help="Use the offline generator; no credentials needed."),
    verbose: bool = typer.Option(False, "--verbose", help="Enable debug logging."),
) -> None:
    """Generate validated documentation patches for a code diff."""
    _configure_logging(verbose)
    load_env_file(Path.cwd() / ".env")
    try:
        config = RunConfig.from_env(
            diff_path=diff,
            docs_map_path=docs_map,
            docs_repo=docs_repo,
            docs_dir=docs_dir,
            docs_branch=docs_branch,
            out_dir=out_dir,
            style_guide_path=style_guide,
            comment_pr=comment_pr,
            code_repo=code_repo,
            model=model,
            openai_base_url=openai_base_url,
            azure=azure,
            azure_endpoint=azure_endpoint,
            azure_deployment=azure_deployment,
            azure_api_version=azure_api_version,
            user=user,
            synthesis_mode=mode,
            llm_only=llm_only,
            mock=mock,
            verbose=verbose,
        )
    except ValueError as error:
        typer.echo(str(error))
        raise typer.Exit(code=1) from error

    diff_text = _read_diff(config.diff_path)
    mapping = _load_map(config.docs_map_path)
    source = _build_source(config)

    targets = resolve_targets(parse_diff_files(diff_text), mapping)
    generator = _build_generator(config) if targets else None

    pipeline = DocSyncPipeline(config, source, generator, GitApplyOracle())
    result = pipeline.run(diff_text, mapping)
    write_run_artifacts(config.out_dir, result)
    _report(result, config)

    if result.generated and config.comment_pr is not None and config.code_repo:
        try:
            post_pull_request_comment(
                config.code_repo,
                config.comment_pr,
                render_summary(result),
                token=config.github_token,
            )
        except PublishError as error:
            typer.echo(str(error))
            raise typer.Exit(code=1) from error
        typer.echo(f"Comment posted to PR #{config.comment_pr} in {config.code_repo}")


@app.command()
def apply(
    patch: Path = typer.Argument(..., help="Suggestion patch file to apply."),
    repo_root: Path = typer.Option(Path("."), "--repo-root", help="Docs checkout to apply the patch in."),
    check: bool = typer.Option(False, "--check", help="Only verify that the patch applies."),
) -> None:
    """Apply a suggestion patch with ``git apply``."""
    if not patch.is_file():
        typer.echo(f"Patch file not found: {patch}")
        raise typer.Exit(code=1)
    if not repo_root.is_dir():
        typer.echo(f"Repository root not found: {repo_root}")
        raise typer.Exit(code=1)

    args = ["apply", "--check", str(patch.resolve())] if check else ["apply", str(patch.resolve())]
    result = run_git(args, cwd=repo_root)
    if result.returncode != 0:
        message = result.stderr.strip() or result.stdout.strip() or "unknown error"
        typer.echo(f"git apply failed: {message}")
        raise typer.Exit(code=1)
    typer.echo(f"Patch {'applies cleanly' if check else 'applied'}: {patch}")


if __name__ == "__main__":
    app()
