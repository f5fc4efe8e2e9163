from __future__ import annotations

import logging
from pathlib import Path
from typing import Annotated, Final

import typer
from rich.console import Console
from rich.logging import RichHandler

from vibe_check.clients.llm import OpenRouterClient
from vibe_check.errors import ScanCancelledError, ValidationError, describe_error
from vibe_check.loaders.html_loader import HtmlLoader
from vibe_check.loaders.json_loader import ReportJsonLoader
from vibe_check.loaders.pdf_loader import PdfLoader
from vibe_check.loaders.yaml_loader import ReportYamlLoader
from vibe_check.models.config import (
    DEFAULT_MODEL,
    OPENROUTER_BASE_URL,
    OPENROUTER_KEY_PREFIX,
    OPENROUTER_MODELS,
    ScanConfig,
)
from vibe_check.pipeline import ScanPipeline
from vibe_check.repositories.config import ConfigRepository
from vibe_check.services.terminal import TerminalReporter

app = typer.Typer(
    name="vibe-check",
    add_completion=False,
    no_args_is_help=True,
    help="AI-powered codebase vulnerability scanner.",
)
config_app = typer.Typer(no_args_is_help=True, help="Manage vibe-check configuration settings.")
app.add_typer(config_app, name="config")

console: Final[Console] = Console()
err_console: Final[Console] = Console(stderr=True)


def _configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        handlers=[RichHandler(console=err_console, show_path=False, show_time=False)],
        force=True,
    )


def _fail(error: BaseException, context: str) -> typer.Exit:
    description = describe_error(error)
    for line in description.lines(context):
        typer.secho(line, fg=typer.colors.RED, err=True)
    return typer.Exit(code=1)


def _repository(ctx: typer.Context) -> ConfigRepository:
    repo = ctx.obj
    if isinstance(repo, ConfigRepository):
        return repo
    return ConfigRepository()


def _check_api_key(value: str, base_url: str) -> str:
    value = value.strip()
    if not value:
        raise typer.BadParameter("API key is required")
    if base_url == OPENROUTER_BASE_URL and not value.startswith(OPENROUTER_KEY_PREFIX):
        raise typer.BadParameter(
            f"Please enter a valid OpenRouter API key (should start with {OPENROUTER_KEY_PREFIX})"
        )
    return value


def _prompt_api_key(base_url: str) -> str:
    while True:
        value = typer.prompt("Enter your OpenRouter API key", hide_input=True)
        try:
            return _check_api_key(value, base_url)
        except typer.BadParameter as exc:
            typer.secho(str(exc), fg=typer.colors.YELLOW)


def _prompt_model(default: str = DEFAULT_MODEL) -> str:
    choices = list(OPENROUTER_MODELS.items())
    for index, (model_id, label) in enumerate(choices, start=1):
        typer.echo(f"  {index:2d}. {label} [{model_id}]")
    default_index = next(
        (i for i, (model_id, _) in enumerate(choices, start=1) if model_id == default), None
    )
    answer = typer.prompt(
        "Select your preferred AI model (number or model id)",
        default=str(default_index) if default_index else default,
    ).strip()
    if answer.isdigit() and 1 <= int(answer) <= len(choices):
        return choices[int(answer) - 1][0]
    return answer


def _show(cfg: ScanConfig, repo: ConfigRepository) -> None:
    label = OPENROUTER_MODELS.get(cfg.model, cfg.model)
    typer.secho("CURRENT CONFIGURATION", bold=True, fg=typer.colors.CYAN)
    typer.echo(f"Model:    {label}")
    typer.echo(f"API Key:  {cfg.masked_api_key}")
    typer.echo(f"Base URL: {cfg.base_url}")
    typer.secho(f"Config file: {repo.config_file}", dim=True)


@app.callback()
def main_callback(
    ctx: typer.Context,
    config_file: Annotated[
        Path | None,
        typer.Option(
            "--config-file",
            envvar="VIBE_CHECK_CONFIG_FILE",
            help="Configuration file to use instead of ~/.vibe-check/config.json.",
            dir_okay=False,
        ),
    ] = None,
) -> None:
    ctx.obj = ConfigRepository(config_file=config_file) if config_file else ConfigRepository()


@app.command("scan")
def scan(
    ctx: typer.Context,
    directory: Annotated[
        Path,
        typer.Argument(help="Directory (or single file) to scan."),
    ] = Path("."),
    output: Annotated[
        Path | None,
        typer.Option("--output", "-o", help="Save detailed report to JSON file.", dir_okay=False),
    ] = None,
    yaml_output: Annotated[
        Path | None,
        typer.Option("--yaml", help="Save detailed report to YAML file.", dir_okay=False),
    ] = None,
    html_output: Annotated[
        Path | None,
        typer.Option("--html", help="Export report as an HTML document.", dir_okay=False),
    ] = None,
    pdf_output: Annotated[
        Path | None,
        typer.Option("--pdf", "-p", help="Export report as PDF file.", dir_okay=False),
    ] = None,
    font: Annotated[
        str | None,
        typer.Option("--font", help='Font family for the HTML report (e.g. "Arial").'),
    ] = None,
    pdf_font: Annotated[
        str | None,
        typer.Option(
            "--pdf-font",
            help='Font for the PDF report: a family name (e.g. "Helvetica") or a .ttf/.otf file.',
        ),
    ] = None,
    pdf_markdown: Annotated[
        bool,
        typer.Option("--pdf-markdown", help="Render the PDF from Markdown (minimal, AI-friendly)."),
    ] = False,
    pdf_open: Annotated[
        bool,
        typer.Option("--pdf-open", help="Open the PDF in the default application after generation."),
    ] = False,
    verbose: Annotated[
        bool,
        typer.Option("--verbose", "-v", help="Show detailed progress information."),
    ] = False,
) -> None:
    """Scan a directory for security vulnerabilities using AI analysis."""
    _configure_logging(verbose)
    pipeline = ScanPipeline(
        config_repository=_repository(ctx),
        invoker_factory=OpenRouterClient,
    )

    console.print("[bold cyan]Starting security scan...[/]")
    try:
        with console.status("Initializing AI-powered analysis engine...") as status:
            pipeline.on_stage = lambda message: status.update(message)
            report = pipeline.run(directory)
    except KeyboardInterrupt:
        pipeline.cancellation.cancel("Scan interrupted by user")
        raise _fail(ScanCancelledError("Scan interrupted by user"), "Scan") from None
    except Exception as exc:
        console.print("[red]Security scan failed![/]")
        raise _fail(exc, "Scan") from exc

    console.print("[green]Security scan completed successfully![/]")
    TerminalReporter(console).render(report)

    try:
        if output:
            ReportJsonLoader(output).load(report)
            console.print(f"JSON report saved to: [underline]{output}[/]")
        if yaml_output:
            ReportYamlLoader(yaml_output).load(report)
            console.print(f"YAML report saved to: [underline]{yaml_output}[/]")
        if html_output:
            HtmlLoader(html_output, font_family=font).load(report)
            console.print(f"HTML report saved to: [underline]{html_output}[/]")
        if pdf_output:
            written = PdfLoader(pdf_output, font=pdf_font, markdown=pdf_markdown).load(report)
            console.print(f"PDF report saved to: [underline]{written}[/]")
            if pdf_open:
                if typer.launch(str(written)) == 0:
                    console.print("[cyan]PDF opened in default application[/]")
                else:
                    typer.secho(f"Warning: could not open {written}", fg=typer.colors.YELLOW, err=True)
    except Exception as exc:
        raise _fail(exc, "Export") from exc

    console.print("[green]Analysis complete! Stay secure![/]")


@config_app.command("setup")
def config_setup(
    ctx: typer.Context,
    api_key: Annotated[str | None, typer.Option("--api-key", help="API key (prompted when omitted).")] = None,
    model: Annotated[str | None, typer.Option("--model", help="Model id (prompted when omitted).")] = None,
    base_url: Annotated[
        str, typer.Option("--base-url", help="OpenAI-compatible API base URL.")
    ] = OPENROUTER_BASE_URL,
) -> None:
    """Set up initial configuration (API key, model selection)."""
    repo = _repository(ctx)
    try:
        if api_key is None:
            typer.secho("Using OpenRouter for AI-powered code analysis", fg=typer.colors.CYAN)
            typer.secho("Get your API key at: https://openrouter.ai/keys", dim=True)
            key = _prompt_api_key(base_url)
        else:
            key = _check_api_key(api_key, base_url)
        chosen_model = model or _prompt_model()
        repo.save(ScanConfig(api_key=key, model=chosen_model, base_url=base_url))
    except typer.Abort:
        raise
    except typer.BadParameter as exc:
        raise _fail(ValidationError(str(exc)), "Setup") from exc
    except Exception as exc:
        raise _fail(exc, "Setup") from exc

    typer.secho("Configuration saved successfully!", fg=typer.colors.GREEN)
    typer.secho(f"Config file: {repo.config_file}", dim=True)


@config_app.command("show")
def config_show(ctx: typer.Context) -> None:
    """Display current configuration."""
    repo = _repository(ctx)
    try:
        cfg = repo.load()
    except Exception as exc:
        raise _fail(exc, "Config") from exc
    if cfg is None:
        typer.secho("NO CONFIGURATION FOUND", bold=True, fg=typer.colors.YELLOW)
        typer.echo("Run this command to get started:")
        typer.secho("   vibe-check config setup", bold=True, fg=typer.colors.GREEN)
        return
    _show(cfg, repo)


@config_app.command("update")
def config_update(
    ctx: typer.Context,
    api_key: Annotated[str | None, typer.Option("--api-key", help="New API key.")] = None,
    model: Annotated[str | None, typer.Option("--model", help="New model id.")] = None,
    base_url: Annotated[str | None, typer.Option("--base-url", help="New API base URL.")] = None,
) -> None:
    """Update existing configuration settings."""
    repo = _repository(ctx)
    try:
        if not repo.exists():
            typer.secho("No configuration found. Running initial setup...", fg=typer.colors.YELLOW)
            ctx.invoke(config_setup, ctx=ctx, api_key=api_key, model=model, base_url=base_url or OPENROUTER_BASE_URL)
            return

        if api_key is None and model is None and base_url is None:
            current = repo.load()
            if current is not None:
                _show(current, repo)
            field = typer.prompt("What would you like to update? (api-key/model)", default="model")
            if field == "api-key":
                api_key = _prompt_api_key(current.base_url if current else OPENROUTER_BASE_URL)
            elif field == "model":
                model = _prompt_model(current.model if current else DEFAULT_MODEL)
            else:
                raise ValidationError(f"Unknown setting: {field}")
        elif api_key is not None:
            if base_url is None:
                stored = repo.load()
                base_url_for_key = stored.base_url if stored else OPENROUTER_BASE_URL
            else:
                base_url_for_key = base_url
            api_key = _check_api_key(api_key, base_url_for_key)

        repo.update(api_key=api_key, model=model, base_url=base_url)
    except (typer.Exit, typer.Abort):
        raise
    except typer.BadParameter as exc:
        raise _fail(ValidationError(str(exc)), "Update") from exc
    except Exception as exc:
        raise _fail(exc, "Update") from exc

    typer.secho("Configuration updated successfully!", fg=typer.colors.GREEN)


@config_app.command("delete")
def config_delete(
    ctx: typer.Context,
    yes: Annotated[bool, typer.Option("--yes", "-y", help="Do not ask for confirmation.")] = False,
) -> None:
    """Delete configuration file."""
    repo = _repository(ctx)
    if not yes and not typer.confirm(f"Delete {repo.config_file}?", default=False):
        typer.echo("Aborted.")
        return
    try:
        deleted = repo.delete()
    except Exception as exc:
        raise _fail(exc, "Delete") from exc
    if deleted:
        typer.secho("Configuration deleted.", fg=typer.colors.GREEN)
    else:
        typer.secho("No configuration file to delete.", fg=typer.colors.YELLOW)


def main() -> None:
    """Entry point for executing the Typer application."""
    app()


if __name__ == "__main__":
    main()
