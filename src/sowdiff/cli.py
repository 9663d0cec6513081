"""
Command-line interface for sowdiff.
"""

import asyncio
from pathlib import Path
from typing import Optional

import click
import structlog

from sowdiff.config import get_settings
from sowdiff.exceptions import ParseError
from sowdiff.models.analysis import MatchStrategy

logger = structlog.get_logger(__name__)

STRATEGY_CHOICE = click.Choice([s.value for s in MatchStrategy])


@click.group()
@click.option("--debug", is_flag=True, help="Enable debug mode")
@click.pass_context
def cli(ctx: click.Context, debug: bool) -> None:
    """sowdiff: Section-aligned comparison of contract drafts against templates."""
    ctx.ensure_object(dict)
    ctx.obj["debug"] = debug

    if debug:
        structlog.configure(
            wrapper_class=structlog.make_filtering_bound_logger(10),
        )


# =========================================================================
# Server Commands
# =========================================================================


@cli.command()
@click.option("--host", default=None, help="Host to bind to")
@click.option("--port", default=None, type=int, help="Port to bind to")
@click.option("--reload", is_flag=True, help="Enable auto-reload")
def serve(host: Optional[str], port: Optional[int], reload: bool) -> None:
    """Start the API server."""
    import uvicorn

    settings = get_settings()
    host = host or settings.api_host
    port = port or settings.api_port

    click.echo(f"Starting sowdiff API server on {host}:{port}")

    uvicorn.run(
        "sowdiff.api.main:create_app",
        factory=True,
        host=host,
        port=port,
        reload=reload,
    )


# =========================================================================
# Document Commands
# =========================================================================


@cli.command()
@click.argument("path", type=click.Path(exists=True, dir_okay=False))
@click.option("--plain", is_flag=True, help="Discard formatting (fast path)")
@click.option("--json", "as_json", is_flag=True, help="Print the parsed document as JSON")
def parse(path: str, plain: bool, as_json: bool) -> None:
    """Split a DOCX document into sections."""
    from sowdiff.services.document_loader import DocumentLoader

    try:
        document = DocumentLoader().load_path(path, include_formatting=not plain)
    except (ParseError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    if as_json:
        click.echo(document.model_dump_json(indent=2))
        return

    click.echo(f"\n=== {document.filename}: {len(document.sections)} section(s) ===\n")
    for section in document.sections:
        indent = "  " * (section.level - 1)
        click.echo(
            f"{indent}{section.heading}  "
            f"[{len(section.body)} chars, {len(section.tables)} table(s)]"
        )

    facts = document.metadata.model_dump(
        include={"vendor", "client", "effective_date", "total_value"}, exclude_none=True
    )
    for name, value in facts.items():
        click.echo(f"{name.replace('_', ' ').capitalize()}: {value}")

    if document.suppressed_count:
        click.echo(f"\nTable of contents lines suppressed: {document.suppressed_count}")
    if document.metadata_warning:
        click.echo(f"Metadata warning: {document.metadata_warning}", err=True)


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.argument("draft", type=click.Path(exists=True, dir_okay=False))
@click.option("--strategy", type=STRATEGY_CHOICE, default=MatchStrategy.LENIENT.value, help="Scoring variant")
def align(template: str, draft: str, strategy: str) -> None:
    """Align the sections of a draft onto a template."""
    from sowdiff.services.comparison_service import ComparisonService

    service = ComparisonService()

    try:
        template_doc = service.loader.load_path(template)
        draft_doc = service.loader.load_path(draft)
    except (ParseError, ValueError) as e:
        raise click.ClickException(str(e)) from e

    alignment = service.align(template_doc, draft_doc, strategy)

    click.echo(f"\n=== Alignment ({alignment.strategy.value}, floor {alignment.floor:g}) ===\n")
    for section in draft_doc.sections:
        edge = alignment.edge_for(section.id)
        if edge.matched:
            target = template_doc.section_by_id(edge.template_section_id).heading
            click.echo(f"  {section.heading} -> {target} ({edge.score:.1f})")
        else:
            click.echo(f"  {section.heading} -> NEW (best {edge.score:.1f})")

    for section_id in alignment.unclaimed_template_ids:
        click.echo(f"  REMOVED: {template_doc.section_by_id(section_id).heading}")


@cli.command()
@click.argument("template", type=click.Path(exists=True, dir_okay=False))
@click.argument("draft", type=click.Path(exists=True, dir_okay=False))
@click.option("--no-ai", is_flag=True, help="Skip language-model review")
@click.option("--strategy", type=STRATEGY_CHOICE, default=MatchStrategy.LENIENT.value, help="Scoring variant")
@click.option("--output", "-o", type=click.Path(), help="Output file for the JSON report")
def compare(template: str, draft: str, no_ai: bool, strategy: str, output: Optional[str]) -> None:
    """Compare a draft against a template and report differences."""
    from sowdiff.services.comparison_service import ComparisonService
    from sowdiff.services.llm_service import LLMService
    from sowdiff.services.review_service import ReviewService

    settings = get_settings()
    review = None
    if not no_ai:
        if settings.ai_configured:
            review = ReviewService(LLMService(settings), settings)
        else:
            click.echo("No LLM credentials configured; skipping AI review.", err=True)

    service = ComparisonService(review=review, settings=settings)
    template_path, draft_path = Path(template), Path(draft)

    async def run_compare():
        template_doc, draft_doc = await service.parse_pair(
            template_path.read_bytes(),
            template_path.name,
            draft_path.read_bytes(),
            draft_path.name,
        )
        return await service.compare(template_doc, draft_doc, strategy, include_ai=review is not None)

    try:
        report = asyncio.run(run_compare())
    except ParseError as e:
        raise click.ClickException(str(e)) from e

    click.echo(f"\n=== {report.draft_filename} vs {report.template_filename} ===\n")
    for section in report.sections:
        target = section.template_heading or "-"
        click.echo(
            f"  [{section.status.value:>7}] {section.draft_heading} -> {target} "
            f"({len(section.issues)} issue(s), {len(section.formatting_differences)} formatting)"
        )

    for heading in report.removed_template_sections:
        click.echo(f"  [removed] {heading}")

    summary = report.formatting.summary
    click.echo(f"\nFormatting issues: {summary.total_formatting_issues} ({summary.high_priority_issues} high)")
    click.echo(f"Undefined acronyms: {summary.undefined_acronyms}")
    click.echo(f"Non-standard jargon: {summary.non_standard_jargon}")

    key_terms = report.key_terms
    if key_terms.added_amounts:
        click.echo(f"New amounts: {', '.join(key_terms.added_amounts)}")
    if key_terms.removed_deliverables:
        click.echo(f"Removed deliverables: {', '.join(key_terms.removed_deliverables)}")

    if report.analysis is not None:
        counts = report.analysis.issue_counts
        click.echo(f"AI issues: {counts.high} high, {counts.medium} medium, {counts.low} low")
        click.echo(f"\nSummary: {report.analysis.global_analysis.summary}")

    if output:
        Path(output).write_text(report.model_dump_json(indent=2))
        click.echo(f"\nReport written to: {output}")


# =========================================================================
# Health and Config Commands
# =========================================================================


@cli.command()
def health() -> None:
    """Check language-model provider configuration."""
    from sowdiff.services.llm_service import LLMService

    settings = get_settings()

    click.echo("\n=== Service Health Check ===\n")

    llm_status = LLMService(settings).health_check()
    click.echo("LLM Services:")
    if not llm_status:
        click.echo("  none configured")
    for provider, status in llm_status.items():
        status_str = "✓" if status else "✗"
        click.echo(f"  {provider}: {status_str}")

    click.echo(f"\nEnvironment: {settings.environment}")
    click.echo(f"Debug: {settings.debug}")


@cli.command()
def config() -> None:
    """Show current configuration."""
    settings = get_settings()

    click.echo("\n=== sowdiff Configuration ===\n")
    click.echo(f"Environment: {settings.environment}")
    click.echo(f"Debug: {settings.debug}")
    click.echo(f"\nPrimary LLM: {settings.primary_llm_provider} ({settings.primary_llm_model})")
    click.echo(f"Fallback LLM: {settings.fallback_llm_provider} ({settings.fallback_llm_model})")
    click.echo(f"AI configured: {settings.ai_configured}")
    click.echo(f"\nReview batch size: {settings.review_batch_size}")
    click.echo(f"Section body limit: {settings.section_body_char_limit} chars")
    click.echo(f"Global summary limit: {settings.global_summary_char_limit} chars")


def main() -> None:
    """Entry point for CLI."""
    cli()


if __name__ == "__main__":
    main()
