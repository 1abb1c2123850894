#!/usr/bin/env python
"""CLI entry point for the build-system handler engine."""

import asyncio
import json
import logging
import os
from dataclasses import replace
from pathlib import Path
from typing import Optional

import click
from dotenv import load_dotenv

from buildsystem import config as settings
from buildsystem.http_pool import close_http_client, init_http_client
from buildsystem.loader import load_build_config
from buildsystem.pipeline.context import ExecutionContext
from buildsystem.pipeline.sections import extract_sections
from buildsystem.pipeline.sitemap_pipeline import SitemapStructurePipeline
from buildsystem.providers import ProviderRegistry

load_dotenv()


@click.group()
@click.option("--log-level", default=settings.LOG_LEVEL, help="Python logging level")
def cli(log_level: str):
    """Build system - generate UX design documents with an LLM."""
    logging.basicConfig(
        level=getattr(logging, log_level.upper(), logging.INFO),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )


@cli.command()
@click.argument("sitemap_file", type=click.Path(exists=True, dir_okay=False))
@click.option("--config", "config_path", type=click.Path(exists=True), default=None, help="Build config YAML")
@click.option("--project", type=str, default=None, help="Project name (overrides config)")
@click.option("--platform", type=str, default=None, help="Target platform (overrides config)")
@click.option("--output", type=click.Path(dir_okay=False), default=None, help="Write the level-2 document here")
@click.option("--checkpoint", type=click.Path(dir_okay=False), default=None, help="Save/resume run state in this JSON file")
def sitemap(
    sitemap_file: str,
    config_path: Optional[str],
    project: Optional[str],
    platform: Optional[str],
    output: Optional[str],
    checkpoint: Optional[str],
):
    """Run the UX sitemap structure pipeline on SITEMAP_FILE."""
    build_config = load_build_config(config_path)
    overrides = {}
    if project:
        overrides["project_name"] = project
    if platform:
        overrides["platform"] = platform
    if overrides:
        build_config = replace(build_config, **overrides)

    sitemap_doc = Path(sitemap_file).read_text(encoding="utf-8")

    async def run():
        http_client = await init_http_client()
        try:
            registry = ProviderRegistry()
            provider = registry.create(
                ProviderRegistry.default_config(build_config.provider),
                http_client=http_client,
            )
            pipeline = SitemapStructurePipeline(provider, build_config)

            context = None
            if checkpoint and os.path.exists(checkpoint):
                click.echo(f"Resuming from checkpoint {checkpoint}")
                context = ExecutionContext.from_dict(
                    json.loads(Path(checkpoint).read_text(encoding="utf-8"))
                )

            return await pipeline.run(sitemap_doc, context=context)
        finally:
            await close_http_client()

    try:
        result = asyncio.run(run())
    except ValueError as e:
        raise click.ClickException(str(e))

    if checkpoint:
        Path(checkpoint).write_text(json.dumps(result["context"], indent=2), encoding="utf-8")

    if not result["success"]:
        for op_id, error in result["outcome"]["failed"].items():
            click.echo(f"\n❌ {op_id} failed ({error['kind']}): {error['message']}")
        raise SystemExit(1)

    document = result["ux_structure_level2"]
    if output:
        Path(output).write_text(document, encoding="utf-8")
        click.echo(f"\n✅ Level 2 sitemap structure written to {output}")
    else:
        click.echo(document)


@cli.command()
@click.argument("document_file", type=click.Path(exists=True, dir_okay=False))
def sections(document_file: str):
    """List the top-level sections of DOCUMENT_FILE."""
    text = Path(document_file).read_text(encoding="utf-8")
    found = extract_sections(text)

    if not found:
        click.echo("No top-level (##) sections found")
        raise SystemExit(1)

    for index, section in enumerate(found, start=1):
        lines = section.content.count("\n") + 1
        click.echo(f"{index:>3}. {section.title} ({lines} lines)")


@cli.command()
def status():
    """Show generation service configuration."""
    click.echo("Build System Status")
    click.echo("=" * 40)
    click.echo(f"Working Directory: {Path.cwd()}")
    click.echo(f"Provider: {settings.LLM_PROVIDER}")
    click.echo(f"Default model: {settings.DEFAULT_MODEL}")
    click.echo(f"Batch concurrency: {settings.BATCH_CONCURRENCY}")
    click.echo(f"Request timeout: {settings.REQUEST_TIMEOUT}s")

    if settings.OPENAI_API_KEY:
        click.echo("✓ OpenAI API key configured")
    else:
        click.echo("✗ OpenAI API key missing")

    click.echo(f"llm-server URL: {settings.LLM_SERVER_URL}")


if __name__ == "__main__":
    cli()
