# cli.py - Command line interface for ScormLens
"""
ScormLens CLI - Inspect, validate and repair SCORM packages

COMMANDS:
    scormlens analyze PACKAGE [--json] [--output FILE] [--format json|yaml]
    scormlens validate PACKAGE [--repair-output FILE]
    scormlens assessments PACKAGE [--json]
    scormlens config [--template]
    scormlens version

EXAMPLES:
    # Summary of a package
    scormlens analyze course.zip

    # Full analysis as YAML
    scormlens analyze course.zip --output course.yaml --format yaml

    # Check a package and save a repaired copy
    scormlens validate broken.zip --repair-output fixed.zip

    # More logging
    scormlens -vv analyze course.zip
"""

import dataclasses
import sys
from pathlib import Path
from typing import Optional

import click

from scormlens import __version__
from scormlens.analyzer import analyze_archive
from scormlens.archive import ScormArchive
from scormlens.config_utils import AnalyzerConfig, create_config_template, get_config
from scormlens.errors import ScormLensError
from scormlens.export import (
    FORMATS,
    analysis_to_dict,
    assessment_to_dict,
    dumps,
    export_analysis,
    repair_result_to_dict,
)
from scormlens.icons import (
    ERROR,
    FIX,
    INFO,
    LIST,
    MODULE,
    PACKAGE,
    QUIZ,
    SUCCESS,
    WARNING,
    category_icon,
    status_icon,
)
from scormlens.log_utils import setup_logging
from scormlens.models import PackageAnalysis
from scormlens.repair import validate_and_repair


# ============================================================================
# Context
# ============================================================================

class ScormLensContext:
    """Shared context for CLI commands"""

    def __init__(self, verbosity: int = 0):
        self.verbosity = verbosity
        self.work_dir = Path.cwd()
        self._config: Optional[AnalyzerConfig] = None

    @property
    def config(self) -> AnalyzerConfig:
        if self._config is None:
            try:
                self._config = get_config(self.work_dir)
            except ScormLensError as e:
                raise click.ClickException(str(e)) from e
        return self._config

    def analyze(self, package: Path) -> PackageAnalysis:
        try:
            return analyze_archive(ScormArchive.from_path(package), self.config)
        except ScormLensError as e:
            raise click.ClickException(str(e)) from e


package_argument = click.argument(
    "package", type=click.Path(exists=True, dir_okay=False, path_type=Path)
)


# ============================================================================
# Click Group Setup
# ============================================================================

@click.group()
@click.option("--verbose", "-v", count=True, help="More logging (-vv for debug)")
@click.pass_context
def cli(ctx, verbose: int):
    """
    ScormLens - SCORM package analyzer

    Reads a SCORM .zip and reports its structure, content files and
    embedded assessments. Broken packages can be validated and repaired.
    """
    setup_logging(verbose)
    ctx.obj = ScormLensContext(verbose)


# ============================================================================
# Analyze
# ============================================================================

def _print_summary(analysis: PackageAnalysis):
    click.echo(f"{PACKAGE} {analysis.title or '(untitled)'}")
    click.echo("=" * 60)
    click.echo(f"Format:      {analysis.format}")
    click.echo(f"Version:     {analysis.version.value}")
    click.echo(f"Launch:      {analysis.launch_target or 'none'}")
    if analysis.metadata.description:
        click.echo(f"Description: {analysis.metadata.description}")
    if analysis.metadata.keywords:
        click.echo(f"Keywords:    {', '.join(analysis.metadata.keywords)}")
    if analysis.metadata.duration:
        click.echo(f"Duration:    {analysis.metadata.duration}")

    click.echo(f"\n{MODULE} Structure")
    click.echo("-" * 60)
    nodes = list(analysis.walk_structure())
    if not nodes:
        click.echo("  (no items)")
    for node in nodes:
        click.echo(f"  {'  ' * node.depth}{node.title or node.identifier}")

    click.echo(f"\n{LIST} Content Files")
    click.echo("-" * 60)
    for category, entries in analysis.content_files.items():
        if entries:
            click.echo(f"  {category_icon(category)} {category}: {len(entries)}")
    if analysis.caption_files:
        click.echo(f"  {category_icon('captions')} captions: {len(analysis.caption_files)}")

    click.echo(f"\n{QUIZ} Assessments")
    click.echo("-" * 60)
    if not analysis.assessments:
        click.echo("  (none found)")
    for assessment in analysis.assessments:
        click.echo(
            f"  {assessment.source_file} [{assessment.extraction_strategy.value}]: "
            f"{assessment.question_count} question(s)"
        )

    if analysis.warnings:
        click.echo(f"\n{WARNING} Warnings")
        click.echo("-" * 60)
        for message in analysis.warnings:
            click.echo(f"  {message}")


@cli.command()
@package_argument
@click.option("--json", "as_json", is_flag=True, help="Print the full analysis as JSON")
@click.option("--output", "-o", type=click.Path(dir_okay=False, path_type=Path), help="Write the analysis to a file")
@click.option("--format", "fmt", type=click.Choice(FORMATS), default="json", show_default=True,
              help="Format for --output")
@click.pass_obj
def analyze(ctx: ScormLensContext, package: Path, as_json: bool, output: Optional[Path], fmt: str):
    """
    Analyze a SCORM package

    Examples:
        scormlens analyze course.zip
        scormlens analyze course.zip --json
        scormlens analyze course.zip -o report.yaml --format yaml
    """
    analysis = ctx.analyze(package)

    if output:
        export_analysis(analysis, output, fmt)
        click.echo(f"{SUCCESS} Wrote {fmt.upper()} analysis to {output}")

    if as_json:
        click.echo(dumps(analysis_to_dict(analysis), "json"))
    elif not output:
        _print_summary(analysis)


# ============================================================================
# Validate / Repair
# ============================================================================

@cli.command()
@package_argument
@click.option("--repair-output", type=click.Path(dir_okay=False, path_type=Path),
              help="Where to write the repaired package (if anything was fixed)")
@click.option("--json", "as_json", is_flag=True, help="Print the result as JSON")
@click.pass_obj
def validate(ctx: ScormLensContext, package: Path, repair_output: Optional[Path], as_json: bool):
    """
    Validate a SCORM package and repair what can be fixed

    Exits with status 1 when unresolved issues remain.

    Examples:
        scormlens validate course.zip
        scormlens validate broken.zip --repair-output fixed.zip
    """
    result = validate_and_repair(package.read_bytes(), ctx.config)

    if as_json:
        click.echo(dumps(repair_result_to_dict(result), "json"))
    else:
        click.echo(f"{status_icon(result.success)} {package.name}: {result.summary()}")
        for message in result.issues:
            click.echo(f"  {ERROR} {message}")
        for message in result.fixes:
            click.echo(f"  {FIX} {message}")
        for message in result.warnings:
            click.echo(f"  {WARNING} {message}")

    if result.repaired_archive is not None:
        if repair_output:
            repair_output.write_bytes(result.repaired_archive)
            if not as_json:
                click.echo(f"{SUCCESS} Repaired package written to {repair_output}")
        elif not as_json:
            click.echo(f"{INFO} Fixes available; use --repair-output FILE to save them")

    if not result.success:
        sys.exit(1)


# ============================================================================
# Assessments
# ============================================================================

@cli.command()
@package_argument
@click.option("--json", "as_json", is_flag=True, help="Output as JSON")
@click.pass_obj
def assessments(ctx: ScormLensContext, package: Path, as_json: bool):
    """List the questions found in a package"""
    analysis = ctx.analyze(package)

    if as_json:
        click.echo(dumps({"assessments": [assessment_to_dict(a) for a in analysis.assessments]}, "json"))
        return

    if not analysis.assessments:
        click.echo("No assessments found.")
        return

    for assessment in analysis.assessments:
        click.echo(f"\n{QUIZ} {assessment.source_file} ({assessment.extraction_strategy.value})")
        for question in assessment.questions:
            click.echo(f"  [{question.kind.value}] {question.text}")
            for option in question.options or ():
                click.echo(f"      - {option}")
            if question.correct_answer is not None:
                click.echo(f"      answer: {question.correct_answer}")

    click.echo(f"\nTotal: {analysis.question_count} question(s) in {len(analysis.assessments)} assessment(s)")


# ============================================================================
# Config
# ============================================================================

@cli.command("config")
@click.option("--template", is_flag=True, help="Print a scormlens.yaml template")
@click.pass_obj
def show_config(ctx: ScormLensContext, template: bool):
    """Show resolved configuration (or a template)"""
    if template:
        click.echo(create_config_template())
        return

    config = ctx.config
    click.echo(f"{LIST} ScormLens configuration")
    click.echo("=" * 60)
    for f in dataclasses.fields(config):
        if f.name.startswith("_") or f.name == "extra":
            continue
        source = config._sources.get(f.name, "default")
        click.echo(f"{f.name}: {getattr(config, f.name)}  ({source})")
    for key, value in config.extra.items():
        click.echo(f"{key}: {value}  (unrecognized)")


# ============================================================================
# Version
# ============================================================================

@cli.command()
def version():
    """Show ScormLens version"""
    click.echo(f"ScormLens CLI v{__version__}")
    click.echo("SCORM package analyzer")


# ============================================================================
# Entry Point
# ============================================================================

if __name__ == '__main__':
    cli()
