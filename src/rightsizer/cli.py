# src/rightsizer/cli.py
"""Rightsizing CLI - build and optionally apply an optimization plan."""

import asyncio
import json
import sys
from pathlib import Path

import click
import structlog

from rightsizer.config.settings import Settings
from rightsizer.core.exceptions import OptimizerException
from rightsizer.core.utils import format_currency, setup_logging
from rightsizer.optimization.appliers import DryRunApplier
from rightsizer.optimization.orchestrator import OptimizationOrchestrator

logger = structlog.get_logger(__name__)


@click.group()
def cli():
    """Infrastructure rightsizing recommendations."""


@cli.command()
@click.argument('input_file', type=click.Path(exists=True, dir_okay=False))
@click.option('--output', '-o', default='./data/optimization_plan.json', help='Output JSON file path')
@click.option('--apply', 'apply_plan', is_flag=True, help='Apply the plan with the dry-run applier')
@click.option('--verbose', '-v', is_flag=True, help='Enable verbose output')
@click.option('--debug', is_flag=True, help='Enable debug logging')
def analyze(input_file, output, apply_plan, verbose, debug):
    """
    Build an optimization plan from a JSON input file.

    The input file holds the resource samples and, optionally, cost data:

    \b
        {
          "resource_data": {"cpu": [10, 12], "memory": [85, 90], "storage": [15], "network": [5]},
          "cost_data": {"pricing": {...}, "quantities": {"cpu": 4, "memory": 16}},
          "options": {}
        }

    Example:
        rightsizer analyze samples.json --output plan.json --apply
    """

    async def run_analysis():
        settings = Settings.create_from_env()
        setup_logging(
            settings.log_config_path,
            log_level="DEBUG" if debug else settings.log_level.value,
            log_format=settings.log_format
        )

        try:
            with open(input_file, 'r') as f:
                payload = json.load(f)
        except json.JSONDecodeError as e:
            click.echo(f"❌ Invalid JSON in {input_file}: {e}")
            return 1
        if not isinstance(payload, dict):
            click.echo(f"❌ Expected a JSON object in {input_file}, got {type(payload).__name__}")
            return 1

        # The CLI only ships the dry-run applier
        if apply_plan and not settings.apply.dry_run:
            click.echo("❌ APPLY_DRY_RUN is false; applying from the CLI is simulation only")
            return 1

        orchestrator = OptimizationOrchestrator.from_settings(
            settings,
            applier=DryRunApplier()
        )

        try:
            plan = await orchestrator.optimize(
                payload.get("resource_data"),
                payload.get("cost_data"),
                payload.get("options")
            )

            if verbose:
                click.echo(f"🔍 Plan {plan.id}: {len(plan.recommendations)} recommendations")
                for rec in plan.recommendations:
                    click.echo(
                        f"   [{rec.priority.value:>6}] {rec.dimension.value:<8} {rec.action.value:<9} "
                        f"{rec.source:<18} {rec.description}"
                    )

            if apply_plan:
                outcome = await orchestrator.apply_optimization(plan.id, payload.get("options"))
                click.echo(f"🚀 Applied: {outcome.succeeded} succeeded, {outcome.failed} failed")

            final_plan = orchestrator.get_optimization_status(plan.id)

            output_path = Path(output)
            output_path.parent.mkdir(parents=True, exist_ok=True)
            with open(output_path, 'w') as f:
                f.write(final_plan.model_dump_json(indent=2))

            savings = final_plan.savings
            click.echo("✅ Optimization plan created")
            click.echo(f"📁 Plan saved to: {output_path}")
            click.echo(f"   💰 Current hourly cost: {format_currency(final_plan.cost_analysis.current.total)}")
            click.echo(f"   💡 Potential savings: {format_currency(savings.total)}/h "
                       f"({format_currency(savings.monthly)}/month, {savings.percent:.1f}%)")
            click.echo(f"   📌 Status: {final_plan.status.value}")
            return 0

        except OptimizerException as e:
            click.echo(f"❌ Optimization failed: {e.message}")
            if debug:
                import traceback
                click.echo(traceback.format_exc())
            return 1

    sys.exit(asyncio.run(run_analysis()))


@cli.command()
def pricing():
    """Print the default pricing schedule."""
    settings = Settings.create_from_env()
    click.echo(json.dumps(settings.pricing.to_schedule().model_dump(), indent=2))


if __name__ == '__main__':
    cli()
