"""
Command-Line Interface for familyplan.

Purpose
-------
Runs projections from scenario files without writing Python code.

Commands
--------
- simulate: Run the timeline and print a summary
- goals: Goal achievability and required extra contributions
- children: Child-expense milestones per child
- config: Validate or create scenario files
- info: Package and settings information

Example Usage
-------------
    # Create an example scenario, then run it
    $ familyplan config create scenario.json
    $ familyplan simulate --config scenario.json --output results.json

    # Goal analysis
    $ familyplan goals -c scenario.json

    # Show version
    $ familyplan --version
"""

from __future__ import annotations

import logging
import sys
from datetime import date
from importlib.metadata import PackageNotFoundError, version as package_version
from pathlib import Path
from typing import Optional

import click

from . import __version__
from .config import AppSettings
from .exceptions import FamilyPlanError


# Lazy imports for performance
def _get_console():
    """Rich console (imported on first use for faster startup)."""
    from rich.console import Console
    return Console()


def _fail(message: str) -> None:
    click.echo(message, err=True)
    sys.exit(1)


def _load(ctx: click.Context, config: Path):
    """Load a scenario file, exiting with status 1 on any input error."""
    from .serialization import load_scenario

    try:
        return load_scenario(config)
    except FamilyPlanError as e:
        _fail(f"Error loading scenario: {e}")


def _run(ctx: click.Context, inputs):
    try:
        return inputs.run(cache=ctx.obj.get("cache"))
    except FamilyPlanError as e:
        _fail(f"Error during simulation: {e}")


@click.group()
@click.version_option(version=__version__, prog_name="familyplan")
@click.option("--quiet", "-q", is_flag=True, help="Plain output, no tables")
@click.pass_context
def main(ctx: click.Context, quiet: bool) -> None:
    """
    familyplan - family financial projection engine.

    Projects assets, incomes, child expenses and goals month by month.

    Use 'familyplan COMMAND --help' for command-specific help.
    """
    settings = AppSettings()
    logging.basicConfig(
        level=getattr(logging, settings.log_level),
        format="%(levelname)s %(name)s: %(message)s",
    )

    ctx.ensure_object(dict)
    ctx.obj["quiet"] = quiet
    ctx.obj["settings"] = settings
    ctx.obj["console"] = None if quiet else _get_console()
    if settings.cache_enabled:
        from .cache import SimulationCache
        ctx.obj["cache"] = SimulationCache(settings.cache_max_entries)


# ---------------------------------------------------------------------------
# simulate
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to scenario file (JSON)"
)
@click.option(
    "--output", "-o",
    type=click.Path(path_type=Path),
    default=None,
    help="Write full results (JSON) to this file"
)
@click.option("--real", is_flag=True, help="Show balances in today's money")
@click.pass_context
def simulate(ctx: click.Context, config: Path, output: Optional[Path], real: bool) -> None:
    """
    Run the projection for a scenario file.

    Example:
        familyplan simulate -c scenario.json -o results.json --real
    """
    console = ctx.obj.get("console")
    inputs = _load(ctx, config)
    results = _run(ctx, inputs)
    s = results.summary

    final = s.final_balance_real if real else s.final_balance
    rows = [
        ("Scenario", inputs.name),
        ("Period", f"{s.start_date.isoformat()} to {s.end_date.isoformat()}"),
        ("Horizon", f"{s.horizon_months} months"),
        ("Initial balance", f"{s.initial_balance:,.0f}"),
        ("Final balance" + (" (real)" if real else ""), f"{final:,.0f}"),
        ("Total deposited", f"{s.total_deposited:,.0f}"),
        ("Total withdrawals", f"{s.total_withdrawals:,.0f}"),
        ("Total returns", f"{s.total_returns:,.0f}"),
        ("Total fees", f"{s.total_fees:,.0f}"),
        ("Child expenses", f"{s.total_child_expenses:,.0f}"),
        ("Unfunded expenses", f"{s.total_unfunded_expenses:,.0f}"),
        ("Effective return", f"{s.effective_return_rate:.2f}%"),
        ("Effective return (real)", f"{s.effective_return_rate_real:.2f}%"),
        ("Inflation factor", f"{s.total_inflation_factor:.3f}"),
    ]

    if console:
        from rich.table import Table

        table = Table(title="Simulation Summary", show_header=True)
        table.add_column("Metric", style="cyan")
        table.add_column("Value", style="green", justify="right")
        for metric, value in rows:
            table.add_row(metric, value)
        console.print(table)
    else:
        for metric, value in rows:
            click.echo(f"{metric}: {value}")

    if output:
        from .serialization import save_results

        save_results(results, output)
        click.echo(f"Results saved to {output}")


# ---------------------------------------------------------------------------
# goals
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to scenario file (JSON)"
)
@click.pass_context
def goals(ctx: click.Context, config: Path) -> None:
    """
    Analyze goal achievability.

    Example:
        familyplan goals -c scenario.json
    """
    console = ctx.obj.get("console")
    results = _run(ctx, _load(ctx, config))

    if not results.goals_analysis:
        click.echo("No goals defined in scenario")
        return

    if console:
        from rich.table import Table

        table = Table(title="Goals", show_header=True)
        table.add_column("Goal", style="cyan")
        table.add_column("Target", justify="right")
        table.add_column("Projected", justify="right")
        table.add_column("Status")
        table.add_column("Extra / month", justify="right")
        for ga in results.goals_analysis:
            if ga.is_achievable:
                when = ga.achievement_date.isoformat() if ga.achievement_date else ""
                status = f"[green]achievable {when}[/green]"
            else:
                status = f"[red]short {ga.shortfall:,.0f}[/red]"
            extra = (
                f"{ga.required_extra_monthly:,.0f}"
                if ga.required_extra_monthly is not None else "-"
            )
            table.add_row(
                ga.goal_name,
                f"{ga.target_amount:,.0f}",
                f"{ga.projected_amount:,.0f}",
                status,
                extra,
            )
        console.print(table)
    else:
        from .goals import summarize

        for line in summarize(results.goals_analysis):
            click.echo(line)


# ---------------------------------------------------------------------------
# children
# ---------------------------------------------------------------------------

@main.command()
@click.option(
    "--config", "-c",
    type=click.Path(exists=True, path_type=Path),
    required=True,
    help="Path to scenario file (JSON)"
)
@click.option("--include-past", is_flag=True, help="List milestones before the start date")
@click.pass_context
def children(ctx: click.Context, config: Path, include_past: bool) -> None:
    """
    Show projected child-expense milestones.

    Example:
        familyplan children -c scenario.json
    """
    console = ctx.obj.get("console")
    results = _run(ctx, _load(ctx, config))

    if not results.child_projections:
        click.echo("No children with an expense template in scenario")
        return

    for proj in results.child_projections:
        milestones = proj.milestones if include_past else tuple(proj.upcoming)
        header = (
            f"{proj.child_name} ({'planned, ' if proj.is_planned else ''}"
            f"born {proj.birth_date.isoformat()}): total {proj.total_cost:,.0f}, "
            f"save {proj.total_monthly_needed:,.0f}/month"
        )
        if console:
            from rich.table import Table

            table = Table(title=header, show_header=True)
            table.add_column("Date")
            table.add_column("Milestone", style="cyan")
            table.add_column("Age", justify="right")
            table.add_column("Cost", justify="right")
            table.add_column("Save / month", justify="right")
            for m in milestones:
                table.add_row(
                    m.date.isoformat(),
                    m.name + (" (past)" if m.is_past else ""),
                    f"{m.expected_age:.1f}",
                    f"{m.total_cost:,.0f}",
                    f"{m.monthly_saving_needed:,.0f}",
                )
            console.print(table)
        else:
            click.echo(header)
            for m in milestones:
                click.echo(f"  {m.date.isoformat()}  {m.name}  {m.total_cost:,.0f}")

        for item in proj.unscheduled:
            click.echo(f"  unscheduled: {item.name} ({item.amount:,.0f}), no event date")


# ---------------------------------------------------------------------------
# config
# ---------------------------------------------------------------------------

@main.group()
def config() -> None:
    """
    Scenario file management commands.
    """


@config.command("validate")
@click.argument("config_file", type=click.Path(exists=True, path_type=Path))
@click.pass_context
def config_validate(ctx: click.Context, config_file: Path) -> None:
    """
    Validate a scenario file.

    Checks JSON syntax, the schema, and that the engine accepts the inputs
    (asset references, horizon).

    Example:
        familyplan config validate scenario.json
    """
    from .simulation import TimelineEngine

    inputs = _load(ctx, config_file)
    try:
        engine = TimelineEngine(inputs.params, inputs.assets, inputs.members, inputs.templates)
    except FamilyPlanError as e:
        _fail(f"Configuration validation failed: {e}")

    click.echo("Configuration is valid")
    click.echo(f"Assets: {len(inputs.assets)}")
    click.echo(f"Members: {len(inputs.members)}")
    click.echo(f"Goals: {len(inputs.goals)}")
    click.echo(f"Horizon: {engine.horizon_months} months")


@config.command("create")
@click.argument("output_file", type=click.Path(path_type=Path))
@click.pass_context
def config_create(ctx: click.Context, output_file: Path) -> None:
    """
    Create an example scenario file.

    Example:
        familyplan config create my_scenario.json
    """
    from .serialization import save_scenario

    save_scenario(example_scenario(ctx.obj["settings"]), output_file)
    click.echo(f"Created scenario file: {output_file}")


def example_scenario(settings: AppSettings, start: Optional[date] = None):
    """A small but complete scenario used by `config create`."""
    from .children import standard_template
    from .config import (
        AssetConfig,
        ChildExpenseItemConfig,
        ChildExpenseTemplateConfig,
        FamilyMemberConfig,
        GoalConfig,
        IncomeRecordConfig,
        ScenarioConfig,
        SimulationParamsConfig,
        WithdrawalEventConfig,
        YearlyExpenseConfig,
    )

    start = start or date.today().replace(day=1)
    currency = settings.default_currency
    template = standard_template()
    return ScenarioConfig(
        name="Example family",
        description="Two earners, one child, one planned child",
        assets=[
            AssetConfig(id="savings", name="Savings account", asset_type="savings",
                        balance=60_000, monthly_deposit=1_000,
                        annual_return_rate=0.03, currency=currency),
            AssetConfig(id="fund", name="Index fund", asset_type="investment",
                        balance=150_000, monthly_deposit=2_000,
                        annual_return_rate=0.06, fee_on_balance_rate=0.005,
                        currency=currency),
            AssetConfig(id="pension", name="Pension", asset_type="pension",
                        balance=250_000, monthly_deposit=1_800, employer_deposit=2_100,
                        annual_return_rate=0.05, fee_on_balance_rate=0.0022,
                        fee_on_deposit_rate=0.015, currency=currency),
        ],
        members=[
            FamilyMemberConfig(
                id="me", name="Alex", member_type="self",
                birth_date=date(start.year - 35, 3, 1),
                income_history=[IncomeRecordConfig(amount=18_000,
                                                   effective_date=date(start.year - 1, 1, 1))],
            ),
            FamilyMemberConfig(
                id="partner", name="Sam", member_type="spouse",
                birth_date=date(start.year - 33, 8, 1),
                income_history=[IncomeRecordConfig(amount=15_000,
                                                   effective_date=date(start.year - 1, 1, 1))],
            ),
            FamilyMemberConfig(id="kid", name="Noa", member_type="child",
                               birth_date=date(start.year - 4, 5, 1)),
            FamilyMemberConfig(id="baby", name="Planned", member_type="planned_child",
                               expected_birth_date=date(start.year + 2, 1, 1)),
        ],
        templates=[
            ChildExpenseTemplateConfig(
                id=template.id,
                name=template.name,
                description=template.description,
                is_default=True,
                items=[
                    ChildExpenseItemConfig(
                        id=it.id, name=it.name, trigger_type=it.trigger_type,
                        trigger_value=it.trigger_value, trigger_value_end=it.trigger_value_end,
                        amount=it.amount, frequency=it.frequency, sort_order=it.sort_order,
                    )
                    for it in template.items
                ],
            )
        ],
        goals=[
            GoalConfig(id="home", name="Apartment down payment", target_amount=400_000,
                       target_date=date(start.year + 5, start.month, 1), goal_type="purchase",
                       priority=1),
            GoalConfig(id="retire", name="Retirement", target_amount=3_000_000,
                       goal_type="retirement", linked_asset_id="pension", priority=2),
        ],
        params=SimulationParamsConfig(
            start_date=start,
            end_age=67,
            target_member_id="me",
            inflation_rate=settings.default_inflation_rate,
            withdrawal_events=[
                WithdrawalEventConfig(date=date(start.year + 3, 6, 1), amount=80_000,
                                      asset_id="savings", description="Car"),
            ],
            yearly_expenses=[YearlyExpenseConfig(name="Summer vacation", amount=12_000)],
            event_age_fallback=True,
        ),
    )


# ---------------------------------------------------------------------------
# info
# ---------------------------------------------------------------------------

@main.command()
@click.pass_context
def info(ctx: click.Context) -> None:
    """
    Display package, dependency and settings information.
    """
    console = ctx.obj.get("console")
    settings: AppSettings = ctx.obj["settings"]

    info_lines = [
        f"familyplan Version: {__version__}",
        f"Python: {sys.version.split()[0]}",
    ]
    for dist in ("numpy", "pandas", "pydantic", "pydantic-settings", "click", "rich"):
        try:
            info_lines.append(f"{dist}: {package_version(dist)}")
        except PackageNotFoundError:
            info_lines.append(f"{dist}: not installed")
    info_lines += [
        f"Log level: {settings.log_level}",
        f"Default inflation: {settings.default_inflation_rate}%",
        f"Default currency: {settings.default_currency}",
        f"Cache: {'on' if settings.cache_enabled else 'off'} ({settings.cache_max_entries} entries)",
    ]

    if console:
        from rich.panel import Panel
        console.print(Panel("\n".join(info_lines), title="System Information"))
    else:
        for line in info_lines:
            click.echo(line)


if __name__ == "__main__":
    main()
