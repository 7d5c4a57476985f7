"""FPL Squad Optimizer command line.

Usage:
    # Best squads for GW1-3 with default constraints
    fpl-squad-optimizer optimize --data data/player-data.json

    # Lock a keeper, ban a forward, apply bench boost
    fpl-squad-optimizer optimize -s 5 -e 8 --lock "Raya:GK" --ban Haaland --bench-boost

    # Predicted points of a squad against an opponent
    fpl-squad-optimizer team-points Salah Saka Palmer -s 1 -e 3 --opponent Haaland

    # Greedy transfer advice for the next 4 gameweeks
    fpl-squad-optimizer suggest-transfers <15 names> --free-transfers 2 --current-gw 10 -l 4
"""

import sys
from typing import Dict, List, Optional

import typer
from loguru import logger
from rich.console import Console
from rich.markup import escape
from rich.table import Table

from fpl_squad_optimizer.adapters import PlayerDataLoader
from fpl_squad_optimizer.config import config
from fpl_squad_optimizer.config.utils import (
    config_summary_lines,
    create_config_template,
    get_env_var_examples,
)
from fpl_squad_optimizer.domain.common.exceptions import DataError, InputError
from fpl_squad_optimizer.domain.models import (
    JobStatus,
    OptimizationResult,
    Player,
    ProgressStage,
    TeamPointsReport,
)
from fpl_squad_optimizer.domain.services import OptimizationJobRunner, SquadAnalysisService

app = typer.Typer(help="FPL Squad Optimizer - brute-force squad selection over predicted points")
console = Console()

DataOption = typer.Option(None, "--data", "-f", help="Player data file (JSON or CSV)")
DebugOption = typer.Option(False, "--debug", "-d", help="Enable debug logging")


def configure_logging(debug: bool) -> None:
    logger.remove()
    logger.add(sys.stderr, level="DEBUG" if debug or config.data.debug else "WARNING")


def load_players(data_path: Optional[str]) -> List[Player]:
    result = PlayerDataLoader().load(data_path)
    if result.is_failure:
        console.print(f"[red]❌ {escape(result.error.message)}[/red]")
        for field, message in list((result.error.field_errors or {}).items())[:10]:
            console.print(f"[red]   {escape(field)}: {escape(message)}[/red]")
        raise typer.Exit(1)
    return result.value


def parse_locks(locks: Optional[List[str]]) -> Dict[str, str]:
    """Parse ``Name:POS`` pairs."""
    parsed = {}
    for lock in locks or []:
        name, sep, position = lock.rpartition(":")
        if not sep or not name.strip():
            raise InputError(f"Locked player must look like 'Name:POS', got {lock!r}")
        parsed[name.strip()] = position.strip()
    return parsed


@app.command()
def optimize(
    start_gw: int = typer.Option(
        config.optimization.start_gw, "--start-gw", "-s", help="First gameweek"
    ),
    end_gw: int = typer.Option(config.optimization.end_gw, "--end-gw", "-e", help="Last gameweek"),
    complexity: int = typer.Option(
        config.optimization.complexity, "--complexity", "-c", help="Combinations kept per ranking"
    ),
    min_price: float = typer.Option(config.optimization.min_team_price, "--min-price"),
    max_price: float = typer.Option(config.optimization.max_team_price, "--max-price"),
    max_per_club: int = typer.Option(config.optimization.max_players_per_club, "--max-per-club"),
    top_teams: int = typer.Option(config.optimization.top_teams, "--top-teams", "-n"),
    bench_boost: bool = typer.Option(
        config.optimization.calculate_bench_boost, "--bench-boost", help="Play bench boost"
    ),
    include: Optional[List[str]] = typer.Option(None, "--include", "-i", help="Force into pool"),
    ban: Optional[List[str]] = typer.Option(None, "--ban", "-b", help="Never select"),
    lock: Optional[List[str]] = typer.Option(None, "--lock", "-l", help="Name:POS, always select"),
    data_path: Optional[str] = DataOption,
    debug: bool = DebugOption,
):
    """Find the best-scoring 15-player squads."""
    configure_logging(debug)
    players = load_players(data_path)

    try:
        payload = {
            "start_gw": start_gw,
            "end_gw": end_gw,
            "complexity": complexity,
            "min_team_price": min_price,
            "max_team_price": max_price,
            "max_players_per_club": max_per_club,
            "top_teams": top_teams,
            "calculate_bench_boost": bench_boost,
            "include_list": include or [],
            "ban_list": ban or [],
            "locked_players": parse_locks(lock),
        }
        runner = OptimizationJobRunner(players, max_concurrent_jobs=1)
    except InputError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    console.print(f"\n[bold cyan]⚽ Optimizing GW{start_gw}-{end_gw}[/bold cyan]")
    job_id = None
    try:
        job_id = runner.start_optimization(payload)
        for event in runner.stream_progress(job_id):
            percent = f"{event.percent:5.1f}%" if event.percent is not None else "      "
            style = "red" if event.stage == ProgressStage.ERROR else "yellow"
            console.print(f"[{style}]{percent} {event.stage.value}: {escape(event.message)}[/{style}]")

        status = runner.get_status(job_id)
        if status.status != JobStatus.DONE:
            console.print(f"[red]❌ Optimization {status.status.value}: {escape(status.message)}[/red]")
            raise typer.Exit(1)
        print_optimization_result(runner.get_result(job_id))
    except (InputError, DataError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)
    except KeyboardInterrupt:
        if job_id:
            runner.cancel(job_id)
        console.print("\n[yellow]⚠️  Interrupted by user[/yellow]")
        raise typer.Exit(130)
    finally:
        runner.shutdown(wait=False, cancel_jobs=True)


@app.command("team-points")
def team_points(
    names: List[str] = typer.Argument(..., help="Player names"),
    start_gw: int = typer.Option(config.optimization.start_gw, "--start-gw", "-s"),
    end_gw: int = typer.Option(config.optimization.end_gw, "--end-gw", "-e"),
    opponent: Optional[List[str]] = typer.Option(None, "--opponent", "-o", help="Opponent names"),
    data_path: Optional[str] = DataOption,
    debug: bool = DebugOption,
):
    """Predicted points of a named squad, optionally against an opponent."""
    configure_logging(debug)
    service = SquadAnalysisService(load_players(data_path))
    try:
        report = service.team_points(names, start_gw, end_gw, opponent_names=opponent)
    except (InputError, DataError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    print_team_report(report, "Team")
    if report.opponent is not None:
        print_team_report(report.opponent, "Opponent")
        diff = report.difference
        console.print(
            f"[bold]Difference:[/bold] {diff.total_points_delta:+.2f} pts, "
            f"value {diff.team_value_delta:+.1f}"
        )


@app.command()
def compare(
    name1: str = typer.Argument(..., help="First player"),
    name2: str = typer.Argument(..., help="Second player"),
    start_gw: int = typer.Option(config.optimization.start_gw, "--start-gw", "-s"),
    end_gw: int = typer.Option(config.optimization.end_gw, "--end-gw", "-e"),
    data_path: Optional[str] = DataOption,
    debug: bool = DebugOption,
):
    """Compare two players gameweek by gameweek."""
    configure_logging(debug)
    service = SquadAnalysisService(load_players(data_path))
    try:
        comparison = service.compare_players(name1, name2, start_gw, end_gw)
    except (InputError, DataError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    first, second = comparison.player1, comparison.player2
    table = Table(title=f"{first.name} vs {second.name}")
    table.add_column("GW", justify="right")
    table.add_column(first.name, justify="right")
    table.add_column(second.name, justify="right")
    table.add_column("Delta", justify="right")
    for offset, delta in enumerate(comparison.gameweek_delta):
        table.add_row(
            str(start_gw + offset),
            f"{first.gameweek_points[offset]:.2f}",
            f"{second.gameweek_points[offset]:.2f}",
            f"{delta:+.2f}",
        )
    table.add_row(
        "Total",
        f"{first.total_points:.2f}",
        f"{second.total_points:.2f}",
        f"{comparison.total_delta:+.2f}",
        style="bold",
    )
    console.print(table)


@app.command("top-players")
def top_players(
    start_gw: int = typer.Option(config.optimization.start_gw, "--start-gw", "-s"),
    end_gw: int = typer.Option(config.optimization.end_gw, "--end-gw", "-e"),
    position: Optional[str] = typer.Option(None, "--position", "-p", help="GK, DEF, MID, FWD"),
    sort_by: str = typer.Option("points", "--sort-by", help="points or value"),
    limit: int = typer.Option(20, "--limit", "-n"),
    data_path: Optional[str] = DataOption,
    debug: bool = DebugOption,
):
    """Best players over a window by points or value."""
    configure_logging(debug)
    service = SquadAnalysisService(load_players(data_path))
    try:
        summaries = service.top_players(start_gw, end_gw, position, sort_by, limit)
    except InputError as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    table = Table(title=f"Top players GW{start_gw}-{end_gw} by {sort_by}")
    for column in ("Player", "Pos", "Club", "Price", "Points", "Value"):
        table.add_column(column, justify="left" if column in ("Player", "Pos", "Club") else "right")
    for s in summaries:
        price = f"{s.price:.1f}" if s.price is not None else "-"
        table.add_row(
            s.name, s.position, s.club, price, f"{s.total_points:.2f}", f"{s.value:.2f}"
        )
    console.print(table)


@app.command("suggest-transfers")
def suggest_transfers(
    names: List[str] = typer.Argument(..., help="Current 15-player squad"),
    free_transfers: int = typer.Option(1, "--free-transfers", "-t"),
    current_gw: int = typer.Option(..., "--current-gw", "-g"),
    lookahead: int = typer.Option(1, "--lookahead", "-l", help="Gameweeks to look ahead"),
    ban: Optional[List[str]] = typer.Option(None, "--ban", "-b", help="Never bring in"),
    lock: Optional[List[str]] = typer.Option(None, "--lock", help="Never sell"),
    data_path: Optional[str] = DataOption,
    debug: bool = DebugOption,
):
    """Greedy same-position transfer suggestions."""
    configure_logging(debug)
    service = SquadAnalysisService(load_players(data_path))
    try:
        plan = service.suggest_transfers(
            names,
            free_transfers=free_transfers,
            current_gw=current_gw,
            lookahead_gws=lookahead,
            ban_list=ban or [],
            locked_players=lock or [],
        )
    except (InputError, DataError) as e:
        console.print(f"[red]❌ {escape(str(e))}[/red]")
        raise typer.Exit(1)

    if not plan.suggestions:
        console.print("[yellow]🛑 No transfer improves the projected points[/yellow]")
    else:
        table = Table(title="Suggested transfers")
        table.add_column("Out")
        table.add_column("In")
        table.add_column("Gain", justify="right")
        for s in plan.suggestions:
            table.add_row(s.player_out, s.player_in, f"{s.delta_points:+.2f}")
        console.print(table)
    console.print(
        f"Projected: {plan.original_projected_points:.2f} → "
        f"{plan.final_projected_points:.2f} ({plan.projected_gain:+.2f})"
    )


@app.command("show-config")
def show_config(
    template: bool = typer.Option(False, "--template", help="Print a JSON config template"),
):
    """Print the active configuration."""
    if template:
        console.print_json(create_config_template())
        console.print("\n[bold]Environment overrides:[/bold]")
        for name, example in get_env_var_examples().items():
            console.print(f"  {name}={example}")
        return
    for line in config_summary_lines(config):
        console.print(line)


def print_optimization_result(result: OptimizationResult) -> None:
    console.print(
        f"\n[green]✅ {result.squads_evaluated} squads evaluated[/green] "
        f"(filter {result.elapsed_import_filter}, combine {result.elapsed_combining}, "
        f"score {result.elapsed_scoring})"
    )
    if not result.teams:
        console.print("[yellow]⚠️ No squad satisfies the constraints[/yellow]")
        return

    for rank, team in enumerate(result.teams, start=1):
        title = f"#{rank}  {team.predicted_points:.2f} pts  £{team.price:.1f}m"
        if team.bench_boost_gw is not None:
            title += f"  BB GW{team.bench_boost_gw}"
        table = Table(title=title, show_header=True)
        table.add_column("Squad")
        table.add_column("Captains")
        captains = ", ".join(dict.fromkeys(team.captains_by_week))
        table.add_row(", ".join(team.player_names), captains)
        console.print(table)


def print_team_report(report: TeamPointsReport, label: str) -> None:
    table = Table(title=f"{label} GW{report.start_gameweek}-{report.end_gameweek}")
    table.add_column("GW", justify="right")
    table.add_column("Points", justify="right")
    table.add_column("Captain")
    for offset, points in enumerate(report.gameweek_points):
        table.add_row(
            str(report.start_gameweek + offset), f"{points:.2f}", report.captains_by_week[offset]
        )
    table.add_row("Total", f"{report.total_points:.2f}", "", style="bold")
    console.print(table)
    if report.team_value is not None:
        console.print(f"Team value: £{report.team_value:.1f}m | Bench boost GW{report.bb_gw}")
    if report.not_found_players:
        console.print(f"[yellow]⚠️ Not found: {', '.join(report.not_found_players)}[/yellow]")


if __name__ == "__main__":
    app()
