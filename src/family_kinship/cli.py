"""CLI interface for Family Kinship."""

from datetime import date
from pathlib import Path
from typing import NoReturn

import typer
from rich.console import Console
from rich.panel import Panel
from rich.table import Table

from .exceptions import KinshipError

app = typer.Typer(
    name="family-kinship",
    help="Family graph maintenance and kinship queries",
    add_completion=False,
)
console = Console()


def get_config():
    """Load configuration from environment."""
    from dotenv import load_dotenv

    from .config import load_config
    from .logging import configure_logging

    load_dotenv()
    config = load_config()
    configure_logging(config.log_level)
    return config


def open_store(db: Path | None):
    from .graph import SQLiteGraphStore

    config = get_config()
    return SQLiteGraphStore(db or config.db_path, max_family_members=config.max_family_members)


def fail(error: Exception) -> NoReturn:
    console.print(f"[red]Error: {error}[/red]")
    raise typer.Exit(1)


def parse_gender(value: str):
    from .graph import Gender

    try:
        return Gender(value.upper())
    except ValueError:
        fail(ValueError(f"Unknown gender {value!r}; use MALE or FEMALE"))


def parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value)
    except ValueError:
        fail(ValueError(f"Invalid date {value!r}; use YYYY-MM-DD"))


DbOption = typer.Option(None, "--db", help="SQLite database path (defaults to FAMILY_KINSHIP_DB_PATH)")


@app.command()
def init(db: Path = DbOption):
    """Create the database schema."""
    store = open_store(db)
    store.close()
    console.print(f"[green]Database ready:[/green] {store.db_path}")


@app.command("add-family")
def add_family(
    name: str = typer.Argument(..., help="Family name"),
    db: Path = DbOption,
):
    """Create an empty family."""
    store = open_store(db)
    try:
        family = store.create_family(name)
    finally:
        store.close()
    console.print(family.id)


@app.command("add-member")
def add_member(
    family_id: str = typer.Argument(..., help="Family ID"),
    first_name: str = typer.Argument(..., help="First name"),
    gender: str = typer.Option("MALE", "--gender", "-g", help="MALE or FEMALE"),
    last_name: str = typer.Option(None, "--last-name", help="Last name"),
    birth_date: str = typer.Option(None, "--born", help="Birth date (YYYY-MM-DD)"),
    db: Path = DbOption,
):
    """Add a member to a family."""
    from .graph import GraphMutator

    member_gender = parse_gender(gender)
    born = parse_date(birth_date)

    store = open_store(db)
    try:
        member = GraphMutator(store, family_id).create_member(
            first_name,
            member_gender,
            last_name=last_name,
            birth_date=born,
        )
    except KinshipError as e:
        fail(e)
    finally:
        store.close()
    console.print(member.id)


@app.command("add-parent")
def add_parent(
    family_id: str = typer.Argument(..., help="Family ID"),
    child_id: str = typer.Argument(..., help="Child member ID"),
    parent_id: str = typer.Argument(..., help="Parent member ID"),
    db: Path = DbOption,
):
    """Link a parent to a child."""
    from .graph import GraphMutator

    store = open_store(db)
    try:
        GraphMutator(store, family_id).add_parent(child_id, parent_id)
    except KinshipError as e:
        fail(e)
    finally:
        store.close()
    console.print("[green]Parent linked[/green]")


@app.command("add-spouse")
def add_spouse(
    family_id: str = typer.Argument(..., help="Family ID"),
    member_id: str = typer.Argument(..., help="Member ID"),
    spouse_id: str = typer.Argument(..., help="New current spouse ID"),
    db: Path = DbOption,
):
    """Set the current spouse; any previous spouse becomes former."""
    from .graph import GraphMutator

    store = open_store(db)
    try:
        GraphMutator(store, family_id).add_spouse(member_id, spouse_id)
    except KinshipError as e:
        fail(e)
    finally:
        store.close()
    console.print("[green]Spouse linked[/green]")


@app.command()
def relations(
    family_id: str = typer.Argument(..., help="Family ID"),
    member_id: str = typer.Argument(..., help="Member to describe relations from"),
    lang: str = typer.Option(None, "--lang", "-l", help="Language code (en, ru)"),
    db: Path = DbOption,
):
    """Show what every family member is to MEMBER_ID."""
    from .kinship import KinshipResolver

    store = open_store(db)
    try:
        snapshot = store.load_graph(family_id)
        labels = KinshipResolver(store).get_relations(family_id, member_id, lang)
    except KinshipError as e:
        fail(e)
    finally:
        store.close()

    if not labels:
        console.print("[yellow]Member is not part of this family.[/yellow]")
        return

    table = Table(title="Relations")
    table.add_column("Member ID", style="dim")
    table.add_column("Name")
    table.add_column("Relation", style="cyan")

    for relative_id, label in labels.items():
        member = snapshot.get(relative_id)
        name = " ".join(filter(None, [member.first_name, member.last_name])) if member else "?"
        table.add_row(relative_id, name, label)

    console.print(table)


@app.command()
def search(
    name: str = typer.Option(None, "--name", "-n", help="First name, in any supported script"),
    last_name: str = typer.Option(None, "--last-name", help="Last name, in any supported script"),
    gender: str = typer.Option(None, "--gender", "-g", help="MALE or FEMALE"),
    born_after: str = typer.Option(None, "--born-after", help="Earliest birth date (YYYY-MM-DD)"),
    died_before: str = typer.Option(None, "--died-before", help="Latest death date (YYYY-MM-DD)"),
    page: int = typer.Option(1, "--page", "-p", min=1, help="Result page"),
    db: Path = DbOption,
):
    """Search members across families by name and life dates."""
    from .graph import MemberQuery

    query = MemberQuery(
        first_name=name,
        last_name=last_name,
        gender=parse_gender(gender) if gender else None,
        born_after=parse_date(born_after),
        died_before=parse_date(died_before),
        page=page,
    )

    store = open_store(db)
    try:
        members = store.search_members(query)
    finally:
        store.close()

    if not members:
        console.print("[yellow]No members found.[/yellow]")
        return

    table = Table(title="Members")
    table.add_column("Member ID", style="dim")
    table.add_column("Name")
    table.add_column("Gender")
    table.add_column("Born")

    for member in members:
        table.add_row(
            member.id,
            " ".join(filter(None, [member.first_name, member.last_name])),
            member.gender.value,
            member.birth_date.isoformat() if member.birth_date else "",
        )

    console.print(table)


@app.command()
def unite(
    invitee_family_id: str = typer.Argument(..., help="Family being merged in"),
    invitee_member_id: str = typer.Argument(..., help="Invitee's member record"),
    target_family_id: str = typer.Argument(..., help="Inviting family"),
    target_member_id: str = typer.Argument(..., help="Member slot the invitation is tied to"),
    db: Path = DbOption,
):
    """Merge the invitee's family into the inviting family."""
    from .graph import FamilyMergeEngine, MergeRequest

    store = open_store(db)
    try:
        report = FamilyMergeEngine(store).unite(MergeRequest(
            invitee_family_id=invitee_family_id,
            invitee_member_id=invitee_member_id,
            target_family_id=target_family_id,
            target_member_id=target_member_id,
        ))
    except KinshipError as e:
        fail(e)
    finally:
        store.close()

    lines = [
        f"[bold]Moved members:[/bold] {report.moved_members}",
        f"[bold]Carried over:[/bold] {', '.join(report.carried_slots) or 'none'}",
        f"[bold]Re-parented children:[/bold] {len(report.reparented_children)}",
    ]
    for conflict in report.conflicts:
        lines.append(f"[yellow]Discarded {conflict.slot}:[/yellow] {conflict.discarded_member_id}")
    console.print(Panel("\n".join(lines), title="Families united"))


if __name__ == "__main__":
    app()
