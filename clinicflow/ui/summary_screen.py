"""Rich summary of a finished (or abandoned) consultation."""

from typing import Optional

from rich.console import Console
from rich.panel import Panel
from rich.table import Table
from rich.text import Text

from ..models.billing import ConsultationBill
from ..models.consultation import ConsultationState, Encounter
from ..utils.formatting import format_currency


def _bill_table(bill: ConsultationBill, symbol: str) -> Table:
    table = Table(title="Billing", show_header=True, header_style="bold")
    table.add_column("Item")
    table.add_column("Amount", justify="right")

    table.add_row("Consultation fee", format_currency(bill.base_fee, symbol))
    for item in bill.line_items:
        table.add_row(item.description, format_currency(item.amount, symbol))
    table.add_section()
    table.add_row(Text("Total", style="bold"), Text(format_currency(bill.total, symbol), style="bold green"))
    return table


def _suggestions_panel(encounter: Encounter) -> Optional[Panel]:
    if not (encounter.diagnosis or encounter.medicines or encounter.notes):
        return None

    lines = []
    if encounter.diagnosis:
        lines.append("[bold]Diagnosis:[/bold] " + ", ".join(encounter.diagnosis))
    for medicine in encounter.medicines:
        lines.append(f"• {medicine.name} {medicine.dosage}, {medicine.frequency} for {medicine.duration}")
    if encounter.notes:
        lines.append(f"[dim]{encounter.notes}[/dim]")
    return Panel("\n".join(lines), title="AI Suggestions (advisory)", border_style="cyan")


def render_summary(console: Console,
                   state: ConsultationState,
                   bill: ConsultationBill,
                   encounter: Encounter,
                   currency_symbol: str = "₹",
                   record_id: Optional[str] = None) -> None:
    """Print transcript, suggestions and bill for one consultation."""
    style = "green" if state is ConsultationState.COMPLETE else "yellow"
    header = f"Consultation {state.value.replace('_', ' ')}"
    if record_id:
        header += f" (record {record_id})"
    console.print(Panel(Text(header, style=f"bold {style}"), border_style=style))

    if encounter.transcript and encounter.transcript.text:
        console.print(Panel(encounter.transcript.text, title="Transcript"))
    else:
        console.print(Text("No transcript available", style="dim"))

    suggestions = _suggestions_panel(encounter)
    if suggestions is not None:
        console.print(suggestions)

    console.print(_bill_table(bill, currency_symbol))
