"""Rich console output for answers, sources, audit progress and reports."""

from rich.console import Console
from rich.markdown import Markdown
from rich.markup import escape
from rich.panel import Panel
from rich.rule import Rule
from rich.table import Table
from rich.text import Text

from aegis.models import Metric, MetricState, ModelResponse, ProgressEvent, RiskAuditReport, Severity

console = Console(legacy_windows=False)

_SEVERITY_STYLES = {
    Severity.INFO: "cyan",
    Severity.WARNING: "yellow",
    Severity.ERROR: "red",
}

_METRIC_LABELS = {
    Metric.CLARITY: "Clarity",
    Metric.HALLUCINATION: "Hallucination",
    Metric.BIAS: "Bias",
    Metric.TOXICITY: "Toxicity",
    Metric.INTENT_ALIGNMENT: "Intent alignment",
}

_SUMMARY_LABELS = ("Hallucination", "Bias", "Toxicity", "Intent")


def print_answer(response: ModelResponse) -> None:
    """Print the published answer and its sources."""
    console.print(Rule(f"[bold cyan]Answer[/bold cyan] [dim]({response.backend})[/dim]"))
    console.print(Markdown(response.content))
    print_sources(response)


def print_sources(response: ModelResponse) -> None:
    sources = [s for s in response.sources if s.url]
    if not sources:
        return
    console.print()
    console.print(Text("Sources", style="bold"))
    for i, source in enumerate(sources, start=1):
        console.print(f"  {i}. {escape(source.title)} [dim]({escape(source.url)})[/dim]")


def format_progress(event: ProgressEvent) -> str:
    label = _METRIC_LABELS[event.metric]
    if event.state is MetricState.ANALYZING:
        return f"[yellow]…[/yellow] Analyzing {label.lower()}"
    if event.state is MetricState.COMPLETE:
        return f"[green]OK[/green] {label}"
    return f"[dim]- {label} pending[/dim]"


def build_report_table(report: RiskAuditReport) -> Table:
    table = Table(show_header=True, header_style="bold", box=None)
    table.add_column("Metric")
    table.add_column("Score", justify="right")
    metrics = report.metrics
    for label, value in (
        ("Clarity", metrics.clarity),
        ("Bias", metrics.bias),
        ("Toxicity", metrics.toxicity),
        ("Hallucination", metrics.hallucination),
        ("Intent alignment", metrics.intent_alignment),
    ):
        table.add_row(label, f"{value * 100:.0f}%")
    return table


def print_report(report: RiskAuditReport) -> None:
    """Print the audit report: verdict, glyph summary, metrics and findings."""
    if not report.is_live:
        title = "[bold yellow]Risk Audit (placeholder)[/bold yellow]"
        border = "yellow"
    elif report.is_compliant:
        title = "[bold green]Risk Audit: compliant[/bold green]"
        border = "green"
    else:
        title = "[bold red]Risk Audit: not compliant[/bold red]"
        border = "red"

    summary = "  ".join(
        f"{glyph.value} {label}" for glyph, label in zip(report.summary, _SUMMARY_LABELS)
    )
    console.print(Rule(title))
    console.print(summary)
    console.print(build_report_table(report))
    console.print(Panel(Text(report.explanation), title="Explanation", border_style=border))
    console.print(Text(report.reasoning, style="dim"))

    for item in report.items:
        style = _SEVERITY_STYLES[item.severity]
        console.print(f"  [{style}]{item.severity.value.upper():7}[/{style}] {escape(item.message)}")
