"""Provider probes: connectivity, latency and generation speed."""

from __future__ import annotations

import time
from typing import TYPE_CHECKING

from rich.console import Console
from rich.markup import escape
from rich.table import Table

from inkstream._core._errors import GatewayError
from inkstream._core._logging import get_logger
from inkstream._core._models import ConnectionReport, GenerationRequest, SpeedReport
from inkstream._gateway import adapter_class

if TYPE_CHECKING:
    from inkstream._core._orchestrator import Gateway

logger = get_logger(__name__)

CONNECTION_PROMPT = "Introduce yourself in one sentence."
SPEED_PROMPT = "Who are you?"
PROBE_MAX_TOKENS = 100
PROBE_TEMPERATURE = 0.7


def _elapsed_ms(start: float) -> float:
    return (time.perf_counter() - start) * 1000


async def probe_speed(
    gateway: Gateway,
    provider: str | None,
    model: str,
    prompt: str = SPEED_PROMPT,
) -> SpeedReport:
    """Time one short generation against ``model``."""
    start = time.perf_counter()
    result = await gateway.generate(
        GenerationRequest(
            user_prompt=prompt,
            model=model,
            provider=provider,
            temperature=PROBE_TEMPERATURE,
            max_tokens=PROBE_MAX_TOKENS,
        )
    )
    duration = _elapsed_ms(start)

    report = SpeedReport(
        provider=result.provider or provider or "",
        model=result.model or model,
        success=result.ok,
        duration_ms=duration,
        response=result.content or "",
        error=result.error,
    )
    logger.info(
        "Speed probe finished",
        provider=report.provider,
        model=report.model,
        success=report.success,
        duration_ms=round(duration),
    )
    return report


async def probe_connection(gateway: Gateway, provider: str | None = None) -> ConnectionReport:
    """List models, then run a short generation with the first one listed.

    Listing failures end the probe; a failed generation is reported inside
    the report with ``success`` still reflecting the listing.
    """
    start = time.perf_counter()
    try:
        provider_id = gateway.registry.select_provider(provider)
        endpoint = adapter_class(provider_id).base_url
        models = await gateway.list_models(provider_id)
    except GatewayError as e:
        logger.warning("Connection probe failed", provider=e.provider or provider, error=e.message)
        return ConnectionReport(
            provider=e.provider or provider or "",
            success=False,
            latency_ms=_elapsed_ms(start),
            error=e.message,
        )
    latency = _elapsed_ms(start)

    model = models[0].id if models else ""
    generation = await probe_speed(gateway, provider_id, model, prompt=CONNECTION_PROMPT)
    logger.info(
        "Connection probe finished",
        provider=provider_id,
        latency_ms=round(latency),
        models=len(models),
        generation_ok=generation.success,
    )
    return ConnectionReport(
        provider=provider_id,
        success=True,
        latency_ms=latency,
        endpoint=endpoint,
        models=models,
        generation=generation,
    )


def print_report(report: ConnectionReport | SpeedReport, console: Console | None = None) -> None:
    """Render a probe report to the terminal."""
    console = console or Console()

    if isinstance(report, SpeedReport):
        _print_speed(console, report)
        return

    status = "[bold green]ok[/]" if report.success else "[bold red]failed[/]"
    console.print(f"[bold]{report.provider}[/] {status} in [bold]{report.latency_ms:.0f}[/] ms")
    if report.error:
        console.print(f"[red]{escape(report.error)}[/]")
        return

    table = Table(title=f"{report.provider} models", show_header=True, header_style="bold")
    table.add_column("Model", style="cyan")
    table.add_column("Owner")
    for model in report.models:
        table.add_row(model.id, model.owned_by)
    console.print(table)
    console.print(f"endpoint: [dim]{report.endpoint}[/], [bold]{report.model_count}[/] models")

    if report.generation is not None:
        _print_speed(console, report.generation)


def _print_speed(console: Console, report: SpeedReport) -> None:
    table = Table(title="generation", show_header=True, header_style="bold")
    table.add_column("Model", style="cyan")
    table.add_column("Result")
    table.add_column("Time (ms)", justify="right")
    table.add_column("Response")
    result = "[green]ok[/]" if report.success else f"[red]{escape(report.error or '')}[/]"
    table.add_row(report.model, result, f"{report.duration_ms:.0f}", report.response[:80])
    console.print(table)
