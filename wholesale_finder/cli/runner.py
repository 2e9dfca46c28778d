# wholesale_finder/cli/runner.py

"""Headless CLI runner: reuses the async orchestrator."""

import json
import logging
import sys
from typing import Any

from rich.console import Console
from rich.table import Table

from wholesale_finder.models.product import Product
from wholesale_finder.models.search_result import MultiSiteSearch
from wholesale_finder.scrapers.base_scraper import ExtractionFailed
from wholesale_finder.services.search_orchestrator import (
    AnalysisResult,
    InvalidQueryError,
    SearchOrchestrator,
)

logger = logging.getLogger("wholesale_finder.cli")

# Stderr console for status messages so stdout stays clean for JSON
_err = Console(stderr=True)


def _dump_json(payload: Any) -> None:
    json.dump(payload, sys.stdout, ensure_ascii=False, indent=2)
    sys.stdout.write("\n")


def _print_products(title: str, products: list[Product]) -> None:
    """Render a Rich table of products to stdout, cheapest first."""
    table = Table(title=title, show_lines=True, title_style="bold cyan")
    table.add_column("#", style="dim", width=4)
    table.add_column("Title", max_width=60)
    table.add_column("Price", justify="right")
    table.add_column("KRW", justify="right", style="green")
    table.add_column("Seller", style="magenta")
    table.add_column("URL", overflow="fold", style="dim")

    for idx, p in enumerate(sorted(products, key=lambda p: p.price_local), 1):
        table.add_row(
            str(idx),
            p.title[:60],
            f"{p.currency} {p.price:,.2f}",
            f"₩{p.price_local:,}",
            p.seller.name,
            p.product_url,
        )

    Console().print(table)


def _print_search(result: MultiSiteSearch) -> None:
    for site, site_result in result.results.items():
        note = ""
        if site_result.provenance == "fallback":
            note = " [sample data]"
        elif site_result.error:
            note = f" [error: {site_result.error}]"
        _print_products(
            f"{site} ({site_result.search_time_ms} ms){note}",
            site_result.products,
        )


async def cli_search(
    keyword: str,
    output_format: str = "json",
    use_vpn: bool = False,
) -> int:
    """Run a headless search and return an exit code (0=ok, 1=fail)."""
    orchestrator = SearchOrchestrator()
    _err.print(f"[bold]Searching:[/bold] {keyword}")
    try:
        result = await orchestrator.search_all(keyword, use_vpn=use_vpn)
    except InvalidQueryError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1

    if result.vpn_mode:
        _err.print("[dim]VPN profile active[/dim]")
    for site, site_result in result.results.items():
        if site_result.error:
            _err.print(f"[red]{site}: {site_result.error}[/red]")

    if not result.total_products:
        _err.print("[yellow]No products found.[/yellow]")
        return 1
    _err.print(f"[green]✓ {result.total_products} products[/green]")

    if output_format == "table":
        _print_search(result)
    else:
        _dump_json(result.to_dict())
    return 0


def _print_analysis(analysis: AnalysisResult) -> None:
    product = analysis.product
    Console().print(
        f"[bold]{product.title}[/bold]\n"
        f"{product.currency} {product.price:,.2f} (₩{product.price_local:,})"
        f"  seller: {product.seller.name}\n\n{product.summary}"
    )
    if analysis.alternatives:
        _print_products("Cheaper alternatives", list(analysis.alternatives))
        for alt in analysis.alternatives:
            Console().print(
                f"[green]-₩{alt.savings_local:,} ({alt.savings_percent}%)[/green]"
                f" {alt.comparison_note}"
            )
    else:
        _err.print("[yellow]No cheaper alternatives found.[/yellow]")


async def cli_analyze(url: str, output_format: str = "json") -> int:
    """Analyze one product URL and list cheaper alternatives."""
    orchestrator = SearchOrchestrator()
    _err.print(f"[bold]Analyzing:[/bold] {url}")
    try:
        analysis = await orchestrator.analyze_url(url)
    except InvalidQueryError as exc:
        _err.print(f"[red]{exc}[/red]")
        return 1
    except ExtractionFailed as exc:
        logger.error("Analyze failed: %s", exc)
        _err.print(f"[red]상품 정보를 분석할 수 없습니다. ({exc.reason})[/red]")
        return 1

    if output_format == "table":
        _print_analysis(analysis)
    else:
        _dump_json(analysis.to_dict())
    return 0


async def run_health_check() -> int:
    """Run connectivity health check on all sources."""
    from wholesale_finder.services.health_checker import HealthChecker

    _err.print("[bold]Running marketplace health check...[/bold]")
    checker = HealthChecker()
    results = await checker.check_all()

    table = Table(
        title="Marketplace Health Check",
        show_lines=True,
        title_style="bold cyan",
    )
    table.add_column("Site", style="bold")
    table.add_column("Status", justify="center")
    table.add_column("Latency", justify="right")
    table.add_column("Notes", style="dim")

    any_down = False
    for r in results:
        if r.status == "ok":
            status = "[green]✅ OK[/green]"
        elif r.status == "slow":
            status = "[yellow]⚠️  SLOW[/yellow]"
        elif r.status == "blocked":
            status = "[yellow]🚫 BLOCKED[/yellow]"
        else:
            status = "[red]❌ DOWN[/red]"
            any_down = True

        latency = f"{r.latency_ms:.0f}ms" if r.latency_ms > 0 else "—"
        table.add_row(r.source_id, status, latency, r.message)

    Console().print(table)
    return 1 if any_down else 0


def serve(host: str, port: int) -> None:
    """Run the HTTP API under uvicorn."""
    import uvicorn

    _err.print(f"[bold]Serving on http://{host}:{port}[/bold]")
    uvicorn.run(
        "wholesale_finder.api.app:create_app",
        factory=True,
        host=host,
        port=port,
        log_config=None,
    )
