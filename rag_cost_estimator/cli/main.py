"""
CLI interface for the RAG Cost Estimator.

Provides command-line access to cost estimates and token conversions.
"""

import logging
import os
import sys
from dataclasses import replace
from typing import Optional

import typer
import yaml
from rich.console import Console
from rich.table import Table

from rag_cost_estimator.config.loader import load_pricing_table, load_usage_config
from rag_cost_estimator.core.calculation import (
    DEFAULT_USAGE,
    CalculationResult,
    calculate_costs
)
from rag_cost_estimator.core.pricing import PRICING_TABLE, PricingTable
from rag_cost_estimator.core.token_counter import tokens_to_words, words_to_tokens
from rag_cost_estimator.demo.example_text import generate_conversation
from rag_cost_estimator.state.url_state import load_usage_state, save_usage_state

app = typer.Typer()
console = Console()

EXIT_CODE_PASS = 0
EXIT_CODE_FAIL = 1


@app.callback(invoke_without_command=True)
def main(ctx: typer.Context):
    """RAG Cost Estimator CLI."""
    level_name = os.getenv("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(level=getattr(logging, level_name, logging.WARNING))
    if ctx.invoked_subcommand is None:
        console.print("RAG Cost Estimator - Use --help to see available commands")


def _load_pricing(pricing_file: Optional[str]) -> PricingTable:
    if pricing_file is None:
        return PRICING_TABLE
    return load_pricing_table(pricing_file)


@app.command()
def estimate(
    model: Optional[str] = typer.Option(None, "--model", "-m", help="Model identifier to price"),
    daily_users: Optional[float] = typer.Option(None, "--daily-users", "-u", help="Daily active users"),
    conversations: Optional[float] = typer.Option(
        None, "--conversations", "-c", help="Conversations per user per day"
    ),
    messages: Optional[float] = typer.Option(
        None, "--messages", "-n", help="Messages per conversation"
    ),
    words_per_chunk: Optional[float] = typer.Option(
        None, "--words-per-chunk", help="Words per retrieved chunk"
    ),
    chunks: Optional[float] = typer.Option(None, "--chunks", help="Chunks retrieved per query"),
    query_words: Optional[float] = typer.Option(None, "--query-words", help="Words per user query"),
    response_words: Optional[float] = typer.Option(
        None, "--response-words", help="Words per model response"
    ),
    config_file: Optional[str] = typer.Option(
        None, "--config-file", help="YAML usage scenario to start from"
    ),
    state: Optional[str] = typer.Option(
        None, "--state", "-s", help="Shared state string to start from"
    ),
    pricing_file: Optional[str] = typer.Option(
        None, "--pricing-file", "-p", help="YAML price table to use instead of the built-in one"
    ),
    share: bool = typer.Option(False, "--share", help="Print a shareable state string"),
    enforced: bool = typer.Option(
        False,
        "--enforced",
        "-e",
        help="Exit with error code if the backcheck fails"
    )
):
    """
    Estimate tokens and costs for a RAG chat workload.
    
    Options given on the command line override values from --state or
    --config-file, which in turn override the reference scenario.
    """
    try:
        pricing_table = _load_pricing(pricing_file)
        
        if state is not None:
            config = load_usage_state(state)
            if config is None:
                console.print("[red]Error:[/] could not decode --state")
                sys.exit(EXIT_CODE_FAIL)
        elif config_file is not None:
            config = load_usage_config(config_file)
        else:
            config = DEFAULT_USAGE
        
        overrides = {
            "selected_model": model,
            "daily_users": daily_users,
            "conversations_per_user": conversations,
            "messages_per_conversation": messages,
            "words_per_chunk": words_per_chunk,
            "chunks_per_query": chunks,
            "user_query_words": query_words,
            "response_words": response_words,
        }
        config = replace(config, **{k: v for k, v in overrides.items() if v is not None})
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    
    if pricing_table.get_pricing(config.selected_model) is None:
        console.print(
            f"[yellow]Warning:[/] no pricing for model '{config.selected_model}', costs are 0"
        )
    
    result = calculate_costs(config, pricing_table)
    _display_result(result)
    
    if share:
        console.print(f"\nState: {save_usage_state(config)}", soft_wrap=True)
    
    if enforced and not result.backcheck.is_valid:
        sys.exit(EXIT_CODE_FAIL)
    sys.exit(EXIT_CODE_PASS)


@app.command()
def convert(
    words: Optional[float] = typer.Option(None, "--words", "-w", help="Word count to convert"),
    tokens: Optional[float] = typer.Option(None, "--tokens", "-t", help="Token count to convert")
):
    """Approximate tokens for a word count, or words for a token count."""
    if words is None and tokens is None:
        console.print("[red]Error:[/] pass --words or --tokens")
        sys.exit(EXIT_CODE_FAIL)
    if words is not None:
        console.print(f"{_format_number(words)} words ≈ {_format_number(words_to_tokens(words))} tokens")
    if tokens is not None:
        console.print(f"{_format_number(tokens)} tokens ≈ {_format_number(tokens_to_words(tokens))} words")


@app.command()
def models(
    pricing_file: Optional[str] = typer.Option(
        None, "--pricing-file", "-p", help="YAML price table to list"
    )
):
    """List models in the price table."""
    try:
        pricing_table = _load_pricing(pricing_file)
    except (FileNotFoundError, ValueError, yaml.YAMLError) as e:
        console.print(f"[red]Error:[/] {str(e)}")
        sys.exit(EXIT_CODE_FAIL)
    
    table = Table(title="Model Pricing")
    table.add_column("Model", no_wrap=True)
    table.add_column("Name")
    table.add_column("Input / 1K", justify="right")
    table.add_column("Output / 1K", justify="right")
    table.add_column("Description")
    for model_id in pricing_table.models():
        pricing = pricing_table.get_pricing(model_id)
        table.add_row(
            model_id,
            pricing.name,
            f"${pricing.input_price_per_1k:g}",
            f"${pricing.output_price_per_1k:g}",
            pricing.description
        )
    console.print(table)


@app.command()
def example(
    messages: int = typer.Option(DEFAULT_USAGE.messages_per_conversation, "--messages", "-n"),
    query_words: int = typer.Option(DEFAULT_USAGE.user_query_words, "--query-words"),
    chunks: int = typer.Option(DEFAULT_USAGE.chunks_per_query, "--chunks"),
    words_per_chunk: int = typer.Option(DEFAULT_USAGE.words_per_chunk, "--words-per-chunk"),
    response_words: int = typer.Option(DEFAULT_USAGE.response_words, "--response-words")
):
    """Print filler text showing the shape of one conversation."""
    conversation = generate_conversation(
        messages, query_words, chunks, words_per_chunk, response_words
    )
    for index, exchange in enumerate(conversation, start=1):
        console.print(f"\n[bold]Message {index}[/bold]")
        console.print(f"[cyan]User:[/] {exchange.user_query}")
        for chunk_index, chunk in enumerate(exchange.chunks, start=1):
            console.print(f"[dim]Chunk {chunk_index}:[/] {chunk}")
        console.print(f"[green]Assistant:[/] {exchange.response}")


def _format_currency(amount: float) -> str:
    """Format currency with proper symbols and formatting."""
    return f"${amount:,.2f}"


def _format_small_currency(amount: float) -> str:
    """Format sub-cent amounts without losing them to rounding."""
    return f"${amount:,.6f}"


def _format_number(value: float) -> str:
    if isinstance(value, float) and value.is_integer():
        value = int(value)
    if isinstance(value, int):
        return f"{value:,}"
    return f"{value:,.2f}"


def _display_result(result: CalculationResult):
    """Display estimate results in a clean, financial format."""
    console.print("\n[bold]RAG Cost Estimate[/bold]")
    console.print("-" * 40)
    
    table = Table(show_header=False)
    table.add_column("Metric")
    table.add_column("Value", justify="right")
    table.add_row("Tokens per message", _format_number(result.tokens_per_message))
    table.add_row("Words per message", _format_number(result.words_per_message))
    table.add_row("Avg history tokens", _format_number(result.average_history_tokens))
    table.add_row("Messages per day", _format_number(result.total_daily_messages))
    table.add_row("Daily cost", _format_currency(result.daily_cost))
    table.add_row("Monthly cost", _format_currency(result.monthly_cost))
    table.add_row("Annual cost", _format_currency(result.annual_cost))
    table.add_row("Cost per message", _format_small_currency(result.cost_per_message))
    table.add_row("Cost per user / month", _format_currency(result.cost_per_user))
    console.print(table)
    
    backcheck = result.backcheck
    if backcheck.is_valid:
        console.print("\n[bold]Backcheck:[/bold] [green]PASS[/]")
        return
    
    console.print("\n[bold]Backcheck:[/bold] [red]FAIL[/]")
    details = backcheck.details
    checks = [
        ("input tokens", details.input_tokens_match, "input_tokens"),
        ("output tokens", details.output_tokens_match, "output_tokens"),
        ("total messages", details.total_messages_match, "total_messages"),
        ("daily cost", details.daily_cost_match, "daily_cost"),
    ]
    for label, matched, field_name in checks:
        if not matched:
            expected = getattr(details.expected_values, field_name)
            actual = getattr(details.actual_values, field_name)
            console.print(f"  {label}: expected {expected}, got {actual}")


if __name__ == "__main__":
    app()
