"""
Command-line interface for mistralex.

Provides CLI commands for listing models, chatting, embedding and moderation.
"""

import functools
import logging
import sys
from typing import Callable, Optional

import click

from . import __version__
from .client import Mistral
from .exceptions import MistralConfigurationError, MistralError


def with_client(f: Callable) -> Callable:
    """Decorator to inject a Mistral client and handle errors/cleanup."""

    @functools.wraps(f)
    def wrapper(*args, **kwargs):
        ctx = click.get_current_context()
        factory = ctx.obj.get("client_factory", Mistral)

        try:
            client = factory(api_key=ctx.obj.get("api_key"), base_url=ctx.obj.get("base_url"))
        except MistralConfigurationError as e:
            click.echo(f"Error: {e}", err=True)
            click.echo("Set MISTRAL_API_KEY or pass --api-key.", err=True)
            sys.exit(1)

        try:
            return f(*args, client=client, **kwargs)
        except MistralError as e:
            click.echo(f"Error: {e}", err=True)
            sys.exit(1)
        finally:
            client.close()

    return wrapper


@click.group()
@click.version_option(version=__version__)
@click.option("--api-key", envvar="MISTRAL_API_KEY", help="API key for authentication")
@click.option("--base-url", help="API base URL (e.g., https://api.mistral.ai)")
@click.option("-v", "--verbose", is_flag=True, help="Log requests and retries")
@click.pass_context
def main(ctx: click.Context, api_key: Optional[str], base_url: Optional[str], verbose: bool) -> None:
    """mistralex - Mistral AI API client."""
    ctx.ensure_object(dict)
    ctx.obj["api_key"] = api_key
    ctx.obj["base_url"] = base_url
    if verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(levelname)s %(name)s: %(message)s")


@main.group(name="models")
def models_group() -> None:
    """Model commands."""
    pass


@models_group.command(name="list")
@click.pass_context
@with_client
def list_models(ctx: click.Context, client: Mistral) -> None:
    """List available models."""
    models = client.models.list()
    click.echo("Available Models:")
    click.echo("=" * 50)
    for model in models.data:
        click.echo(f"  {model.id}")


@models_group.command(name="get")
@click.argument("model_id")
@click.pass_context
@with_client
def get_model(ctx: click.Context, client: Mistral, model_id: str) -> None:
    """Show model information."""
    model = client.models.retrieve(model_id)
    click.echo(f"Model: {model.id}")
    click.echo("=" * 50)
    if model.owned_by:
        click.echo(f"Owned by: {model.owned_by}")
    if model.max_context_length:
        click.echo(f"Context length: {model.max_context_length}")
    if model.capabilities:
        enabled = [name for name, on in model.capabilities.model_dump().items() if on]
        click.echo(f"Capabilities: {', '.join(enabled) or 'none'}")
    if model.description:
        click.echo(f"\n{model.description}")


@main.command()
@click.argument("prompt")
@click.option("-m", "--model", default="mistral-small-latest", help="Model to use")
@click.option("--stream/--no-stream", default=True, help="Stream responses")
@click.option("--temperature", type=float, help="Sampling temperature")
@click.option("--max-tokens", type=int, help="Maximum tokens to generate")
@click.pass_context
@with_client
def chat(
    ctx: click.Context,
    client: Mistral,
    prompt: str,
    model: str,
    stream: bool,
    temperature: Optional[float],
    max_tokens: Optional[int],
) -> None:
    """Send a chat message."""
    messages = [{"role": "user", "content": prompt}]
    if stream:
        response_stream = client.chat.completions.create(
            messages=messages,
            model=model,
            stream=True,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        for chunk in response_stream:
            if chunk.choices and chunk.choices[0].delta.content:
                click.echo(chunk.choices[0].delta.content, nl=False)

        click.echo()
    else:
        response = client.chat.completions.create(
            messages=messages,
            model=model,
            temperature=temperature,
            max_tokens=max_tokens,
        )

        click.echo(response.choices[0].message.content)

        if response.usage:
            click.echo(f"\n(Tokens: {response.usage.total_tokens})", err=True)


@main.command()
@click.argument("text")
@click.option("-m", "--model", default="mistral-embed", help="Model to use")
@click.pass_context
@with_client
def embed(ctx: click.Context, client: Mistral, text: str, model: str) -> None:
    """Generate embeddings for text."""
    response = client.embeddings.create(input=text, model=model)

    if not response.data:
        click.echo("Error: No embedding data returned", err=True)
        sys.exit(1)

    embedding = response.data[0].embedding

    click.echo(f"Embedding dimension: {len(embedding)}")
    click.echo(f"First 10 values: {embedding[:10]}")

    if response.usage:
        click.echo(f"Tokens: {response.usage.total_tokens}")


@main.command()
@click.argument("text")
@click.option("-m", "--model", default="mistral-moderation-latest", help="Model to use")
@click.pass_context
@with_client
def moderate(ctx: click.Context, client: Mistral, text: str, model: str) -> None:
    """Check text against the moderation categories."""
    response = client.moderations.create(input=text, model=model)
    result = response.results[0]
    flagged = sorted(name for name, hit in result.categories.items() if hit)
    if flagged:
        click.echo(f"Flagged: {', '.join(flagged)}")
    else:
        click.echo("Not flagged")


if __name__ == "__main__":
    main()
