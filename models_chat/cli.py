"""命令行入口：`models-chat run [MODEL] [PROMPT...]`。"""

from typing import List, Optional

import click

from models_chat.config.settings import settings
from models_chat.domain.conversation import Conversation
from models_chat.domain.exceptions import AuthError, BusinessError, ValidationError
from models_chat.domain.parameters import ParameterSet
from models_chat.providers import create_client
from models_chat.providers.catalog import (
    CatalogClient,
    ModelSummary,
    filter_chat_models,
    resolve_model_name,
    sort_models,
)
from models_chat.session import ChatSession, ConsoleInput, ConsoleSink, terminal_indicator

EXIT_INTERRUPTED = 130


@click.group()
def main():
    """Chat with models served by a chat-completions inference endpoint."""


@main.command("run")
@click.argument("model", required=False)
@click.argument("prompt", nargs=-1)
@click.option("--max-tokens", default="", help="Limit the maximum tokens for the model response.")
@click.option(
    "--temperature",
    default="",
    help="Controls randomness in the response, use lower to be more deterministic.",
)
@click.option(
    "--top-p",
    default="",
    help="Controls text diversity by selecting the most probable words until a set probability is reached.",
)
@click.option("--system-prompt", default="", help="Prompt the system.")
@click.pass_context
def run_command(ctx, model, prompt, max_tokens, temperature, top_p, system_prompt):
    """Run inference with the specified model."""

    try:
        client = create_client(settings)
    except AuthError as e:
        click.echo(e.message)
        return

    parameters = ParameterSet()
    try:
        parameters.populate_from_options(
            {"max-tokens": max_tokens, "temperature": temperature, "top-p": top_p}
        )
    except ValidationError as e:
        raise click.BadParameter(e.message, param_hint=f"--{e.extra.get('field')}")

    initial_prompt = _initial_prompt(prompt)

    try:
        models = sort_models(CatalogClient(settings).list_models())
        model_name = resolve_model_name(model or _select_model(models), models)
    except BusinessError as e:
        raise click.ClickException(e.message)

    sink = ConsoleSink()
    session = ChatSession(
        client,
        model_name,
        sink,
        ConsoleInput(),
        conversation=Conversation(system_prompt),
        parameters=parameters,
        initial_prompt=initial_prompt,
        indicator_factory=terminal_indicator,
        token_delay=settings.token_delay_ms / 1000 if sink.is_terminal else 0.0,
    )
    try:
        session.run()
    except KeyboardInterrupt:
        click.echo("", err=True)
        ctx.exit(EXIT_INTERRUPTED)
    except BusinessError as e:
        raise click.ClickException(e.message)


def _initial_prompt(words) -> str:
    """命令行剩余参数与管道输入拼成初始 prompt，非空即单次模式。"""

    prompt = " ".join(words)
    stdin = click.get_text_stream("stdin")
    if not stdin.isatty():
        piped = stdin.read()
        if piped:
            prompt = prompt + "\n" + piped
    return prompt.strip()


def _select_model(models: List[ModelSummary]) -> Optional[str]:
    chat_models = filter_chat_models(models)
    if not chat_models:
        return None
    click.echo("Select a model:")
    for i, m in enumerate(chat_models, start=1):
        click.echo(f"  {i}. {m.friendly_name}")
    choice = click.prompt("Model", type=click.IntRange(1, len(chat_models)))
    return chat_models[choice - 1].friendly_name


if __name__ == "__main__":
    main()
