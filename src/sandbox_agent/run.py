# run.py
# Entry point. Flag parsing, wiring and the interactive loop.
#
# Swap model strings for any model your provider serves.
# https://openrouter.ai/models

import argparse
import logging
import os

from rich.console import Console
from rich.logging import RichHandler

from sandbox_agent import display
from sandbox_agent.client import OpenAIModelClient
from sandbox_agent.config import Settings, load_settings
from sandbox_agent.errors import ConfigError
from sandbox_agent.harness import Agent
from sandbox_agent.sandbox import PathSandbox
from sandbox_agent.tools import build_registry

logger = logging.getLogger(__name__)

EXIT_COMMANDS = {"/exit", "/quit", "exit", "quit"}


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="sandbox-agent",
        description="Terminal coding assistant confined to one working directory.",
    )
    parser.add_argument("-k", "--api-key", help="API key for the model provider")
    parser.add_argument("-m", "--model", help="Model name")
    parser.add_argument(
        "-p",
        "--provider",
        help="Model provider (openrouter, openai, anthropic, deepseek, dashscope, custom)",
    )
    parser.add_argument("-d", "--dir", dest="working_directory", help="Working directory (sandbox root)")
    parser.add_argument("-v", "--verbose", action="store_true", help="Log at DEBUG level")
    return parser.parse_args(argv)


def configure_logging(verbose: bool) -> None:
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(console=Console(stderr=True), rich_tracebacks=True)],
        force=True,
    )


def build_agent(settings: Settings) -> tuple[Agent, PathSandbox]:
    sandbox = PathSandbox(settings.working_directory)
    registry = build_registry(sandbox)
    client = OpenAIModelClient(settings)
    return Agent(client=client, registry=registry), sandbox


# ---------------------------------------------------------------------------
# Slash commands
# ---------------------------------------------------------------------------


def parse_params(tokens: list[str]) -> tuple[float | None, int | None]:
    """Parse `temperature=<v> max_tokens=<n>` pairs. Raises ValueError."""
    temperature: float | None = None
    max_tokens: int | None = None
    for token in tokens:
        key, sep, value = token.partition("=")
        if not sep:
            raise ValueError(f"Expected key=value, got '{token}'")
        key = key.strip().lower()
        if key == "temperature":
            temperature = float(value)
        elif key in ("max_tokens", "maxtokens"):
            max_tokens = int(value)
        else:
            raise ValueError(f"Unknown parameter '{key}'")
    return temperature, max_tokens


def handle_command(agent: Agent, line: str) -> bool:
    """Run one slash command. Returns False when the session should end."""
    parts = line.split()
    command = parts[0].lower()
    tokens = parts[1:]

    if command in EXIT_COMMANDS:
        return False
    if command == "/help":
        display.help_text(agent.tool_names)
    elif command == "/clear":
        display.console.clear()
    elif command == "/reset":
        agent.reset()
        display.info("Conversation history cleared.")
    elif command == "/version":
        display.version()
    elif command == "/model":
        display.model_info(agent.model_info())
    elif command == "/switch":
        if len(tokens) < 2:
            display.error("Usage: /switch <provider> <model> [api_key]")
        else:
            api_key = tokens[2] if len(tokens) > 2 else None
            display.info(agent.switch_model(tokens[0], tokens[1], api_key))
    elif command == "/params":
        try:
            temperature, max_tokens = parse_params(tokens)
        except ValueError as exc:
            display.error(f"{exc}. Usage: /params temperature=<0.0-1.0> max_tokens=<n>")
        else:
            display.info(agent.update_parameters(temperature, max_tokens))
    else:
        display.error(f"Unknown command: {command}. Type /help for available commands.")
    return True


# ---------------------------------------------------------------------------
# Interactive loop
# ---------------------------------------------------------------------------


def repl(agent: Agent) -> None:
    while True:
        try:
            line = display.prompt().strip()
        except EOFError:
            break
        except KeyboardInterrupt:
            try:
                if display.confirm_exit():
                    break
            except (EOFError, KeyboardInterrupt):
                break
            continue

        if not line:
            continue
        if line.startswith("/") or line.lower() in EXIT_COMMANDS:
            if not handle_command(agent, line):
                break
            continue

        try:
            result = agent.process(line)
        except KeyboardInterrupt:
            display.error("Interrupted.")
            continue
        display.final_result(result)

    display.goodbye()


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    configure_logging(args.verbose)

    try:
        settings = load_settings(
            api_key=args.api_key,
            model=args.model,
            provider=args.provider,
            working_directory=args.working_directory,
        )
        if not os.path.isdir(settings.working_directory):
            raise ConfigError(f"Working directory does not exist: {settings.working_directory}")
        agent, sandbox = build_agent(settings)
    except ConfigError as exc:
        display.error(str(exc))
        return 1

    logger.debug("Starting %s model %s in %s", settings.provider, settings.model, sandbox.root)
    display.banner(settings.provider, settings.model, sandbox.root)
    repl(agent)
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
