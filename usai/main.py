import argparse
import logging
import sys

import pwinput
from rich.logging import RichHandler

from . import __version__
from .config import ENV_API_KEY, ClientConfig
from .core.api import Client
from .core.errors import USAiError
from .core.session import ChatSession
from .ui.interface import UI

EXIT_API_ERROR = 1
EXIT_CONFIG_ERROR = 2


def setup_logging(verbose: bool = False):
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.WARNING,
        format="%(message)s",
        datefmt="[%X]",
        handlers=[RichHandler(rich_tracebacks=True, show_path=False)],
    )
    for noisy in ("httpx", "httpcore", "urllib3"):
        logging.getLogger(noisy).setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog="usai", description="Command-line client for the USAi API.")
    parser.add_argument("--version", action="version", version=f"%(prog)s {__version__}")
    parser.add_argument("--api-key", help=f"API key (default: ${ENV_API_KEY})")
    parser.add_argument("--base-url", help="API base URL (default: $USAI_BASE_URL)")
    parser.add_argument("--env-file", help="Path to a .env file to load")
    parser.add_argument("--timeout-ms", type=int, help="Per-attempt timeout in milliseconds")
    parser.add_argument("--max-retries", type=int, help="Retry budget for transient failures")
    parser.add_argument("-v", "--verbose", action="store_true", help="Enable debug logging")

    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("models", help="List available models")

    chat = sub.add_parser("chat", help="Send one prompt")
    chat.add_argument("model")
    chat.add_argument("prompt")
    chat.add_argument("--system", help="System prompt")
    chat.add_argument("--temperature", type=float)
    chat.add_argument("--max-tokens", type=int)
    chat.add_argument("--stream", action="store_true", help="Render the reply as it arrives")

    embed = sub.add_parser("embed", help="Create embeddings")
    embed.add_argument("model")
    embed.add_argument("texts", nargs="+")
    embed.add_argument(
        "--input-type",
        choices=["search_document", "search_query", "clustering", "classification"],
    )

    image = sub.add_parser("image", help="Ask a question about an image")
    image.add_argument("model")
    image.add_argument("path")
    image.add_argument("prompt")
    image.add_argument("--detail", choices=["low", "high", "auto"], default="auto")

    document = sub.add_parser("document", help="Ask a question about a document")
    document.add_argument("model")
    document.add_argument("path")
    document.add_argument("prompt")

    repl = sub.add_parser("repl", help="Interactive chat")
    repl.add_argument("model")
    repl.add_argument("--system", help="System prompt")
    repl.add_argument("--temperature", type=float)

    return parser


def load_client(args) -> Client:
    """Build a client from flags, the environment and, if needed, a masked prompt."""
    overrides = {
        "api_key": args.api_key,
        "base_url": args.base_url,
        "timeout_ms": args.timeout_ms,
        "max_retries": args.max_retries,
    }
    try:
        return Client(config=ClientConfig.from_env(args.env_file, **overrides))
    except ValueError as e:
        if str(e) != "API key is required" or not sys.stdin.isatty():
            raise
    overrides["api_key"] = pwinput.pwinput(prompt="API key: ", mask="*").strip()
    return Client(config=ClientConfig.from_env(args.env_file, **overrides))


def run_repl(ui: UI, session: ChatSession):
    ui.show_msg("Chat", f"Model: [bold]{session.model}[/]\n/model NAME switches models, /reset clears the history, /exit quits.", "bright_blue")
    while True:
        try:
            user_input = ui.get_input().strip()
        except KeyboardInterrupt:
            break
        if not user_input:
            continue
        if user_input == "/exit":
            break
        if user_input.startswith("/model "):
            session.set_model(user_input.split(None, 1)[1])
            ui.console.print(f"[yellow]Model set to {session.model}.[/]")
            continue
        if user_input == "/reset":
            session.reset()
            ui.console.print("[yellow]History cleared.[/]")
            continue
        reply = session.send(user_input)
        try:
            ui.stream_markdown(session.model, reply)
        except KeyboardInterrupt:
            reply.close()
            ui.console.print("[yellow]Interrupted.[/]")
        except USAiError as e:
            ui.show_error(e)


def run(args, ui: UI, client: Client):
    if args.command == "models":
        ui.show_models(client.models.list())
    elif args.command == "chat":
        if args.stream:
            ui.stream_markdown(args.model, client.complete_stream(
                args.model, args.prompt,
                system_prompt=args.system, temperature=args.temperature, max_tokens=args.max_tokens,
            ))
        else:
            ui.render_markdown(args.model, client.complete(
                args.model, args.prompt,
                system_prompt=args.system, temperature=args.temperature, max_tokens=args.max_tokens,
            ))
    elif args.command == "embed":
        texts = args.texts[0] if len(args.texts) == 1 else args.texts
        ui.show_embeddings(client.embeddings.create(model=args.model, input=texts, input_type=args.input_type))
    elif args.command == "image":
        ui.render_markdown(args.model, client.analyze_image(args.model, args.path, args.prompt, detail=args.detail))
    elif args.command == "document":
        ui.render_markdown(args.model, client.analyze_document(args.model, args.path, args.prompt))
    elif args.command == "repl":
        ui.banner(client.config.base_url)
        run_repl(ui, ChatSession(client, args.model, system_prompt=args.system, temperature=args.temperature))


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)
    setup_logging(args.verbose)
    ui = UI()

    try:
        client = load_client(args)
    except ValueError as e:
        ui.show_error(e)
        return EXIT_CONFIG_ERROR

    with client:
        try:
            run(args, ui, client)
        except USAiError as e:
            ui.show_error(e)
            return EXIT_API_ERROR
        except OSError as e:
            ui.show_error(e)
            return EXIT_CONFIG_ERROR
    return 0


if __name__ == "__main__":
    sys.exit(main())
