"""Command-line interface for memspace.

Subcommands manage spaces; ``chat`` opens an interactive session in one.
"""

import argparse
import asyncio
import sys

from .agent import ChatRequest, ChatResponse, ChatService, GroqChatProvider
from .config import AppConfig, config_from_env
from .conversation_logger import ConversationLogger
from .errors import MemspaceError
from .logging import configure_logger
from .memory import SpaceService, SpaceStorage, requires_confirmation
from .session import FileSessionStore, SessionManager

BANNER = """
╔══════════════════════════════════════════╗
║              memspace v0.1.0             ║
║      Chat with persistent memory         ║
╚══════════════════════════════════════════╝

Commands:
  /exit, /quit  - Exit the chat
  /new          - Start a new session in this space
  /history      - Show messages of the current session
  /help         - Show this help

Type your message and press Enter.
"""


def build_services(config: AppConfig) -> tuple[SpaceService, SessionManager, ChatService]:
    """Wire storage, sessions, provider and loggers from configuration."""
    spaces = SpaceService(SpaceStorage(config.data_dir))
    sessions = SessionManager(FileSessionStore(config.sessions_dir))
    provider = GroqChatProvider(config.provider)
    chat_service = ChatService(
        spaces,
        sessions,
        provider,
        event_logger=configure_logger(config.log_dir),
        conversation_logger=ConversationLogger(config.log_dir / "conversations"),
    )
    return spaces, sessions, chat_service


class CLI:
    """Interactive chat inside one space."""

    def __init__(
        self,
        space_id: str,
        chat_service: ChatService,
        session_id: str | None = None,
    ) -> None:
        self.space_id = space_id
        self.chat_service = chat_service
        self.session_id = session_id

    def _format_response(self, response: ChatResponse) -> str:
        """Format the assistant reply for display."""
        output = ["\n" + "─" * 40]
        output.append(response.message.text)
        output.append("─" * 40)

        memory = response.extracted_memory
        if memory is not None:
            marker = " (please review)" if requires_confirmation(memory) else ""
            output.append(
                f"📝 Remembered {len(memory.facts)} fact(s), "
                f"{len(memory.notes)} note(s), "
                f"{len(memory.profile_updates)} profile update(s){marker}"
            )

        return "\n".join(output)

    async def _process_message(self, message: str) -> None:
        """Send one message and print the reply."""
        request = ChatRequest(
            space_id=self.space_id, message=message, session_id=self.session_id
        )
        try:
            response = await self.chat_service.chat(request)
        except MemspaceError as e:
            print(f"\n❌ Error: {e}")
            return

        self.session_id = response.session_id
        print(self._format_response(response))

    async def _show_history(self) -> None:
        if self.session_id is None:
            print("No messages yet.")
            return

        messages = await self.chat_service.sessions.get_chat_history(self.session_id)
        for message in messages:
            print(f"[{message.timestamp}] {message.role}: {message.text}")

    async def _handle_command(self, command: str) -> bool:
        """Handle a special command. Returns True if should continue, False to exit."""
        cmd = command.lower().strip()

        if cmd in ("/exit", "/quit", "exit", "quit"):
            print("\n👋 Goodbye!")
            return False

        if cmd == "/new":
            self.session_id = None
            print("\n✓ New session started.")
            return True

        if cmd == "/history":
            await self._show_history()
            return True

        if cmd == "/help":
            print(BANNER)
            return True

        return True  # Unknown command, continue

    async def run(self) -> None:
        """Run the interactive loop."""
        print(BANNER)
        print(f"Space: {self.space_id}\n")

        while True:
            try:
                user_input = input("you> ").strip()
            except (KeyboardInterrupt, EOFError):
                print("\n👋 Goodbye!")
                break

            if not user_input:
                continue

            if user_input.startswith("/") or user_input.lower() in ("exit", "quit"):
                if not await self._handle_command(user_input):
                    break
                continue

            await self._process_message(user_input)


async def cmd_spaces(args: argparse.Namespace, config: AppConfig) -> int:
    """List all spaces."""
    spaces, _, _ = build_services(config)
    items = await spaces.list_spaces()

    if not items:
        print("No spaces found.")
        return 0

    print(f"\n{'Id':<38} {'Updated':<26} Name")
    print("-" * 80)
    for meta in items:
        print(f"{meta.id:<38} {meta.updated_at:<26} {meta.name}")
    return 0


async def cmd_new_space(args: argparse.Namespace, config: AppConfig) -> int:
    """Create a space and print its id."""
    spaces, _, _ = build_services(config)
    await spaces.init()
    metadata = await spaces.create_space(args.name, args.description or "")
    print(metadata.id)
    return 0


async def cmd_chat(args: argparse.Namespace, config: AppConfig) -> int:
    """Open an interactive chat in a space."""
    if not config.provider.api_key:
        print("❌ Error: GROQ_API_KEY environment variable not set")
        print("Please set it in your .env file or environment")
        return 1

    spaces, _, chat_service = build_services(config)
    if not await spaces.storage.space_exists(args.space_id):
        print(f"❌ Error: space {args.space_id} not found")
        return 1

    cli = CLI(args.space_id, chat_service, session_id=args.session_id)
    await cli.run()
    return 0


def create_parser() -> argparse.ArgumentParser:
    """Create the argument parser."""
    parser = argparse.ArgumentParser(
        prog="memspace",
        description="Chat with an AI that remembers, organised in spaces",
    )
    subparsers = parser.add_subparsers(dest="command", help="Available commands")

    subparsers.add_parser("spaces", help="List spaces")

    new_parser = subparsers.add_parser("new-space", help="Create a space")
    new_parser.add_argument("name", help="Name of the space")
    new_parser.add_argument("description", nargs="?", help="Short description")

    chat_parser = subparsers.add_parser("chat", help="Chat inside a space")
    chat_parser.add_argument("space_id", help="Id of the space")
    chat_parser.add_argument("session_id", nargs="?", help="Session to resume")

    return parser


def run_cli(argv: list[str] | None = None, config: AppConfig | None = None) -> int:
    """Run the CLI with given arguments.

    Args:
        argv: Command-line arguments. Uses sys.argv[1:] if None.
        config: Configuration; read from the environment if None.

    Returns:
        Exit code (0 for success, non-zero for error).
    """
    parser = create_parser()
    args = parser.parse_args(argv)

    if args.command is None:
        parser.print_help()
        return 0

    commands = {
        "spaces": cmd_spaces,
        "new-space": cmd_new_space,
        "chat": cmd_chat,
    }

    handler = commands.get(args.command)
    if handler is None:
        parser.print_help()
        return 1

    return asyncio.run(handler(args, config or config_from_env()))


if __name__ == "__main__":
    sys.exit(run_cli())
