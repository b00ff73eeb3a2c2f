#!/usr/bin/env python3
"""main.py

Entry point for polychat - multilingual, search-grounded chat.
Provides an interactive CLI interface using the Rich library.
"""

from __future__ import annotations

# Standard Library
import logging
import sys
from typing import NoReturn

# Third-Party Libraries
from dotenv import load_dotenv
from rich.panel import Panel
from rich.theme import Theme
from rich.prompt import Prompt
from rich.console import Console
from rich.markdown import Markdown

# Local Modules
from polychat.chat import ChatOrchestrator
from polychat.config import ChatSettings, get_settings
from polychat.errors import ConfigurationError, MessageProcessingError
from polychat.memory import ConversationStore
from polychat.models import ChatResponse

# Load environment variables from .env file
load_dotenv()

# Initialize Rich console with custom theme
custom_theme = Theme(
    {
        "info": "cyan",
        "warning": "yellow",
        "error": "bold red",
        "success": "bold green",
        "user": "bold blue",
        "assistant": "green",
    }
)
console = Console(theme=custom_theme)


def display_help() -> None:
    """Display available commands and usage information."""
    help_text = """
**Available Commands:**

- `/help` - Show this help message
- `/clear` - Clear conversation history
- `/history` - Show the retained conversation turns
- `/stats` - Show current context statistics
- `/quit` or `/exit` - Exit polychat
- Any other text - Chat with the assistant

**Tips:**

- Ask "what is", "who is", "latest news about" ... to ground answers in a web search
- Replies follow the language you write in
    """
    console.print(Panel(Markdown(help_text), title="Help", border_style="cyan"))


def display_stats(history: ConversationStore, settings: ChatSettings) -> None:
    """Display current context and memory statistics.

    Args:
        history: The CLI session's conversation store.
        settings: Loaded settings.
    """
    turns = len(history)
    max_turns = history.max_turns

    stats_text = f"""
**Context Statistics:**

- Turns in context: {turns}/{max_turns}
- Provider: `{settings.llm_provider}`
- Context utilization: {(turns / max_turns * 100):.1f}%
    """
    console.print(Panel(Markdown(stats_text), title="Statistics", border_style="cyan"))


def display_history(history: ConversationStore) -> None:
    """Print the retained turns, oldest first."""
    turns = history.get_all()
    if not turns:
        console.print("No conversation yet.\n", style="info")
        return
    for turn in turns:
        style = "user" if turn.role == "user" else "assistant"
        console.print(f"[{style}]{turn.role}[/{style}]: {turn.content}")
    console.print()


def display_response(response: ChatResponse) -> None:
    """Render a reply and its links."""
    body = response.text
    if response.links:
        body += "\n\n**Links:**\n" + "\n".join(f"- {link}" for link in response.links)
    console.print(
        Panel(
            Markdown(body),
            title="[bold green]polychat[/bold green]",
            border_style="green",
        )
    )
    console.print()


def main() -> NoReturn:
    """Main entry point for the polychat CLI."""
    settings = get_settings()
    logging.basicConfig(
        level=settings.log_level,
        format="%(asctime)s - %(name)s - %(levelname)s - %(message)s",
    )

    console.print("Initializing polychat...", style="info")
    console.print(f"Provider: {settings.llm_provider}", style="info")
    console.print(f"Rolling memory: {settings.max_history_length} exchanges\n", style="info")

    try:
        orchestrator = ChatOrchestrator.from_settings(settings)
    except ConfigurationError as exc:
        console.print(f"Failed to initialize: {exc}", style="error")
        console.print("Check LLM_PROVIDER in your environment or .env file.\n", style="warning")
        sys.exit(1)

    history = ConversationStore(settings.max_history_length)
    console.print("polychat ready!\n", style="success")
    console.print(
        "Type [bold]/help[/bold] for commands, or start chatting!\n", style="info"
    )

    # Main chat loop
    while True:
        try:
            user_input = Prompt.ask("[bold blue]You[/bold blue]").strip()

            if not user_input:
                continue

            command = user_input.lower()
            if command in ["/quit", "/exit"]:
                console.print("\nGoodbye!\n", style="success")
                sys.exit(0)

            elif command == "/help":
                display_help()
                continue

            elif command == "/clear":
                history.clear()
                console.print("Conversation history cleared.\n", style="success")
                continue

            elif command == "/history":
                display_history(history)
                continue

            elif command == "/stats":
                display_stats(history, settings)
                continue

            console.print()
            with console.status("[bold green]Thinking...", spinner="dots"):
                response = orchestrator.process_message(user_input, history=history)
            display_response(response)

        except KeyboardInterrupt:
            console.print("\n\nInterrupted. Goodbye!\n", style="warning")
            sys.exit(0)

        except MessageProcessingError as exc:
            console.print(f"\nError: {exc}\n", style="error")
            console.print(
                "You can continue chatting or type /quit to exit.\n", style="info"
            )


if __name__ == "__main__":
    main()
