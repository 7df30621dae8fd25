#!/usr/bin/env python3
"""Interactive chat CLI for testing the recruiting agent service."""

import json
import sys
from collections.abc import Iterator

import httpx
from rich.console import Console
from rich.markdown import Markdown
from rich.panel import Panel
from rich.prompt import Prompt

TEST_ATHLETES = [
    "12345 - Marcus Johnson, WR, Class of 2026 (Los Angeles, CA)",
    "12346 - Tyler Brooks, QB, Class of 2025",
    "12347 - Andre Johnson, RB (AZ)",
]


def iter_sse(lines: Iterator[str]) -> Iterator[tuple[str, dict]]:
    """Group raw SSE lines into (event, data) pairs."""
    event = "message"
    data_lines: list[str] = []
    for line in lines:
        if not line:
            if data_lines:
                yield event, json.loads("\n".join(data_lines))
            event, data_lines = "message", []
        elif line.startswith("event:"):
            event = line[len("event:") :].strip()
        elif line.startswith("data:"):
            data_lines.append(line[len("data:") :].strip())
    if data_lines:
        yield event, json.loads("\n".join(data_lines))


class ChatCLI:
    """Interactive chat interface for the recruiting agent service."""

    def __init__(self, base_url: str = "http://localhost:8000", athlete_user_id: str = "12345"):
        """Initialize chat CLI."""
        self.base_url = base_url
        self.athlete_user_id = athlete_user_id
        self.token: str | None = None
        self.history: list[dict] = []
        self.console = Console()
        self.client = httpx.Client(timeout=120.0)

    def start(self) -> None:
        """Start the interactive chat session."""
        self.console.print(
            Panel.fit(
                "[bold blue]🏈 SPARQ Recruiting Agent - Interactive Chat[/bold blue]\n"
                "Type your messages to chat with your recruiting agent.\n"
                "Commands: /help, /clear, /quit",
                border_style="blue",
            )
        )

        if not self._test_connection():
            self.console.print(f"[red]❌ Cannot connect to the service at {self.base_url}.[/red]")
            return

        if not self._open_session():
            return

        self.console.print(f"[green]✅ Connected as athlete {self.athlete_user_id}[/green]\n")
        self._show_test_athletes()

        try:
            while True:
                user_input = Prompt.ask("\n[bold cyan]You[/bold cyan]")

                if user_input.lower() in ["/quit", "/exit", "quit", "exit"]:
                    break
                elif user_input.lower() == "/help":
                    self._show_help()
                    continue
                elif user_input.lower() == "/clear":
                    self.history = []
                    self.console.print("[yellow]🔄 Conversation cleared[/yellow]")
                    continue
                elif user_input.strip() == "":
                    continue

                response = self._send_message(user_input)
                if response is not None:
                    self.history.append({"role": "user", "content": user_input})
                    self.history.append({"role": "assistant", "content": response})

        except KeyboardInterrupt:
            pass
        finally:
            self._close_session()
            self.console.print("\n[yellow]👋 Goodbye![/yellow]")
            self.client.close()

    def _test_connection(self) -> bool:
        """Test connection to the service."""
        try:
            response = self.client.get(f"{self.base_url}/health")
            return response.status_code == 200
        except httpx.HTTPError:
            return False

    def _open_session(self) -> bool:
        response = self.client.post(f"{self.base_url}/api/sessions", json={"athlete_user_id": self.athlete_user_id})
        if response.status_code != 201:
            self.console.print(f"[red]❌ Could not open session: {response.status_code} - {response.text}[/red]")
            return False
        self.token = response.json()["token"]
        return True

    def _close_session(self) -> None:
        if not self.token:
            return
        try:
            self.client.delete(f"{self.base_url}/api/sessions/{self.token}")
        except httpx.HTTPError:
            pass

    def _send_message(self, message: str) -> str | None:
        """Stream one reply, rendering events as they arrive.

        Returns:
            The final response text, or None if the request failed
        """
        payload = {
            "message": message,
            "athlete_user_id": self.athlete_user_id,
            "conversation_history": self.history,
        }
        headers = {"Authorization": f"Bearer {self.token}"} if self.token else {}

        try:
            with self.client.stream("POST", f"{self.base_url}/api/chat", json=payload, headers=headers) as response:
                if response.status_code != 200:
                    response.read()
                    self.console.print(f"[red]❌ API Error: {response.status_code} - {response.text}[/red]")
                    return None
                return self._render_stream(iter_sse(response.iter_lines()))
        except httpx.HTTPError as e:
            self.console.print(f"[red]❌ Connection error: {e}[/red]")
            return None

    def _render_stream(self, events: Iterator[tuple[str, dict]]) -> str | None:
        streamed = False
        for event, data in events:
            if event == "start":
                self.console.print(f"[dim]💭 {data.get('message', 'Thinking...')}[/dim]")
            elif event == "text":
                self.console.print(data["text"], end="", markup=False, highlight=False)
                streamed = True
            elif event == "tool_start":
                self.console.print(f"\n[magenta]🔧 {data['tool']}[/magenta]")
            elif event == "tools_executing":
                self.console.print(f"[dim]⏳ Running {data['count']} tool(s)...[/dim]")
            elif event == "complete":
                if streamed:
                    self.console.print()
                self._display_response(data["response"], data.get("tools_used", []))
                return data["response"]
            elif event == "error":
                self.console.print(f"\n[red]❌ {data['message']}[/red]")
                return None
        self.console.print("\n[red]❌ Stream ended unexpectedly[/red]")
        return None

    def _display_response(self, response: str, tools_used: list[str]) -> None:
        """Display the final response with nice formatting."""
        subtitle = f"[dim]tools: {', '.join(tools_used)}[/dim]" if tools_used else None
        self.console.print(
            Panel(
                Markdown(response or "No response"),
                title="[bold green]🤖 Recruiting Agent[/bold green]",
                subtitle=subtitle,
                border_style="green",
                padding=(1, 2),
            )
        )

    def _show_test_athletes(self) -> None:
        """Show available test athletes."""
        athlete_list = "\n".join([f"• {athlete}" for athlete in TEST_ATHLETES])

        self.console.print(
            Panel(
                f"[bold]Test Athletes (GMTM user ID):[/bold]\n\n{athlete_list}\n\n"
                "[dim]Pass a user ID as the second argument to chat as that athlete[/dim]",
                title="[yellow]📋 Available Test Data[/yellow]",
                border_style="yellow",
            )
        )

    def _show_help(self) -> None:
        """Show help information."""
        help_text = """
[bold]Available Commands:[/bold]
• /help - Show this help message
• /clear - Forget the conversation so far
• /quit or /exit - Exit the chat

[bold]Example Conversation:[/bold]
1. "What's on my profile?"
2. "Find WR combines in the next 60 days"
3. "Is combine_001 a good fit for me?"
4. "Draft an email to the Stanford coach"
5. "Mark combine_001 as registered"
        """

        self.console.print(Panel(help_text.strip(), title="[cyan]❓ Help[/cyan]", border_style="cyan"))


def main():
    """Main entry point for the chat CLI."""
    base_url = sys.argv[1] if len(sys.argv) > 1 else "http://localhost:8000"
    athlete_user_id = sys.argv[2] if len(sys.argv) > 2 else "12345"

    chat = ChatCLI(base_url, athlete_user_id)
    chat.start()


if __name__ == "__main__":
    main()
