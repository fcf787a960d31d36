"""CLI: courtney chat, courtney call"""

import asyncio

import click
from rich.console import Console

from courtney_ai.errors import TransportError
from courtney_ai.models.form import UserContext
from courtney_ai.models.session import Message, Role, format_duration
from courtney_ai.widget import SessionController

console = Console()

ROLE_STYLES = {
    Role.ASSISTANT: "[green]Courtney:[/green]",
    Role.USER: "[blue]You:[/blue]",
    Role.SYSTEM: "[red]System:[/red]",
}


def _get_controller() -> SessionController:
    from courtney_ai.cli.main import _get_controller
    return _get_controller()


def _run(coro):
    from courtney_ai.cli.main import _run
    return _run(coro)


def _prompt_user_context() -> UserContext:
    console.print("[bold]How can we help you?[/bold]")
    while True:
        ctx = UserContext(
            name=click.prompt("Name"),
            email=click.prompt("Email"),
            issue=click.prompt("How can we help?"),
        )
        errors = ctx.field_errors()
        if not errors:
            return ctx
        for message in errors.values():
            console.print(f"[red]{message}[/red]")


def _printer(show_user: bool):
    def _print(message: Message) -> None:
        if message.role == Role.USER and not show_user:
            return
        console.print(f"{ROLE_STYLES[message.role]} {message.content}")
    return _print


async def _collect_feedback(controller: SessionController) -> None:
    if not controller.feedback.pending:
        return
    console.print("\n[bold]Rate Your Experience[/bold]")
    rating = click.prompt("How would you rate your conversation with Courtney? (1-5, 0 to skip)",
                          type=click.IntRange(0, 5), default=0)
    if rating == 0:
        controller.feedback.skip()
        return
    comment = click.prompt("Additional feedback (optional)", default="", show_default=False)
    await controller.feedback.submit(rating, comment)
    console.print("[green]Thanks for your feedback![/green]")


@click.command("chat")
def chat_cmd():
    """Text chat with Courtney."""

    async def _chat():
        controller = _get_controller()
        controller.open()
        remove_listener = controller.transcript.add_listener(_printer(show_user=False))
        try:
            while True:
                await controller.start_chat(_prompt_user_context())
                console.print("[cyan]Type your message (/end to finish, /new to restart, /quit to exit)[/cyan]\n")
                while controller.session_active:
                    msg = click.prompt("You", prompt_suffix=": ")
                    cmd = msg.strip().lower()
                    if cmd in ("/quit", "/exit"):
                        await controller.end_session()
                        await _collect_feedback(controller)
                        return
                    if cmd == "/end":
                        await controller.end_session()
                    elif cmd == "/new":
                        break
                    else:
                        with console.status("Courtney is typing..."):
                            await controller.send_message(msg)
                await _collect_feedback(controller)
                if controller.session_active or click.confirm("Start a new session?", default=False):
                    await controller.new_session()
                    continue
                return
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            remove_listener()
            await controller.shutdown()

    _run(_chat())


@click.command("call")
def call_cmd():
    """Voice call with Courtney."""

    async def _call():
        controller = _get_controller()
        controller.open()
        remove_listener = controller.transcript.add_listener(_printer(show_user=True))
        try:
            ctx = _prompt_user_context()
            with console.status("Connecting..."):
                try:
                    await controller.start_call(ctx)
                except TransportError as e:
                    console.print(f"[red]{e}[/red]")
                    return
            console.print("[cyan]Call in progress. m + Enter toggles mute, q + Enter hangs up.[/cyan]\n")
            while controller.session_active:
                cmd = (await asyncio.to_thread(input)).strip().lower()
                if not controller.session_active:
                    break
                if cmd == "m":
                    muted = await controller.toggle_mute()
                    console.print(f"[dim]{'Muted' if muted else 'Unmuted'}[/dim]")
                elif cmd == "q":
                    await controller.end_session()
            console.print(f"[dim]Call ended. Total duration: "
                          f"{format_duration(controller.controls.elapsed_seconds)}[/dim]")
            await _collect_feedback(controller)
        except (KeyboardInterrupt, EOFError, click.Abort):
            pass
        finally:
            remove_listener()
            await controller.shutdown()

    _run(_call())
