"""Notifications commands."""

from __future__ import annotations

from typing import Optional

import typer

from polykey_cli.commands._common import agent_session, optional_int
from polykey_cli.output import get_output, print_dict, print_list

notifications_app = typer.Typer(no_args_is_help=True, help="Receive notifications from other nodes.")


@notifications_app.command("read")
def notifications_read(
    ctx: typer.Context,
    unread: bool = typer.Option(False, "--unread", "-u", help="Only display unread notifications."),
    number: str = typer.Option("all", "--number", "-n", help="Number of notifications to read."),
    order: str = typer.Option("newest", "--order", "-o", help="Order to read notifications: newest or oldest."),
) -> None:
    """Display notifications.

    Each notification is printed as its own record. In ``json`` format the
    whole batch is printed as one array.
    """
    count: Optional[int | str] = optional_int(number)
    with agent_session(ctx) as session:
        messages = session.collect("notificationsRead", unread=unread, number=count, order=order)

    notifications = [message["notification"] for message in messages]
    if get_output().is_json:
        print_list(notifications)
        return
    for notification in notifications:
        print_dict(notification)
