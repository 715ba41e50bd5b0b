"""Identities commands -- digital identity providers and gestalts."""

from __future__ import annotations

import webbrowser
from typing import Any, Optional

import typer

from polykey_cli.auth import AuthMetadata
from polykey_cli.commands._common import AgentSession, agent_session, typer_parser
from polykey_cli.output import get_output, info, print_dict, print_list
from polykey_cli.parsers import GestaltId, parse_gestalt_id, parse_provider_id

identities_app = typer.Typer(no_args_is_help=True, help="Manage digital identities.")


@identities_app.command("authenticate")
def identities_authenticate(
    ctx: typer.Context,
    provider_id: str = typer.Argument(
        help="Name of the digital identity provider.",
        parser=typer_parser(parse_provider_id),
    ),
) -> None:
    """Authenticate a digital identity provider.

    The agent streams an authorisation request (a URL plus any extra
    properties the provider needs) followed by the authenticated identity.
    The URL is opened in the default browser when one is available.

    Example::

        pk identities authenticate github.com
    """
    with agent_session(ctx) as session:
        session.run(lambda auth: _authenticate(session, auth, provider_id))


def _authenticate(session: AgentSession, auth: AuthMetadata, provider_id: str) -> None:
    for message in session.client.stream("identitiesAuthenticate", auth, providerId=provider_id):
        request = message.get("request")
        response = message.get("response")
        if request is not None:
            info("Navigate to the URL in order to authenticate")
            info("Use any additional properties to complete authentication")
            webbrowser.open(request["url"])
            print_dict({"url": request["url"], **request.get("dataMap", {})})
        elif response is not None:
            info(f"Authenticated digital identity provider {provider_id}")
            print_list([response["identityId"]])


def _collect_gestalts(session: AgentSession, auth: AuthMetadata) -> list[dict[str, Any]]:
    gestalts: list[dict[str, Any]] = []
    for message in session.client.stream("gestaltsGestaltList", auth):
        gestalt = message["gestalt"]
        nodes = [{"nodeId": node["nodeId"]} for node in gestalt.get("nodes", {}).values()]
        identities = [
            {"providerId": identity["providerId"], "identityId": identity["identityId"]}
            for identity in gestalt.get("identities", {}).values()
        ]
        permissions = None
        if nodes:
            node_id = nodes[0]["nodeId"]
            actions = session.driver.run(
                lambda a: session.client.call("gestaltsActionsGetByNode", a, nodeIdEncoded=node_id),
                auth,
            )
            permissions = actions.get("actionsList") or None
        gestalts.append({"permissions": permissions, "nodes": nodes, "identities": identities})
    return gestalts


@identities_app.command("list")
def identities_list(ctx: typer.Context) -> None:
    """List all the gestalts in the gestalt graph."""
    with agent_session(ctx) as session:
        gestalts = session.run(lambda auth: _collect_gestalts(session, auth))

    if get_output().is_json:
        print_list(gestalts)
        return

    lines: list[str] = []
    for count, gestalt in enumerate(gestalts, start=1):
        lines.append(f"gestalt {count}")
        permissions = gestalt["permissions"]
        lines.append(f"permissions: {','.join(permissions) if permissions else 'None'}")
        lines.extend(node["nodeId"] for node in gestalt["nodes"])
        lines.extend(
            f"{identity['providerId']}:{identity['identityId']}"
            for identity in gestalt["identities"]
        )
        lines.append("")
    print_list(lines)


@identities_app.command("authenticated")
def identities_authenticated(
    ctx: typer.Context,
    provider_id: Optional[str] = typer.Option(
        None,
        "--provider-id",
        help="Only list identities authenticated with this provider.",
        parser=typer_parser(parse_provider_id),
    ),
) -> None:
    """List the identities the agent is authenticated with."""
    with agent_session(ctx) as session:
        identities = session.collect("identitiesAuthenticatedGet", providerId=provider_id)

    for identity in identities:
        if get_output().is_json:
            print_dict({"providerId": identity["providerId"], "identityId": identity["identityId"]})
        else:
            print_list([f"{identity['providerId']}:{identity['identityId']}"])


_GESTALT_ID_HELP = "Node ID or <providerId>:<identityId> of the gestalt."


@identities_app.command("trust")
def identities_trust(
    ctx: typer.Context,
    gestalt_id: GestaltId = typer.Argument(
        help=_GESTALT_ID_HELP, parser=typer_parser(parse_gestalt_id)
    ),
) -> None:
    """Trust a node or identity and the gestalt it belongs to.

    Trusting grants the ``notify`` permission. An identity must already
    have been discovered by the agent.
    """
    with agent_session(ctx) as session:
        if gestalt_id.node_id is not None:
            session.call("gestaltsGestaltTrustByNode", nodeIdEncoded=gestalt_id.node_id)
        else:
            session.call(
                "gestaltsGestaltTrustByIdentity",
                providerId=gestalt_id.provider_id,
                identityId=gestalt_id.identity_id,
            )


@identities_app.command("untrust")
def identities_untrust(
    ctx: typer.Context,
    gestalt_id: GestaltId = typer.Argument(
        help=_GESTALT_ID_HELP, parser=typer_parser(parse_gestalt_id)
    ),
) -> None:
    """Remove the ``notify`` permission from a node or identity's gestalt."""
    with agent_session(ctx) as session:
        if gestalt_id.node_id is not None:
            session.call(
                "gestaltsActionsUnsetByNode",
                nodeIdEncoded=gestalt_id.node_id,
                action="notify",
            )
        else:
            session.call(
                "gestaltsActionsUnsetByIdentity",
                providerId=gestalt_id.provider_id,
                identityId=gestalt_id.identity_id,
                action="notify",
            )
