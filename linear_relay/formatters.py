import logging
from datetime import datetime
from typing import Any, Dict, List, Optional

from .constants import (
    COLORS,
    COMMENT_MAX_CHARS,
    DESCRIPTION_MAX_CHARS,
    EVENT_CONFIGS,
    LINEAR_AVATAR_URL,
    USERNAME_RELAY,
)
from .models import (
    CommentEvent,
    IssueEvent,
    ProjectEvent,
    UnknownEvent,
    User,
    WebhookEvent,
    WebhookIssue,
)
from .utils import capitalize_action, format_timestamp, get_priority_emoji, get_state_emoji, truncate

logger = logging.getLogger(__name__)

NO_DESCRIPTION = "*No description*"


def build_field(name: str, value: str, inline: bool = False) -> Dict[str, Any]:
    item: Dict[str, Any] = {"name": name, "value": value}
    if inline:
        item["inline"] = True
    return item


def build_embed(
    title: Optional[str] = None,
    description: Optional[str] = None,
    url: Optional[str] = None,
    color: Optional[int] = None,
    timestamp: Optional[str] = None,
    footer: Optional[str] = None,
    author: Optional[str] = None,
    fields: Optional[List[Dict[str, Any]]] = None,
) -> Dict[str, Any]:
    """Monta um embed do Discord omitindo chaves vazias."""
    embed: Dict[str, Any] = {}
    if title:
        embed["title"] = title
    if description:
        embed["description"] = description
    if url:
        embed["url"] = url
    if color:
        embed["color"] = color
    if timestamp:
        embed["timestamp"] = timestamp
    if footer:
        embed["footer"] = {"text": footer}
    if author:
        embed["author"] = {"name": author}
    if fields:
        embed["fields"] = fields
    return embed


def build_payload(embeds: List[Dict[str, Any]], username: str, content: Optional[str] = None) -> Dict[str, Any]:
    payload: Dict[str, Any] = {}
    if content:
        payload["content"] = content
    payload["username"] = username
    payload["avatar_url"] = LINEAR_AVATAR_URL
    if embeds:
        payload["embeds"] = embeds
    return payload


def event_title(event_type: str, action: str) -> str:
    config = _event_config(event_type, action)
    title = config["title"].format(action=capitalize_action(action))
    return f"{config['emoji']} {title}"


def event_color(event_type: str, action: str) -> int:
    return COLORS[_event_config(event_type, action)["color"]]


def _event_config(event_type: str, action: str) -> Dict[str, str]:
    configs = EVENT_CONFIGS[event_type]
    return configs.get(action, configs["default"])


def _actor_footer(actor: Optional[User]) -> Optional[str]:
    if actor is None:
        return None
    return f"by {actor.label}"


def _issue_link(issue: WebhookIssue) -> str:
    return f"**[{issue.identifier}]({issue.url})** - {issue.title}"


def format_issue_event(event: IssueEvent, now: Optional[datetime] = None) -> Dict[str, Any]:
    issue = event.issue
    description = truncate(issue.description, DESCRIPTION_MAX_CHARS) or NO_DESCRIPTION

    fields = []
    if issue.state is not None:
        fields.append(build_field("Status", f"{get_state_emoji(issue.state.type)} {issue.state.name}", inline=True))
    if issue.priority_label:
        fields.append(build_field("Priority", f"{get_priority_emoji(issue.priority)} {issue.priority_label}", inline=True))
    if issue.assignee is not None:
        fields.append(build_field("Assignee", f"👤 {issue.assignee.name}", inline=True))
    if issue.team is not None:
        fields.append(build_field("Team", f"👥 {issue.team.name}", inline=True))
    if issue.labels:
        label_names = " ".join(f"`{label.name}`" for label in issue.labels)
        fields.append(build_field("Labels", label_names, inline=False))

    embed = build_embed(
        title=event_title("Issue", event.action),
        description=f"{_issue_link(issue)}\n\n{description}",
        url=issue.url,
        color=event_color("Issue", event.action),
        timestamp=format_timestamp(now),
        footer=_actor_footer(event.actor),
        fields=fields,
    )
    return build_payload([embed], USERNAME_RELAY)


def format_comment_event(event: CommentEvent, now: Optional[datetime] = None) -> Dict[str, Any]:
    comment = event.comment
    issue_info = _issue_link(comment.issue) if comment.issue is not None else ""

    embed = build_embed(
        title=event_title("Comment", event.action),
        description=f"{issue_info}\n\n>>> {truncate(comment.body, COMMENT_MAX_CHARS)}",
        url=comment.url,
        color=event_color("Comment", event.action),
        timestamp=format_timestamp(now),
        footer=_actor_footer(event.actor),
        author=comment.user.name if comment.user is not None else None,
    )
    return build_payload([embed], USERNAME_RELAY)


def format_project_event(event: ProjectEvent, now: Optional[datetime] = None) -> Dict[str, Any]:
    project = event.project
    description = truncate(project.description, DESCRIPTION_MAX_CHARS) or NO_DESCRIPTION

    fields = []
    if project.state:
        fields.append(build_field("State", project.state, inline=True))

    embed = build_embed(
        title=event_title("Project", event.action),
        description=f"**{project.name}**\n\n{description}",
        url=project.url,
        color=event_color("Project", event.action),
        timestamp=format_timestamp(now),
        footer=_actor_footer(event.actor),
        fields=fields,
    )
    return build_payload([embed], USERNAME_RELAY)


def transform_webhook(event: WebhookEvent, now: Optional[datetime] = None) -> Optional[Dict[str, Any]]:
    """
    Converte o evento em payload do Discord.
    Retorna None para UnknownEvent: o webhook é reconhecido mas não encaminhado.
    """
    if isinstance(event, IssueEvent):
        return format_issue_event(event, now)
    if isinstance(event, CommentEvent):
        return format_comment_event(event, now)
    if isinstance(event, ProjectEvent):
        return format_project_event(event, now)
    if isinstance(event, UnknownEvent):
        logger.info("Tipo de webhook não tratado: %s (action=%s)", event.type, event.action)
        return None
    raise TypeError(f"variante de webhook inesperada: {type(event).__name__}")
